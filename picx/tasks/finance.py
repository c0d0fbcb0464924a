"""
Finance Tasks
Scheduled generation of per-artist financial reports.
"""

import logging
from datetime import date
from typing import Any, Dict, Optional

from .celery_app import app

logger = logging.getLogger(__name__)


def run_report_generation(
    session_factory, year: int, month: int, commission_rate=None
) -> Dict[str, Any]:
    """
    Generate one month of reports in its own session.

    Args:
        session_factory: Callable returning a SQLAlchemy session
        year: Report year
        month: Report month (1-12)
        commission_rate: Percentage; defaults to COMMISSION_RATE

    Returns:
        Dict with the period and number of reports written
    """
    from ..api.config import get_settings
    from ..api.services.finance_service import generate_financial_reports

    rate = commission_rate if commission_rate is not None else get_settings().commission_rate

    db = session_factory()
    try:
        reports = generate_financial_reports(db, year, month, rate)
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()

    return {"status": "success", "period": f"{year}-{month:02d}", "reports_generated": len(reports)}


@app.task(
    bind=True,
    name="tasks.generate_monthly_financial_reports",
    max_retries=3,
    default_retry_delay=300,
)
def generate_monthly_financial_reports(
    self, year: Optional[int] = None, month: Optional[int] = None
) -> Dict[str, Any]:
    """
    Build the financial reports of a month, the previous one by default.

    Runs from Celery Beat at 01:00 on the first day of each month.
    """
    from ..api.services.finance_service import previous_month
    from ..db.session import SessionLocal

    if year is None or month is None:
        year, month = previous_month(date.today())

    logger.info(f"Generating financial reports for {year}-{month:02d}")
    try:
        result = run_report_generation(SessionLocal, year, month)
    except Exception as e:
        logger.error(f"Financial report generation failed for {year}-{month:02d}: {e}")
        raise self.retry(exc=e)

    logger.info(f"Financial reports done: {result['reports_generated']} report(s)")
    return result
