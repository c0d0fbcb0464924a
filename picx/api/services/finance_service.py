"""
Finance Service
Monthly per-artist financial reports and the statistics built on them.
"""

import calendar
import logging
from collections import OrderedDict
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Dict, List, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...db.models import (
    ORDER_PAID,
    FinancialReport,
    Order,
    OrderDetail,
    Payment,
    Product,
    utcnow,
)
from .wallet_service import to_money

logger = logging.getLogger(__name__)


def month_bounds(year: int, month: int) -> Tuple[date, date]:
    """First and last calendar day of a month."""
    if not 1 <= month <= 12:
        raise ValueError(f"Invalid month: {month}")
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def previous_month(today: date) -> Tuple[int, int]:
    first_of_month = today.replace(day=1)
    last_month = first_of_month - timedelta(days=1)
    return last_month.year, last_month.month


def commission_for(total_sales: Decimal, commission_rate: Decimal) -> Decimal:
    return to_money(to_money(total_sales) * Decimal(str(commission_rate)) / Decimal("100"))


def sales_by_artist(db: Session, period_start: date, period_end: date) -> Dict[int, Decimal]:
    """Sum of paid order-detail prices per artist, by payment date."""
    start = datetime.combine(period_start, datetime.min.time())
    end = datetime.combine(period_end + timedelta(days=1), datetime.min.time())

    # An order may carry several payment rows; count it once
    paid_in_period = (
        db.query(Payment.payment_id)
        .filter(
            Payment.order_id == Order.order_id,
            Payment.payment_date >= start,
            Payment.payment_date < end,
        )
        .exists()
    )

    rows = (
        db.query(Product.artist_id, func.sum(OrderDetail.total_price))
        .join(OrderDetail, OrderDetail.product_id == Product.product_id)
        .join(Order, Order.order_id == OrderDetail.order_id)
        .filter(Order.status == ORDER_PAID, paid_in_period)
        .group_by(Product.artist_id)
        .all()
    )
    return {artist_id: to_money(total) for artist_id, total in rows}


def generate_financial_reports(
    db: Session, year: int, month: int, commission_rate: Decimal
) -> List[FinancialReport]:
    """
    Build or refresh the FinancialReport of every artist who sold in a month.

    The caller commits.
    """
    period_start, period_end = month_bounds(year, month)
    rate = to_money(commission_rate)
    reports = []

    for artist_id, total_sales in sales_by_artist(db, period_start, period_end).items():
        commission = commission_for(total_sales, rate)
        report = (
            db.query(FinancialReport)
            .filter(
                FinancialReport.artist_id == artist_id,
                FinancialReport.period_start == period_start,
                FinancialReport.period_end == period_end,
            )
            .first()
        )
        if report is None:
            report = FinancialReport(
                artist_id=artist_id, period_start=period_start, period_end=period_end
            )
            db.add(report)

        report.total_sales = total_sales
        report.total_commission = commission
        report.net_earnings = total_sales - commission
        report.commission_rate = rate
        report.generated_at = utcnow()
        reports.append(report)

    db.flush()
    logger.info(f"Generated {len(reports)} financial report(s) for {year}-{month:02d}")
    return reports


def artist_statistics(db: Session, artist_id: int) -> List[dict]:
    reports = (
        db.query(FinancialReport)
        .filter(FinancialReport.artist_id == artist_id)
        .order_by(FinancialReport.period_start)
        .all()
    )
    return [
        {
            "month": report.period_start.strftime("%Y-%m"),
            "income": float(report.total_sales),
            "expense": float(report.total_commission),
        }
        for report in reports
    ]


def admin_statistics(db: Session) -> List[dict]:
    totals: "OrderedDict[str, List[Decimal]]" = OrderedDict()
    reports = db.query(FinancialReport).order_by(FinancialReport.period_start).all()
    for report in reports:
        month = report.period_start.strftime("%Y-%m")
        income, expense = totals.get(month, [Decimal("0.00"), Decimal("0.00")])
        totals[month] = [income + to_money(report.total_sales), expense + to_money(report.total_commission)]

    return [
        {"month": month, "income": float(income), "expense": float(expense)}
        for month, (income, expense) in totals.items()
    ]
