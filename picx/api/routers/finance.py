"""
Finance routes.
Monthly income and commission statistics built from financial reports.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...db.models import ROLE_ADMIN, ROLE_ARTIST, User
from ..config import get_settings
from ..dependencies import get_db, require_role
from ..schemas.finance import GenerateReportsRequest, GenerateReportsResponse, MonthlyStatistic
from ..services import finance_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/finance", tags=["Finance"])


@router.get("/artist-statistics", response_model=List[MonthlyStatistic])
async def get_artist_statistics(
    current_user: User = Depends(require_role(ROLE_ARTIST, ROLE_ADMIN)),
    db: Session = Depends(get_db),
) -> List[MonthlyStatistic]:
    """The caller's monthly sales (income) and commission (expense)."""
    return [
        MonthlyStatistic(**row)
        for row in finance_service.artist_statistics(db, current_user.user_id)
    ]


@router.get("/admin-statistics", response_model=List[MonthlyStatistic])
async def get_admin_statistics(
    admin: User = Depends(require_role(ROLE_ADMIN)),
    db: Session = Depends(get_db),
) -> List[MonthlyStatistic]:
    return [MonthlyStatistic(**row) for row in finance_service.admin_statistics(db)]


@router.post("/reports/generate", response_model=GenerateReportsResponse)
async def generate_reports(
    request: GenerateReportsRequest,
    admin: User = Depends(require_role(ROLE_ADMIN)),
    db: Session = Depends(get_db),
) -> GenerateReportsResponse:
    """Build or refresh the per-artist reports of one month."""
    reports = finance_service.generate_financial_reports(
        db, request.year, request.month, get_settings().commission_rate
    )
    db.commit()

    logger.info(
        f"Admin {admin.user_id} generated {len(reports)} report(s) for "
        f"{request.year}-{request.month:02d}"
    )
    return GenerateReportsResponse(
        message=f"Financial reports generated for {request.year}-{request.month:02d}",
        reports_generated=len(reports),
    )
