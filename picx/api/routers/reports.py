"""
Report routes.
Users flag artworks; admins review the reports.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...db.models import ROLE_ADMIN, Product, Report, User
from ..dependencies import get_current_user, get_db, require_role
from ..errors import ConflictError, ResourceNotFoundError
from ..schemas.common import MessageResponse
from ..schemas.product import image_url_for
from ..schemas.social import ReportCreateRequest, ReportResponse
from ..services.notification_service import create_notification, push_notifications

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/report", tags=["Reports"])


def to_report(report: Report) -> ReportResponse:
    product = report.product
    return ReportResponse(
        report_id=report.report_id,
        product_id=report.product_id,
        product_title=product.title if product else None,
        image_url=image_url_for(product.image_key) if product else None,
        user_id=report.user_id,
        user_name=report.user.name if report.user else None,
        content=report.content,
        is_approved=report.is_approved,
        created_at=report.created_at,
    )


def get_report_or_404(db: Session, report_id: int) -> Report:
    report = db.query(Report).filter(Report.report_id == report_id).first()
    if report is None:
        raise ResourceNotFoundError("Report", report_id)
    return report


@router.post("", response_model=ReportResponse, status_code=status.HTTP_201_CREATED)
async def create_report(
    request: ReportCreateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ReportResponse:
    """
    Report an artwork.

    Raises:
        ResourceNotFoundError: If the product does not exist
        ConflictError: If the caller already reported it
    """
    product = db.query(Product).filter(Product.product_id == request.product_id).first()
    if product is None:
        raise ResourceNotFoundError("Product", request.product_id)

    report = Report(product_id=product.product_id, user_id=current_user.user_id, content=request.content)
    db.add(report)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("You have already reported this product")
    db.refresh(report)

    logger.info(f"User {current_user.user_id} reported product {product.product_id}")
    return to_report(report)


@router.get("", response_model=List[ReportResponse])
async def list_reports(
    admin: User = Depends(require_role(ROLE_ADMIN)),
    db: Session = Depends(get_db),
) -> List[ReportResponse]:
    reports = db.query(Report).order_by(Report.created_at.desc(), Report.report_id.desc()).all()
    return [to_report(report) for report in reports]


@router.get("/{report_id}", response_model=ReportResponse)
async def get_report(
    report_id: int,
    admin: User = Depends(require_role(ROLE_ADMIN)),
    db: Session = Depends(get_db),
) -> ReportResponse:
    return to_report(get_report_or_404(db, report_id))


@router.put("/approve/{report_id}", response_model=ReportResponse)
async def approve_report(
    report_id: int,
    admin: User = Depends(require_role(ROLE_ADMIN)),
    db: Session = Depends(get_db),
) -> ReportResponse:
    """Accept a report: the artwork is locked and the reporter is told."""
    report = get_report_or_404(db, report_id)
    report.is_approved = True

    product = report.product
    notifications = [
        create_notification(
            db,
            user_id=report.user_id,
            type="Report",
            title="Report Approved",
            message=f"Your report on '{product.title}' was approved and the artwork has been locked.",
            entity_type="Report",
            entity_id=report.report_id,
        )
    ]
    if product.is_available:
        product.is_available = False
        notifications.append(
            create_notification(
                db,
                user_id=product.artist_id,
                type="ProductLocked",
                title="Artwork Locked",
                message=f"Your artwork '{product.title}' has been locked after a report review.",
                entity_type="Product",
                entity_id=product.product_id,
            )
        )
    db.commit()
    db.refresh(report)
    await push_notifications(notifications)

    logger.info(f"Admin {admin.user_id} approved report {report_id}")
    return to_report(report)


@router.delete("/{report_id}", response_model=MessageResponse)
async def delete_report(
    report_id: int,
    admin: User = Depends(require_role(ROLE_ADMIN)),
    db: Session = Depends(get_db),
) -> MessageResponse:
    report = get_report_or_404(db, report_id)
    db.delete(report)
    db.commit()

    logger.info(f"Admin {admin.user_id} deleted report {report_id}")
    return MessageResponse(message="Report deleted successfully")
