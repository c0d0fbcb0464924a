"""
Certificate routes.
PDF certificates of authenticity for purchased artworks.
"""

import logging

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from ...db.models import ORDER_PAID, OrderDetail, User
from ..dependencies import get_current_user, get_db, is_admin
from ..errors import PermissionDeniedError, ResourceNotFoundError, StorageError, StorageFileNotFoundError
from ..services.certificate_service import (
    CertificateContext,
    CertificateService,
    certificate_filename,
    get_certificate_service,
)
from ..services.storage_service import S3StorageService, get_storage_service
from .downloads import attachment_headers

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/certificate", tags=["Certificates"])


def build_context(detail: OrderDetail, storage: S3StorageService) -> CertificateContext:
    order = detail.order
    product = detail.product
    artist = product.artist
    profile = artist.artist_profile if artist else None
    buyer = order.buyer

    paid_at = max((p.payment_date for p in order.payments if p.payment_date), default=None)

    artwork_image = None
    if product.image_key:
        try:
            artwork_image = storage.get_file(product.image_key)
        except (StorageError, StorageFileNotFoundError) as e:
            logger.warning(f"Certificate for order {order.order_id} rendered without image: {e}")

    return CertificateContext(
        order_id=order.order_id,
        purchase_date=paid_at or order.order_date,
        artwork_title=product.title,
        artwork_description=product.description,
        artwork_dimensions=product.dimensions,
        artwork_tags=product.tags,
        price=detail.total_price,
        artist_name=artist.name if artist else "",
        artist_email=artist.email if artist else "",
        artist_bio=profile.bio if profile else None,
        artist_specialization=profile.specialization if profile else None,
        artist_experience_years=profile.experience_years if profile else None,
        artist_website=profile.website_url if profile else None,
        buyer_name=buyer.name,
        buyer_email=buyer.email,
        artwork_image=artwork_image,
    )


@router.get("/download/{order_detail_id}")
async def download_certificate(
    order_detail_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    storage: S3StorageService = Depends(get_storage_service),
    certificates: CertificateService = Depends(get_certificate_service),
) -> Response:
    """
    Download the certificate of one purchased artwork.

    Only the buyer of a paid order or an admin may download it.
    """
    detail = db.query(OrderDetail).filter(OrderDetail.order_detail_id == order_detail_id).first()
    if detail is None:
        raise ResourceNotFoundError("OrderDetail", order_detail_id)

    order = detail.order
    is_buyer = order.buyer_id == current_user.user_id and order.status == ORDER_PAID
    if not (is_buyer or is_admin(current_user)):
        raise PermissionDeniedError("Only the buyer of a paid order can download its certificate")

    pdf = certificates.render(build_context(detail, storage))
    filename = certificate_filename(detail.product.title, order.order_id)

    logger.info(f"User {current_user.user_id} downloaded certificate for order detail {order_detail_id}")
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers=attachment_headers(filename),
    )
