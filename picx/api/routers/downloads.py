"""
Download routes.
Unwatermarked originals for buyers, the artist and admins.
"""

import logging
import unicodedata
from typing import Dict, List
from urllib.parse import quote

from fastapi import APIRouter, Depends, Response
from sqlalchemy import or_
from sqlalchemy.orm import Session

from ...db.models import ORDER_PAID, Order, OrderDetail, Product, User
from ..dependencies import get_current_user, get_db, is_admin
from ..errors import PermissionDeniedError, ResourceNotFoundError
from ..services.storage_service import S3StorageService, get_storage_service
from ..services.watermark_service import convert_to_png

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/download", tags=["Downloads"])


def attachment_headers(filename: str) -> Dict[str, str]:
    """
    Content-Disposition for a download.

    Names outside ASCII get an RFC 5987 `filename*` next to a plain fallback,
    since header values are sent as Latin-1.
    """
    quoted = quote(filename)
    if quoted == filename:
        return {"Content-Disposition": f'attachment; filename="{filename}"'}

    fallback = unicodedata.normalize("NFKD", filename).encode("ascii", "ignore").decode("ascii")
    fallback = fallback.replace('"', "").replace("\\", "") or "download"
    return {
        "Content-Disposition": f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quoted}"
    }


def products_using_key(db: Session, file_key: str) -> List[Product]:
    return (
        db.query(Product)
        .filter(
            or_(
                Product.image_key == file_key,
                Product.additional_images.contains(f'"{file_key}"', autoescape=True),
            )
        )
        .all()
    )


def ensure_download_access(db: Session, file_key: str, user: User) -> None:
    """
    Raises:
        ResourceNotFoundError: If no artwork uses the key
        PermissionDeniedError: If the user neither bought nor made the artwork
    """
    products = products_using_key(db, file_key)
    if not products:
        raise ResourceNotFoundError("File", file_key)

    if is_admin(user) or any(product.artist_id == user.user_id for product in products):
        return

    purchased = (
        db.query(OrderDetail)
        .join(Order, Order.order_id == OrderDetail.order_id)
        .filter(
            Order.buyer_id == user.user_id,
            Order.status == ORDER_PAID,
            OrderDetail.product_id.in_([product.product_id for product in products]),
        )
        .first()
    )
    if purchased is None:
        raise PermissionDeniedError("You have not purchased this artwork")


@router.get("/image/{file_key}")
async def download_image(
    file_key: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    storage: S3StorageService = Depends(get_storage_service),
) -> Response:
    """Original image converted to PNG."""
    ensure_download_access(db, file_key, current_user)
    content = convert_to_png(storage.get_file(file_key))

    stem = file_key.rsplit(".", 1)[0]
    return Response(
        content=content,
        media_type="image/png",
        headers=attachment_headers(f"{stem}.png"),
    )


@router.get("/file/{file_key}")
async def download_file(
    file_key: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    storage: S3StorageService = Depends(get_storage_service),
) -> Response:
    ensure_download_access(db, file_key, current_user)
    content = storage.get_file(file_key)

    logger.info(f"User {current_user.user_id} downloaded {file_key}")
    return Response(
        content=content,
        media_type="application/octet-stream",
        headers=attachment_headers(file_key),
    )
