"""
Catalogue routes.
Categories, artwork listings, artwork CRUD and watermarked image delivery.
"""

import json
import logging
import math
import os
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, Response, UploadFile, status
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...db.models import ROLE_ADMIN, ROLE_ARTIST, Category, OrderDetail, Product, User
from ..config import get_settings
from ..dependencies import get_current_user_optional, get_db, require_role
from ..errors import (
    ConflictError,
    InvalidRequestError,
    PermissionDeniedError,
    ResourceNotFoundError,
)
from ..schemas.common import MessageResponse
from ..schemas.product import (
    CategoryCreateRequest,
    CategoryResponse,
    ProductDetailResponse,
    ProductListResponse,
    ProductMutationResponse,
    ProductPermissions,
    ProductSummary,
    additional_image_keys,
)
from ..services.notification_service import create_notification, push_notifications
from ..services.storage_service import (
    ALLOWED_IMAGE_EXTENSIONS,
    S3StorageService,
    build_object_key,
    get_storage_service,
)
from ..services.watermark_service import WatermarkService, get_watermark_service, mime_type_for_key

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/product", tags=["Products"])


async def read_image_upload(upload: UploadFile) -> bytes:
    """
    Read an uploaded image after checking its extension and size.

    Raises:
        InvalidRequestError: Unsupported extension, empty or oversized file
    """
    extension = os.path.splitext(upload.filename or "")[1].lower()
    if extension not in ALLOWED_IMAGE_EXTENSIONS:
        raise InvalidRequestError(
            "Only .jpg, .jpeg, .png and .gif images are allowed",
            details={"filename": upload.filename},
        )

    data = await upload.read()
    if not data:
        raise InvalidRequestError("Uploaded file is empty", details={"filename": upload.filename})

    max_bytes = get_settings().max_upload_size_mb * 1024 * 1024
    if len(data) > max_bytes:
        raise InvalidRequestError("Uploaded file is too large", details={"filename": upload.filename})
    return data


def store_upload(storage: S3StorageService, upload: UploadFile, data: bytes) -> str:
    key = build_object_key(upload.filename)
    return storage.upload_file(data, key, upload.content_type)


def find_category(db: Session, name: str) -> Category:
    category = (
        db.query(Category)
        .filter(func.lower(Category.name) == name.strip().lower(), Category.is_active.is_(True))
        .first()
    )
    if category is None:
        raise InvalidRequestError(f"Invalid category: {name}")
    return category


def get_product_or_404(db: Session, product_id: int) -> Product:
    product = db.query(Product).filter(Product.product_id == product_id).first()
    if product is None:
        raise ResourceNotFoundError("Product", product_id)
    return product


def ensure_can_manage(product: Product, user: User) -> None:
    if user.role != ROLE_ADMIN and product.artist_id != user.user_id:
        raise PermissionDeniedError("You can only manage your own artworks")


def paginate(query, page: int, limit: int) -> ProductListResponse:
    total = query.count()
    products = query.offset((page - 1) * limit).limit(limit).all()
    total_pages = math.ceil(total / limit) if total else 0
    return ProductListResponse(
        products=[ProductSummary.from_product(product) for product in products],
        has_more=page < total_pages,
        total_pages=total_pages,
    )


@router.get("/categories", response_model=List[CategoryResponse])
async def list_categories(db: Session = Depends(get_db)) -> List[CategoryResponse]:
    categories = (
        db.query(Category).filter(Category.is_active.is_(True)).order_by(Category.name).all()
    )
    return [CategoryResponse.model_validate(category) for category in categories]


@router.post("/categories", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
async def create_category(
    request: CategoryCreateRequest,
    admin: User = Depends(require_role(ROLE_ADMIN)),
    db: Session = Depends(get_db),
) -> CategoryResponse:
    category = Category(
        name=request.name.strip(),
        description=request.description,
        parent_category_id=request.parent_category_id,
        is_active=True,
    )
    db.add(category)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError(f"Category already exists: {request.name}")

    db.refresh(category)
    logger.info(f"Admin {admin.user_id} created category {category.name}")
    return CategoryResponse.model_validate(category)


@router.get("/all", response_model=ProductListResponse)
async def list_available_products(
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(12, ge=1, le=100, description="Products per page"),
    db: Session = Depends(get_db),
) -> ProductListResponse:
    """Available artworks, newest first."""
    query = (
        db.query(Product)
        .filter(Product.is_available.is_(True))
        .order_by(Product.created_at.desc(), Product.product_id.desc())
    )
    return paginate(query, page, limit)


@router.get("", response_model=List[ProductSummary])
async def list_my_products(
    current_user: User = Depends(require_role(ROLE_ARTIST, ROLE_ADMIN)),
    db: Session = Depends(get_db),
) -> List[ProductSummary]:
    """Artworks uploaded by the caller, including unavailable ones."""
    products = (
        db.query(Product)
        .filter(Product.artist_id == current_user.user_id)
        .order_by(Product.created_at.desc(), Product.product_id.desc())
        .all()
    )
    return [ProductSummary.from_product(product) for product in products]


@router.get("/artist/{artist_id}", response_model=ProductListResponse)
async def list_artist_products(
    artist_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(12, ge=1, le=100),
    db: Session = Depends(get_db),
) -> ProductListResponse:
    artist = db.query(User).filter(User.user_id == artist_id, User.role == ROLE_ARTIST).first()
    if artist is None:
        raise ResourceNotFoundError("Artist", artist_id)

    query = (
        db.query(Product)
        .filter(Product.artist_id == artist_id, Product.is_available.is_(True))
        .order_by(Product.created_at.desc(), Product.product_id.desc())
    )
    return paginate(query, page, limit)


@router.get("/image/{file_key}")
async def get_watermarked_image(
    file_key: str,
    db: Session = Depends(get_db),
    storage: S3StorageService = Depends(get_storage_service),
    watermark: WatermarkService = Depends(get_watermark_service),
) -> Response:
    """Serve an artwork image with the PicX watermark."""
    product = db.query(Product).filter(Product.image_key == file_key).first()
    if product is None:
        # Extra images live in a JSON column
        product = (
            db.query(Product)
            .filter(Product.additional_images.contains(f'"{file_key}"', autoescape=True))
            .first()
        )
    if product is None:
        raise ResourceNotFoundError("Image", file_key)

    original = storage.get_file(file_key)
    content, mime_type = watermark.apply(original, mime_type_for_key(file_key))

    settings = get_settings()
    return Response(
        content=content,
        media_type=mime_type,
        headers={"Cache-Control": f"public,max-age={settings.image_cache_seconds}"},
    )


@router.post("/add", response_model=ProductMutationResponse, status_code=status.HTTP_201_CREATED)
async def add_product(
    title: str = Form(..., min_length=1, max_length=200),
    price: Decimal = Form(..., ge=0),
    category_name: str = Form(...),
    description: Optional[str] = Form(None),
    dimensions: Optional[str] = Form(None),
    is_available: bool = Form(True),
    tags: Optional[str] = Form(None),
    image: UploadFile = File(...),
    additional_images: Optional[List[UploadFile]] = File(None),
    current_user: User = Depends(require_role(ROLE_ARTIST, ROLE_ADMIN)),
    db: Session = Depends(get_db),
    storage: S3StorageService = Depends(get_storage_service),
) -> ProductMutationResponse:
    """Upload a new artwork."""
    category = find_category(db, category_name)

    image_data = await read_image_upload(image)
    extra_uploads = [(upload, await read_image_upload(upload)) for upload in additional_images or []]

    image_key = store_upload(storage, image, image_data)
    extra_keys = [store_upload(storage, upload, data) for upload, data in extra_uploads]

    product = Product(
        artist_id=current_user.user_id,
        category_id=category.category_id,
        title=title.strip(),
        description=description,
        price=price,
        image_key=image_key,
        additional_images=json.dumps(extra_keys) if extra_keys else None,
        dimensions=dimensions,
        is_available=is_available,
        tags=tags,
        like_count=0,
    )
    db.add(product)
    db.commit()
    db.refresh(product)

    logger.info(f"Artist {current_user.user_id} added product {product.product_id}")
    return ProductMutationResponse(
        message="Product added successfully", product=ProductSummary.from_product(product)
    )


@router.put("/edit/{product_id}", response_model=ProductMutationResponse)
async def edit_product(
    product_id: int,
    title: Optional[str] = Form(None, min_length=1, max_length=200),
    price: Optional[Decimal] = Form(None, ge=0),
    category_name: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    dimensions: Optional[str] = Form(None),
    is_available: Optional[bool] = Form(None),
    tags: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    current_user: User = Depends(require_role(ROLE_ARTIST, ROLE_ADMIN)),
    db: Session = Depends(get_db),
    storage: S3StorageService = Depends(get_storage_service),
) -> ProductMutationResponse:
    """Edit an artwork; a new image replaces and deletes the old one."""
    product = get_product_or_404(db, product_id)
    ensure_can_manage(product, current_user)

    if category_name is not None:
        product.category_id = find_category(db, category_name).category_id
    if title is not None:
        product.title = title.strip()
    if price is not None:
        product.price = price
    if description is not None:
        product.description = description
    if dimensions is not None:
        product.dimensions = dimensions
    if is_available is not None:
        product.is_available = is_available
    if tags is not None:
        product.tags = tags

    old_key = None
    if image is not None and image.filename:
        image_data = await read_image_upload(image)
        old_key = product.image_key
        product.image_key = store_upload(storage, image, image_data)

    db.commit()
    db.refresh(product)

    if old_key:
        storage.delete_file(old_key)

    logger.info(f"User {current_user.user_id} edited product {product_id}")
    return ProductMutationResponse(
        message="Product updated successfully", product=ProductSummary.from_product(product)
    )


@router.put("/set-unavailable/{product_id}", response_model=MessageResponse)
async def set_product_unavailable(
    product_id: int,
    current_user: User = Depends(require_role(ROLE_ARTIST, ROLE_ADMIN)),
    db: Session = Depends(get_db),
) -> MessageResponse:
    """Lock an artwork so it can no longer be bought."""
    product = get_product_or_404(db, product_id)
    ensure_can_manage(product, current_user)

    if not product.is_available:
        raise InvalidRequestError("Product is already unavailable")

    product.is_available = False
    notifications = []
    if product.artist_id != current_user.user_id:
        notifications.append(
            create_notification(
                db,
                user_id=product.artist_id,
                type="ProductLocked",
                title="Artwork Locked",
                message=f"Your artwork '{product.title}' has been locked by an admin.",
                entity_type="Product",
                entity_id=product.product_id,
            )
        )
    db.commit()
    await push_notifications(notifications)

    logger.info(f"User {current_user.user_id} set product {product_id} unavailable")
    return MessageResponse(message="Product set to unavailable")


@router.get("/{product_id}", response_model=ProductDetailResponse)
async def get_product(
    product_id: int,
    current_user: Optional[User] = Depends(get_current_user_optional),
    db: Session = Depends(get_db),
) -> ProductDetailResponse:
    """Artwork detail with what the caller may do with it."""
    product = get_product_or_404(db, product_id)

    authenticated = current_user is not None
    permissions = ProductPermissions(
        can_view=True,
        can_like=authenticated,
        can_comment=authenticated,
        can_add_to_cart=authenticated and product.is_available,
        can_edit=authenticated
        and (current_user.role == ROLE_ADMIN or current_user.user_id == product.artist_id),
    )

    summary = ProductSummary.from_product(product)
    return ProductDetailResponse(
        **summary.model_dump(),
        artist_email=product.artist.email if product.artist else None,
        updated_at=product.updated_at,
        permissions=permissions,
    )


@router.delete("/{product_id}", response_model=MessageResponse)
async def delete_product(
    product_id: int,
    current_user: User = Depends(require_role(ROLE_ARTIST, ROLE_ADMIN)),
    db: Session = Depends(get_db),
    storage: S3StorageService = Depends(get_storage_service),
) -> MessageResponse:
    """Delete an artwork that has never been ordered, together with its images."""
    product = get_product_or_404(db, product_id)
    ensure_can_manage(product, current_user)

    ordered = db.query(OrderDetail).filter(OrderDetail.product_id == product_id).first()
    if ordered is not None:
        raise ConflictError(
            "Product has been ordered and cannot be deleted; set it unavailable instead"
        )

    keys = [product.image_key] if product.image_key else []
    keys.extend(additional_image_keys(product))

    db.delete(product)
    db.commit()

    for key in keys:
        storage.delete_file(key)

    logger.info(f"User {current_user.user_id} deleted product {product_id}")
    return MessageResponse(message="Product deleted successfully")
