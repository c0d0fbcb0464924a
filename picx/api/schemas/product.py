"""
Catalogue schemas: categories and artworks.
"""

import json
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from ...db.models import Product


def image_url_for(key: Optional[str]) -> Optional[str]:
    """Public (watermarked) URL of a stored artwork image."""
    return f"/api/product/image/{key}" if key else None


def split_tags(tags: Optional[str]) -> List[str]:
    return [tag.strip() for tag in (tags or "").split(",") if tag.strip()]


def additional_image_keys(product: Product) -> List[str]:
    if not product.additional_images:
        return []
    return json.loads(product.additional_images)


class CategoryResponse(BaseModel):
    category_id: int
    name: str
    description: Optional[str] = None
    parent_category_id: Optional[int] = None

    model_config = {"from_attributes": True}


class CategoryCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    parent_category_id: Optional[int] = None


class ProductSummary(BaseModel):
    """Artwork as shown in listings."""

    product_id: int
    title: str
    description: Optional[str] = None
    price: float = Field(..., description="Price in thousands of VND")
    image_url: Optional[str] = None
    additional_image_urls: List[str] = Field(default_factory=list)
    dimensions: Optional[str] = None
    is_available: bool
    tags: List[str] = Field(default_factory=list)
    like_count: int = 0
    category_id: Optional[int] = None
    category_name: Optional[str] = None
    artist_id: int
    artist_name: Optional[str] = None
    created_at: datetime

    @classmethod
    def from_product(cls, product: Product) -> "ProductSummary":
        return cls(
            product_id=product.product_id,
            title=product.title,
            description=product.description,
            price=float(product.price),
            image_url=image_url_for(product.image_key),
            additional_image_urls=[image_url_for(key) for key in additional_image_keys(product)],
            dimensions=product.dimensions,
            is_available=product.is_available,
            tags=split_tags(product.tags),
            like_count=product.like_count or 0,
            category_id=product.category_id,
            category_name=product.category.name if product.category else None,
            artist_id=product.artist_id,
            artist_name=product.artist.name if product.artist else None,
            created_at=product.created_at,
        )


class ProductListResponse(BaseModel):
    products: List[ProductSummary]
    has_more: bool = Field(..., description="Whether a next page exists")
    total_pages: int


class ProductPermissions(BaseModel):
    can_view: bool = True
    can_like: bool = False
    can_comment: bool = False
    can_add_to_cart: bool = False
    can_edit: bool = False


class ProductDetailResponse(ProductSummary):
    artist_email: Optional[str] = None
    updated_at: Optional[datetime] = None
    permissions: ProductPermissions


class ProductMutationResponse(BaseModel):
    message: str
    product: ProductSummary
