"""
Cart, favorite and comment schemas.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class CartAddRequest(BaseModel):
    product_id: int = Field(..., description="Artwork to add")


class CartItemResponse(BaseModel):
    cart_id: int
    product_id: int
    title: str
    price: float
    image_url: Optional[str] = None
    artist_name: Optional[str] = None
    is_available: bool
    added_at: datetime


class CartResponse(BaseModel):
    items: List[CartItemResponse]
    total_price: float


class FavoriteCreateRequest(BaseModel):
    product_id: int


class FavoriteResponse(BaseModel):
    favorite_id: int
    product_id: int
    title: str
    description: Optional[str] = None
    price: float
    image_url: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    like_count: int
    artist_name: Optional[str] = None
    created_at: datetime


class CommentCreateRequest(BaseModel):
    content: str = Field(..., max_length=1000)

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Comment content must not be empty")
        return v


class CommentReplyResponse(BaseModel):
    reply_id: int
    user_id: int
    user_name: Optional[str] = None
    content: str
    created_at: datetime


class CommentResponse(BaseModel):
    comment_id: int
    product_id: int
    user_id: int
    user_name: Optional[str] = None
    content: str
    created_at: datetime
    replies: List[CommentReplyResponse] = Field(default_factory=list)
