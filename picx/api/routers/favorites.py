"""
Favorite routes.
Liking an artwork bumps its like counter; unliking lowers it again.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...db.models import Favorite, Product, User
from ..dependencies import get_current_user, get_db
from ..errors import ConflictError, ResourceNotFoundError
from ..schemas.commerce import FavoriteCreateRequest, FavoriteResponse
from ..schemas.product import image_url_for, split_tags

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/favorites", tags=["Favorites"])


def to_favorite(favorite: Favorite) -> FavoriteResponse:
    product = favorite.product
    return FavoriteResponse(
        favorite_id=favorite.favorite_id,
        product_id=product.product_id,
        title=product.title,
        description=product.description,
        price=float(product.price),
        image_url=image_url_for(product.image_key),
        tags=split_tags(product.tags),
        like_count=product.like_count or 0,
        artist_name=product.artist.name if product.artist else None,
        created_at=favorite.created_at,
    )


@router.get("/user/{user_id}", response_model=List[FavoriteResponse])
async def list_user_favorites(
    user_id: int,
    db: Session = Depends(get_db),
) -> List[FavoriteResponse]:
    """A user's favorited artworks, most recent first."""
    if db.query(User).filter(User.user_id == user_id).first() is None:
        raise ResourceNotFoundError("User", user_id)

    favorites = (
        db.query(Favorite)
        .filter(Favorite.user_id == user_id)
        .order_by(Favorite.created_at.desc(), Favorite.favorite_id.desc())
        .all()
    )
    return [to_favorite(favorite) for favorite in favorites]


@router.post("", response_model=FavoriteResponse, status_code=status.HTTP_201_CREATED)
async def add_favorite(
    request: FavoriteCreateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> FavoriteResponse:
    """
    Favorite an artwork.

    Raises:
        ConflictError: If the caller already favorited it
    """
    product = db.query(Product).filter(Product.product_id == request.product_id).first()
    if product is None:
        raise ResourceNotFoundError("Product", request.product_id)

    favorite = Favorite(user_id=current_user.user_id, product_id=product.product_id)
    db.add(favorite)
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        raise ConflictError("Product is already in favorites")

    product.like_count = (product.like_count or 0) + 1
    db.commit()
    db.refresh(favorite)

    logger.info(f"User {current_user.user_id} favorited product {product.product_id}")
    return to_favorite(favorite)


@router.delete("/{favorite_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_favorite(
    favorite_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Response:
    favorite = (
        db.query(Favorite)
        .filter(Favorite.favorite_id == favorite_id, Favorite.user_id == current_user.user_id)
        .first()
    )
    if favorite is None:
        raise ResourceNotFoundError("Favorite", favorite_id)

    product = favorite.product
    if product is not None:
        product.like_count = max(0, (product.like_count or 0) - 1)

    db.delete(favorite)
    db.commit()

    logger.info(f"User {current_user.user_id} removed favorite {favorite_id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
