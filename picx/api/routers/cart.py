"""
Cart routes.
"""

import logging
from decimal import Decimal
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...db.models import Cart, Product, User
from ..dependencies import get_current_user, get_db
from ..errors import ConflictError, InvalidRequestError, ResourceNotFoundError
from ..schemas.commerce import CartAddRequest, CartItemResponse, CartResponse
from ..schemas.common import MessageResponse
from ..schemas.product import image_url_for

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cart", tags=["Cart"])


def to_cart_item(item: Cart) -> CartItemResponse:
    product = item.product
    return CartItemResponse(
        cart_id=item.cart_id,
        product_id=item.product_id,
        title=product.title,
        price=float(product.price),
        image_url=image_url_for(product.image_key),
        artist_name=product.artist.name if product.artist else None,
        is_available=product.is_available,
        added_at=item.added_at,
    )


@router.get("", response_model=CartResponse)
async def get_cart(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> CartResponse:
    items = (
        db.query(Cart)
        .filter(Cart.user_id == current_user.user_id)
        .order_by(Cart.added_at.desc(), Cart.cart_id.desc())
        .all()
    )
    total = sum((Decimal(item.product.price) for item in items), Decimal("0"))
    return CartResponse(items=[to_cart_item(item) for item in items], total_price=float(total))


@router.post("/add", response_model=CartItemResponse, status_code=status.HTTP_201_CREATED)
async def add_to_cart(
    request: CartAddRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> CartItemResponse:
    if request.product_id <= 0:
        raise InvalidRequestError("Invalid product id")

    product = (
        db.query(Product)
        .filter(Product.product_id == request.product_id, Product.is_available.is_(True))
        .first()
    )
    if product is None:
        raise ResourceNotFoundError("Product", request.product_id)

    existing = (
        db.query(Cart)
        .filter(Cart.user_id == current_user.user_id, Cart.product_id == request.product_id)
        .first()
    )
    if existing is not None:
        raise ConflictError("Product is already in the cart")

    item = Cart(user_id=current_user.user_id, product_id=request.product_id)
    db.add(item)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("Product is already in the cart")

    db.refresh(item)
    logger.info(f"User {current_user.user_id} added product {request.product_id} to cart")
    return to_cart_item(item)


@router.delete("/{cart_id}", response_model=MessageResponse)
async def remove_from_cart(
    cart_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> MessageResponse:
    item = (
        db.query(Cart)
        .filter(Cart.cart_id == cart_id, Cart.user_id == current_user.user_id)
        .first()
    )
    if item is None:
        raise ResourceNotFoundError("CartItem", cart_id)

    db.delete(item)
    db.commit()
    return MessageResponse(message="Item removed from cart")


@router.post("/remove-multiple", response_model=MessageResponse)
async def remove_multiple_from_cart(
    product_ids: List[int],
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> MessageResponse:
    """Remove every cart item whose product is in `product_ids`."""
    if not product_ids:
        raise InvalidRequestError("No products given")

    removed = (
        db.query(Cart)
        .filter(Cart.user_id == current_user.user_id, Cart.product_id.in_(product_ids))
        .delete(synchronize_session=False)
    )
    db.commit()

    logger.info(f"User {current_user.user_id} removed {removed} item(s) from cart")
    return MessageResponse(message=f"Removed {removed} item(s) from cart")
