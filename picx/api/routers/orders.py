"""
Order routes.
Checkout, wallet payment and order views for buyers, artists and admins.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ...db.models import ORDER_PAID, ROLE_ADMIN, ROLE_ARTIST, Order, OrderDetail, Product, User
from ..dependencies import get_current_user, get_db, require_role
from ..errors import InvalidRequestError, ResourceNotFoundError
from ..schemas.common import MessageResponse
from ..schemas.order import (
    ArtistSummary,
    OrderCreateRequest,
    OrderCreateResponse,
    OrderListResponse,
    OrderResponse,
    PaymentResponse,
    PayOrderResponse,
)
from ..services import order_service
from ..services.notification_service import push_notifications
from ..services.wallet_service import get_or_create_wallet

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/orders", tags=["Orders"])


def to_order_response(order: Order, details=None) -> OrderResponse:
    data = order_service.serialize_order(order, details)
    data["payments"] = [PaymentResponse.model_validate(payment) for payment in order.payments]
    return OrderResponse(**data)


def orders_containing_artist(db: Session, artist_id: int) -> List[OrderResponse]:
    """Orders with at least one item by the artist, showing only those items."""
    orders = (
        db.query(Order)
        .join(OrderDetail, OrderDetail.order_id == Order.order_id)
        .join(Product, Product.product_id == OrderDetail.product_id)
        .filter(Product.artist_id == artist_id)
        .order_by(Order.order_date.desc(), Order.order_id.desc())
        .distinct()
        .all()
    )
    return [
        to_order_response(
            order, [detail for detail in order.details if detail.product.artist_id == artist_id]
        )
        for order in orders
    ]


def get_own_order_or_404(db: Session, order_id: int, user: User) -> Order:
    order = (
        db.query(Order)
        .filter(Order.order_id == order_id, Order.buyer_id == user.user_id)
        .first()
    )
    if order is None:
        raise ResourceNotFoundError("Order", order_id)
    return order


@router.get("", response_model=OrderListResponse)
async def list_my_orders(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> OrderListResponse:
    orders = (
        db.query(Order)
        .filter(Order.buyer_id == current_user.user_id)
        .order_by(Order.order_date.desc(), Order.order_id.desc())
        .all()
    )
    return OrderListResponse(orders=[to_order_response(order) for order in orders])


@router.post("", response_model=OrderCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_order(
    request: OrderCreateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> OrderCreateResponse:
    """Create a pending order; the total is the sum of the current item prices."""
    order = order_service.create_order(
        db, current_user, [item.product_id for item in request.items]
    )
    db.commit()

    return OrderCreateResponse(
        message="Order created successfully",
        order_id=order.order_id,
        total_amount=float(order.total_amount),
    )


@router.get("/artist", response_model=OrderListResponse)
async def list_artist_orders(
    current_user: User = Depends(require_role(ROLE_ARTIST)),
    db: Session = Depends(get_db),
) -> OrderListResponse:
    return OrderListResponse(orders=orders_containing_artist(db, current_user.user_id))


@router.get("/admin", response_model=OrderListResponse)
async def list_all_orders(
    admin: User = Depends(require_role(ROLE_ADMIN)),
    db: Session = Depends(get_db),
) -> OrderListResponse:
    orders = db.query(Order).order_by(Order.order_date.desc(), Order.order_id.desc()).all()
    return OrderListResponse(orders=[to_order_response(order) for order in orders])


@router.get("/admin/artists", response_model=List[ArtistSummary])
async def list_artists(
    admin: User = Depends(require_role(ROLE_ADMIN)),
    db: Session = Depends(get_db),
) -> List[ArtistSummary]:
    artists = db.query(User).filter(User.role == ROLE_ARTIST).order_by(User.name).all()
    return [ArtistSummary.model_validate(artist) for artist in artists]


@router.get("/admin/by-artist/{artist_id}", response_model=OrderListResponse)
async def list_orders_by_artist(
    artist_id: int,
    admin: User = Depends(require_role(ROLE_ADMIN)),
    db: Session = Depends(get_db),
) -> OrderListResponse:
    artist = db.query(User).filter(User.user_id == artist_id, User.role == ROLE_ARTIST).first()
    if artist is None:
        raise ResourceNotFoundError("Artist", artist_id)
    return OrderListResponse(orders=orders_containing_artist(db, artist_id))


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> OrderResponse:
    return to_order_response(get_own_order_or_404(db, order_id, current_user))


@router.delete("/{order_id}", response_model=MessageResponse)
async def delete_order(
    order_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> MessageResponse:
    """Cancel an unpaid order."""
    order = get_own_order_or_404(db, order_id, current_user)
    if order.status == ORDER_PAID:
        raise InvalidRequestError("Paid orders cannot be deleted")

    db.delete(order)
    db.commit()

    logger.info(f"User {current_user.user_id} deleted order {order_id}")
    return MessageResponse(message="Order deleted successfully")


@router.post("/{order_id}/pay-wallet", response_model=PayOrderResponse)
async def pay_order_with_wallet(
    order_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> PayOrderResponse:
    """Pay an order from the buyer's wallet balance."""
    order = get_own_order_or_404(db, order_id, current_user)
    payment, notifications = order_service.pay_order_with_wallet(db, order, current_user)
    db.commit()
    db.refresh(payment)

    await push_notifications(notifications)

    wallet = get_or_create_wallet(db, current_user.user_id)
    return PayOrderResponse(
        message="Order paid successfully",
        order_id=order.order_id,
        payment=PaymentResponse.model_validate(payment),
        balance=float(wallet.balance),
    )
