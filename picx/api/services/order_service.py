"""
Order Service
Order creation and wallet checkout.
"""

import logging
import uuid
from collections import defaultdict
from decimal import Decimal
from typing import Dict, List, Sequence, Tuple

from sqlalchemy.orm import Session

from ...db.models import (
    ORDER_PAID,
    ORDER_PENDING,
    Cart,
    Notification,
    Order,
    OrderDetail,
    Payment,
    Product,
    User,
)
from ..errors import InvalidRequestError, ResourceNotFoundError
from . import wallet_service
from .notification_service import create_notification

logger = logging.getLogger(__name__)

WALLET_PAYMENT_METHOD = "wallet"
WALLET_PAYMENT_PROVIDER = "PicX Wallet"


def create_order(db: Session, buyer: User, product_ids: Sequence[int]) -> Order:
    """
    Create a pending order priced from the current product prices.

    Raises:
        InvalidRequestError: Empty or duplicated items, unavailable or own artworks
        ResourceNotFoundError: Unknown product id
    """
    if not product_ids:
        raise InvalidRequestError("Order must contain at least one item")
    if len(set(product_ids)) != len(product_ids):
        raise InvalidRequestError("Order contains duplicate products")

    products: List[Product] = []
    for product_id in product_ids:
        product = db.query(Product).filter(Product.product_id == product_id).first()
        if product is None:
            raise ResourceNotFoundError("Product", product_id)
        if not product.is_available:
            raise InvalidRequestError(
                f"Product '{product.title}' is no longer available",
                details={"product_id": product_id},
            )
        if product.artist_id == buyer.user_id:
            raise InvalidRequestError(
                "You cannot buy your own artwork", details={"product_id": product_id}
            )
        products.append(product)

    details = [
        OrderDetail(product_id=product.product_id, total_price=wallet_service.to_money(product.price))
        for product in products
    ]
    total = sum((detail.total_price for detail in details), Decimal("0.00"))

    order = Order(buyer_id=buyer.user_id, total_amount=total, status=ORDER_PENDING, details=details)
    db.add(order)
    db.flush()

    logger.info(f"Order {order.order_id} created for buyer {buyer.user_id}: {len(details)} item(s), total {total}")
    return order


def pay_order_with_wallet(db: Session, order: Order, buyer: User) -> Tuple[Payment, List[Notification]]:
    """
    Settle a pending order from the buyer's wallet.

    Debits the buyer, credits each artist with the price of their items,
    records the payment, marks the order paid and clears the paid items
    from the buyer's cart. The caller commits.

    Returns:
        Tuple of (payment, notifications for the artists)
    """
    if order.status == ORDER_PAID:
        raise InvalidRequestError("Order is already paid")

    total = wallet_service.to_money(order.total_amount)
    buyer_wallet = wallet_service.get_or_create_wallet(db, buyer.user_id)
    wallet_service.debit(
        db, buyer_wallet, total, "purchase", f"Payment for order #{order.order_id}"
    )

    sales_by_artist: Dict[int, Decimal] = defaultdict(lambda: Decimal("0.00"))
    titles_by_artist: Dict[int, List[str]] = defaultdict(list)
    for detail in order.details:
        artist_id = detail.product.artist_id
        sales_by_artist[artist_id] += wallet_service.to_money(detail.total_price)
        titles_by_artist[artist_id].append(detail.product.title)

    for artist_id, amount in sales_by_artist.items():
        artist_wallet = wallet_service.get_or_create_wallet(db, artist_id)
        wallet_service.credit(
            db, artist_wallet, amount, "sale", f"Sale from order #{order.order_id}"
        )

    payment = Payment(
        order_id=order.order_id,
        payment_method=WALLET_PAYMENT_METHOD,
        payment_provider=WALLET_PAYMENT_PROVIDER,
        transaction_id=uuid.uuid4().hex,
        amount=total,
        currency="VND",
        payment_details=f"Paid from wallet #{buyer_wallet.wallet_id}",
    )
    db.add(payment)
    order.status = ORDER_PAID

    product_ids = [detail.product_id for detail in order.details]
    db.query(Cart).filter(
        Cart.user_id == buyer.user_id, Cart.product_id.in_(product_ids)
    ).delete(synchronize_session=False)

    notifications = [
        create_notification(
            db,
            user_id=artist_id,
            type="Sale",
            title="Artwork Sold",
            message=f"{buyer.name} bought {', '.join(titles)}.",
            entity_type="Order",
            entity_id=order.order_id,
        )
        for artist_id, titles in titles_by_artist.items()
    ]

    db.flush()
    logger.info(f"Order {order.order_id} paid from wallet by user {buyer.user_id}")
    return payment, notifications


def serialize_order_detail(detail: OrderDetail) -> dict:
    product = detail.product
    return {
        "order_detail_id": detail.order_detail_id,
        "product_id": detail.product_id,
        "product_title": product.title if product else None,
        "image_url": f"/api/product/image/{product.image_key}" if product and product.image_key else None,
        "artist_id": product.artist_id if product else None,
        "artist_name": product.artist.name if product and product.artist else None,
        "total_price": float(detail.total_price),
    }


def serialize_order(order: Order, details=None) -> dict:
    details = order.details if details is None else details
    return {
        "order_id": order.order_id,
        "buyer_id": order.buyer_id,
        "buyer_name": order.buyer.name if order.buyer else None,
        "total_amount": float(order.total_amount),
        "status": order.status,
        "order_date": order.order_date,
        "details": [serialize_order_detail(detail) for detail in details],
    }
