"""
Wallet routes.
Balance, history and PayOS top-ups.
"""

import logging
import time

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...db.models import TX_PENDING, User, WalletTransaction
from ..config import get_settings
from ..dependencies import get_current_user, get_db
from ..errors import InvalidRequestError, ResourceNotFoundError
from ..schemas.common import MessageResponse
from ..schemas.order import (
    DepositRequest,
    DepositResponse,
    PayOSWebhookRequest,
    WalletResponse,
    WalletTransactionResponse,
)
from ..services import wallet_service
from ..services.notification_service import create_notification, push_notifications
from ..services.payos_client import PAYOS_SUCCESS_CODE, PayOSClient, get_payos_client

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/wallet", tags=["Wallet"])


@router.get("/me", response_model=WalletResponse)
async def get_my_wallet(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> WalletResponse:
    wallet = wallet_service.get_or_create_wallet(db, current_user.user_id)
    db.commit()

    transactions = (
        db.query(WalletTransaction)
        .filter(WalletTransaction.wallet_id == wallet.wallet_id)
        .order_by(WalletTransaction.created_at.desc(), WalletTransaction.transaction_id.desc())
        .all()
    )
    return WalletResponse(
        wallet_id=wallet.wallet_id,
        balance=float(wallet.balance),
        transactions=[WalletTransactionResponse.model_validate(tx) for tx in transactions],
    )


@router.post("/deposit", response_model=DepositResponse)
async def create_deposit(
    request: DepositRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    payos: PayOSClient = Depends(get_payos_client),
) -> DepositResponse:
    """
    Start a wallet top-up through PayOS.

    A pending deposit is recorded and settled by the PayOS webhook.
    """
    settings = get_settings()
    amount = wallet_service.to_money(request.amount)
    order_code = int(time.time() * 1000)
    payos_amount = int(amount * 1000)

    link = payos.create_payment_link(
        order_code=order_code,
        amount=payos_amount,
        description=f"Top-up wallet #{current_user.user_id}",
        items=[{"name": "Top-up wallet", "quantity": 1, "price": payos_amount}],
        return_url=settings.payos_return_url,
        cancel_url=settings.payos_cancel_url,
    )

    wallet = wallet_service.get_or_create_wallet(db, current_user.user_id)
    transaction = wallet_service.record_transaction(
        db,
        wallet,
        amount,
        "deposit",
        "Wallet top-up via PayOS",
        status=TX_PENDING,
        external_transaction_id=str(order_code),
    )
    db.commit()

    logger.info(f"User {current_user.user_id} started deposit {order_code} of {amount}")
    return DepositResponse(
        message="Payment link created",
        payment_url=link.get("checkoutUrl", ""),
        transaction_id=transaction.transaction_id,
        order_code=order_code,
    )


@router.post("/deposit-callback", response_model=MessageResponse)
async def deposit_callback(
    request: PayOSWebhookRequest,
    db: Session = Depends(get_db),
    payos: PayOSClient = Depends(get_payos_client),
) -> MessageResponse:
    """
    PayOS webhook.

    Settles the pending deposit identified by `data.orderCode`. Replays of
    an already settled deposit are acknowledged without side effects.
    """
    if not payos.verify_webhook_data(request.data, request.signature):
        raise InvalidRequestError("Invalid webhook signature")

    order_code = request.data.get("orderCode")
    if order_code is None:
        raise InvalidRequestError("Missing orderCode")

    transaction = (
        db.query(WalletTransaction)
        .filter(
            WalletTransaction.external_transaction_id == str(order_code),
            WalletTransaction.transaction_type == "deposit",
        )
        .first()
    )
    if transaction is None:
        raise ResourceNotFoundError("Deposit", order_code)

    if transaction.status != TX_PENDING:
        return MessageResponse(message="Deposit already processed")

    paid = request.data.get("code") == PAYOS_SUCCESS_CODE
    notifications = []
    if paid:
        wallet_service.complete_pending_transaction(db, transaction)
        notifications.append(
            create_notification(
                db,
                user_id=transaction.wallet.user_id,
                type="Wallet",
                title="Deposit Successful",
                message=f"{float(transaction.amount):g} has been added to your wallet.",
                entity_type="WalletTransaction",
                entity_id=transaction.transaction_id,
            )
        )
    else:
        wallet_service.fail_pending_transaction(db, transaction)
    db.commit()
    await push_notifications(notifications)

    logger.info(f"Deposit {order_code} settled: paid={paid}")
    return MessageResponse(message="Deposit completed" if paid else "Deposit marked as failed")
