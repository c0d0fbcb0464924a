"""
Wallet Service
Balance changes and the transaction ledger behind them.
"""

import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Union

from sqlalchemy.orm import Session

from ...db.models import (
    TX_COMPLETED,
    TX_FAILED,
    TX_PENDING,
    Wallet,
    WalletTransaction,
)
from ..errors import InvalidRequestError

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def to_money(value: Union[Decimal, float, int, str, None]) -> Decimal:
    """Normalize a numeric value to a 2-decimal Decimal."""
    if value is None:
        return Decimal("0.00")
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def get_or_create_wallet(db: Session, user_id: int) -> Wallet:
    wallet = db.query(Wallet).filter(Wallet.user_id == user_id).first()
    if wallet is None:
        wallet = Wallet(user_id=user_id, balance=Decimal("0.00"))
        db.add(wallet)
        db.flush()
        logger.info(f"Created wallet for user {user_id}")
    return wallet


def record_transaction(
    db: Session,
    wallet: Wallet,
    amount: Decimal,
    transaction_type: str,
    description: str,
    status: str = TX_COMPLETED,
    external_transaction_id: Optional[str] = None,
) -> WalletTransaction:
    """
    Append a ledger entry; completed entries move the balance immediately.

    Args:
        amount: Signed amount (negative for money leaving the wallet)
    """
    amount = to_money(amount)
    transaction = WalletTransaction(
        wallet_id=wallet.wallet_id,
        amount=amount,
        transaction_type=transaction_type,
        status=status,
        description=description,
        external_transaction_id=external_transaction_id,
    )
    db.add(transaction)
    if status == TX_COMPLETED:
        wallet.balance = to_money(wallet.balance) + amount
    db.flush()
    return transaction


def debit(db: Session, wallet: Wallet, amount: Decimal, transaction_type: str, description: str) -> WalletTransaction:
    """
    Take money out of a wallet.

    Raises:
        InvalidRequestError: If the balance does not cover the amount
    """
    amount = to_money(amount)
    if to_money(wallet.balance) < amount:
        raise InvalidRequestError(
            "Insufficient wallet balance",
            details={"balance": float(to_money(wallet.balance)), "required": float(amount)},
        )
    return record_transaction(db, wallet, -amount, transaction_type, description)


def credit(db: Session, wallet: Wallet, amount: Decimal, transaction_type: str, description: str) -> WalletTransaction:
    return record_transaction(db, wallet, to_money(amount), transaction_type, description)


def complete_pending_transaction(db: Session, transaction: WalletTransaction) -> None:
    """Settle a pending entry and apply it to the balance."""
    if transaction.status != TX_PENDING:
        return
    wallet = transaction.wallet
    transaction.status = TX_COMPLETED
    wallet.balance = to_money(wallet.balance) + to_money(transaction.amount)
    db.flush()
    logger.info(
        f"Transaction {transaction.transaction_id} completed, "
        f"wallet {wallet.wallet_id} balance {wallet.balance}"
    )


def fail_pending_transaction(db: Session, transaction: WalletTransaction) -> None:
    if transaction.status != TX_PENDING:
        return
    transaction.status = TX_FAILED
    db.flush()
    logger.info(f"Transaction {transaction.transaction_id} marked failed")
