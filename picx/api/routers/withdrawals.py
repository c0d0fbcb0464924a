"""
Withdrawal routes.
Artists request payouts from their wallet; admins approve or reject them.
"""

import logging
from decimal import Decimal
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ...db.models import (
    ROLE_ADMIN,
    ROLE_ARTIST,
    WITHDRAW_APPROVED,
    WITHDRAW_PENDING,
    WITHDRAW_REJECTED,
    User,
    WithdrawRequest,
    utcnow,
)
from ..config import get_settings
from ..dependencies import get_db, require_role
from ..errors import ResourceNotFoundError
from ..schemas.order import WithdrawCreateRequest, WithdrawRequestResponse
from ..services import wallet_service
from ..services.notification_service import create_notification, push_notifications

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Withdrawals"])


def to_withdraw_response(request: WithdrawRequest) -> WithdrawRequestResponse:
    return WithdrawRequestResponse(
        request_id=request.request_id,
        user_id=request.user_id,
        user_name=request.user.name if request.user else None,
        user_role=request.user.role if request.user else None,
        amount_requested=float(request.amount_requested),
        amount_received=float(request.amount_received),
        status=request.status,
        requested_at=request.requested_at,
        processed_at=request.processed_at,
    )


def payout_after_commission(amount: Decimal, commission_rate: Decimal) -> Decimal:
    rate = Decimal(str(commission_rate)) / Decimal("100")
    return wallet_service.to_money(amount * (Decimal("1") - rate))


@router.post(
    "/withdraw-request",
    response_model=WithdrawRequestResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_withdraw_request(
    request: WithdrawCreateRequest,
    current_user: User = Depends(require_role(ROLE_ARTIST)),
    db: Session = Depends(get_db),
) -> WithdrawRequestResponse:
    """
    Request a payout.

    The requested amount is held from the wallet until an admin decides.
    """
    amount = wallet_service.to_money(request.amount)
    wallet = wallet_service.get_or_create_wallet(db, current_user.user_id)
    wallet_service.debit(db, wallet, amount, "withdraw", "Withdrawal request")

    withdraw = WithdrawRequest(
        user_id=current_user.user_id,
        amount_requested=amount,
        amount_received=payout_after_commission(amount, get_settings().commission_rate),
        status=WITHDRAW_PENDING,
    )
    db.add(withdraw)
    db.commit()
    db.refresh(withdraw)

    logger.info(f"Artist {current_user.user_id} requested withdrawal {withdraw.request_id} of {amount}")
    return to_withdraw_response(withdraw)


@router.get("/withdraw-request/my-requests", response_model=List[WithdrawRequestResponse])
async def list_my_withdraw_requests(
    current_user: User = Depends(require_role(ROLE_ARTIST)),
    db: Session = Depends(get_db),
) -> List[WithdrawRequestResponse]:
    requests = (
        db.query(WithdrawRequest)
        .filter(WithdrawRequest.user_id == current_user.user_id)
        .order_by(WithdrawRequest.requested_at.desc(), WithdrawRequest.request_id.desc())
        .all()
    )
    return [to_withdraw_response(item) for item in requests]


@router.get("/admin/withdrawal-requests", response_model=List[WithdrawRequestResponse])
async def list_pending_withdraw_requests(
    admin: User = Depends(require_role(ROLE_ADMIN)),
    db: Session = Depends(get_db),
) -> List[WithdrawRequestResponse]:
    requests = (
        db.query(WithdrawRequest)
        .filter(WithdrawRequest.status == WITHDRAW_PENDING)
        .order_by(WithdrawRequest.requested_at, WithdrawRequest.request_id)
        .all()
    )
    return [to_withdraw_response(item) for item in requests]


def get_pending_or_404(db: Session, request_id: int) -> WithdrawRequest:
    withdraw = (
        db.query(WithdrawRequest)
        .filter(WithdrawRequest.request_id == request_id, WithdrawRequest.status == WITHDRAW_PENDING)
        .first()
    )
    if withdraw is None:
        raise ResourceNotFoundError("WithdrawRequest", request_id)
    return withdraw


@router.post(
    "/admin/withdrawal-requests/{request_id}/approve", response_model=WithdrawRequestResponse
)
async def approve_withdraw_request(
    request_id: int,
    admin: User = Depends(require_role(ROLE_ADMIN)),
    db: Session = Depends(get_db),
) -> WithdrawRequestResponse:
    withdraw = get_pending_or_404(db, request_id)
    withdraw.status = WITHDRAW_APPROVED
    withdraw.processed_at = utcnow()

    notification = create_notification(
        db,
        user_id=withdraw.user_id,
        type="Withdrawal",
        title="Withdrawal Approved",
        message=(
            f"Your withdrawal of {float(withdraw.amount_requested):g} was approved; "
            f"{float(withdraw.amount_received):g} will be transferred after commission."
        ),
        entity_type="WithdrawRequest",
        entity_id=withdraw.request_id,
    )
    db.commit()
    await push_notifications([notification])

    logger.info(f"Admin {admin.user_id} approved withdrawal {request_id}")
    return to_withdraw_response(withdraw)


@router.post(
    "/admin/withdrawal-requests/{request_id}/reject", response_model=WithdrawRequestResponse
)
async def reject_withdraw_request(
    request_id: int,
    admin: User = Depends(require_role(ROLE_ADMIN)),
    db: Session = Depends(get_db),
) -> WithdrawRequestResponse:
    """Reject a payout and return the held amount to the wallet."""
    withdraw = get_pending_or_404(db, request_id)
    withdraw.status = WITHDRAW_REJECTED
    withdraw.processed_at = utcnow()

    wallet = wallet_service.get_or_create_wallet(db, withdraw.user_id)
    wallet_service.credit(
        db, wallet, withdraw.amount_requested, "refund", f"Withdrawal #{withdraw.request_id} rejected"
    )
    notification = create_notification(
        db,
        user_id=withdraw.user_id,
        type="Withdrawal",
        title="Withdrawal Rejected",
        message=f"Your withdrawal of {float(withdraw.amount_requested):g} was rejected and refunded.",
        entity_type="WithdrawRequest",
        entity_id=withdraw.request_id,
    )
    db.commit()
    await push_notifications([notification])

    logger.info(f"Admin {admin.user_id} rejected withdrawal {request_id}")
    return to_withdraw_response(withdraw)
