"""
Email verification routes.
Sends and checks one-time codes that confirm a user's email address.
"""

import logging
from datetime import timedelta

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...db.models import User, utcnow
from ..config import get_settings
from ..dependencies import get_db
from ..errors import EmailDeliveryError, InvalidRequestError, ResourceNotFoundError
from ..schemas.auth import SendOtpRequest, VerifyOtpRequest
from ..schemas.common import MessageResponse
from ..security import generate_numeric_code
from ..services.email_service import EmailService, get_email_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/email", tags=["Email"])


@router.post("/send-otp", response_model=MessageResponse)
async def send_otp(
    request: SendOtpRequest,
    db: Session = Depends(get_db),
    email_service: EmailService = Depends(get_email_service),
) -> MessageResponse:
    """
    Email a 6-digit verification code.

    A new code is refused while the previous one is still valid.
    """
    email = request.email.lower()
    user = db.query(User).filter(User.email == email).first()
    if not user:
        raise ResourceNotFoundError("User", email)

    now = utcnow()
    if user.email_otp and user.email_otp_expiry and user.email_otp_expiry > now:
        raise InvalidRequestError("An OTP was already sent. Please wait before requesting a new one")

    settings = get_settings()
    code = generate_numeric_code()
    user.email_otp = code
    user.email_otp_expiry = now + timedelta(minutes=settings.otp_expire_minutes)
    db.commit()

    if not email_service.send_otp_email(user.email, code, settings.otp_expire_minutes):
        user.email_otp = None
        user.email_otp_expiry = None
        db.commit()
        raise EmailDeliveryError("Could not send the OTP email, please try again later")

    logger.info(f"OTP sent to user {user.user_id}")
    return MessageResponse(message="OTP sent successfully")


@router.post("/verify-otp", response_model=MessageResponse)
async def verify_otp(
    request: VerifyOtpRequest,
    db: Session = Depends(get_db),
) -> MessageResponse:
    """Confirm the email address with the code that was sent to it."""
    user = db.query(User).filter(User.email == request.email.lower()).first()
    if not user:
        raise ResourceNotFoundError("User", request.email)

    if (
        not user.email_otp
        or user.email_otp != request.otp.strip()
        or user.email_otp_expiry is None
        or user.email_otp_expiry < utcnow()
    ):
        raise InvalidRequestError("Invalid or expired OTP")

    user.email_verified = True
    user.email_otp = None
    user.email_otp_expiry = None
    db.commit()

    logger.info(f"User {user.user_id} verified email")
    return MessageResponse(message="Email verified successfully")
