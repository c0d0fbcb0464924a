"""
Authentication routes.
Handles registration, login, logout, password changes and resets.
"""

import logging
from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from ...db.models import ROLE_ARTIST, ArtistProfile, User, utcnow
from ..config import get_settings
from ..dependencies import get_current_user, get_db
from ..schemas.auth import (
    AuthUser,
    ChangePasswordRequest,
    ForgotPasswordRequest,
    ResetPasswordRequest,
    TokenResponse,
    UserLoginRequest,
    UserRegisterRequest,
    UserResponse,
)
from ..schemas.common import ErrorResponse, MessageResponse
from ..security import create_user_token, generate_numeric_code, hash_password, verify_password
from ..services.email_service import EmailService, get_email_service
from ..services.wallet_service import get_or_create_wallet

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])

ACCESS_TOKEN_COOKIE = "access_token"


def get_cookie_settings() -> dict:
    """
    Get cookie settings based on environment.

    In production (HTTPS), use secure=True and samesite="none" for cross-origin requests.
    In development, use secure=False and samesite="lax" for localhost.
    """
    is_production = get_settings().is_production

    return {
        "httponly": True,
        "secure": is_production,
        "samesite": "none" if is_production else "lax",
        "path": "/",
    }


@router.post(
    "/register",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse, "description": "Email already registered"}},
)
async def register(
    request: UserRegisterRequest,
    db: Session = Depends(get_db),
) -> UserResponse:
    """
    Register a new buyer or artist account.

    Email addresses are compared case-insensitively.
    """
    email = request.email.lower()
    if db.query(User).filter(User.email == email).first():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email address already registered",
        )

    new_user = User(
        name=request.name,
        email=email,
        password_hash=hash_password(request.password),
        role=request.role,
        is_active=True,
        email_verified=False,
    )
    db.add(new_user)
    db.flush()

    if new_user.role == ROLE_ARTIST:
        db.add(ArtistProfile(artist_id=new_user.user_id))
    get_or_create_wallet(db, new_user.user_id)

    db.commit()
    db.refresh(new_user)

    logger.info(f"Registered user {new_user.user_id} as {new_user.role}")
    return UserResponse.model_validate(new_user)


@router.post(
    "/login",
    response_model=TokenResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Invalid credentials"},
        403: {"model": ErrorResponse, "description": "Account disabled"},
    },
)
async def login(
    request: UserLoginRequest,
    response: Response,
    db: Session = Depends(get_db),
) -> TokenResponse:
    """
    Login and receive an access token.

    The token is also set as an httpOnly cookie.
    """
    user = db.query(User).filter(User.email == request.email.lower()).first()
    if not user or not verify_password(request.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Email or password is incorrect",
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is disabled",
        )

    user.last_login = utcnow()
    db.commit()

    settings = get_settings()
    expires_in = settings.jwt_expire_hours * 3600
    access_token = create_user_token(user)
    response.set_cookie(
        key=ACCESS_TOKEN_COOKIE,
        value=access_token,
        max_age=expires_in,
        **get_cookie_settings(),
    )

    logger.info(f"User {user.user_id} logged in")
    return TokenResponse(
        access_token=access_token,
        token_type="bearer",
        expires_in=expires_in,
        user=AuthUser.model_validate(user),
    )


@router.post("/logout", response_model=MessageResponse)
async def logout(response: Response) -> MessageResponse:
    """Logout by clearing the auth cookie."""
    response.delete_cookie(ACCESS_TOKEN_COOKIE, **get_cookie_settings())
    return MessageResponse(message="Logged out successfully")


@router.get(
    "/me",
    response_model=UserResponse,
    responses={401: {"model": ErrorResponse, "description": "Not authenticated"}},
)
async def me(current_user: User = Depends(get_current_user)) -> UserResponse:
    """Get the current authenticated user."""
    return UserResponse.model_validate(current_user)


@router.post(
    "/change-password",
    response_model=MessageResponse,
    responses={400: {"model": ErrorResponse, "description": "Wrong current password"}},
)
async def change_password(
    request: ChangePasswordRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> MessageResponse:
    """Change the caller's password after checking the current one."""
    if not verify_password(request.current_password, current_user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Current password is incorrect",
        )

    if request.current_password == request.new_password:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="New password must differ from the current password",
        )

    current_user.password_hash = hash_password(request.new_password)
    db.commit()

    logger.info(f"User {current_user.user_id} changed password")
    return MessageResponse(message="Password changed successfully")


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(
    request: ForgotPasswordRequest,
    db: Session = Depends(get_db),
    email_service: EmailService = Depends(get_email_service),
) -> MessageResponse:
    """
    Email a password reset code.

    The response is identical whether or not the address is registered.
    """
    user = db.query(User).filter(User.email == request.email.lower()).first()
    if user and user.is_active:
        settings = get_settings()
        code = generate_numeric_code()
        user.reset_code = code
        user.reset_code_expiry = utcnow() + timedelta(minutes=settings.reset_code_expire_minutes)
        db.commit()
        if email_service.send_reset_code_email(user.email, code, settings.reset_code_expire_minutes):
            logger.info(f"Password reset code issued for user {user.user_id}")
        else:
            user.reset_code = None
            user.reset_code_expiry = None
            db.commit()
            logger.warning(f"Password reset email failed for user {user.user_id}")

    return MessageResponse(message="If the email is registered, a reset code has been sent")


@router.post(
    "/reset-password",
    response_model=MessageResponse,
    responses={400: {"model": ErrorResponse, "description": "Invalid or expired code"}},
)
async def reset_password(
    request: ResetPasswordRequest,
    db: Session = Depends(get_db),
) -> MessageResponse:
    """Set a new password using an emailed reset code."""
    user = db.query(User).filter(User.email == request.email.lower()).first()
    if (
        not user
        or not user.reset_code
        or user.reset_code != request.code
        or user.reset_code_expiry is None
        or user.reset_code_expiry < utcnow()
    ):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid or expired reset code",
        )

    user.password_hash = hash_password(request.new_password)
    user.reset_code = None
    user.reset_code_expiry = None
    db.commit()

    logger.info(f"User {user.user_id} reset password")
    return MessageResponse(message="Password has been reset")
