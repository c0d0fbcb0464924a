"""
Authentication request/response schemas.
Pydantic models for registration, login, password and email verification flows.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator


def check_password_strength(v: str) -> str:
    """Validate password strength."""
    if len(v) < 8:
        raise ValueError("Password must be at least 8 characters long")

    if not any(c.isupper() for c in v):
        raise ValueError("Password must contain at least one uppercase letter")

    if not any(c.islower() for c in v):
        raise ValueError("Password must contain at least one lowercase letter")

    if not any(c.isdigit() for c in v):
        raise ValueError("Password must contain at least one digit")

    return v


class UserRegisterRequest(BaseModel):
    """Request schema for user registration."""

    email: EmailStr = Field(..., description="User email address")
    name: str = Field(..., min_length=1, max_length=100, description="Display name")
    password: str = Field(..., min_length=8, description="User password (min 8 characters)")
    role: Literal["buyer", "artist"] = Field(default="buyer", description="Account type")

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return check_password_strength(v)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name must not be blank")
        return v


class UserLoginRequest(BaseModel):
    """Request schema for user login."""

    email: EmailStr = Field(..., description="User email address")
    password: str = Field(..., description="User password")


class AuthUser(BaseModel):
    """Identity returned to the client after login."""

    id: int = Field(..., validation_alias="user_id", description="User id")
    name: str
    email: str
    role: str

    model_config = {"from_attributes": True, "populate_by_name": True}


class TokenResponse(BaseModel):
    """Response schema for token issuance."""

    message: str = Field(default="Login successful")
    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field(default="bearer", description="Token type")
    expires_in: int = Field(..., description="Token expiration time in seconds")
    user: AuthUser = Field(..., description="User information")


class UserResponse(BaseModel):
    """Safe user response schema (no password or one-time codes)."""

    user_id: int = Field(..., description="User unique identifier")
    name: str
    email: str = Field(..., description="User email address")
    role: str
    phone: Optional[str] = None
    address: Optional[str] = None
    is_active: bool = Field(..., description="Whether account is active")
    email_verified: bool = Field(..., description="Whether email is verified")
    last_login: Optional[datetime] = Field(None, description="Last login timestamp")
    created_at: datetime = Field(..., description="Account creation timestamp")

    model_config = {"from_attributes": True}


class ChangePasswordRequest(BaseModel):
    """Request schema for changing password."""

    current_password: str = Field(..., description="Current password")
    new_password: str = Field(..., min_length=8, description="New password")

    @field_validator("new_password")
    @classmethod
    def validate_new_password(cls, v: str) -> str:
        return check_password_strength(v)


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    """Request schema for resetting a password with an emailed code."""

    email: EmailStr
    code: str = Field(..., min_length=1, max_length=10)
    new_password: str = Field(..., min_length=8)

    @field_validator("new_password")
    @classmethod
    def validate_new_password(cls, v: str) -> str:
        return check_password_strength(v)


class SendOtpRequest(BaseModel):
    email: EmailStr


class VerifyOtpRequest(BaseModel):
    email: EmailStr
    otp: str = Field(..., min_length=1, max_length=10)
