"""
User and artist profile schemas.
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, EmailStr, Field


class ProfileResponse(BaseModel):
    """The caller's own profile, including payout details."""

    user_id: int
    name: str
    email: str
    role: str
    phone: Optional[str] = None
    address: Optional[str] = None
    bank_name: Optional[str] = None
    bank_account_number: Optional[str] = None
    momo_number: Optional[str] = None
    email_verified: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class ProfileUpdateRequest(BaseModel):
    """Request schema for updating the caller's profile."""

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[EmailStr] = Field(None, description="New email address")
    phone: Optional[str] = Field(None, max_length=20)
    address: Optional[str] = Field(None, max_length=255)
    role: Optional[Literal["buyer", "artist"]] = Field(
        None, description="Switch between buyer and artist accounts"
    )
    bank_name: Optional[str] = Field(None, max_length=100)
    bank_account_number: Optional[str] = Field(None, max_length=50)
    momo_number: Optional[str] = Field(None, max_length=20)


class AdminUserResponse(BaseModel):
    """User row as listed to admins."""

    user_id: int
    name: str
    email: str
    role: str
    phone: Optional[str] = None
    is_active: bool
    email_verified: bool
    last_login: Optional[datetime] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class ArtistProfileResponse(BaseModel):
    """Artist profile merged with the artist's user fields."""

    artist_id: int
    name: str = ""
    email: str = ""
    phone: str = ""
    address: str = ""
    bio: str = ""
    profile_picture: str = ""
    specialization: str = ""
    experience_years: int = 0
    website_url: str = ""
    social_media_links: str = ""


class ArtistProfileUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone: Optional[str] = Field(None, max_length=20)
    address: Optional[str] = Field(None, max_length=255)
    bio: Optional[str] = None
    profile_picture: Optional[str] = Field(None, max_length=255)
    specialization: Optional[str] = Field(None, max_length=100)
    experience_years: Optional[int] = Field(None, ge=0, le=100)
    website_url: Optional[str] = Field(None, max_length=255)
    social_media_links: Optional[str] = None
