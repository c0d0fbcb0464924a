"""
Artist profile routes.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...db.models import ROLE_ARTIST, ArtistProfile, User
from ..dependencies import get_db, require_role
from ..errors import ResourceNotFoundError
from ..schemas.user import ArtistProfileResponse, ArtistProfileUpdateRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/profile", tags=["Artist Profiles"])

_USER_FIELDS = {"name", "phone", "address"}


def build_artist_profile(user: User, profile: ArtistProfile) -> ArtistProfileResponse:
    """Merge user and profile fields; missing strings become empty strings."""
    return ArtistProfileResponse(
        artist_id=user.user_id,
        name=user.name or "",
        email=user.email or "",
        phone=user.phone or "",
        address=user.address or "",
        bio=profile.bio or "",
        profile_picture=profile.profile_picture or "",
        specialization=profile.specialization or "",
        experience_years=profile.experience_years or 0,
        website_url=profile.website_url or "",
        social_media_links=profile.social_media_links or "",
    )


@router.get("/artist", response_model=ArtistProfileResponse)
async def get_my_artist_profile(
    current_user: User = Depends(require_role(ROLE_ARTIST)),
) -> ArtistProfileResponse:
    if current_user.artist_profile is None:
        raise ResourceNotFoundError("ArtistProfile", current_user.user_id)
    return build_artist_profile(current_user, current_user.artist_profile)


@router.put("/artist", response_model=ArtistProfileResponse)
async def update_my_artist_profile(
    request: ArtistProfileUpdateRequest,
    current_user: User = Depends(require_role(ROLE_ARTIST)),
    db: Session = Depends(get_db),
) -> ArtistProfileResponse:
    """Update the caller's artist profile, creating it if missing."""
    profile = current_user.artist_profile
    if profile is None:
        profile = ArtistProfile(artist_id=current_user.user_id)
        db.add(profile)
        current_user.artist_profile = profile

    for field, value in request.model_dump(exclude_unset=True).items():
        if value is None:
            continue
        target = current_user if field in _USER_FIELDS else profile
        setattr(target, field, value)

    db.commit()
    db.refresh(current_user)

    logger.info(f"Artist {current_user.user_id} updated profile")
    return build_artist_profile(current_user, current_user.artist_profile)


@router.get("/artist/{artist_id}", response_model=ArtistProfileResponse)
async def get_artist_profile(
    artist_id: int,
    db: Session = Depends(get_db),
) -> ArtistProfileResponse:
    """Public profile of an artist."""
    user = (
        db.query(User)
        .filter(User.user_id == artist_id, User.role == ROLE_ARTIST)
        .first()
    )
    if user is None or user.artist_profile is None:
        raise ResourceNotFoundError("Artist", artist_id)
    return build_artist_profile(user, user.artist_profile)
