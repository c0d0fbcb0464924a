"""
User routes.
Profile management for the caller and account moderation for admins.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...db.models import ROLE_ADMIN, ROLE_ARTIST, ArtistProfile, User
from ..dependencies import get_current_user, get_db, require_role
from ..errors import ConflictError, InvalidRequestError, ResourceNotFoundError
from ..schemas.common import MessageResponse
from ..schemas.user import AdminUserResponse, ProfileResponse, ProfileUpdateRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/user", tags=["Users"])


@router.get("/profile", response_model=ProfileResponse)
async def get_profile(current_user: User = Depends(get_current_user)) -> ProfileResponse:
    return ProfileResponse.model_validate(current_user)


@router.put("/profile", response_model=ProfileResponse)
async def update_profile(
    request: ProfileUpdateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ProfileResponse:
    """
    Update the caller's profile.

    Only fields present in the request are changed. Switching to the
    artist role creates an empty artist profile.
    """
    updates = request.model_dump(exclude_unset=True)

    if "email" in updates and updates["email"] is not None:
        new_email = updates["email"].lower()
        if new_email != current_user.email:
            taken = db.query(User).filter(User.email == new_email).first()
            if taken:
                raise ConflictError("Email address already in use")
        updates["email"] = new_email

    new_role = updates.pop("role", None)
    if new_role and new_role != current_user.role:
        if current_user.role == ROLE_ADMIN:
            raise InvalidRequestError("Admins cannot change their role")
        current_user.role = new_role
        if new_role == ROLE_ARTIST and current_user.artist_profile is None:
            db.add(ArtistProfile(artist_id=current_user.user_id))

    for field, value in updates.items():
        if value is not None:
            setattr(current_user, field, value)

    db.commit()
    db.refresh(current_user)

    logger.info(f"User {current_user.user_id} updated profile")
    return ProfileResponse.model_validate(current_user)


@router.get("/all", response_model=List[AdminUserResponse])
async def list_users(
    admin: User = Depends(require_role(ROLE_ADMIN)),
    db: Session = Depends(get_db),
) -> List[AdminUserResponse]:
    users = db.query(User).order_by(User.user_id).all()
    return [AdminUserResponse.model_validate(user) for user in users]


def _set_active(db: Session, admin: User, user_id: int, active: bool) -> User:
    user = db.query(User).filter(User.user_id == user_id).first()
    if not user:
        raise ResourceNotFoundError("User", user_id)
    if not active and (user.user_id == admin.user_id or user.role == ROLE_ADMIN):
        raise InvalidRequestError("Admin accounts cannot be banned")

    user.is_active = active
    db.commit()
    logger.info(f"Admin {admin.user_id} set user {user_id} active={active}")
    return user


@router.put("/ban/{user_id}", response_model=MessageResponse)
async def ban_user(
    user_id: int,
    admin: User = Depends(require_role(ROLE_ADMIN)),
    db: Session = Depends(get_db),
) -> MessageResponse:
    _set_active(db, admin, user_id, False)
    return MessageResponse(message="User banned")


@router.put("/activate/{user_id}", response_model=MessageResponse)
async def activate_user(
    user_id: int,
    admin: User = Depends(require_role(ROLE_ADMIN)),
    db: Session = Depends(get_db),
) -> MessageResponse:
    _set_active(db, admin, user_id, True)
    return MessageResponse(message="User activated")
