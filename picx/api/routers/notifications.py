"""
Notification routes.
REST access to stored notifications plus the realtime notification socket.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status
from sqlalchemy.orm import Session

from ...db.models import ROLE_ADMIN, Notification, User
from ..dependencies import authenticate_websocket, get_current_user, get_db, get_session_factory, require_role
from ..errors import ResourceNotFoundError
from ..schemas.common import MessageResponse
from ..schemas.social import NotificationResponse, NotificationSendRequest
from ..services.hub import get_notification_hub
from ..services.notification_service import create_notification, push_notifications
from .auth import ACCESS_TOKEN_COOKIE

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notification", tags=["Notifications"])
ws_router = APIRouter(tags=["Realtime"])


@router.get("/me", response_model=List[NotificationResponse])
async def list_my_notifications(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> List[NotificationResponse]:
    notifications = (
        db.query(Notification)
        .filter(Notification.user_id == current_user.user_id)
        .order_by(Notification.created_at.desc(), Notification.notification_id.desc())
        .all()
    )
    return [NotificationResponse.model_validate(n) for n in notifications]


@router.put("/read-all", response_model=MessageResponse)
async def mark_all_read(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> MessageResponse:
    updated = (
        db.query(Notification)
        .filter(Notification.user_id == current_user.user_id, Notification.is_read.is_(False))
        .update({Notification.is_read: True}, synchronize_session=False)
    )
    db.commit()
    return MessageResponse(message=f"{updated} notification(s) marked as read")


@router.put("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(
    notification_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> NotificationResponse:
    notification = (
        db.query(Notification)
        .filter(
            Notification.notification_id == notification_id,
            Notification.user_id == current_user.user_id,
        )
        .first()
    )
    if notification is None:
        raise ResourceNotFoundError("Notification", notification_id)

    notification.is_read = True
    db.commit()
    db.refresh(notification)
    return NotificationResponse.model_validate(notification)


@router.post("/send", response_model=NotificationResponse, status_code=status.HTTP_201_CREATED)
async def send_notification(
    request: NotificationSendRequest,
    admin: User = Depends(require_role(ROLE_ADMIN)),
    db: Session = Depends(get_db),
) -> NotificationResponse:
    """Create a notification for any user and push it live."""
    if db.query(User).filter(User.user_id == request.user_id).first() is None:
        raise ResourceNotFoundError("User", request.user_id)

    notification = create_notification(
        db,
        user_id=request.user_id,
        type=request.type,
        title=request.title,
        message=request.message,
        entity_type=request.entity_type,
        entity_id=request.entity_id,
    )
    db.commit()
    db.refresh(notification)
    await push_notifications([notification])

    logger.info(f"Admin {admin.user_id} sent notification to user {request.user_id}")
    return NotificationResponse.model_validate(notification)


@ws_router.websocket("/ws/notifications")
async def notifications_socket(
    websocket: WebSocket,
    access_token: Optional[str] = Query(None),
    session_factory=Depends(get_session_factory),
):
    """
    Live notification feed.

    The token comes from the `access_token` query parameter or cookie.
    The socket only listens; incoming frames are ignored.
    """
    token = access_token or websocket.cookies.get(ACCESS_TOKEN_COOKIE)
    user_id = authenticate_websocket(token, session_factory)
    if user_id is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    hub = get_notification_hub()
    hub.connect(user_id, websocket)
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        hub.disconnect(user_id, websocket)
