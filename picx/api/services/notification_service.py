"""
Notification Service
Persists user notifications and pushes them to connected clients.
"""

import logging
from typing import Any, Dict, Iterable, Optional

from sqlalchemy.orm import Session

from ...db.models import Notification
from .hub import RECEIVE_NOTIFICATION, get_notification_hub

logger = logging.getLogger(__name__)


def create_notification(
    db: Session,
    user_id: int,
    type: str,
    title: str,
    message: str,
    entity_type: Optional[str] = None,
    entity_id: Optional[int] = None,
) -> Notification:
    """
    Add a notification to the session.

    The caller commits; push it afterwards with `push_notifications`.
    """
    notification = Notification(
        user_id=user_id,
        type=type,
        title=title,
        message=message,
        entity_type=entity_type,
        entity_id=entity_id,
        is_read=False,
    )
    db.add(notification)
    db.flush()
    return notification


def serialize_notification(notification: Notification) -> Dict[str, Any]:
    return {
        "notification_id": notification.notification_id,
        "user_id": notification.user_id,
        "type": notification.type,
        "title": notification.title,
        "message": notification.message,
        "entity_type": notification.entity_type,
        "entity_id": notification.entity_id,
        "is_read": notification.is_read,
        "created_at": notification.created_at.isoformat() if notification.created_at else None,
    }


async def push_notifications(notifications: Iterable[Notification]) -> int:
    """Publish committed notifications to their recipients' hub groups."""
    hub = get_notification_hub()
    delivered = 0
    for notification in notifications:
        delivered += await hub.publish(
            notification.user_id, RECEIVE_NOTIFICATION, serialize_notification(notification)
        )
    if delivered:
        logger.debug(f"Pushed notifications to {delivered} socket(s)")
    return delivered
