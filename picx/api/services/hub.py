"""
Realtime Hub
In-process WebSocket connection groups keyed by user id.
"""

import logging
from collections import defaultdict
from typing import Any, Dict, Iterable, Optional, Set

from fastapi import WebSocket
from starlette.websockets import WebSocketDisconnect, WebSocketState

logger = logging.getLogger(__name__)

# Event names pushed to clients
RECEIVE_NOTIFICATION = "ReceiveNotification"
RECEIVE_MESSAGE = "ReceiveMessage"
MESSAGE_READ = "MessageRead"
RECEIVE_CHAT_HISTORY = "ReceiveChatHistory"
RECEIVE_USER_LIST = "ReceiveUserList"
RECEIVE_CURRENT_USER_ID = "ReceiveCurrentUserId"
ERROR_EVENT = "Error"


class ConnectionHub:
    """
    Tracks live sockets per user and pushes named events to them.

    A user may hold several sockets (tabs, devices); each one is a member
    of the user's group.
    """

    def __init__(self, name: str):
        self.name = name
        self._groups: Dict[int, Set[WebSocket]] = defaultdict(set)

    def connect(self, user_id: int, websocket: WebSocket) -> None:
        self._groups[user_id].add(websocket)
        logger.info(f"{self.name}: user {user_id} connected")

    def disconnect(self, user_id: int, websocket: WebSocket) -> None:
        group = self._groups.get(user_id)
        if group is not None:
            group.discard(websocket)
            if not group:
                del self._groups[user_id]
        logger.info(f"{self.name}: user {user_id} disconnected")

    def is_connected(self, user_id: int) -> bool:
        return bool(self._groups.get(user_id))

    def connection_count(self, user_id: Optional[int] = None) -> int:
        if user_id is not None:
            return len(self._groups.get(user_id, ()))
        return sum(len(group) for group in self._groups.values())

    async def send(self, websocket: WebSocket, event: str, data: Any) -> None:
        """Send one event frame to a single socket."""
        await websocket.send_json({"event": event, "data": data})

    async def publish(self, user_id: int, event: str, data: Any) -> int:
        """
        Push an event to every socket in a user's group.

        Sockets that fail to receive are dropped from the group.

        Returns:
            Number of sockets the event reached
        """
        sockets = list(self._groups.get(user_id, ()))

        delivered = 0
        for websocket in sockets:
            if websocket.application_state != WebSocketState.CONNECTED:
                self.disconnect(user_id, websocket)
                continue
            try:
                await self.send(websocket, event, data)
                delivered += 1
            except (RuntimeError, OSError, WebSocketDisconnect) as e:
                logger.warning(f"{self.name}: dropping socket of user {user_id}: {e}")
                self.disconnect(user_id, websocket)
        return delivered

    async def publish_many(self, user_ids: Iterable[int], event: str, data: Any) -> int:
        delivered = 0
        for user_id in dict.fromkeys(user_ids):
            delivered += await self.publish(user_id, event, data)
        return delivered


_notification_hub: Optional[ConnectionHub] = None
_chat_hub: Optional[ConnectionHub] = None


def get_notification_hub() -> ConnectionHub:
    """Get notification hub (singleton)."""
    global _notification_hub
    if _notification_hub is None:
        _notification_hub = ConnectionHub("notifications")
    return _notification_hub


def get_chat_hub() -> ConnectionHub:
    """Get chat hub (singleton)."""
    global _chat_hub
    if _chat_hub is None:
        _chat_hub = ConnectionHub("chat")
    return _chat_hub
