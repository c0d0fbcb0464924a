"""
Chat routes.
Direct messages between users over a WebSocket hub, with REST mirrors.

Socket frames from the client are JSON objects with an `action` key:

    {"action": "send_message", "receiver_id": 2, "message": "Hello"}
    {"action": "mark_read", "chat_id": 10}
    {"action": "get_history", "other_user_id": 2}
    {"action": "get_current_user_id"}
"""

import json
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status
from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from ...db.models import Chat, User
from ..dependencies import authenticate_websocket, get_current_user, get_db, get_session_factory
from ..errors import APIError, InvalidRequestError, ResourceNotFoundError
from ..schemas.social import ChatContactResponse, ChatMessageResponse
from ..services.hub import (
    ERROR_EVENT,
    MESSAGE_READ,
    RECEIVE_CHAT_HISTORY,
    RECEIVE_CURRENT_USER_ID,
    RECEIVE_MESSAGE,
    RECEIVE_USER_LIST,
    ConnectionHub,
    get_chat_hub,
)
from .auth import ACCESS_TOKEN_COOKIE

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["Chat"])
ws_router = APIRouter(tags=["Realtime"])

MAX_MESSAGE_LENGTH = 2000


def to_chat_message(chat: Chat) -> ChatMessageResponse:
    return ChatMessageResponse(
        chat_id=chat.chat_id,
        sender_id=chat.sender_id,
        sender_name=chat.sender.name if chat.sender else None,
        receiver_id=chat.receiver_id,
        receiver_name=chat.receiver.name if chat.receiver else None,
        message=chat.message,
        is_read=chat.is_read,
        sent_at=chat.sent_at,
    )


def list_contacts(db: Session, user_id: int, hub: ConnectionHub) -> List[ChatContactResponse]:
    """Active users other than the caller."""
    users = (
        db.query(User)
        .filter(User.user_id != user_id, User.is_active.is_(True))
        .order_by(User.name)
        .all()
    )
    return [
        ChatContactResponse(
            user_id=user.user_id,
            name=user.name,
            role=user.role,
            is_online=hub.is_connected(user.user_id),
        )
        for user in users
    ]


def conversation(db: Session, user_id: int, other_user_id: int) -> List[ChatMessageResponse]:
    """Messages between two users, oldest first."""
    chats = (
        db.query(Chat)
        .filter(
            or_(
                and_(Chat.sender_id == user_id, Chat.receiver_id == other_user_id),
                and_(Chat.sender_id == other_user_id, Chat.receiver_id == user_id),
            )
        )
        .order_by(Chat.sent_at, Chat.chat_id)
        .all()
    )
    return [to_chat_message(chat) for chat in chats]


def save_message(db: Session, sender_id: int, receiver_id: Any, message: Any) -> Chat:
    text = message.strip() if isinstance(message, str) else ""
    if not text:
        raise InvalidRequestError("Message must not be empty")
    if len(text) > MAX_MESSAGE_LENGTH:
        raise InvalidRequestError(f"Message must be at most {MAX_MESSAGE_LENGTH} characters")

    try:
        receiver_id = int(receiver_id)
    except (TypeError, ValueError):
        raise InvalidRequestError("receiver_id must be an integer")

    receiver = db.query(User).filter(User.user_id == receiver_id).first()
    if receiver is None or not receiver.is_active:
        raise ResourceNotFoundError("User", receiver_id)

    chat = Chat(sender_id=sender_id, receiver_id=receiver_id, message=text, is_read=False)
    db.add(chat)
    db.commit()
    db.refresh(chat)
    return chat


def mark_message_read(db: Session, user_id: int, chat_id: Any) -> Chat:
    try:
        chat_id = int(chat_id)
    except (TypeError, ValueError):
        raise InvalidRequestError("chat_id must be an integer")

    chat = (
        db.query(Chat)
        .filter(Chat.chat_id == chat_id, Chat.receiver_id == user_id)
        .first()
    )
    if chat is None:
        raise ResourceNotFoundError("Message", chat_id)

    chat.is_read = True
    db.commit()
    db.refresh(chat)
    return chat


@router.get("/contacts", response_model=List[ChatContactResponse])
async def get_contacts(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> List[ChatContactResponse]:
    return list_contacts(db, current_user.user_id, get_chat_hub())


@router.get("/history/{other_user_id}", response_model=List[ChatMessageResponse])
async def get_history(
    other_user_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> List[ChatMessageResponse]:
    return conversation(db, current_user.user_id, other_user_id)


async def handle_action(
    db: Session, hub: ConnectionHub, websocket: WebSocket, user_id: int, frame: Dict[str, Any]
) -> None:
    action = frame.get("action")

    if action == "send_message":
        chat = save_message(db, user_id, frame.get("receiver_id"), frame.get("message"))
        payload = to_chat_message(chat).model_dump(mode="json")
        await hub.publish_many([chat.sender_id, chat.receiver_id], RECEIVE_MESSAGE, payload)

    elif action == "mark_read":
        chat = mark_message_read(db, user_id, frame.get("chat_id"))
        await hub.publish(
            chat.sender_id, MESSAGE_READ, {"chat_id": chat.chat_id, "reader_id": user_id}
        )

    elif action == "get_history":
        try:
            other_user_id = int(frame.get("other_user_id"))
        except (TypeError, ValueError):
            raise InvalidRequestError("other_user_id must be an integer")
        history = conversation(db, user_id, other_user_id)
        await hub.send(
            websocket,
            RECEIVE_CHAT_HISTORY,
            [message.model_dump(mode="json") for message in history],
        )

    elif action == "get_current_user_id":
        await hub.send(websocket, RECEIVE_CURRENT_USER_ID, user_id)

    else:
        raise InvalidRequestError(f"Unknown action: {action}")


@ws_router.websocket("/ws/chat")
async def chat_socket(
    websocket: WebSocket,
    access_token: Optional[str] = Query(None),
    session_factory=Depends(get_session_factory),
):
    """
    Chat hub.

    Joins the caller's group and sends the contact list on connect. Failed
    actions produce an `Error` event and leave the socket open.
    """
    token = access_token or websocket.cookies.get(ACCESS_TOKEN_COOKIE)
    user_id = authenticate_websocket(token, session_factory)
    if user_id is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    hub = get_chat_hub()
    hub.connect(user_id, websocket)

    try:
        db = session_factory()
        try:
            contacts = list_contacts(db, user_id, hub)
        finally:
            db.close()
        await hub.send(
            websocket, RECEIVE_USER_LIST, [contact.model_dump() for contact in contacts]
        )

        while True:
            raw = await websocket.receive_text()
            try:
                frame = json.loads(raw)
            except ValueError:
                await hub.send(websocket, ERROR_EVENT, {"message": "Invalid JSON frame"})
                continue
            if not isinstance(frame, dict):
                await hub.send(websocket, ERROR_EVENT, {"message": "Frame must be a JSON object"})
                continue

            db = session_factory()
            try:
                await handle_action(db, hub, websocket, user_id, frame)
            except APIError as e:
                db.rollback()
                await hub.send(websocket, ERROR_EVENT, {"message": e.message})
            finally:
                db.close()
    except WebSocketDisconnect:
        pass
    finally:
        hub.disconnect(user_id, websocket)
