"""
Notification, chat and report schemas.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class NotificationResponse(BaseModel):
    notification_id: int
    user_id: int
    type: str
    title: str
    message: str
    entity_type: Optional[str] = None
    entity_id: Optional[int] = None
    is_read: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class NotificationSendRequest(BaseModel):
    user_id: int
    type: str = Field(default="System", max_length=50)
    title: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1)
    entity_type: Optional[str] = Field(None, max_length=50)
    entity_id: Optional[int] = None


class ChatMessageResponse(BaseModel):
    chat_id: int
    sender_id: int
    sender_name: Optional[str] = None
    receiver_id: int
    receiver_name: Optional[str] = None
    message: str
    is_read: bool
    sent_at: datetime


class ChatContactResponse(BaseModel):
    user_id: int
    name: str
    role: str
    is_online: bool = False


class ReportCreateRequest(BaseModel):
    product_id: int
    content: str = Field(..., max_length=2000)

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Report content must not be empty")
        return v


class ReportResponse(BaseModel):
    report_id: int
    product_id: int
    product_title: Optional[str] = None
    image_url: Optional[str] = None
    user_id: int
    user_name: Optional[str] = None
    content: str
    is_approved: bool
    created_at: datetime
