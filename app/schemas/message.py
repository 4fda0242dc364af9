"""
Pydantic schemas for direct messages and counters.
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class SendMessagePayload(BaseModel):
    content: str = ""
    media_url: Optional[str] = Field(None, max_length=512)
    media_type: Optional[Literal["image", "video"]] = None


class DirectMessageResponse(BaseModel):
    id: str
    sender_id: str
    receiver_id: str
    seq: int
    content: str
    media_url: Optional[str] = None
    media_type: Optional[str] = None
    read: bool
    created_at: datetime

    class Config:
        from_attributes = True


class ConversationResponse(BaseModel):
    messages: List[DirectMessageResponse]


class ConversationSummary(BaseModel):
    user_id: str
    username: str
    photo_url: Optional[str] = None
    last_message: str
    last_message_time: datetime
    unread_count: int


class MarkReadResponse(BaseModel):
    updated: int


class Counters(BaseModel):
    unread_messages: int
    pending_requests: int
