"""
Pydantic schemas for connection requests and connections.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class SendConnectionRequestPayload(BaseModel):
    receiver_id: str = Field(..., min_length=1, max_length=64)


class ConnectionRequestResponse(BaseModel):
    id: str
    sender_id: str
    receiver_id: str
    sender_name: str
    status: str
    created_at: datetime
    responded_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ConnectionResponse(BaseModel):
    id: str
    user1_id: str
    user2_id: str
    request_id: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ConnectionSummary(BaseModel):
    """A connection as seen by one of its members"""
    connection_id: str
    user_id: str
    username: str
    photo_url: Optional[str] = None
    city: str
    interests: List[str] = []
    created_at: datetime


class MessageResponse(BaseModel):
    """Generic message response"""
    message: str
    detail: Optional[str] = None
