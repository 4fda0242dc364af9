from app.models.base import Base
from app.models.connection import Connection, ConnectionRequest
from app.models.message import Message
from app.models.profile import Profile

__all__ = [
    "Base",
    "Profile",
    "ConnectionRequest",
    "Connection",
    "Message",
]
