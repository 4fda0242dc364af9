from datetime import datetime
from typing import Optional

from sqlalchemy import BigInteger, Boolean, CheckConstraint, DateTime, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.core.time import utcnow
from app.models.base import Base
from app.models.connection import canonical_pair

MEDIA_TYPES = ("image", "video")


def thread_key_for(user_a: str, user_b: str) -> str:
    low, high = canonical_pair(user_a, user_b)
    return f"{low}:{high}"


class Message(Base):
    __tablename__ = "messages"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)

    sender_id: Mapped[str] = mapped_column(ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    receiver_id: Mapped[str] = mapped_column(ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)

    # Both directions of a conversation share one thread key and one seq counter
    thread_key: Mapped[str] = mapped_column(String(129), nullable=False)
    seq: Mapped[int] = mapped_column(BigInteger, nullable=False)

    content: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # media_type: image | video  (set iff media_url is set)
    media_url: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    media_type: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)

    read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=utcnow)

    __table_args__ = (
        CheckConstraint("sender_id <> receiver_id", name="chk_messages_not_self"),
        UniqueConstraint("thread_key", "seq", name="uq_messages_thread_seq"),
        Index("idx_messages_thread_created", "thread_key", "created_at"),
        Index("idx_messages_receiver_read", "receiver_id", "read"),
    )

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.thread_key = thread_key_for(self.sender_id, self.receiver_id)
