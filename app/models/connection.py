from datetime import datetime
from typing import Optional, Tuple

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.core.time import utcnow
from app.models.base import Base


def canonical_pair(user_a: str, user_b: str) -> Tuple[str, str]:
    """Order an unordered pair so (a, b) and (b, a) map to the same key"""
    return (user_a, user_b) if user_a <= user_b else (user_b, user_a)


class ConnectionRequest(Base):
    __tablename__ = "connection_requests"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)

    sender_id: Mapped[str] = mapped_column(ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    receiver_id: Mapped[str] = mapped_column(ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)

    # Snapshot of the sender's username at send time
    sender_name: Mapped[str] = mapped_column(String(30), nullable=False)

    # status: 'pending' | 'accepted'  (declined requests are deleted)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending")

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=utcnow)
    responded_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=False), nullable=True)

    __table_args__ = (
        CheckConstraint("sender_id <> receiver_id", name="chk_connection_requests_not_self"),
        # One row per ordered pair; a stale accepted row is reused on re-request
        UniqueConstraint("sender_id", "receiver_id", name="uq_connection_requests_pair_direction"),
        Index("idx_connection_requests_receiver", "receiver_id", "status"),
        Index("idx_connection_requests_sender", "sender_id", "status"),
    )


class Connection(Base):
    __tablename__ = "connections"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)

    # Positional only; the relation is undirected
    user1_id: Mapped[str] = mapped_column(ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    user2_id: Mapped[str] = mapped_column(ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)

    # Canonical ordering of (user1_id, user2_id), kept for the uniqueness constraint
    user_low: Mapped[str] = mapped_column(String(64), nullable=False)
    user_high: Mapped[str] = mapped_column(String(64), nullable=False)

    request_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("connection_requests.id", ondelete="SET NULL"), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=utcnow)

    __table_args__ = (
        CheckConstraint("user1_id <> user2_id", name="chk_connections_not_self"),
        UniqueConstraint("user_low", "user_high", name="uq_connections_pair"),
        Index("idx_connections_user1", "user1_id"),
        Index("idx_connections_user2", "user2_id"),
    )

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.user_low, self.user_high = canonical_pair(self.user1_id, self.user2_id)

    def other_user_id(self, user_id: str) -> str:
        return self.user2_id if self.user1_id == user_id else self.user1_id
