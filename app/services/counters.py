"""
Unread / pending counters. Recomputed from scratch on every call; clients
poll them on a fixed interval.
"""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.infra.db import storage_guard
from app.models.connection import ConnectionRequest
from app.models.message import Message
from app.schemas.message import Counters


async def unread_count(db: AsyncSession, user_id: str) -> int:
    async with storage_guard(db, "unread_count"):
        stmt = (
            select(func.count())
            .select_from(Message)
            .where(Message.receiver_id == user_id, Message.read.is_(False))
        )
        return (await db.execute(stmt)).scalar_one()


async def pending_request_count(db: AsyncSession, user_id: str) -> int:
    async with storage_guard(db, "pending_request_count"):
        stmt = (
            select(func.count())
            .select_from(ConnectionRequest)
            .where(
                ConnectionRequest.receiver_id == user_id,
                ConnectionRequest.status == "pending",
            )
        )
        return (await db.execute(stmt)).scalar_one()


async def get_counters(db: AsyncSession, user_id: str) -> Counters:
    return Counters(
        unread_messages=await unread_count(db, user_id),
        pending_requests=await pending_request_count(db, user_id),
    )
