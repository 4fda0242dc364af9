"""
Message authorization gate and conversation store.

Every send and conversation read re-checks the registry; nothing is cached,
so a disconnect takes effect on the very next call.
"""

from typing import Dict, List, Optional
from uuid import uuid4

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.errors import NotConnected, ValidationError
from app.core.logging import LatencyLogger, get_logger
from app.core.time import utcnow
from app.infra.db import storage_guard
from app.models.message import MEDIA_TYPES, Message, thread_key_for
from app.models.profile import Profile
from app.schemas.message import ConversationSummary
from app.services.registry import find_connection

logger = get_logger(__name__)

# Inserts tried per send when concurrent senders collide on the next seq
SEND_SEQ_ATTEMPTS = 3


async def authorize(db: AsyncSession, user_a: str, user_b: str) -> bool:
    if user_a == user_b:
        return False
    async with storage_guard(db, "authorize"):
        allowed = await find_connection(db, user_a, user_b) is not None
    if not allowed:
        logger.info("gate.denied", user_a=user_a, user_b=user_b)
    return allowed


async def get_next_seq(db: AsyncSession, thread_key: str) -> int:
    stmt = select(func.max(Message.seq)).where(Message.thread_key == thread_key)
    result = await db.execute(stmt)
    max_seq = result.scalar()
    return (max_seq or 0) + 1


async def send_message(
    db: AsyncSession,
    sender_id: str,
    receiver_id: str,
    content: Optional[str],
    media_url: Optional[str] = None,
    media_type: Optional[str] = None,
) -> Message:
    if not await authorize(db, sender_id, receiver_id):
        raise NotConnected(details={"sender_id": sender_id, "receiver_id": receiver_id})

    content = (content or "").strip()
    media_url = (media_url or "").strip() or None
    if not content and media_url is None:
        raise ValidationError("Message must have content or media")
    if media_url is not None and media_type not in MEDIA_TYPES:
        raise ValidationError(
            "media_type must be one of: " + ", ".join(MEDIA_TYPES),
            details={"media_type": media_type},
        )
    if media_url is None:
        media_type = None

    thread_key = thread_key_for(sender_id, receiver_id)
    async with storage_guard(db, "send_message"):
        for attempt in range(1, SEND_SEQ_ATTEMPTS + 1):
            message = Message(
                id=f"msg_{uuid4().hex[:16]}",
                sender_id=sender_id,
                receiver_id=receiver_id,
                seq=await get_next_seq(db, thread_key),
                content=content,
                media_url=media_url,
                media_type=media_type,
                read=False,
                created_at=utcnow(),
            )
            db.add(message)
            try:
                await db.commit()
                break
            except IntegrityError:
                # The other side of the conversation took this seq first
                await db.rollback()
                if attempt == SEND_SEQ_ATTEMPTS:
                    raise
                logger.info("gate.message.seq_conflict", thread_key=thread_key, seq=message.seq, attempt=attempt)

    logger.info(
        "gate.message.sent",
        message_id=message.id,
        sender_id=sender_id,
        receiver_id=receiver_id,
        seq=message.seq,
        has_media=media_url is not None,
    )
    return message


async def get_conversation(db: AsyncSession, user_id: str, other_user_id: str) -> List[Message]:
    """
    Full history between the pair, oldest first.

    Reading is not pure: unread messages from `other_user_id` to `user_id`
    are marked read as part of the call.
    """
    if not await authorize(db, user_id, other_user_id):
        raise NotConnected(details={"user_id": user_id, "other_user_id": other_user_id})

    with LatencyLogger("gate.get_conversation", logger, user_id=user_id, other_user_id=other_user_id):
        async with storage_guard(db, "get_conversation"):
            stmt = select(Message).where(Message.thread_key == thread_key_for(user_id, other_user_id))
            limit = settings.conversation_max_messages
            if limit > 0:
                stmt = stmt.order_by(Message.seq.desc()).limit(limit)
            else:
                stmt = stmt.order_by(Message.seq.asc())
            result = await db.execute(stmt)
            messages = sorted(result.scalars().all(), key=lambda m: m.seq)

            await _mark_read(db, user_id, other_user_id)
            await db.commit()

    for message in messages:
        if message.sender_id == other_user_id:
            message.read = True
    return messages


async def _mark_read(db: AsyncSession, user_id: str, sender_id: str) -> int:
    stmt = (
        update(Message)
        .where(
            Message.sender_id == sender_id,
            Message.receiver_id == user_id,
            Message.read.is_(False),
        )
        .values(read=True)
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(stmt)
    return result.rowcount or 0


async def mark_read(db: AsyncSession, user_id: str, sender_id: str) -> int:
    """Mark everything `sender_id` sent to `user_id` as read"""
    async with storage_guard(db, "mark_read"):
        updated = await _mark_read(db, user_id, sender_id)
        await db.commit()
    logger.info("gate.messages.read", user_id=user_id, sender_id=sender_id, updated=updated)
    return updated


def _preview(message: Message) -> str:
    if message.content:
        return message.content
    return f"[{message.media_type}]" if message.media_type else ""


async def list_conversations(db: AsyncSession, user_id: str) -> List[ConversationSummary]:
    """One summary per counterpart, most recent conversation first"""
    async with storage_guard(db, "list_conversations"):
        stmt = (
            select(Message)
            .where(or_(Message.sender_id == user_id, Message.receiver_id == user_id))
            .order_by(Message.created_at.desc(), Message.seq.desc())
        )
        result = await db.execute(stmt)

        latest: Dict[str, Message] = {}
        for message in result.scalars().all():
            other_id = message.receiver_id if message.sender_id == user_id else message.sender_id
            latest.setdefault(other_id, message)

        if not latest:
            return []

        unread_stmt = (
            select(Message.sender_id, func.count(Message.id))
            .where(Message.receiver_id == user_id, Message.read.is_(False))
            .group_by(Message.sender_id)
        )
        unread = {sender_id: count for sender_id, count in (await db.execute(unread_stmt)).all()}

        profiles_result = await db.execute(select(Profile).where(Profile.id.in_(list(latest))))
        profiles = {p.id: p for p in profiles_result.scalars().all()}

    summaries = []
    for other_id, message in latest.items():
        profile = profiles.get(other_id)
        if profile is None:
            logger.warning("gate.conversations.profile_missing", user_id=user_id, other_user_id=other_id)
            continue
        summaries.append(
            ConversationSummary(
                user_id=other_id,
                username=profile.username,
                photo_url=profile.photo_url,
                last_message=_preview(message),
                last_message_time=message.created_at,
                unread_count=unread.get(other_id, 0),
            )
        )
    return summaries
