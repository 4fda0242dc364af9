"""
Connection request ledger.

Directed requests between two users. A request is created pending and is
either accepted (which establishes a Connection) or declined (which deletes
it outright; no history of declines is kept).
"""

from typing import List, Optional, Set, Tuple
from uuid import uuid4

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import (
    AlreadyConnected,
    AlreadyRequested,
    NotFoundError,
    PermissionError,
    RequestNotFound,
    ValidationError,
)
from app.core.logging import get_logger
from app.core.time import utcnow
from app.infra.db import storage_guard
from app.models.connection import Connection, ConnectionRequest, canonical_pair
from app.models.profile import Profile
from app.services.registry import find_connection, pair_filter

logger = get_logger(__name__)


async def send_request(db: AsyncSession, sender_id: str, receiver_id: str) -> ConnectionRequest:
    if sender_id == receiver_id:
        raise ValidationError("You cannot send a connection request to yourself")

    async with storage_guard(db, "send_request"):
        sender = await db.get(Profile, sender_id)
        if sender is None:
            raise NotFoundError("Sender profile not found", code="PROFILE_NOT_FOUND")
        receiver = await db.get(Profile, receiver_id)
        if receiver is None:
            raise NotFoundError("Receiver profile not found", code="PROFILE_NOT_FOUND")

        stmt = select(ConnectionRequest).where(
            ConnectionRequest.sender_id == sender_id,
            ConnectionRequest.receiver_id == receiver_id,
        )
        result = await db.execute(stmt)
        existing = result.scalar_one_or_none()

        if existing is not None and existing.status == "pending":
            raise AlreadyRequested(details={"request_id": existing.id})

        connection = await find_connection(db, sender_id, receiver_id)
        if connection is None:
            # An accepted request always wins: restore its link, as
            # reconcile_accepted would, instead of starting a new request
            orphan = await _accepted_request(db, sender_id, receiver_id)
            if orphan is not None:
                connection = _restore_connection(db, orphan)
                await db.commit()
        if connection is not None:
            raise AlreadyConnected(details={"connection_id": connection.id})

        request = ConnectionRequest(
            id=str(uuid4()),
            sender_id=sender_id,
            receiver_id=receiver_id,
            sender_name=sender.username,
            status="pending",
            created_at=utcnow(),
        )
        db.add(request)

        try:
            await db.commit()
        except IntegrityError as exc:
            # Lost a race with a concurrent identical send
            await db.rollback()
            raise AlreadyRequested(details={"error": str(exc.orig)}) from exc

    logger.info(
        "ledger.request.sent",
        request_id=request.id,
        sender_id=sender_id,
        receiver_id=receiver_id,
    )
    return request


async def list_incoming(db: AsyncSession, user_id: str) -> List[ConnectionRequest]:
    """Pending requests addressed to `user_id`, newest first"""
    async with storage_guard(db, "list_incoming"):
        stmt = (
            select(ConnectionRequest)
            .where(
                ConnectionRequest.receiver_id == user_id,
                ConnectionRequest.status == "pending",
            )
            .order_by(ConnectionRequest.created_at.desc())
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())


async def list_outgoing(db: AsyncSession, user_id: str) -> List[ConnectionRequest]:
    """Pending requests sent by `user_id`, newest first"""
    async with storage_guard(db, "list_outgoing"):
        stmt = (
            select(ConnectionRequest)
            .where(
                ConnectionRequest.sender_id == user_id,
                ConnectionRequest.status == "pending",
            )
            .order_by(ConnectionRequest.created_at.desc())
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())


async def accept(db: AsyncSession, request_id: str, acting_user_id: Optional[str] = None) -> Connection:
    """
    Resolve a request and establish the connection in a single commit.

    Accepting an already-accepted request returns the pair's connection,
    creating it if it is missing, so repeated calls never duplicate it.
    """
    async with storage_guard(db, "accept_request"):
        request = await db.get(ConnectionRequest, request_id)
        if request is None:
            raise RequestNotFound(details={"request_id": request_id})
        if acting_user_id is not None and request.receiver_id != acting_user_id:
            raise PermissionError("You are not authorized to accept this request")

        sender_id, receiver_id = request.sender_id, request.receiver_id
        connection = await find_connection(db, sender_id, receiver_id)
        if request.status == "accepted" and connection is not None:
            return connection

        if request.status == "pending":
            request.status = "accepted"
            request.responded_at = utcnow()

        if connection is None:
            connection = Connection(
                id=str(uuid4()),
                user1_id=sender_id,
                user2_id=receiver_id,
                request_id=request_id,
                created_at=utcnow(),
            )
            db.add(connection)

        try:
            await db.commit()
        except IntegrityError:
            # A concurrent accept for the same pair committed first
            await db.rollback()
            connection = await find_connection(db, sender_id, receiver_id)
            if connection is None:
                raise

    logger.info(
        "ledger.request.accepted",
        request_id=request_id,
        connection_id=connection.id,
        sender_id=sender_id,
        receiver_id=receiver_id,
    )
    return connection


async def decline(db: AsyncSession, request_id: str, acting_user_id: Optional[str] = None) -> None:
    async with storage_guard(db, "decline_request"):
        request = await db.get(ConnectionRequest, request_id)
        if request is None or request.status != "pending":
            raise RequestNotFound(details={"request_id": request_id})
        if acting_user_id is not None and request.receiver_id != acting_user_id:
            raise PermissionError("You are not authorized to decline this request")

        await db.delete(request)
        await db.commit()

    logger.info("ledger.request.declined", request_id=request_id)


async def _accepted_request(db: AsyncSession, user_a: str, user_b: str) -> Optional[ConnectionRequest]:
    stmt = (
        select(ConnectionRequest)
        .where(pair_filter(ConnectionRequest.sender_id, ConnectionRequest.receiver_id, user_a, user_b))
        .where(ConnectionRequest.status == "accepted")
        .limit(1)
    )
    result = await db.execute(stmt)
    return result.scalars().first()


def _restore_connection(db: AsyncSession, request: ConnectionRequest) -> Connection:
    connection = Connection(
        id=str(uuid4()),
        user1_id=request.sender_id,
        user2_id=request.receiver_id,
        request_id=request.id,
        created_at=request.responded_at or utcnow(),
    )
    db.add(connection)
    logger.warning(
        "ledger.reconcile.repaired",
        request_id=request.id,
        sender_id=request.sender_id,
        receiver_id=request.receiver_id,
    )
    return connection


async def reconcile_accepted(db: AsyncSession) -> int:
    """
    Create the missing connection for every accepted request that has none.

    An accepted request is authoritative: send_request restores the same
    link on demand, and disconnect removes accepted rows so nothing here
    brings back a dissolved connection.
    """
    async with storage_guard(db, "reconcile_accepted"):
        result = await db.execute(
            select(ConnectionRequest).where(ConnectionRequest.status == "accepted")
        )
        seen: Set[Tuple[str, str]] = set()
        repaired = 0
        for request in result.scalars().all():
            pair = canonical_pair(request.sender_id, request.receiver_id)
            if pair in seen:
                continue
            seen.add(pair)
            if await find_connection(db, request.sender_id, request.receiver_id) is not None:
                continue
            _restore_connection(db, request)
            repaired += 1
        if repaired:
            await db.commit()

    logger.info("ledger.reconcile.done", repaired=repaired)
    return repaired
