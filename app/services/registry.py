"""
Connection registry: established, undirected links between two users.
"""

from typing import List, Optional

from sqlalchemy import and_, delete, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import NotFoundError, PermissionError
from app.core.logging import LatencyLogger, get_logger
from app.infra.db import storage_guard
from app.models.connection import Connection, ConnectionRequest
from app.models.profile import Profile
from app.schemas.connection import ConnectionSummary

logger = get_logger(__name__)


def pair_filter(col_a, col_b, user_a: str, user_b: str):
    """OR of both column orderings, so (a, b) matches either way round"""
    return or_(
        and_(col_a == user_a, col_b == user_b),
        and_(col_a == user_b, col_b == user_a),
    )


async def find_connection(db: AsyncSession, user_a: str, user_b: str) -> Optional[Connection]:
    stmt = (
        select(Connection)
        .where(pair_filter(Connection.user1_id, Connection.user2_id, user_a, user_b))
        .limit(1)
    )
    result = await db.execute(stmt)
    return result.scalars().first()


async def _resolve_profile(db: AsyncSession, user_id: str, connection_id: str) -> Optional[Profile]:
    """Look up one counterpart. Failures are logged and reported as None."""
    try:
        profile = await db.get(Profile, user_id)
    except SQLAlchemyError as exc:
        logger.warning(
            "registry.profile_lookup_failed",
            user_id=user_id,
            connection_id=connection_id,
            error=str(exc),
        )
        return None
    if profile is None:
        logger.warning(
            "registry.profile_lookup_failed",
            user_id=user_id,
            connection_id=connection_id,
            error="profile not found",
        )
    return profile


async def list_connections(db: AsyncSession, user_id: str) -> List[ConnectionSummary]:
    """
    Every connection touching `user_id`, newest first, with the other
    member's profile resolved.

    Enumeration is best-effort: a connection whose counterpart profile
    cannot be resolved is skipped instead of failing the whole listing.
    """
    async with storage_guard(db, "list_connections"):
        stmt = (
            select(Connection)
            .where(or_(Connection.user1_id == user_id, Connection.user2_id == user_id))
            .order_by(Connection.created_at.desc())
        )
        result = await db.execute(stmt)
        rows = list(result.scalars().all())

    summaries: List[ConnectionSummary] = []
    with LatencyLogger("registry.list_connections", logger, user_id=user_id, rows=len(rows)):
        for connection in rows:
            other_id = connection.other_user_id(user_id)
            profile = await _resolve_profile(db, other_id, connection.id)
            if profile is None:
                continue
            summaries.append(
                ConnectionSummary(
                    connection_id=connection.id,
                    user_id=profile.id,
                    username=profile.username,
                    photo_url=profile.photo_url,
                    city=profile.city,
                    interests=profile.interests or [],
                    created_at=connection.created_at,
                )
            )
    return summaries


async def disconnect(db: AsyncSession, connection_id: str, acting_user_id: Optional[str] = None) -> None:
    """
    Delete a connection. Messages between the pair are left in place; the
    gate rejects further messaging from the next call on.

    Accepted requests for the pair are removed in the same commit so the
    users can request each other again and reconciliation does not bring
    the link back.
    """
    async with storage_guard(db, "disconnect"):
        connection = await db.get(Connection, connection_id)
        if connection is None:
            raise NotFoundError(
                "Connection not found",
                details={"connection_id": connection_id},
                code="CONNECTION_NOT_FOUND",
            )
        if acting_user_id is not None and acting_user_id not in (connection.user1_id, connection.user2_id):
            raise PermissionError("You are not a member of this connection")

        user1_id, user2_id = connection.user1_id, connection.user2_id
        await db.delete(connection)
        await db.flush()
        await db.execute(
            delete(ConnectionRequest)
            .where(pair_filter(ConnectionRequest.sender_id, ConnectionRequest.receiver_id, user1_id, user2_id))
            .where(ConnectionRequest.status == "accepted")
            .execution_options(synchronize_session=False)
        )
        await db.commit()

    logger.info(
        "registry.disconnected",
        connection_id=connection_id,
        user1_id=user1_id,
        user2_id=user2_id,
        acting_user_id=acting_user_id,
    )
