"""
Profile service layer: profile completion, discovery and updates.
"""

from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ConflictError, NotFoundError, ValidationError
from app.core.logging import get_logger
from app.infra.db import storage_guard
from app.models.profile import Profile
from app.schemas.profile import ProfileCreate, ProfileUpdate

logger = get_logger(__name__)

# Columns that may not be cleared once set
_REQUIRED_FIELDS = {"username", "city", "bio", "interests"}


class ProfileService:
    """Profile operations. Only the owning user mutates a profile."""

    @staticmethod
    async def is_username_available(
        db: AsyncSession, username: str, exclude_user_id: Optional[str] = None
    ) -> bool:
        """Case-insensitive uniqueness check"""
        stmt = select(Profile.id).where(func.lower(Profile.username) == username.lower())
        if exclude_user_id:
            stmt = stmt.where(Profile.id != exclude_user_id)
        async with storage_guard(db, "is_username_available"):
            result = await db.execute(stmt.limit(1))
            return result.scalar_one_or_none() is None

    @staticmethod
    async def create(db: AsyncSession, user_id: str, data: ProfileCreate) -> Profile:
        async with storage_guard(db, "create_profile"):
            if await db.get(Profile, user_id) is not None:
                raise ConflictError("Profile already exists", code="PROFILE_EXISTS")
            if not await ProfileService.is_username_available(db, data.username):
                raise ConflictError("Username is already taken", code="USERNAME_TAKEN")

            profile = Profile(
                id=user_id,
                username=data.username,
                city=data.city,
                bio=data.bio,
                interests=data.interests,
                instagram_url=data.instagram_url,
                photo_url=data.photo_url,
            )
            db.add(profile)
            try:
                await db.commit()
            except IntegrityError as exc:
                await db.rollback()
                raise ConflictError("Username is already taken", code="USERNAME_TAKEN") from exc
            await db.refresh(profile)

        logger.info("profile.created", user_id=user_id, username=profile.username)
        return profile

    @staticmethod
    async def get(db: AsyncSession, user_id: str) -> Profile:
        async with storage_guard(db, "get_profile"):
            profile = await db.get(Profile, user_id)
        if profile is None:
            raise NotFoundError("Profile not found", details={"user_id": user_id}, code="PROFILE_NOT_FOUND")
        return profile

    @staticmethod
    async def get_all(
        db: AsyncSession,
        exclude_user_id: Optional[str] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Profile]:
        """Discoverable profiles, newest first"""
        stmt = select(Profile).order_by(Profile.created_at.desc())
        if exclude_user_id:
            stmt = stmt.where(Profile.id != exclude_user_id)
        async with storage_guard(db, "list_profiles"):
            result = await db.execute(stmt.offset(skip).limit(limit))
            return list(result.scalars().all())

    @staticmethod
    async def update(db: AsyncSession, user_id: str, data: ProfileUpdate) -> Profile:
        """Update only the provided fields"""
        update_data = {
            field: value
            for field, value in data.model_dump(exclude_unset=True).items()
            if value is not None or field not in _REQUIRED_FIELDS
        }
        if not update_data:
            raise ValidationError("No update fields provided")

        profile = await ProfileService.get(db, user_id)

        async with storage_guard(db, "update_profile"):
            new_username = update_data.get("username")
            if new_username and new_username != profile.username:
                if not await ProfileService.is_username_available(db, new_username, exclude_user_id=user_id):
                    raise ConflictError("Username is already taken", code="USERNAME_TAKEN")

            for field, value in update_data.items():
                setattr(profile, field, value)

            try:
                await db.commit()
            except IntegrityError as exc:
                await db.rollback()
                raise ConflictError("Username is already taken", code="USERNAME_TAKEN") from exc
            await db.refresh(profile)

        logger.info("profile.updated", user_id=user_id, fields=sorted(update_data))
        return profile
