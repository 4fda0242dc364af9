from typing import List

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.token import get_current_user_id
from app.infra.db import get_db
from app.schemas.profile import (
    INTEREST_OPTIONS,
    ProfileCreate,
    ProfileResponse,
    ProfileUpdate,
    UsernameAvailability,
    validate_username,
)
from app.services.profiles import ProfileService

router = APIRouter(prefix="/profiles", tags=["profiles"])


@router.post("", response_model=ProfileResponse, status_code=status.HTTP_201_CREATED)
async def create_profile(
    data: ProfileCreate,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """Complete the caller's profile"""
    return await ProfileService.create(db, user_id, data)


@router.get("", response_model=List[ProfileResponse])
async def list_profiles(
    skip: int = Query(0, ge=0, description="Number of records to skip"),
    limit: int = Query(100, ge=1, le=500, description="Maximum number of records to return"),
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """Discoverable profiles (newest first), excluding the caller"""
    return await ProfileService.get_all(db, exclude_user_id=user_id, skip=skip, limit=limit)


@router.get("/me", response_model=ProfileResponse)
async def get_my_profile(
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    return await ProfileService.get(db, user_id)


@router.patch("/me", response_model=ProfileResponse)
async def update_my_profile(
    data: ProfileUpdate,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    return await ProfileService.update(db, user_id, data)


@router.get("/username-available", response_model=UsernameAvailability)
async def check_username(
    username: str = Query(..., min_length=1),
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    try:
        validate_username(username)
    except ValueError:
        return UsernameAvailability(username=username, available=False)
    available = await ProfileService.is_username_available(db, username, exclude_user_id=user_id)
    return UsernameAvailability(username=username, available=available)


@router.get("/interests", response_model=List[str], dependencies=[Depends(get_current_user_id)])
async def list_interest_options():
    return INTEREST_OPTIONS


@router.get("/{profile_id}", response_model=ProfileResponse, dependencies=[Depends(get_current_user_id)])
async def get_profile(
    profile_id: str,
    db: AsyncSession = Depends(get_db),
):
    return await ProfileService.get(db, profile_id)
