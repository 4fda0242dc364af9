from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.token import get_current_user_id
from app.infra.db import get_db
from app.schemas.connection import ConnectionSummary, MessageResponse
from app.services import registry

router = APIRouter(prefix="/connections", tags=["connections"])


@router.get("", response_model=List[ConnectionSummary])
async def get_connections(
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    return await registry.list_connections(db, user_id)


@router.delete("/{connection_id}", response_model=MessageResponse)
async def disconnect(
    connection_id: str,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    await registry.disconnect(db, connection_id, acting_user_id=user_id)
    return MessageResponse(message="Disconnected.", detail=f"Connection '{connection_id}' removed")
