from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.token import CurrentUserDep
from app.infra.db import get_db
from app.schemas.message import Counters
from app.services import counters

router = APIRouter(tags=["counters"])


@router.get("/counters", response_model=Counters)
async def get_counters(
    current_user: CurrentUserDep,
    session: AsyncSession = Depends(get_db),
):
    """Unread message and pending request badges, polled by clients"""
    return await counters.get_counters(session, current_user)
