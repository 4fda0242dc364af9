from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.token import CurrentUserDep
from app.infra.db import get_db
from app.schemas.message import (
    ConversationResponse,
    ConversationSummary,
    DirectMessageResponse,
    MarkReadResponse,
    SendMessagePayload,
)
from app.services import gate

router = APIRouter(prefix="/messages", tags=["messages"])


@router.get("/conversations", response_model=List[ConversationSummary])
async def get_conversations(
    current_user: CurrentUserDep,
    session: AsyncSession = Depends(get_db),
):
    return await gate.list_conversations(session, current_user)


@router.get("/{other_user_id}", response_model=ConversationResponse)
async def get_conversation(
    other_user_id: str,
    current_user: CurrentUserDep,
    session: AsyncSession = Depends(get_db),
):
    """Full conversation, oldest first. Marks the caller's unread messages read."""
    messages = await gate.get_conversation(session, current_user, other_user_id)
    return {"messages": messages}


@router.post("/{other_user_id}", response_model=DirectMessageResponse, status_code=status.HTTP_201_CREATED)
async def send_message(
    other_user_id: str,
    payload: SendMessagePayload,
    current_user: CurrentUserDep,
    session: AsyncSession = Depends(get_db),
):
    return await gate.send_message(
        session,
        current_user,
        other_user_id,
        payload.content,
        media_url=payload.media_url,
        media_type=payload.media_type,
    )


@router.post("/{other_user_id}/read", response_model=MarkReadResponse)
async def mark_read(
    other_user_id: str,
    current_user: CurrentUserDep,
    session: AsyncSession = Depends(get_db),
):
    updated = await gate.mark_read(session, current_user, other_user_id)
    return MarkReadResponse(updated=updated)
