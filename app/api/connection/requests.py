from typing import List

from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.token import get_current_user_id
from app.infra.db import get_db
from app.schemas.connection import (
    ConnectionRequestResponse,
    ConnectionResponse,
    MessageResponse,
    SendConnectionRequestPayload,
)
from app.services import ledger

router = APIRouter(prefix="/connections/requests", tags=["connections"])


@router.post("", response_model=ConnectionRequestResponse, status_code=status.HTTP_201_CREATED)
async def send_connection_request(
    payload: SendConnectionRequestPayload,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    return await ledger.send_request(db, user_id, payload.receiver_id)


@router.get("/incoming", response_model=List[ConnectionRequestResponse])
async def get_incoming_requests(
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    return await ledger.list_incoming(db, user_id)


@router.get("/outgoing", response_model=List[ConnectionRequestResponse])
async def get_outgoing_requests(
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    return await ledger.list_outgoing(db, user_id)


@router.post("/{request_id}/accept", response_model=ConnectionResponse)
async def accept_connection_request(
    request_id: str = Path(..., description="The ID of the connection request"),
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    return await ledger.accept(db, request_id, acting_user_id=user_id)


@router.post("/{request_id}/decline", response_model=MessageResponse)
async def decline_connection_request(
    request_id: str = Path(..., description="The ID of the connection request"),
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    await ledger.decline(db, request_id, acting_user_id=user_id)
    return MessageResponse(message="Connection request declined.")
