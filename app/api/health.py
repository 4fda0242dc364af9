"""
Health check endpoints
"""

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.infra.db import get_db

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(db: AsyncSession = Depends(get_db)):
    """
    Check health of the API and its database
    """
    status = {
        "api": "ok",
        "db": "unknown",
        "poll_interval_seconds": settings.poll_interval_seconds,
    }

    try:
        await db.execute(text("SELECT 1"))
        status["db"] = "ok"
    except SQLAlchemyError as e:
        status["db"] = f"error: {str(e)}"

    return status
