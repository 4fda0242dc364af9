"""
API Router
"""

from fastapi import APIRouter

from app.api.health import router as health_router
from app.api.user.profile import router as profile_router
from app.api.user.counters import router as counters_router
from app.api.connection.requests import router as connection_requests_router
from app.api.connection.connections import router as connections_router
from app.api.dm.messages import router as messages_router

api_router = APIRouter()

# 1. Routes that DON'T need authentication
api_router.include_router(health_router)

# 2. Routes that DO need authentication (each endpoint depends on get_current_user_id)
api_router.include_router(profile_router)
api_router.include_router(connection_requests_router)
api_router.include_router(connections_router)
api_router.include_router(messages_router)
api_router.include_router(counters_router)
