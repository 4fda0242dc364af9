"""
FastAPI Application Entry Point
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException

from app.api.router import api_router
from app.core.config import settings
from app.core.errors import (
    AppError,
    app_exception_handler,
    general_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)
from app.core.logging import RequestIDMiddleware, RequestLoggingMiddleware, get_logger, setup_logging
from app.infra.db import AsyncSessionLocal, close_db_connection, init_db
from app.services.ledger import reconcile_accepted

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    setup_logging()
    if settings.db_create_all:
        await init_db()

    # Repair accepted requests left without a connection
    async with AsyncSessionLocal() as session:
        try:
            await reconcile_accepted(session)
        except AppError as e:
            # Don't fail startup if the database is unavailable, but log it
            logger.warning("app.startup.reconcile_failed", error=e.message)

    logger.info("app.startup", env=settings.env)
    yield

    # Shutdown
    await close_db_connection()
    logger.info("app.shutdown")


tags_metadata = [
    {
        "name": "profiles",
        "description": "Profile completion, discovery and updates.",
    },
    {
        "name": "connections",
        "description": "Connection requests and established connections.",
    },
    {
        "name": "messages",
        "description": "Direct messages between connected users.",
    },
    {
        "name": "counters",
        "description": "Unread and pending badges for polling clients.",
    },
    {
        "name": "health",
        "description": "System health check.",
    },
]


def create_app() -> FastAPI:
    app = FastAPI(
        title="LinkUp Backend",
        description="""
LinkUp API backs a social app for meeting people nearby.

## Features
* **Profiles**: Complete, browse and update user profiles.
* **Connections**: Send, accept and decline connection requests.
* **Messages**: Direct messages, gated on an established connection.
* **Counters**: Unread and pending badges for polling clients.
""",
        version="0.1.0",
        openapi_tags=tags_metadata,
        openapi_url=f"{settings.api_prefix}/openapi.json",
        docs_url="/docs",
        redoc_url="/redoc",
        swagger_ui_parameters={
            "persistAuthorization": True,
            "displayRequestDuration": True
        },
        lifespan=lifespan,
    )

    # Middleware
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # CORS Configuration
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_credentials,
        allow_methods=settings.cors_methods,
        allow_headers=settings.cors_headers,
    )

    @app.get("/", tags=["health"], include_in_schema=False)
    async def root():
        return {
            "message": "Welcome to LinkUp Backend API",
            "docs": "/docs",
            "status": "operational"
        }

    # Routes
    app.include_router(api_router, prefix=settings.api_prefix)

    # Exception Handlers
    app.add_exception_handler(AppError, app_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    return app


app = create_app()
