import os

# Settings are read at import time
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-linkup-0123456789abcdef")
os.environ.setdefault("ENV", "test")
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"

from typing import Dict, List, Optional

import httpx
import pytest
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.core.token import create_access_token
from app.infra.db import get_db
from app.main import create_app
from app.models import Base, Profile


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'linkup.db'}")

    @event.listens_for(engine.sync_engine, "connect")
    def _sqlite_pragmas(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_profile(db):
    async def _make_profile(
        user_id: str,
        username: Optional[str] = None,
        city: str = "Lisbon",
        interests: Optional[List[str]] = None,
    ) -> Profile:
        profile = Profile(
            id=user_id,
            username=username or f"user_{user_id}",
            city=city,
            bio=f"Hi, I am {user_id}",
            interests=interests or ["Music"],
        )
        db.add(profile)
        await db.commit()
        return profile

    return _make_profile


@pytest.fixture
def app(session_factory):
    application = create_app()

    async def _get_test_db():
        async with session_factory() as session:
            yield session

    application.dependency_overrides[get_db] = _get_test_db
    return application


@pytest.fixture
def transport(app):
    return httpx.ASGITransport(app=app)


@pytest.fixture
async def client(transport):
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
        yield http


def auth_headers(user_id: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token({'sub': user_id})}"}


@pytest.fixture
def headers():
    return auth_headers


@pytest.fixture
def connect(db):
    """Establish a connection between two existing profiles through the ledger"""
    from app.services import ledger

    async def _connect(sender_id: str, receiver_id: str):
        request = await ledger.send_request(db, sender_id, receiver_id)
        return await ledger.accept(db, request.id)

    return _connect
