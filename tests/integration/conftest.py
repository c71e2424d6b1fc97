"""Fixtures for database and HTTP tests on in-memory SQLite."""

import itertools
from datetime import datetime, timedelta, timezone

import httpx
import jwt
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from collab.core import config
from collab.core.database.engine import build_engine, get_db, init_db
from collab.features.users.models import User
from collab.main import app


_emails = itertools.count()


@pytest_asyncio.fixture
async def engine():
    """Per-test engine on a fresh in-memory database."""
    engine = build_engine("sqlite+aiosqlite://")
    await init_db(bind=engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def make_user(session_factory):
    """Insert a user in its own session and return it detached."""
    async def _make_user(role: str | None, name: str = "Test User", **kwargs) -> User:
        slug = f"{name.lower().replace(' ', '.')}.{next(_emails)}"
        user = User(email=f"{slug}@example.org", name=name, role=role, **kwargs)
        async with session_factory() as session:
            session.add(user)
            await session.commit()
            await session.refresh(user)
        return user
    return _make_user


def token_for(user: User, expires_in: int = 3600) -> str:
    payload = {"sub": user.id, "exp": datetime.now(timezone.utc) + timedelta(seconds=expires_in)}
    return jwt.encode(payload, config.JWT_SECRET, algorithm=config.JWT_ALGORITHM)


@pytest.fixture
def auth_headers():
    def _auth_headers(user: User, expires_in: int = 3600) -> dict[str, str]:
        return {"Authorization": f"Bearer {token_for(user, expires_in)}"}
    return _auth_headers


@pytest_asyncio.fixture
async def client(session_factory):
    """HTTP client whose requests share the test database."""
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
