"""
Database engine configuration and session management.

Current: SQLite (async with aiosqlite)
Future: PostgreSQL (switch to asyncpg by changing DATABASE_URL only)
"""
from collections.abc import AsyncGenerator
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool, StaticPool

from collab.core import config


def build_engine(url: str) -> AsyncEngine:
    """
    Create an async engine for the given URL.

    In-memory SQLite shares one connection (StaticPool) so every session sees
    the same database; file SQLite uses NullPool.
    """
    kwargs = {}
    if url.startswith("sqlite"):
        if ":memory:" in url or url.rstrip("/").endswith("sqlite+aiosqlite:"):
            kwargs["poolclass"] = StaticPool
            kwargs["connect_args"] = {"check_same_thread": False}
        else:
            kwargs["poolclass"] = NullPool
    return create_async_engine(url, echo=False, future=True, **kwargs)


engine = build_engine(config.SQLALCHEMY_DATABASE_URL)

# Create async session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency for getting async database sessions.
    
    Usage in FastAPI routes:
        @router.get("/items")
        async def get_items(db: AsyncSession = Depends(get_db)):
            result = await db.execute(select(Item))
            return result.scalars().all()
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def init_db(bind: AsyncEngine | None = None):
    """
    Initialize database tables.
    Call this on application startup to create all tables.
    """
    from collab.core.database.base import Base
    
    # Import all models to ensure they're registered with SQLAlchemy
    from collab.features.users.models import User  # noqa: F401
    from collab.features.access.models import (  # noqa: F401
        UserSpacePermission, PermissionAuditLog
    )
    
    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
