"""
Database engine configuration and session management.

The URL comes from DATABASE_URL. SQLite (aiosqlite) is the default;
point it at postgresql+asyncpg://... for production, no code changes needed.
"""
from collections.abc import AsyncGenerator
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool

from roleguard.core import config

engine = create_async_engine(
    config.SQLALCHEMY_DATABASE_URL,
    # aiosqlite connections are bound to the loop that opened them, so never reuse them
    poolclass=NullPool if config.SQLALCHEMY_DATABASE_URL.startswith("sqlite") else None,
    echo=False,
    future=True,
)

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

    The session commits when the request finishes; role and permission
    attach/detach calls made through the user mixin are persisted then.
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


async def init_db():
    """
    Create all tables.
    Called on application startup and by scripts/seed_roles.py.
    """
    from roleguard.core.database.base import Base

    # Import all models to ensure they're registered with SQLAlchemy
    from roleguard.features.users.models import User  # noqa: F401
    from roleguard.features.roles.models import Permission, Role  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
