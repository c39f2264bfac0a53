"""
Database engine configuration for Football Highlights API

Async SQLAlchemy 2.0 setup with connection pooling.

The engine and session factory live on a Database handle created at process
start (FastAPI lifespan) and disposed at shutdown. Request handlers receive an
AsyncSession through the get_session dependency.
"""

from typing import Any, AsyncGenerator

from fastapi import Request
from loguru import logger
from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    create_async_engine,
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
)

from config.config import (
    DATABASE_URL,
    DB_POOL_SIZE,
    DB_MAX_OVERFLOW,
    DB_POOL_TIMEOUT,
    ENVIRONMENT,
)
from src.database.models import Base


class Database:
    """
    Connection pool handle with explicit lifecycle

    Usage:
        >>> db = Database.from_config()
        >>> async with db.session() as session:
        ...     ...
        >>> await db.dispose()
    """

    def __init__(self, url: str, **engine_kwargs: Any):
        self.url = url
        self.engine: AsyncEngine = create_async_engine(url, **engine_kwargs)
        self.session_maker: async_sessionmaker[AsyncSession] = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,  # Important for async!
            autoflush=False,
        )

    @classmethod
    def from_config(cls, url: str = DATABASE_URL) -> "Database":
        """
        Build the pooled engine from configuration

        SQLite URLs skip the pool sizing options, which its pool classes reject.
        """
        engine_kwargs: dict[str, Any] = {
            "pool_pre_ping": True,  # Verify connections before using
            "echo": False,
        }

        if make_url(url).get_backend_name() != "sqlite":
            engine_kwargs.update(
                pool_size=DB_POOL_SIZE,
                max_overflow=DB_MAX_OVERFLOW,
                pool_timeout=DB_POOL_TIMEOUT,
                pool_recycle=3600,  # Recycle connections every hour
            )

        db = cls(url, **engine_kwargs)
        logger.info(
            f"Database engine created - Environment: {ENVIRONMENT}, "
            f"Backend: {db.engine.dialect.name}, Pool size: {DB_POOL_SIZE}"
        )
        return db

    def session(self) -> AsyncSession:
        return self.session_maker()

    async def create_all(self) -> None:
        """
        Create all tables

        For development and tests only; production schema is managed outside the app.
        """
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created successfully")

    async def drop_all(self) -> None:
        if ENVIRONMENT == "production":
            raise RuntimeError("Cannot drop database in production environment!")

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        logger.warning("Database tables dropped")

    async def check_connection(self) -> bool:
        """
        Check database connection

        Returns:
            True if connection successful, False otherwise
        """
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.error(f"Database connection check failed: {e}")
            return False

    async def dispose(self) -> None:
        """
        Drain the pool and close all connections

        Call this on application shutdown
        """
        await self.engine.dispose()
        logger.info("Database engine disposed")


async def get_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency for getting database session

    Usage in handlers:
        async def handler(session: AsyncSession = Depends(get_session)):
            ...

    Yields:
        AsyncSession bound to the application's Database
    """
    db: Database = request.app.state.db
    async with db.session() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
