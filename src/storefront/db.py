"""
Async SQLAlchemy plumbing for the users and products tables.

``create_app`` builds one ``Database`` from settings and stores it on
``app.state``; request handlers reach it through ``get_session``.
"""

from collections.abc import AsyncIterator
from datetime import UTC, datetime
from typing import Any

from fastapi import Request
from sqlalchemy import DateTime, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.pool import StaticPool

from storefront.logging import get_logger
from storefront.settings import Settings

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Declarative base shared by every storefront table."""


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False
    )


# ------------------------------------------
# Engine and sessions
# ------------------------------------------


def build_engine(url: str, settings: Settings | None = None) -> AsyncEngine:
    """Create an async engine; pool sizing only applies to server databases."""
    if url.startswith("sqlite"):
        kwargs: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in url or url.rstrip("/").endswith("sqlite+aiosqlite:"):
            # in-memory databases live only as long as their one connection
            kwargs["poolclass"] = StaticPool
        return create_async_engine(url, echo=bool(settings and settings.database.echo), **kwargs)

    if settings is None:
        return create_async_engine(url)

    db = settings.database
    return create_async_engine(
        url,
        echo=db.echo,
        pool_size=db.pool_size,
        max_overflow=db.max_overflow,
        pool_timeout=db.pool_timeout,
        pool_recycle=db.pool_recycle,
        pool_pre_ping=db.pool_pre_ping,
    )


class Database:
    """Engine plus session factory for one application instance."""

    def __init__(self, url: str, settings: Settings | None = None) -> None:
        self.url = url
        self.engine = build_engine(url, settings)
        self.session_factory = async_sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            autoflush=False,
            expire_on_commit=False,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        return cls(settings.database.sqlalchemy_url, settings)

    async def ping(self) -> None:
        """Execute ``SELECT 1``; driver errors propagate to the caller."""
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    async def create_all(self) -> None:
        """Create any missing tables registered on ``Base.metadata``."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("database.tables_ready", tables=sorted(Base.metadata.tables))

    async def dispose(self) -> None:
        await self.engine.dispose()


async def get_session(request: Request) -> AsyncIterator[AsyncSession]:
    """FastAPI dependency yielding a session on the application's database.

    Services commit their own writes; anything left pending is rolled back.
    """
    database: Database = request.app.state.database
    async with database.session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


__all__ = [
    "Base",
    "Database",
    "TimestampMixin",
    "build_engine",
    "get_session",
]
