"""Async engine and session factory. Every invocation gets its own session."""

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from quorum_escrow.core.config import settings


def build_engine(url: str | None = None) -> AsyncEngine:
    url = url or settings.database_url
    options: dict = {"echo": settings.debug}
    if not url.startswith("sqlite"):
        options["pool_pre_ping"] = True
    return create_async_engine(url, **options)


engine = build_engine()

async_session_factory = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)
