import hmac
from collections.abc import AsyncGenerator

from fastapi import Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from quorum_escrow.core.config import settings
from quorum_escrow.db.session import async_session_factory


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency that yields an async database session.

    The session is automatically closed when the request finishes.
    """
    async with async_session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


async def require_host(x_host_key: str | None = Header(default=None)) -> None:
    """Guard for host-only entry points.

    Open when no ``APP_HOST_API_KEY`` is configured (local development).
    """
    if not settings.host_api_key:
        return
    if not x_host_key or not hmac.compare_digest(x_host_key, settings.host_api_key):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing host key",
        )
