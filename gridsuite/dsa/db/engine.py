from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import NullPool


def build_async_engine(url: str, *, pool_size: int = 10, max_overflow: int = 20) -> AsyncEngine:
    # Expect an async SQLAlchemy URL, e.g. postgresql+asyncpg://...
    if url.startswith("sqlite"):
        # aiosqlite connections are bound to the loop that opened them
        return create_async_engine(url, poolclass=NullPool, echo=False)
    return create_async_engine(
        url,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_pre_ping=True,
        echo=False,
    )
