from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker

from .settings import get_settings


def async_url(url: str) -> str:
    """``sqlite:///`` URLs run through aiosqlite; other URLs pass unchanged."""
    if url.startswith("sqlite:///"):
        return url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
    return url


engine = create_async_engine(async_url(get_settings().database_url), echo=False, future=True)

AsyncSessionLocal = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@asynccontextmanager
async def get_session() -> AsyncIterator[AsyncSession]:
    """Session for one key-value read or write; callers commit themselves."""
    async with AsyncSessionLocal() as session:
        yield session


async def init_db() -> None:
    """Create the ``keyvalue`` table if it does not exist yet."""
    from . import models  # noqa: F401  (registers KeyValue on the metadata)

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
