from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from draft_api.config import settings

_ASYNCPG_SSL_MODES = {"disable", "allow", "prefer", "require", "verify-ca", "verify-full"}


def _translate_sslmode(url: str) -> str:
    # asyncpg.connect() rejects sslmode=..., which most hosted Postgres URLs carry.
    parts = urlsplit(url)
    params = dict(parse_qsl(parts.query, keep_blank_values=True))
    sslmode = params.pop("sslmode", None)
    if sslmode and sslmode.lower() in _ASYNCPG_SSL_MODES:
        params.setdefault("ssl", sslmode.lower())
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(params, doseq=True), parts.fragment))


def normalize_async_database_url(url: str) -> str:
    """
    Hosted Postgres usually hands out postgres://... or postgresql://...; the async runtime
    needs postgresql+asyncpg://. Anything that isn't Postgres (sqlite+aiosqlite in tests)
    is returned untouched.
    """
    u = (url or "").strip()
    if not u.startswith("postgres"):
        return u

    if u.startswith("postgres://"):
        u = "postgresql+asyncpg://" + u[len("postgres://") :]
    elif u.startswith("postgresql://"):
        u = "postgresql+asyncpg://" + u[len("postgresql://") :]

    try:
        return _translate_sslmode(u)
    except ValueError:
        return u


def _engine_kwargs(url: str) -> dict[str, Any]:
    if url.startswith("sqlite"):
        # Audit writes run in their own session right after a request; wait on the file lock.
        return {"connect_args": {"timeout": 30}}
    return {
        "pool_pre_ping": True,
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
    }


def create_engine() -> AsyncEngine:
    url = normalize_async_database_url(settings.database_url)
    return create_async_engine(url, echo=settings.db_echo, **_engine_kwargs(url))


engine = create_engine()
SessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with SessionLocal() as session:
        yield session
