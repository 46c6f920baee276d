import ssl
from typing import Any
from urllib.parse import parse_qs, urlencode, urlparse, urlunparse

from sqlalchemy import StaticPool, text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from guardit.config import Settings

LOCAL_HOSTS = ("localhost", "127.0.0.1", "db", "postgres")


def _engine_options(url: str) -> tuple[str, dict[str, Any]]:
    """
    Normalize a database URL and pick engine options for its backend.

    - SQLite (tests, local runs): in-memory databases share one connection
    - PostgreSQL via asyncpg: strip libpq-only params (sslmode,
      channel_binding) and enable SSL for non-local hosts
    """
    if url.startswith("sqlite"):
        if ":memory:" in url or url.endswith("sqlite+aiosqlite://"):
            return url, {"poolclass": StaticPool, "connect_args": {"check_same_thread": False}}
        return url, {}

    parsed = urlparse(url)
    params = parse_qs(parsed.query)

    # Remove unsupported asyncpg params
    for param in ["sslmode", "channel_binding", "options"]:
        params.pop(param, None)

    new_query = urlencode(params, doseq=True)
    clean_url = urlunparse(parsed._replace(query=new_query))

    hostname = parsed.hostname or ""
    options: dict[str, Any] = {
        "pool_pre_ping": True,
        "pool_size": 5,
        "max_overflow": 10,
        "pool_recycle": 280,
    }
    if hostname not in LOCAL_HOSTS:
        options["connect_args"] = {"ssl": ssl.create_default_context()}
    return clean_url, options


def build_engine(settings: Settings) -> AsyncEngine:
    """Create the async engine for the configured database."""
    url, options = _engine_options(settings.database_url)
    return create_async_engine(url, echo=settings.debug, **options)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory shared by the stores and request dependencies."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def create_schema(engine: AsyncEngine) -> None:
    """Create all tables that do not exist yet."""
    from guardit.models import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def ping(engine: AsyncEngine) -> None:
    """Round-trip a trivial query; raises when the database is unreachable."""
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
