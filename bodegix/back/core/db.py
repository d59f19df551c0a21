# bodegix/back/core/db.py
import re
import urllib.parse

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import StaticPool

from bodegix.back.core.config import settings


def to_async_url(raw_url: str) -> str:
    """
    postgresql://... -> postgresql+asyncpg://... (querystring such as
    sslmode is dropped, asyncpg does not understand it).
    Other URLs are returned untouched.
    """
    if not raw_url.startswith(("postgresql:", "postgres:")):
        return raw_url

    parsed = urllib.parse.urlsplit(raw_url)
    clean_url = urllib.parse.urlunsplit(parsed._replace(query=""))
    return re.sub(r"^postgres(ql)?:", "postgresql+asyncpg:", clean_url)


def engine_options(url: str, ssl: bool = False) -> dict:
    if url.startswith("sqlite"):
        options = {"connect_args": {"check_same_thread": False}}
        # in-memory sqlite: every connection would get its own empty database
        if url.endswith("://") or ":memory:" in url:
            options["poolclass"] = StaticPool
        return options

    if ssl:
        return {"connect_args": {"ssl": "require"}}
    return {}


ASYNC_DATABASE_URL = to_async_url(settings.DATABASE_URL)

engine = create_async_engine(
    ASYNC_DATABASE_URL,
    echo=False,
    future=True,
    **engine_options(ASYNC_DATABASE_URL, ssl=settings.DB_SSL),
)

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

Base = declarative_base()


async def get_db():
    """FastAPI dependency: one session per request."""
    async with AsyncSessionLocal() as session:
        yield session


async def init_db():
    """
    Creates missing tables at startup.
    Schema migrations are handled outside this service.
    """
    async with engine.begin() as conn:
        # imported here so every model is registered on Base.metadata
        from bodegix.back.models import access_event, qr_session, tenant  # noqa: F401

        await conn.run_sync(Base.metadata.create_all)
