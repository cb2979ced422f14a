"""
Newsletter Backend: Database Access Layer
=========================================

What:  Connection URL value object, async SQLAlchemy engine and session
       factory builders, and the per-request session dependency.
How:   `DB` normalizes a PostgreSQL URL onto the asyncpg driver. The engine
       and session factory are built once per application by `create_app()`
       and stored on `app.state`; `get_db_session` hands one session to each
       request, committing on success and rolling back on error.
Who:   Used by main.py (wiring), route handlers (dependency injection),
       Alembic (migration URL) and the CLI.

Connection Pooling:
    pool_size / max_overflow:  from settings (defaults 10 + 5)
    pool_pre_ping:             validates connections before use
    pool_timeout:              db_acquire_timeout seconds, then fail the request
    pool_recycle=3600:         recycles connections every hour
"""

from dataclasses import dataclass, field
from typing import AsyncGenerator

from fastapi import Request
from sqlalchemy.engine import URL, make_url
from sqlalchemy.exc import ArgumentError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from newsletter.config import Settings

ASYNC_DRIVER = "postgresql+asyncpg"


# ── Connection URL ────────────────────────────────────────────────────────
@dataclass
class DB:
    """
    PostgreSQL connection parameters.

    The general form accepted by `from_url` is:

        postgresql://[userspec@][hostspec][/dbname]
            where userspec is: user[:password]
            and hostspec is:   [host][:port]

    https://www.postgresql.org/docs/current/libpq-connect.html#LIBPQ-CONNSTRING

    Parts missing from the URL fall back to the class defaults.
    """

    name: str = ""
    username: str = "postgres"
    password: str = field(default="", repr=False)
    host: str = "localhost"
    port: int = 5432

    @classmethod
    def from_url(cls, database_url: str) -> "DB":
        """
        Parse a connection URL into its parts.

        Raises:
            ValueError: The string is not a URL SQLAlchemy can parse.
        """
        try:
            url = make_url(database_url)
        except ArgumentError as e:
            raise ValueError(f"Couldn't parse database url: {e}") from e

        defaults = cls()
        return cls(
            name=url.database or defaults.name,
            username=url.username or defaults.username,
            password=url.password or defaults.password,
            host=url.host or defaults.host,
            port=url.port or defaults.port,
        )

    def _url(self, database: str | None) -> URL:
        return URL.create(
            drivername=ASYNC_DRIVER,
            username=self.username,
            password=self.password or None,
            host=self.host,
            port=self.port,
            database=database,
        )

    def url(self) -> str:
        """Async driver URL including the database name."""
        return self._url(self.name or None).render_as_string(hide_password=False)

    def url_without_db(self) -> str:
        """
        Async driver URL without a database name.

        Used to connect to the server itself, e.g. to CREATE DATABASE for
        an isolated test database.
        """
        return self._url(None).render_as_string(hide_password=False)


# ── Base Model ────────────────────────────────────────────────────────────
class Base(DeclarativeBase):
    """Base class for all ORM models; its metadata drives Alembic."""
    pass


# ── Engine & Session Factory ──────────────────────────────────────────────
def build_engine(settings: Settings) -> AsyncEngine:
    """
    Create the pooled async engine described by the settings.

    No connection is opened here; the pool connects lazily on first use.
    """
    db = DB.from_url(settings.database_url.get_secret_value())
    connect_args = {"ssl": "require"} if settings.database_require_ssl else {}

    return create_async_engine(
        db.url(),
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_pre_ping=settings.db_pool_pre_ping,
        pool_timeout=settings.db_acquire_timeout,
        pool_recycle=3600,
        connect_args=connect_args,
        echo=settings.log_level == "DEBUG",
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # expire_on_commit=False: handlers read attributes after committing
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    How it works:
        1. Creates a new session from the application's session factory
        2. Yields it to the route handler
        3. On success: commits whatever the handler left uncommitted
        4. On error: rolls back and re-raises for the global error handlers
        5. Always: closes the session (returns the connection to the pool)
    """
    session_factory: async_sessionmaker[AsyncSession] = request.app.state.session_factory
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def dispose_engine(engine: AsyncEngine) -> None:
    """Close all pooled connections; called during application shutdown."""
    await engine.dispose()
