"""
Newsletter Backend: Test Configuration (conftest.py)
====================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy (all function-scoped):
    ├── mock_db_session: Mock database session for service unit tests
    ├── db_engine: Fresh SQLite database (aiosqlite) with all tables created
    ├── email_server: Recording httpx.MockTransport standing in for the email API
    ├── test_settings: Settings pointing at the mock email API
    ├── test_app: create_app() wired to db_engine and email_server
    ├── test_client: HTTPX AsyncClient talking to test_app over ASGI
    └── test_user: A stored publisher account (username, password)
"""

import json
import os
import re
from typing import Callable, List, Optional
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from pydantic import SecretStr
from sqlalchemy.ext.asyncio import create_async_engine


# ══════════════════════════════════════════════════════════════════════════
# Environment Setup
# ══════════════════════════════════════════════════════════════════════════

# Set before any newsletter import: the module-level settings read them
os.environ["APP_ENV"] = "local"
os.environ["EMAIL_AUTHORIZATION_TOKEN"] = "test-token-not-real"
os.environ["LOG_LEVEL"] = "WARNING"

from newsletter.config import Settings  # noqa: E402
from newsletter.database import Base, build_session_factory  # noqa: E402
from newsletter.main import create_app  # noqa: E402
from newsletter.services.auth_service import auth_service  # noqa: E402
from newsletter.services.email_client import EmailClient  # noqa: E402
import newsletter.models  # noqa: E402,F401


EMAIL_API_BASE_URL = "http://email-api.local/v3"
APP_BASE_URL = "http://127.0.0.1:8000"


# ══════════════════════════════════════════════════════════════════════════
# Helpers
# ══════════════════════════════════════════════════════════════════════════

class MockEmailServer:
    """
    Records every request sent to the email API and answers with
    `status_code`, or calls `failure` to simulate a transport error.
    """

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.status_code = 200
        self.failure: Optional[Callable[[httpx.Request], None]] = None
        self.transport = httpx.MockTransport(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.failure is not None:
            self.failure(request)
        return httpx.Response(self.status_code)

    def bodies(self) -> List[dict]:
        return [json.loads(request.content) for request in self.requests]

    def confirmation_links(self, index: int = -1) -> dict:
        """The confirmation link found in the html and plain text bodies of one request."""
        body = self.bodies()[index]

        def get_link(s: str) -> str:
            links = re.findall(r"https?://[^\s\"<>]+", s)
            assert len(links) == 1, f"expected one link in {s!r}"
            return links[0]

        return {
            "html": get_link(body["content"][0]["value"]),
            "plain_text": get_link(body["content"][1]["value"]),
        }


# ══════════════════════════════════════════════════════════════════════════
# Function-Scoped Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def mock_db_session():
    """
    Provides a mock async database session.

    Usage:
        result = MagicMock()
        result.scalar_one_or_none.return_value = subscriber
        mock_db_session.execute = AsyncMock(return_value=result)
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def mock_email_client():
    """An EmailClient stand-in whose send_email records awaits."""
    client = MagicMock(spec=EmailClient)
    client.send_email = AsyncMock()
    return client


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    """A throwaway SQLite database per test, with the full schema created."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'newsletter.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def email_server():
    return MockEmailServer()


@pytest.fixture
def test_settings():
    return Settings(
        app_env="local",
        app_base_url=APP_BASE_URL,
        email_base_url=EMAIL_API_BASE_URL,
        email_sender="newsletter@example.com",
        email_authorization_token=SecretStr("my-secret-token"),
        email_retry_max_attempts=1,
        email_retry_min_wait=0,
        email_retry_max_wait=0,
        log_level="WARNING",
    )


@pytest_asyncio.fixture
async def test_app(test_settings, db_engine, email_server):
    email_client = EmailClient.from_settings(test_settings, transport=email_server.transport)
    app = create_app(settings=test_settings, engine=db_engine, email_client=email_client)
    yield app
    await email_client.aclose()


@pytest_asyncio.fixture
async def test_client(test_app):
    """
    HTTPX AsyncClient routed straight into the app over ASGI.

    Redirects are not followed so tests can assert on 303 responses.
    """
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def db_session(db_engine):
    """A session on the test database for arranging and inspecting rows."""
    session_factory = build_session_factory(db_engine)
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def test_user(db_session):
    """A stored publisher account; returns (username, password)."""
    username, password = "publisher", "everything-has-to-start-somewhere"
    await auth_service.create_user(db_session, username, password)
    await db_session.commit()
    return username, password
