"""Shared test fixtures."""

import os

# Settings are read at import time; JWT_SECRET has no default.
os.environ.setdefault("JWT_SECRET", "test-secret-key-for-unit-tests-only")
os.environ.setdefault("REQUEST_RATE_LIMIT_PER_MINUTE", "0")

from collections.abc import AsyncGenerator, Callable  # noqa: E402
from datetime import timedelta  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from jose import jwt  # noqa: E402

from config.settings import settings  # noqa: E402
from src.main import app  # noqa: E402
from src.pm_common.datetime_utils import utc_now  # noqa: E402


@pytest.fixture
def make_token() -> Callable[..., str]:
    """Mint a token the way the external auth service does."""

    def _make(
        user_id: str,
        expires_in: timedelta = timedelta(minutes=15),
        secret: str | None = None,
        **claims: object,
    ) -> str:
        payload = {
            "sub": user_id,
            "aud": settings.JWT_AUDIENCE,
            "exp": utc_now() + expires_in,
            **claims,
        }
        return jwt.encode(
            payload, secret or settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM
        )

    return _make


@pytest_asyncio.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client for testing FastAPI endpoints."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
