"""Unit tests for RateLimitMiddleware with a mocked Redis counter."""

from unittest.mock import AsyncMock, patch

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from redis.exceptions import ConnectionError as RedisConnectionError

from src.pm_gateway.middleware.rate_limit import RateLimitMiddleware

_MODULE = "src.pm_gateway.middleware.rate_limit"


def _app(limit: int) -> FastAPI:
    app = FastAPI()
    app.add_middleware(RateLimitMiddleware, limit_per_minute=limit)

    @app.get("/ping")
    async def ping() -> dict[str, str]:
        return {"pong": "ok"}

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return app


async def _get(app: FastAPI, path: str, **headers: str):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        return await ac.get(path, headers=headers)


@pytest.mark.asyncio
async def test_under_limit_passes() -> None:
    with (
        patch(f"{_MODULE}.get_redis", AsyncMock()),
        patch(f"{_MODULE}.incr_window", AsyncMock(return_value=3)),
    ):
        resp = await _get(_app(5), "/ping")
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_over_limit_is_429_envelope() -> None:
    with (
        patch(f"{_MODULE}.get_redis", AsyncMock()),
        patch(f"{_MODULE}.incr_window", AsyncMock(return_value=6)),
    ):
        resp = await _get(_app(5), "/ping")
    assert resp.status_code == 429
    assert resp.json()["code"] == 9001
    assert 0 < int(resp.headers["Retry-After"]) <= 60


@pytest.mark.asyncio
async def test_key_uses_forwarded_client_ip() -> None:
    incr = AsyncMock(return_value=1)
    with patch(f"{_MODULE}.get_redis", AsyncMock()), patch(f"{_MODULE}.incr_window", incr):
        await _get(_app(5), "/ping", **{"X-Forwarded-For": "203.0.113.9, 10.0.0.1"})
    key = incr.await_args.args[1]
    assert key.startswith("ratelimit:203.0.113.9:")


@pytest.mark.asyncio
async def test_redis_down_fails_open() -> None:
    with patch(f"{_MODULE}.get_redis", AsyncMock(side_effect=RedisConnectionError("down"))):
        resp = await _get(_app(5), "/ping")
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_health_and_disabled_limit_skip_redis() -> None:
    get_redis = AsyncMock()
    with patch(f"{_MODULE}.get_redis", get_redis):
        assert (await _get(_app(5), "/health")).status_code == 200
        assert (await _get(_app(0), "/ping")).status_code == 200
    get_redis.assert_not_awaited()
