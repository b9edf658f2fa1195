"""Request rate limiting middleware — Redis fixed window per client IP.

  - Key pattern: "ratelimit:{client_ip}:{epoch_minute}"
  - Real client IP taken from the first X-Forwarded-For hop when present
  - 429 with code 9001 and a Retry-After header when the window is exhausted
  - Fails open: if Redis is unreachable the request goes through and a
    warning is logged (bet spam is still bounded by the per-market rule)

This is the coarse, gateway-level guard. The 2-second per (user, market)
bet rule lives in pm_betting and is enforced against the ledger.
"""

import logging
import time

from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp

from config.settings import settings
from src.pm_common.errors import RateLimitError
from src.pm_common.redis_client import get_redis, incr_window
from src.pm_common.response import error_response

logger = logging.getLogger(__name__)

_WINDOW_SECONDS = 60
_EXEMPT_PATHS = frozenset({"/health"})


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, limit_per_minute: int | None = None) -> None:
        super().__init__(app)
        self._limit = (
            settings.REQUEST_RATE_LIMIT_PER_MINUTE if limit_per_minute is None else limit_per_minute
        )

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if self._limit <= 0 or request.url.path in _EXEMPT_PATHS:
            return await call_next(request)

        now = int(time.time())
        window = now // _WINDOW_SECONDS
        key = f"ratelimit:{client_ip(request)}:{window}"
        try:
            redis = await get_redis()
            count = await incr_window(redis, key, _WINDOW_SECONDS)
        except RedisError:
            logger.warning("Rate limiter unavailable, letting request through", exc_info=True)
            return await call_next(request)

        if count > self._limit:
            err = RateLimitError()
            retry_after = _WINDOW_SECONDS - (now % _WINDOW_SECONDS)
            return JSONResponse(
                status_code=err.http_status,
                content=error_response(err.code, err.message).model_dump(),
                headers={"Retry-After": str(retry_after)},
            )
        return await call_next(request)
