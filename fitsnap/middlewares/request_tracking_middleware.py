"""
In-flight request counter used to drain traffic on shutdown.
"""
import asyncio
import logging
import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from fitsnap.utils.prometheus_metrics import in_flight_requests

logger = logging.getLogger("fitsnap.request_tracking")

# 프로브는 셈에서 제외: shutdown 중에도 응답해야 함
UNTRACKED_PREFIX = "/health"
POLL_INTERVAL_SECONDS = 0.5

# 이벤트 루프 스레드에서만 변경됨
_in_flight = 0


def _adjust(delta: int) -> None:
    global _in_flight
    _in_flight = max(0, _in_flight + delta)
    in_flight_requests.set(_in_flight)


def in_flight_count() -> int:
    return _in_flight


class RequestTrackingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path.startswith(UNTRACKED_PREFIX):
            return await call_next(request)

        _adjust(+1)
        try:
            return await call_next(request)
        finally:
            _adjust(-1)


async def wait_for_requests(timeout: float = 30.0) -> bool:
    """
    Poll until no tracked request is running.

    Returns:
        True once drained, False if ``timeout`` seconds passed first
    """
    deadline = time.monotonic() + timeout
    while in_flight_count() > 0:
        if time.monotonic() >= deadline:
            logger.warning(
                "Shutdown with requests still running",
                extra={"event": "shutdown", "remaining_requests": in_flight_count()},
            )
            return False
        await asyncio.sleep(POLL_INTERVAL_SECONDS)

    logger.info("No requests in flight", extra={"event": "shutdown"})
    return True
