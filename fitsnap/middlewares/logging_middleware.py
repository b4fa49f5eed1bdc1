"""
Request logging middleware.

Assigns a request id (honouring an incoming ``X-Request-ID``), echoes it on
the response and logs only requests worth looking at: 5xx as ERROR, 4xx and
slow responses as WARNING.
"""
import logging
import time
from typing import Any, Callable, Dict, Optional, Tuple

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from fitsnap.utils.client_ip import get_client_ip
from fitsnap.utils.logger import log_error, log_with_context, set_request_id

SLOW_REQUEST_THRESHOLD_MS = 3000

REQUEST_ID_HEADER = "X-Request-ID"

# 헬스체크/문서 경로는 로깅하지 않음
EXCLUDED_PATHS = {"/health", "/docs", "/openapi.json", "/redoc", "/metrics", "/favicon.ico"}


def classify(status_code: int, duration_ms: float) -> Optional[Tuple[int, str]]:
    """(level, message) for requests that should be logged, else None."""
    if status_code >= 500:
        return logging.ERROR, "Server error response"
    if status_code >= 400:
        return logging.WARNING, "Client error response"
    if duration_ms >= SLOW_REQUEST_THRESHOLD_MS:
        return logging.WARNING, "Slow request"
    return None


def _request_context(request: Request, rid: str) -> Dict[str, Any]:
    return {
        "http_method": request.method,
        "http_path": request.url.path,
        "client_ip": get_client_ip(request),
        "user_agent": request.headers.get("user-agent"),
        "request_id": rid,
    }


class LoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in EXCLUDED_PATHS:
            return await call_next(request)

        rid = set_request_id(request.headers.get(REQUEST_ID_HEADER))
        # contextvar는 바깥 ServerErrorMiddleware에서 보이지 않음: scope에도 저장
        request.state.request_id = rid
        context = _request_context(request, rid)
        start = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as e:
            log_error(
                f"Request raised {type(e).__name__}",
                event="request",
                exc_info=True,
                duration_ms=round((time.perf_counter() - start) * 1000, 2),
                **context,
            )
            raise

        duration_ms = round((time.perf_counter() - start) * 1000, 2)
        response.headers[REQUEST_ID_HEADER] = rid

        outcome = classify(response.status_code, duration_ms)
        if outcome is not None:
            level, message = outcome
            log_with_context(
                level,
                message,
                event="request",
                http_status=response.status_code,
                duration_ms=duration_ms,
                **context,
            )
        return response
