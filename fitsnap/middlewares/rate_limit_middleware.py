"""
slowapi rate limiting, keyed by client IP.

Every route gets ``RATE_LIMIT_PER_MINUTE``; the public share routes use the
stricter ``share_rate_limit`` to slow down token guessing.
"""
from typing import Callable

from fastapi import FastAPI, Request
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from fitsnap.config import get_settings
from fitsnap.utils.client_ip import get_client_identifier
from fitsnap.utils.logger import log_warning
from fitsnap.utils.prometheus_metrics import rate_limit_hits_total, rate_limit_requests_total

settings = get_settings()

# 인메모리 카운터: 인스턴스별로 따로 셈
limiter = Limiter(
    key_func=get_client_identifier,
    default_limits=[f"{settings.rate_limit_per_minute}/minute"],
    storage_uri="memory://",
    enabled=settings.rate_limit_enabled,
)


async def on_rate_limit_exceeded(request: Request, exc: RateLimitExceeded):
    path = request.url.path
    rate_limit_hits_total.labels(endpoint=path).inc()
    rate_limit_requests_total.labels(endpoint=path, status="blocked").inc()
    log_warning(
        "Rate limit exceeded",
        event="rate_limit",
        endpoint=path,
        client_id=get_client_identifier(request),
        limit=getattr(exc, "detail", None),
    )
    return _rate_limit_exceeded_handler(request, exc)


def setup_rate_limit(app: FastAPI) -> None:
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, on_rate_limit_exceeded)


def get_rate_limit_decorator(limit: str) -> Callable[[Callable], Callable]:
    """
    ``limiter.limit(limit)``, or a pass-through when limiting is disabled.

    The decorated endpoint must take a ``request: Request`` parameter.
    """
    if settings.rate_limit_enabled:
        return limiter.limit(limit)
    return lambda endpoint: endpoint
