"""
Prometheus metrics.

Every series is prefixed ``fitsnap_`` and lives in the default registry, which
the Instrumentator exposes at ``/metrics``. When ``PROMETHEUS_PUSHGATEWAY_URL``
is set the same registry is also pushed periodically.
"""
import asyncio
import logging
import socket
import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Sequence

from prometheus_client import REGISTRY, Counter, Gauge, Histogram, pushadd_to_gateway
from prometheus_fastapi_instrumentator import Instrumentator

from fitsnap.config import get_settings

logger = logging.getLogger(__name__)

PREFIX = "fitsnap_"

LATENCY_BUCKETS = (0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0)
SLOW_LATENCY_BUCKETS = (0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0)
# 10KB ~ 10MB
UPLOAD_SIZE_BUCKETS = (10_240, 102_400, 512_000, 1_024_000, 2_048_000, 5_120_000, 10_240_000)


def _counter(name: str, doc: str, labels: Sequence[str] = ()) -> Counter:
    return Counter(PREFIX + name, doc, list(labels), registry=REGISTRY)


def _gauge(name: str, doc: str, labels: Sequence[str] = ()) -> Gauge:
    return Gauge(PREFIX + name, doc, list(labels), registry=REGISTRY)


def _histogram(name: str, doc: str, labels: Sequence[str], buckets: Sequence[float]) -> Histogram:
    return Histogram(PREFIX + name, doc, list(labels), buckets=buckets, registry=REGISTRY)


# 안정성
exceptions_total = _counter("exceptions_total", "Unhandled exceptions")
db_errors_total = _counter("db_errors_total", "Database session/transaction errors")
external_request_total = _counter(
    "external_request_total", "Object storage calls by outcome", ["service", "status"]
)
external_request_errors_total = _counter(
    "external_request_errors_total", "Failed object storage calls", ["service"]
)
external_request_duration_seconds = _histogram(
    "external_request_duration_seconds",
    "Object storage call latency",
    ["service", "result"],
    SLOW_LATENCY_BUCKETS,
)

# 가용성
ready = _gauge("ready", "1 while serving, 0 once shutdown has begun")
in_flight_requests = _gauge("in_flight_requests", "Requests currently being handled")
health_check_status = _gauge("health_check_status", "Last health check result (1=healthy)", ["check_type"])
app_info = _gauge(
    "app_info",
    "Build and node identity; value is always 1",
    ["node", "app", "version", "environment", "region"],
)

# 인증
user_registration_total = _counter("user_registration_total", "Sign-up attempts", ["result"])
user_login_total = _counter("user_login_total", "Login attempts", ["result"])
login_duration_seconds = _histogram(
    "login_duration_seconds",
    "Login latency including bcrypt",
    ["result"],
    (0.05, 0.1, 0.2, 0.5, 1.0, 2.0, 3.0, 5.0),
)
jwt_token_validation_total = _counter(
    "jwt_token_validation_total", "Bearer token checks on protected routes", ["result"]
)

# Rate limit (클라이언트 식별자는 라벨에 넣지 않음: 로그로만 남김)
rate_limit_requests_total = _counter(
    "rate_limit_requests_total", "Requests seen by the limiter", ["endpoint", "status"]
)
rate_limit_hits_total = _counter(
    "rate_limit_hits_total", "Requests rejected with 429", ["endpoint"]
)

# 공유 링크. token_status: valid | invalid | revoked
share_link_access_total = _counter(
    "share_link_access_total", "Public share link lookups", ["token_status", "result"]
)
share_link_access_duration_seconds = _histogram(
    "share_link_access_duration_seconds",
    "Share token resolution latency",
    ["token_status", "result"],
    LATENCY_BUCKETS,
)
share_link_brute_force_attempts = _counter(
    "share_link_brute_force_attempts_total", "Unknown share tokens presented"
)
share_link_operations_total = _counter(
    "share_link_operations_total", "Owner create/update/regenerate calls", ["operation", "result"]
)

# 사진. access_type: authenticated | shared
image_access_total = _counter(
    "image_access_total", "Image fetches", ["access_type", "result"]
)
image_access_duration_seconds = _histogram(
    "image_access_duration_seconds",
    "Image fetch latency",
    ["access_type", "result"],
    LATENCY_BUCKETS,
)
photo_upload_total = _counter("photo_upload_total", "Photo uploads", ["side", "result"])
photo_upload_file_size_bytes = _histogram(
    "photo_upload_file_size_bytes", "Accepted upload sizes", ["side"], UPLOAD_SIZE_BUCKETS
)

# 비즈니스 게이지 (business_metrics_loop가 갱신)
users_total = _gauge("users_total", "Registered users")
photo_entries_total = _gauge("photo_entries_total", "Days with at least one photo")
share_links_total = _gauge("share_links_total", "Share links by state", ["status"])
share_views_total = _gauge("share_views_total", "Sum of share link view counts")


@asynccontextmanager
async def record_external_request(service: str) -> AsyncGenerator[None, None]:
    """Time the wrapped storage call and count it as success or failure."""
    start = time.perf_counter()
    result = "success"
    try:
        yield
    except Exception:
        result = "failure"
        external_request_errors_total.labels(service=service).inc()
        raise
    finally:
        external_request_total.labels(service=service, status=result).inc()
        external_request_duration_seconds.labels(service=service, result=result).observe(
            time.perf_counter() - start
        )


async def update_business_metrics() -> None:
    from sqlalchemy import func, select

    from fitsnap.database import get_db_context
    from fitsnap.models import PhotoEntry, ShareLink, User

    async def scalar(stmt) -> int:
        return (await db.execute(stmt)).scalar() or 0

    try:
        async with get_db_context() as db:
            counts = {
                "users": await scalar(select(func.count(User.id))),
                "entries": await scalar(select(func.count(PhotoEntry.id))),
                "links": await scalar(select(func.count(ShareLink.id))),
                "active": await scalar(
                    select(func.count(ShareLink.id)).where(ShareLink.is_active.is_(True))
                ),
                "views": await scalar(select(func.sum(ShareLink.view_count))),
            }
    except Exception as e:
        logger.warning("Business metrics update failed: %s", e)
        return

    users_total.set(counts["users"])
    photo_entries_total.set(counts["entries"])
    share_links_total.labels(status="total").set(counts["links"])
    share_links_total.labels(status="active").set(counts["active"])
    share_views_total.set(counts["views"])


async def business_metrics_loop(interval: int) -> None:
    """Refresh the business gauges every ``interval`` seconds; 0 disables."""
    if interval <= 0:
        return
    logger.info("Business metrics every %ds", interval, extra={"event": "lifecycle"})
    while True:
        await update_business_metrics()
        await asyncio.sleep(interval)


def node_identity() -> str:
    return get_settings().node_name or socket.gethostname()


def _pushgateway_url() -> str:
    return (get_settings().prometheus_pushgateway_url or "").strip()


def push_metrics_to_gateway() -> None:
    """Blocking push of the whole registry. Failures are logged, not raised."""
    url = _pushgateway_url()
    if not url:
        return
    settings = get_settings()
    grouping_key = {"instance": settings.instance_ip or node_identity()}
    region = settings.region.strip()
    if region:
        grouping_key["region"] = region
    try:
        # POST (pushadd): 일부 프록시가 PUT을 거부함
        pushadd_to_gateway(url, job="fitsnap", registry=REGISTRY, grouping_key=grouping_key)
    except Exception as e:
        logger.warning("Pushgateway push failed: %s", e)


async def pushgateway_loop() -> None:
    url = _pushgateway_url()
    if not url:
        return
    interval = max(15, get_settings().prometheus_push_interval_seconds)
    logger.info("Pushing metrics to %s every %ds", url, interval, extra={"event": "lifecycle"})
    loop = asyncio.get_running_loop()
    while True:
        await asyncio.sleep(interval)
        await loop.run_in_executor(None, push_metrics_to_gateway)


def setup_prometheus(app) -> None:
    """Set ``fitsnap_app_info`` and expose request metrics at ``/metrics``."""
    settings = get_settings()
    app_info.labels(
        node=node_identity(),
        app=settings.app_name,
        version=settings.app_version,
        environment=settings.environment.value,
        region=settings.region.strip() or "unknown",
    ).set(1)

    # status 라벨은 2xx 대신 실제 코드
    Instrumentator(should_group_status_codes=False).instrument(app).expose(
        app, endpoint="/metrics"
    )
