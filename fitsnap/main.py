"""
FitSnap API entry point.

``create_app`` wires routers, middlewares, metrics and the lifespan;
``app`` is the instance uvicorn serves (``uvicorn fitsnap.main:app``).
"""
import asyncio
from contextlib import asynccontextmanager, suppress
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from fitsnap.config import get_settings
from fitsnap.database import close_db, init_db
from fitsnap.middlewares.logging_middleware import REQUEST_ID_HEADER, LoggingMiddleware
from fitsnap.middlewares.rate_limit_middleware import setup_rate_limit
from fitsnap.middlewares.request_tracking_middleware import (
    RequestTrackingMiddleware,
    wait_for_requests,
)
from fitsnap.routers import (
    auth_router,
    health_router,
    photos_router,
    share_router,
    share_settings_router,
)
from fitsnap.utils.logger import get_request_id, log_error, log_info, setup_logging
from fitsnap.utils.prometheus_metrics import (
    business_metrics_loop,
    exceptions_total,
    pushgateway_loop,
    ready,
    setup_prometheus,
)

settings = get_settings()

setup_logging()

API_DESCRIPTION = """
Daily front/back workout photos, a yearly activity heatmap, a carousel and
before/after comparison, plus one permission-scoped public share link per
user. Authenticate with `POST /auth/login` and send
`Authorization: Bearer <token>`.
"""

OPENAPI_TAGS = [
    {"name": "Authentication", "description": "Accounts and blur preference"},
    {"name": "Photos", "description": "Uploads, heatmap, carousel, comparison"},
    {"name": "Share Settings", "description": "Owner controls for the share link"},
    {"name": "Shared View", "description": "Read-only access by share token"},
    {"name": "Health", "description": "Liveness and readiness checks for load balancers and k8s"},
]


async def _run_startup_checks() -> None:
    if not settings.is_production:
        return
    from fitsnap.utils.config_validator import validate_configuration

    try:
        await validate_configuration()
    except ValueError as e:
        log_error("Refusing to start: invalid configuration", event="lifecycle", error_message=str(e))
        raise RuntimeError(str(e)) from e
    log_info("Configuration validated", event="lifecycle")


async def _stop(*tasks: asyncio.Task) -> None:
    for task in tasks:
        task.cancel()
        with suppress(asyncio.CancelledError):
            await task


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Startup: validate config (production), create tables, mark ready, start
    metric loops.

    Shutdown: readiness drops to 0 first so the load balancer stops routing,
    in-flight requests get ``SHUTDOWN_WAIT_SECONDS`` to finish, then the loops
    and the engine are closed.
    """
    await _run_startup_checks()
    await init_db()
    ready.set(1)
    log_info(
        "Startup complete",
        event="lifecycle",
        version=settings.app_version,
        environment=settings.environment.value,
    )

    background = (
        asyncio.create_task(pushgateway_loop()),
        asyncio.create_task(business_metrics_loop(settings.business_metrics_interval_seconds)),
    )

    yield

    ready.set(0)
    log_info("Draining requests before shutdown", event="lifecycle")
    await wait_for_requests(timeout=settings.shutdown_wait_seconds)
    await _stop(*background)
    await close_db()
    log_info("Shutdown complete", event="lifecycle")


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """500 with the request id so users can quote it in a bug report."""
    exceptions_total.inc()
    rid = getattr(request.state, "request_id", None) or get_request_id()
    log_error(
        "Unhandled exception",
        event="exception",
        exc_info=True,
        error_type=type(exc).__name__,
        error_message=str(exc),
        http_method=request.method,
        http_path=request.url.path,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error", "request_id": rid},
        headers={REQUEST_ID_HEADER: rid} if rid else None,
    )


def _add_middlewares(app: FastAPI) -> None:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(LoggingMiddleware)
    # 가장 바깥: 진행 중 요청 수를 셈 (graceful shutdown)
    app.add_middleware(RequestTrackingMiddleware)


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description=API_DESCRIPTION,
        openapi_tags=OPENAPI_TAGS,
        lifespan=lifespan,
    )

    setup_prometheus(app)
    setup_rate_limit(app)
    _add_middlewares(app)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    for router in (health_router, auth_router, photos_router, share_settings_router, share_router):
        app.include_router(router)

    @app.get("/", tags=["Root"], summary="API information")
    async def root():
        return {"name": settings.app_name, "version": settings.app_version, "docs": "/docs"}

    return app


app = create_app()
