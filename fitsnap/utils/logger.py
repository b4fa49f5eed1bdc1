"""
Logging for FitSnap.

Text lines go to the console, NDJSON to ``{LOG_DIR}/app.log`` and
``error.log``. Every JSON line carries the instance id and, inside a request,
the request id. Personal data (email, username, tokens) is never written.

Levels: INFO for business events (sign-up, upload, share changes), WARNING
for client mistakes, ERROR for failures on our side.
"""
import contextvars
import json
import logging
import socket
import sys
import uuid
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Optional

from fitsnap.config import get_settings

logger = logging.getLogger("fitsnap")

_SENSITIVE_FIELDS = frozenset({"email", "username", "password", "token", "secret"})

# 현재 요청의 ID (태스크별로 분리됨)
request_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "fitsnap_request_id", default=None
)

INSTANCE_ID = (get_settings().instance_ip or "").strip() or socket.gethostname()


def get_request_id() -> Optional[str]:
    return request_id_var.get()


def set_request_id(request_id: Optional[str] = None) -> str:
    """Bind ``request_id`` (or a fresh 12-hex id) to the current context."""
    rid = request_id or uuid.uuid4().hex[:12]
    request_id_var.set(rid)
    return rid


class FlushingRotatingFileHandler(RotatingFileHandler):
    def emit(self, record: logging.LogRecord) -> None:
        super().emit(record)
        self.flush()


# 모든 LogRecord에 있는 속성: extra로 넘어온 것만 ctx에 담기 위함
_STANDARD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
    "message",
    "asctime",
}


_OMIT_FROM_CTX = _STANDARD_ATTRS | _SENSITIVE_FIELDS | {"event", "instance"}


def _utc_timestamp(record: logging.LogRecord) -> str:
    """``2024-03-01T08:15:02.123Z``"""
    dt = datetime.fromtimestamp(record.created, tz=timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class JsonLinesFormatter(logging.Formatter):
    """
    One JSON object per line.

    Keys: ``ts``, ``level``, ``instance``, then ``rid`` and ``event`` when
    known, ``msg``, ``ctx`` for remaining ``extra`` fields (personal data
    dropped) and ``exc`` for tracebacks.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": _utc_timestamp(record),
            "level": record.levelname,
            "instance": INSTANCE_ID,
            "rid": get_request_id(),
            "event": getattr(record, "event", None) or None,
            "msg": record.getMessage(),
        }
        ctx = {
            key: value
            for key, value in vars(record).items()
            if key not in _OMIT_FROM_CTX and value is not None
        }
        if ctx:
            payload["ctx"] = ctx
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)

        return json.dumps(
            {k: v for k, v in payload.items() if v is not None},
            ensure_ascii=False,
            default=str,
        )


def log_with_context(
    level: int,
    message: str,
    event: Optional[str] = None,
    exc_info: bool = False,
    **context: Any,
) -> None:
    """
    구조화된 컨텍스트와 함께 로그를 남긴다.

    context 키가 LogRecord 표준 속성과 겹치면 ``ctx_`` 접두사를 붙인다.
    """
    extra: dict[str, Any] = {}
    for key, value in context.items():
        if key in _STANDARD_ATTRS:
            key = f"ctx_{key}"
        extra[key] = value
    if event:
        extra["event"] = event
    logger.log(level, message, extra=extra, exc_info=exc_info)


def log_info(message: str, event: Optional[str] = None, **context: Any) -> None:
    log_with_context(logging.INFO, message, event=event, **context)


def log_warning(message: str, event: Optional[str] = None, **context: Any) -> None:
    log_with_context(logging.WARNING, message, event=event, **context)


def log_error(
    message: str,
    event: Optional[str] = None,
    exc_info: bool = False,
    **context: Any,
) -> None:
    log_with_context(logging.ERROR, message, event=event, exc_info=exc_info, **context)


_TEXT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
_LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
_LOG_FILE_BACKUPS = 5

# 서드파티 로거는 WARNING 이상만
_QUIET_LOGGERS = (
    "uvicorn", "uvicorn.access", "uvicorn.error",
    "httpx", "httpcore", "asyncio",
    "botocore", "boto3", "urllib3",
    "sqlalchemy", "sqlalchemy.engine", "sqlalchemy.pool",
)


def _with(handler: logging.Handler, level: int, formatter: logging.Formatter) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def _ndjson_file(path: Path, level: int) -> logging.Handler:
    handler = FlushingRotatingFileHandler(
        path,
        maxBytes=_LOG_FILE_MAX_BYTES,
        backupCount=_LOG_FILE_BACKUPS,
        encoding="utf-8",
    )
    return _with(handler, level, JsonLinesFormatter())


def setup_logging() -> None:
    """
    Configure the root logger.

    Text goes to stdout (INFO+) and stderr (ERROR+). When ``LOG_DIR`` is
    writable, NDJSON records also go to ``app.log`` (INFO+) and
    ``error.log`` (ERROR+).
    """
    settings = get_settings()
    root = logging.getLogger()
    root.setLevel(logging.DEBUG if settings.debug else logging.INFO)
    root.handlers.clear()

    text = logging.Formatter(_TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    root.addHandler(_with(logging.StreamHandler(sys.stdout), logging.INFO, text))
    root.addHandler(_with(logging.StreamHandler(sys.stderr), logging.ERROR, text))

    log_dir = Path(settings.log_dir)
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        root.addHandler(_ndjson_file(log_dir / "app.log", logging.INFO))
        root.addHandler(_ndjson_file(log_dir / "error.log", logging.ERROR))
    except OSError as e:
        # 읽기 전용 파일시스템 등: 콘솔 로그만 사용
        root.warning("File logging disabled: %s", e)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
