"""
Startup configuration checks for production.

A misconfigured instance should fail to boot rather than accept uploads it
cannot store.
"""
import logging
from typing import List

from sqlalchemy import text

from fitsnap.config import DEFAULT_JWT_SECRET, Settings, get_settings
from fitsnap.database import engine

logger = logging.getLogger("fitsnap.config_validator")

REQUIRED_STORAGE_SETTINGS = ("storage_bucket", "storage_access_key", "storage_secret_key")


async def check_database() -> List[str]:
    try:
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        logger.error("Database unreachable at startup", extra={"event": "config"}, exc_info=True)
        return [f"Database connection failed: {e}"]
    return []


def check_storage(settings: Settings) -> List[str]:
    missing = [name.upper() for name in REQUIRED_STORAGE_SETTINGS if not getattr(settings, name)]
    if not settings.storage_endpoint_url:
        logger.info("STORAGE_ENDPOINT_URL empty, using AWS S3", extra={"event": "config"})
    return [f"{name} is required" for name in missing]


def check_secrets(settings: Settings) -> List[str]:
    if settings.jwt_secret_key in ("", DEFAULT_JWT_SECRET):
        return ["JWT_SECRET_KEY must be set to a non-default value"]
    return []


async def validate_configuration() -> None:
    """
    Run every check and report all failures at once. No-op outside production.

    Raises:
        ValueError: One line per failed check
    """
    settings = get_settings()
    if not settings.is_production:
        logger.info(
            "Config validation skipped",
            extra={"event": "config", "environment": settings.environment.value},
        )
        return

    errors = await check_database()
    errors += check_storage(settings)
    errors += check_secrets(settings)

    if errors:
        logger.error("Configuration invalid", extra={"event": "config", "errors": errors})
        listing = "\n".join(f"  - {e}" for e in errors)
        raise ValueError(f"Configuration validation failed:\n{listing}")

    logger.info("Configuration OK", extra={"event": "config"})
