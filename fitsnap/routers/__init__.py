"""
API routers package.
"""
from fitsnap.routers.auth import router as auth_router
from fitsnap.routers.health import router as health_router
from fitsnap.routers.photos import router as photos_router
from fitsnap.routers.share import router as share_router
from fitsnap.routers.share import settings_router as share_settings_router

__all__ = [
    "auth_router",
    "health_router",
    "photos_router",
    "share_router",
    "share_settings_router",
]
