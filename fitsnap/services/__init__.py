"""
Services package.
Contains business logic and external service integrations.
"""
from fitsnap.services.object_storage import ObjectStorageService
from fitsnap.services.auth import AuthService
from fitsnap.services.photo import PhotoService
from fitsnap.services.share import ShareService

__all__ = [
    "ObjectStorageService",
    "AuthService",
    "PhotoService",
    "ShareService",
]
