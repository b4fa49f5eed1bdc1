"""
Database models package.
All models are exported here for easy import.
"""
from fitsnap.models.user import User
from fitsnap.models.photo_entry import PhotoEntry, PHOTO_SIDES
from fitsnap.models.share import ShareLink

__all__ = ["User", "PhotoEntry", "PHOTO_SIDES", "ShareLink"]
