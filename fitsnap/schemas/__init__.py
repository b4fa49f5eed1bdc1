"""
Pydantic schemas package.
All schemas are exported here for easy import.
"""
from fitsnap.schemas.user import (
    UserCreate,
    UserResponse,
    UserLogin,
    PrivacySettings,
    Token,
    TokenPayload,
)
from fitsnap.schemas.photo import (
    PhotoSide,
    PhotoEntryResponse,
    TodayEntryResponse,
    PhotoUploadResponse,
    CarouselSlide,
    CarouselResponse,
    ComparisonImage,
    ComparisonResponse,
)
from fitsnap.schemas.heatmap import (
    HeatmapCell,
    HeatmapResponse,
    MonthLabel,
)
from fitsnap.schemas.share import (
    SharePermissions,
    ShareLinkResponse,
    ShareLinkUpdate,
    SharedEntry,
    SharedViewResponse,
)

__all__ = [
    # User schemas
    "UserCreate",
    "UserResponse",
    "UserLogin",
    "PrivacySettings",
    "Token",
    "TokenPayload",
    # Photo schemas
    "PhotoSide",
    "PhotoEntryResponse",
    "TodayEntryResponse",
    "PhotoUploadResponse",
    "CarouselSlide",
    "CarouselResponse",
    "ComparisonImage",
    "ComparisonResponse",
    # Heatmap schemas
    "HeatmapCell",
    "HeatmapResponse",
    "MonthLabel",
    # Share schemas
    "SharePermissions",
    "ShareLinkResponse",
    "ShareLinkUpdate",
    "SharedEntry",
    "SharedViewResponse",
]
