"""
Share link related Pydantic schemas for request/response validation.
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class SharePermissions(BaseModel):
    """What a share link visitor may see."""

    show_graph: bool = True
    show_photos: bool = True
    show_compare: bool = True

    model_config = ConfigDict(from_attributes=True)


class ShareLinkResponse(BaseModel):
    """Schema for the owner's view of their share link."""

    token: str
    is_active: bool
    permissions: SharePermissions
    view_count: int
    created_at: datetime
    updated_at: datetime
    share_url: str  # Relative path for sharing


class ShareLinkUpdate(BaseModel):
    """Partial update: either field may be omitted."""

    permissions: Optional[SharePermissions] = None
    is_active: Optional[bool] = None


class SharedEntry(BaseModel):
    """
    Entry as seen by a share link visitor.
    Photo URLs are null unless the link allows photos.
    """

    date: str
    front_photo_url: Optional[str] = None
    back_photo_url: Optional[str] = None


class SharedViewResponse(BaseModel):
    """Schema for the public share view."""

    permissions: SharePermissions
    entries: List[SharedEntry] = []
