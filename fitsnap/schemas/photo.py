"""
Photo entry related Pydantic schemas: entries, carousel slides, comparisons.
"""
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

PhotoSide = Literal["front", "back"]


class PhotoEntryResponse(BaseModel):
    """
    One day's photos.
    URLs are API paths to the image endpoints, never raw storage URLs.
    """

    date: str = Field(..., description="YYYY-MM-DD")
    front_photo_url: Optional[str] = None
    back_photo_url: Optional[str] = None
    photo_count: int = Field(..., ge=0, le=2)
    uploaded_at: datetime


class TodayEntryResponse(BaseModel):
    """Today's (UTC) entry, if any."""

    date: str
    entry: Optional[PhotoEntryResponse] = None


class PhotoUploadResponse(BaseModel):
    """Schema for photo upload response."""

    date: str
    side: PhotoSide
    content_type: str
    file_size: int
    entry: PhotoEntryResponse
    message: str = "Photo uploaded successfully"


class CarouselSlide(BaseModel):
    """A single carousel position over entries that have photos."""

    entry: PhotoEntryResponse
    index: int = Field(..., ge=0, description="0-based index")
    position: int = Field(..., ge=1, description="1-based position for display")
    total: int
    has_previous: bool
    has_next: bool

    @property
    def label(self) -> str:
        return f"{self.position} / {self.total}"


class CarouselResponse(BaseModel):
    """Carousel state. ``slide`` is null when there are no photos."""

    total: int
    slide: Optional[CarouselSlide] = None


class ComparisonImage(BaseModel):
    date: str
    url: Optional[str] = None


class ComparisonResponse(BaseModel):
    """Before/after pair for one side."""

    side: PhotoSide
    available_dates: List[str] = Field(
        default_factory=list,
        description="Dates having a photo for this side, newest first",
    )
    before: Optional[ComparisonImage] = None
    after: Optional[ComparisonImage] = None
    can_compare: bool = False
