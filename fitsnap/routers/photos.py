"""
Photos router: daily front/back uploads, heatmap, carousel and comparison.
"""
import mimetypes
import time
from datetime import date
from pathlib import PurePath
from typing import List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from fastapi.responses import RedirectResponse, Response
from sqlalchemy.ext.asyncio import AsyncSession

from fitsnap.config import get_settings
from fitsnap.database import get_db
from fitsnap.dependencies.auth import get_current_active_user
from fitsnap.models.photo_entry import PhotoEntry
from fitsnap.models.user import User
from fitsnap.schemas.heatmap import HeatmapResponse
from fitsnap.schemas.photo import (
    CarouselResponse,
    ComparisonResponse,
    PhotoEntryResponse,
    PhotoSide,
    PhotoUploadResponse,
    TodayEntryResponse,
)
from fitsnap.services import gallery, heatmap
from fitsnap.services.photo import (
    PhotoMissingError,
    PhotoService,
    entry_to_response,
    get_today_date,
    parse_entry_date,
    today_utc,
)
from fitsnap.utils.prometheus_metrics import (
    image_access_duration_seconds,
    image_access_total,
    photo_upload_file_size_bytes,
    photo_upload_total,
)


router = APIRouter(prefix="/photos", tags=["Photos"])

# 확장자 → MIME. 여기 있는 타입만 업로드 허용
IMAGE_EXTENSIONS = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".heic": "image/heic",
    ".heif": "image/heif",
}
ALLOWED_CONTENT_TYPES = frozenset(IMAGE_EXTENSIONS.values())


def max_file_size() -> int:
    return get_settings().max_upload_size_mb * 1024 * 1024


def guess_content_type(filename: str, provided_type: Optional[str] = None) -> Optional[str]:
    """
    An allowed client-declared type wins. Otherwise the filename decides
    (browsers often send ``application/octet-stream`` for HEIC). Falls back
    to whatever was declared so the caller can reject it.
    """
    if provided_type in ALLOWED_CONTENT_TYPES:
        return provided_type

    suffix = PurePath(filename or "").suffix.lower()
    from_name = IMAGE_EXTENSIONS.get(suffix) or mimetypes.guess_type(filename or "")[0]
    if from_name in ALLOWED_CONTENT_TYPES:
        return from_name
    return provided_type


def parse_date_param(value: str) -> date:
    """Parse a YYYY-MM-DD path/query value or fail with 400."""
    try:
        return parse_entry_date(value)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


async def image_response(
    photo_service: PhotoService,
    entry: PhotoEntry,
    side: str,
    access_type: str,
) -> Response:
    """
    Serve one side's image: 302 to a presigned URL when enabled, otherwise
    stream the bytes through the API.
    """
    start_time = time.perf_counter()

    def observe(result: str) -> None:
        image_access_total.labels(access_type=access_type, result=result).inc()
        image_access_duration_seconds.labels(access_type=access_type, result=result).observe(
            time.perf_counter() - start_time
        )

    redirect_url = photo_service.presigned_image_url(entry, side)
    if redirect_url:
        observe("success")
        return RedirectResponse(url=redirect_url, status_code=status.HTTP_302_FOUND)

    try:
        content = await photo_service.download_photo(entry, side)
    except PhotoMissingError:
        observe("failure")
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Photo not found")
    except ValueError:
        observe("failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load photo",
        )

    observe("success")
    return Response(
        content=content,
        media_type=entry.content_type(side) or "application/octet-stream",
        headers={"Cache-Control": "private, max-age=60"},
    )


@router.get(
    "",
    response_model=List[PhotoEntryResponse],
    summary="List all photo entries",
)
async def list_entries(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> List[PhotoEntryResponse]:
    """All of the current user's entries, newest date first."""
    entries = await PhotoService(db).get_all_photo_entries(current_user.id)
    return [entry_to_response(entry) for entry in entries]


@router.get(
    "/today",
    response_model=TodayEntryResponse,
    summary="Get today's entry (UTC)",
)
async def get_today_entry(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> TodayEntryResponse:
    today = get_today_date()
    entry = await PhotoService(db).get_photo_entry(current_user.id, parse_entry_date(today))
    return TodayEntryResponse(
        date=today,
        entry=entry_to_response(entry) if entry else None,
    )


@router.get(
    "/heatmap",
    response_model=HeatmapResponse,
    summary="Yearly activity heatmap",
)
async def get_heatmap(
    year: Optional[int] = Query(None, ge=1970, le=9999, description="Defaults to the newest year"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> HeatmapResponse:
    """
    Calendar grid of 7 weekday rows (Sunday first) by week columns.

    The year list always contains the current and previous year so photos
    can be added retroactively.
    """
    entries = await PhotoService(db).get_all_photo_entries(current_user.id)
    return heatmap.build_heatmap(entries, today=today_utc(), year=year)


@router.get(
    "/carousel",
    response_model=CarouselResponse,
    summary="Carousel slide over entries with photos",
)
async def get_carousel(
    index: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> CarouselResponse:
    entries = await PhotoService(db).get_all_photo_entries(current_user.id)
    return gallery.carousel_slide(entries, index)


@router.get(
    "/compare",
    response_model=ComparisonResponse,
    summary="Before/after comparison",
)
async def compare(
    side: PhotoSide = Query("front"),
    before: Optional[str] = Query(None, description="YYYY-MM-DD, defaults to the oldest photo"),
    after: Optional[str] = Query(None, description="YYYY-MM-DD, defaults to the newest photo"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> ComparisonResponse:
    """Needs at least two entries with a photo on the chosen side."""
    if before:
        parse_date_param(before)
    if after:
        parse_date_param(after)

    entries = await PhotoService(db).get_all_photo_entries(current_user.id)
    try:
        return gallery.build_comparison(entries, side, before=before, after=after)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get(
    "/{entry_date}",
    response_model=PhotoEntryResponse,
    summary="Get one day's entry",
)
async def get_entry(
    entry_date: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> PhotoEntryResponse:
    day = parse_date_param(entry_date)
    entry = await PhotoService(db).get_photo_entry(current_user.id, day)
    if not entry:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Photo entry not found",
        )
    return entry_to_response(entry)


@router.post(
    "/{entry_date}/{side}",
    response_model=PhotoUploadResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Upload the front or back photo for a day",
)
async def upload_photo(
    entry_date: str,
    side: PhotoSide,
    file: UploadFile = File(..., description="Image file"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> PhotoUploadResponse:
    """
    Upload one side's photo for a day. Past days may be filled in
    retroactively; future days are rejected.

    - **file**: Image file (JPEG, PNG, GIF, WebP, HEIC)

    Uploading again replaces the previous photo for that side; the other
    side is kept.
    """
    day = parse_date_param(entry_date)
    if day > today_utc():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot upload photos for future dates",
        )

    content = await file.read()
    limit = max_file_size()
    if len(content) > limit:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File too large. Maximum size: {limit // (1024 * 1024)}MB",
        )
    if not content:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Empty file",
        )

    content_type = guess_content_type(file.filename or "", file.content_type)
    if not content_type or content_type not in ALLOWED_CONTENT_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"File type not allowed. Allowed types: JPEG, PNG, GIF, WebP, HEIC. "
                   f"Provided: {file.content_type or 'unknown'}",
        )

    try:
        entry = await PhotoService(db).upload_side(
            user=current_user,
            entry_date=day,
            side=side,
            file_content=content,
            content_type=content_type,
        )
    except ValueError as e:
        photo_upload_total.labels(side=side, result="failure").inc()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e),
        )

    photo_upload_total.labels(side=side, result="success").inc()
    photo_upload_file_size_bytes.labels(side=side).observe(len(content))

    return PhotoUploadResponse(
        date=entry.date_str,
        side=side,
        content_type=content_type,
        file_size=len(content),
        entry=entry_to_response(entry),
    )


@router.delete(
    "/{entry_date}/{side}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete the front or back photo for a day",
)
async def delete_photo(
    entry_date: str,
    side: PhotoSide,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> None:
    """The day's entry is removed once it has no photos left."""
    day = parse_date_param(entry_date)
    photo_service = PhotoService(db)
    entry = await photo_service.get_photo_entry(current_user.id, day)
    if not entry or not entry.has_photo(side):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Photo not found",
        )
    await photo_service.delete_photo(entry, side)


@router.get(
    "/{entry_date}/{side}/image",
    summary="Image access (JWT required)",
)
async def get_photo_image(
    entry_date: str,
    side: PhotoSide,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """
    Owner-only image access. Redirects to a short-lived presigned URL when
    enabled, otherwise streams the bytes.
    """
    day = parse_date_param(entry_date)
    photo_service = PhotoService(db)
    entry = await photo_service.get_photo_entry(current_user.id, day)
    if not entry or not entry.has_photo(side):
        image_access_total.labels(access_type="authenticated", result="denied").inc()
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Photo not found")

    return await image_response(photo_service, entry, side, access_type="authenticated")
