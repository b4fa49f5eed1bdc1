"""
Photo entry service.
Stores front/back photos in object storage and keeps one entry row per day.
"""
import re
from datetime import date, datetime, timezone
from typing import Callable, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fitsnap.config import get_settings
from fitsnap.models.photo_entry import PhotoEntry, PHOTO_SIDES
from fitsnap.models.user import User
from fitsnap.schemas.photo import PhotoEntryResponse
from fitsnap.services.object_storage import StorageError, get_storage_service
from fitsnap.utils.logger import log_error, log_info, log_warning

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

# (entry, side) -> URL
UrlBuilder = Callable[[PhotoEntry, str], str]


def today_utc() -> date:
    return datetime.now(timezone.utc).date()


def get_today_date() -> str:
    """Today's date in UTC as YYYY-MM-DD."""
    return today_utc().isoformat()


def parse_entry_date(value: str) -> date:
    """
    Parse a strict YYYY-MM-DD calendar date.

    Raises:
        ValueError: If the string is not a real date in that format
    """
    if not _DATE_RE.match(value or ""):
        raise ValueError("Invalid date format. Use YYYY-MM-DD")
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        raise ValueError("Invalid date format. Use YYYY-MM-DD")


def validate_side(side: str) -> str:
    if side not in PHOTO_SIDES:
        raise ValueError("Side must be 'front' or 'back'")
    return side


def storage_key(user_id: int, entry_date: date, side: str) -> str:
    """Object key: photos/{user_id}/{date}/{side}.jpg"""
    return f"photos/{user_id}/{entry_date.isoformat()}/{side}.jpg"


def owner_image_url(entry: PhotoEntry, side: str) -> str:
    return f"/photos/{entry.date_str}/{side}/image"


def entry_to_response(entry: PhotoEntry, url_builder: UrlBuilder = owner_image_url) -> PhotoEntryResponse:
    """Build the API view of an entry; URLs only for sides that have a photo."""
    return PhotoEntryResponse(
        date=entry.date_str,
        front_photo_url=url_builder(entry, "front") if entry.front_photo_key else None,
        back_photo_url=url_builder(entry, "back") if entry.back_photo_key else None,
        photo_count=entry.photo_count,
        uploaded_at=entry.uploaded_at,
    )


class PhotoMissingError(ValueError):
    """The entry has no photo on that side, or its object is gone from storage."""


class PhotoService:
    """
    Service for handling photo entry operations.
    Integrates with object storage for the image files.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.storage = get_storage_service()
        self.settings = get_settings()

    async def upload_photo(
        self,
        user: User,
        entry_date: date,
        file_content: bytes,
        content_type: str,
        side: str,
    ) -> str:
        """
        Upload one side's photo to object storage.

        Re-uploading the same day and side overwrites the previous object.

        Returns:
            The storage key

        Raises:
            ValueError: If the storage upload fails
        """
        key = storage_key(user.id, entry_date, side)
        try:
            await self.storage.upload_file(
                file_content=file_content,
                object_name=key,
                content_type=content_type,
            )
        except Exception as e:
            log_error(
                "Photo upload failed",
                event="photo",
                exc_info=True,
                user_id=user.id,
                object_key=key,
                error_type=type(e).__name__,
            )
            raise ValueError("Failed to upload photo. Please try again.")
        return key

    async def save_photo_entry(
        self,
        user_id: int,
        entry_date: date,
        front_photo_key: Optional[str] = None,
        back_photo_key: Optional[str] = None,
        front_content_type: Optional[str] = None,
        back_content_type: Optional[str] = None,
    ) -> PhotoEntry:
        """
        Create or merge the entry for a day.

        Existing entries keep any side that is not provided; ``uploaded_at``
        is refreshed on every save.
        """
        entry = await self.get_photo_entry(user_id, entry_date)
        now = datetime.utcnow()

        if entry is None:
            entry = PhotoEntry(
                owner_id=user_id,
                entry_date=entry_date,
                front_photo_key=front_photo_key,
                back_photo_key=back_photo_key,
                front_content_type=front_content_type if front_photo_key else None,
                back_content_type=back_content_type if back_photo_key else None,
                uploaded_at=now,
            )
            self.db.add(entry)
        else:
            if front_photo_key is not None:
                entry.front_photo_key = front_photo_key
                entry.front_content_type = front_content_type
            if back_photo_key is not None:
                entry.back_photo_key = back_photo_key
                entry.back_content_type = back_content_type
            entry.uploaded_at = now

        await self.db.flush()
        await self.db.refresh(entry)
        return entry

    async def upload_side(
        self,
        user: User,
        entry_date: date,
        side: str,
        file_content: bytes,
        content_type: str,
    ) -> PhotoEntry:
        """Upload one side and merge it into the day's entry."""
        key = await self.upload_photo(user, entry_date, file_content, content_type, side)
        if side == "front":
            entry = await self.save_photo_entry(
                user.id, entry_date, front_photo_key=key, front_content_type=content_type
            )
        else:
            entry = await self.save_photo_entry(
                user.id, entry_date, back_photo_key=key, back_content_type=content_type
            )
        log_info("Photo uploaded", event="photo", user_id=user.id, date=entry.date_str, side=side)
        return entry

    async def get_photo_entry(self, user_id: int, entry_date: date) -> Optional[PhotoEntry]:
        result = await self.db.execute(
            select(PhotoEntry).where(
                PhotoEntry.owner_id == user_id,
                PhotoEntry.entry_date == entry_date,
            )
        )
        return result.scalar_one_or_none()

    async def get_all_photo_entries(self, user_id: int) -> List[PhotoEntry]:
        """All entries for a user, newest date first."""
        result = await self.db.execute(
            select(PhotoEntry)
            .where(PhotoEntry.owner_id == user_id)
            .order_by(PhotoEntry.entry_date.desc())
        )
        return list(result.scalars().all())

    async def delete_photo(self, entry: PhotoEntry, side: str) -> Optional[PhotoEntry]:
        """
        Remove one side's photo.

        Storage failures are logged and the row is still updated (orphan
        objects are tolerated). An entry left without photos is deleted.

        Returns:
            The updated entry, or None if the entry was removed
        """
        key = entry.photo_key(side)
        if not key:
            raise ValueError("Photo not found")

        deleted = await self.storage.delete_file(key)
        if not deleted:
            log_error(
                "Photo storage delete failed",
                event="photo",
                user_id=entry.owner_id,
                date=entry.date_str,
                side=side,
            )

        if side == "front":
            entry.front_photo_key = None
            entry.front_content_type = None
        else:
            entry.back_photo_key = None
            entry.back_content_type = None

        if not entry.has_photo():
            await self.db.delete(entry)
            await self.db.flush()
            return None

        await self.db.flush()
        await self.db.refresh(entry)
        return entry

    async def download_photo(self, entry: PhotoEntry, side: str) -> bytes:
        """
        Download one side's photo from object storage.

        When the download fails the object is looked up with a HEAD request
        so a missing object can be told apart from a storage outage.

        Raises:
            PhotoMissingError: If the side has no photo or its object is gone
            ValueError: If storage could not be reached
        """
        key = entry.photo_key(side)
        if not key:
            raise PhotoMissingError("Photo not found")
        try:
            return await self.storage.download_file(key)
        except StorageError as e:
            download_error = e

        try:
            exists = await self.storage.file_exists(key)
        except StorageError:
            exists = True
        if not exists:
            log_warning(
                "Photo object missing from storage",
                event="photo",
                user_id=entry.owner_id,
                date=entry.date_str,
                side=side,
            )
            raise PhotoMissingError("Photo not found")

        log_error(
            "Photo download failed",
            event="photo",
            error=str(download_error),
            user_id=entry.owner_id,
            date=entry.date_str,
            side=side,
        )
        raise ValueError("Failed to download photo")

    def presigned_image_url(self, entry: PhotoEntry, side: str) -> Optional[str]:
        """
        Presigned GET URL when redirects are enabled, otherwise None
        (the caller streams the bytes instead).
        """
        key = entry.photo_key(side)
        if not key or not self.settings.storage_presigned_redirect:
            return None
        try:
            return self.storage.generate_presigned_download_url(key)
        except Exception as e:
            log_warning("Presigned URL unavailable, streaming instead", event="photo", error=str(e)[:200])
            return None
