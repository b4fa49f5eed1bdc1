"""
Daily photo entry model.
One row per user per calendar day, holding the front/back photo object keys.
Actual image files are stored in the object store.
"""
from datetime import date, datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Date, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fitsnap.database import Base

if TYPE_CHECKING:
    from fitsnap.models.user import User

PHOTO_SIDES = ("front", "back")


class PhotoEntry(Base):
    """Front/back progress photos for a single day."""

    __tablename__ = "photo_entries"
    __table_args__ = (
        UniqueConstraint("owner_id", "entry_date", name="uq_photo_entries_owner_date"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    owner_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    entry_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)

    # Storage keys (nullable: 한쪽만 업로드될 수 있음)
    front_photo_key: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    back_photo_key: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    front_content_type: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    back_content_type: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    # Refreshed on every save
    uploaded_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    owner: Mapped["User"] = relationship("User", back_populates="photo_entries")

    def photo_key(self, side: str) -> Optional[str]:
        return self.front_photo_key if side == "front" else self.back_photo_key

    def content_type(self, side: str) -> Optional[str]:
        return self.front_content_type if side == "front" else self.back_content_type

    def has_photo(self, side: Optional[str] = None) -> bool:
        """True if the given side (or either side) has a photo."""
        if side is None:
            return bool(self.front_photo_key or self.back_photo_key)
        return bool(self.photo_key(side))

    @property
    def photo_count(self) -> int:
        return int(bool(self.front_photo_key)) + int(bool(self.back_photo_key))

    @property
    def date_str(self) -> str:
        return self.entry_date.isoformat()

    def __repr__(self) -> str:
        return f"<PhotoEntry(owner_id={self.owner_id}, date={self.entry_date})>"
