"""
Account row. Owns the user's photo entries and at most one share link.
"""
from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import Boolean, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fitsnap.database import Base

if TYPE_CHECKING:
    from fitsnap.models.photo_entry import PhotoEntry
    from fitsnap.models.share import ShareLink


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    username: Mapped[str] = mapped_column(String(100), unique=True, index=True, nullable=False)
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # 클라이언트가 사진을 흐리게 표시할지 (서버는 저장만 함)
    blur_enabled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    photo_entries: Mapped[List["PhotoEntry"]] = relationship(
        back_populates="owner", cascade="all, delete-orphan"
    )
    share_link: Mapped[Optional["ShareLink"]] = relationship(
        back_populates="owner", cascade="all, delete-orphan", uselist=False
    )

    def __repr__(self) -> str:
        return f"<User id={self.id}>"
