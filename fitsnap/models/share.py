"""
Share link model for public, read-only access to a user's photo history.
"""
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import String, DateTime, Integer, ForeignKey, Boolean
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fitsnap.database import Base

if TYPE_CHECKING:
    from fitsnap.models.user import User


class ShareLink(Base):
    """
    One share link per user.
    Visibility is controlled by three permission flags; the link starts inactive.
    """

    __tablename__ = "share_links"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    owner_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True
    )

    # 24자 영숫자 토큰
    token: Mapped[str] = mapped_column(
        String(64), unique=True, index=True, nullable=False
    )

    # Permissions
    show_graph: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    show_photos: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    show_compare: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Statistics
    view_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    owner: Mapped["User"] = relationship("User", back_populates="share_link")

    def __repr__(self) -> str:
        return f"<ShareLink(id={self.id}, token={self.token[:6]}...)>"
