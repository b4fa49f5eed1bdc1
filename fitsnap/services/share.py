"""
Share link service.
Each user owns at most one share link; visitors resolve it by token.
"""
from datetime import datetime
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from fitsnap.models.photo_entry import PhotoEntry
from fitsnap.models.share import ShareLink
from fitsnap.models.user import User
from fitsnap.schemas.share import (
    SharePermissions,
    ShareLinkResponse,
    SharedEntry,
    SharedViewResponse,
)
from fitsnap.services.photo import PhotoService
from fitsnap.utils.logger import log_info
from fitsnap.utils.security import generate_share_token

# 토큰 충돌 시 재시도 횟수
_TOKEN_ATTEMPTS = 5


def shared_image_url(token: str, entry: PhotoEntry, side: str) -> str:
    return f"/share/{token}/photos/{entry.date_str}/{side}/image"


def share_link_permissions(link: ShareLink) -> SharePermissions:
    return SharePermissions.model_validate(link)


def share_link_to_response(link: ShareLink) -> ShareLinkResponse:
    return ShareLinkResponse(
        token=link.token,
        is_active=link.is_active,
        permissions=share_link_permissions(link),
        view_count=link.view_count,
        created_at=link.created_at,
        updated_at=link.updated_at,
        share_url=f"/share/{link.token}",
    )


class ShareService:
    """Service for managing a user's share link and serving the public view."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _new_token(self) -> str:
        for _ in range(_TOKEN_ATTEMPTS):
            token = generate_share_token()
            if await self.get_share_link_by_token(token) is None:
                return token
        raise ValueError("Failed to generate a unique share token")

    async def get_user_share_link(self, user_id: int) -> Optional[ShareLink]:
        result = await self.db.execute(
            select(ShareLink).where(ShareLink.owner_id == user_id)
        )
        return result.scalar_one_or_none()

    async def get_or_create_share_link(self, user: User) -> ShareLink:
        """
        Return the user's share link, creating it on first use.

        New links allow everything but start inactive.
        """
        link = await self.get_user_share_link(user.id)
        if link is not None:
            return link

        link = ShareLink(
            owner_id=user.id,
            token=await self._new_token(),
            show_graph=True,
            show_photos=True,
            show_compare=True,
            is_active=False,
            view_count=0,
        )
        self.db.add(link)
        await self.db.flush()
        await self.db.refresh(link)
        log_info("Share link created", event="share", user_id=user.id)
        return link

    async def update_share_link(
        self,
        link: ShareLink,
        permissions: Optional[SharePermissions] = None,
        is_active: Optional[bool] = None,
    ) -> ShareLink:
        """Partial update; omitted arguments leave the link unchanged."""
        if permissions is not None:
            link.show_graph = permissions.show_graph
            link.show_photos = permissions.show_photos
            link.show_compare = permissions.show_compare
        if is_active is not None:
            link.is_active = is_active

        await self.db.flush()
        await self.db.refresh(link)
        log_info("Share link updated", event="share", user_id=link.owner_id, is_active=link.is_active)
        return link

    async def regenerate_share_token(self, link: ShareLink) -> ShareLink:
        """
        Replace the token so the old URL stops resolving.

        Permissions are kept; the link is deactivated and its creation time
        and view count reset.
        """
        link.token = await self._new_token()
        link.is_active = False
        link.view_count = 0
        link.created_at = datetime.utcnow()

        await self.db.flush()
        await self.db.refresh(link)
        log_info("Share token regenerated", event="share", user_id=link.owner_id)
        return link

    async def get_share_link_by_token(self, token: str) -> Optional[ShareLink]:
        result = await self.db.execute(
            select(ShareLink).where(ShareLink.token == token)
        )
        return result.scalar_one_or_none()

    async def get_shared_entries(self, link: ShareLink) -> list[PhotoEntry]:
        return await PhotoService(self.db).get_all_photo_entries(link.owner_id)

    async def record_view(self, link: ShareLink) -> None:
        # 조회수만 올림: updated_at은 소유자 변경 시각으로 유지
        await self.db.execute(
            update(ShareLink)
            .where(ShareLink.id == link.id)
            .values(view_count=ShareLink.view_count + 1, updated_at=ShareLink.updated_at)
        )
        await self.db.refresh(link)

    async def build_share_view(self, link: ShareLink) -> SharedViewResponse:
        """
        Public payload: permissions plus every entry's date.
        Photo URLs are only included when the link allows photos.
        """
        entries = await self.get_shared_entries(link)
        await self.record_view(link)

        show_photos = link.show_photos
        shared = []
        for entry in entries:
            shared.append(
                SharedEntry(
                    date=entry.date_str,
                    front_photo_url=(
                        shared_image_url(link.token, entry, "front")
                        if show_photos and entry.front_photo_key else None
                    ),
                    back_photo_url=(
                        shared_image_url(link.token, entry, "back")
                        if show_photos and entry.back_photo_key else None
                    ),
                )
            )

        return SharedViewResponse(
            permissions=share_link_permissions(link),
            entries=shared,
        )
