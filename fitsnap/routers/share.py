"""
Share routers.

``router`` serves the public, token-scoped read-only view of a user's photo
history. ``settings_router`` lets the owner manage their single share link.
"""
import time
from functools import partial
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from fitsnap.config import get_settings
from fitsnap.database import get_db
from fitsnap.dependencies.auth import get_current_active_user
from fitsnap.middlewares.rate_limit_middleware import get_rate_limit_decorator
from fitsnap.models.share import ShareLink
from fitsnap.models.user import User
from fitsnap.routers.photos import image_response, parse_date_param
from fitsnap.schemas.heatmap import HeatmapResponse
from fitsnap.schemas.photo import CarouselResponse, ComparisonResponse, PhotoSide
from fitsnap.schemas.share import ShareLinkResponse, ShareLinkUpdate, SharedViewResponse
from fitsnap.services import gallery, heatmap
from fitsnap.services.photo import PhotoService, today_utc
from fitsnap.services.share import ShareService, share_link_to_response, shared_image_url
from fitsnap.utils.client_ip import get_client_identifier
from fitsnap.utils.logger import log_error, log_info, log_warning
from fitsnap.utils.security import is_well_formed_share_token
from fitsnap.utils.prometheus_metrics import (
    image_access_total,
    rate_limit_requests_total,
    share_link_access_duration_seconds,
    share_link_access_total,
    share_link_brute_force_attempts,
    share_link_operations_total,
)


router = APIRouter(prefix="/share", tags=["Shared View"])
settings_router = APIRouter(prefix="/share-settings", tags=["Share Settings"])

# Rate limiting 설정
share_rate_limit = get_rate_limit_decorator(f"{get_settings().rate_limit_share_per_minute}/minute")


def _observe_access(token_status: str, result: str, start_time: float) -> None:
    share_link_access_total.labels(token_status=token_status, result=result).inc()
    share_link_access_duration_seconds.labels(token_status=token_status, result=result).observe(
        time.perf_counter() - start_time
    )


async def resolve_share_link(token: str, request: Request, db: AsyncSession) -> ShareLink:
    """
    Look up an active share link by token.

    Raises:
        HTTPException: 404 for unknown tokens, 403 for revoked links
    """
    start_time = time.perf_counter()

    # 메트릭 수집: Rate limit 체크 요청 (허용됨)
    rate_limit_requests_total.labels(endpoint=request.url.path, status="allowed").inc()

    # 형식이 틀린 토큰은 DB 조회 없이 거부
    link = None
    if is_well_formed_share_token(token):
        link = await ShareService(db).get_share_link_by_token(token)
    if link is None:
        # 무효한 토큰 (브루트포스 시도 가능성)
        _observe_access("invalid", "denied", start_time)
        share_link_brute_force_attempts.inc()
        log_warning("Unknown share token", event="share", client_id=get_client_identifier(request))
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Share link not found",
        )

    if not link.is_active:
        _observe_access("revoked", "denied", start_time)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="This share link has been revoked",
        )

    _observe_access("valid", "success", start_time)
    return link


def require_permission(allowed: bool, what: str) -> None:
    if not allowed:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"The owner has not shared {what}",
        )


@router.get(
    "/{token}",
    response_model=SharedViewResponse,
    summary="Access a shared photo history",
)
@share_rate_limit
async def get_shared_view(
    token: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> SharedViewResponse:
    """
    Public view of a user's entries. **No authentication.**

    Every entry's date is returned; photo URLs are only filled in when the
    owner allows photos.
    """
    link = await resolve_share_link(token, request, db)
    try:
        return await ShareService(db).build_share_view(link)
    except Exception as e:
        log_error(
            "Failed to build shared view",
            event="share",
            exc_info=True,
            error_type=type(e).__name__,
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error",
        )


@router.get(
    "/{token}/heatmap",
    response_model=HeatmapResponse,
    summary="Shared activity heatmap",
)
@share_rate_limit
async def get_shared_heatmap(
    token: str,
    request: Request,
    year: Optional[int] = Query(None, ge=1970, le=9999),
    db: AsyncSession = Depends(get_db),
) -> HeatmapResponse:
    link = await resolve_share_link(token, request, db)
    require_permission(link.show_graph, "the activity graph")

    entries = await ShareService(db).get_shared_entries(link)
    return heatmap.build_heatmap(entries, today=today_utc(), year=year, include_previous_year=False)


@router.get(
    "/{token}/carousel",
    response_model=CarouselResponse,
    summary="Shared photo carousel",
)
@share_rate_limit
async def get_shared_carousel(
    token: str,
    request: Request,
    index: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
) -> CarouselResponse:
    link = await resolve_share_link(token, request, db)
    require_permission(link.show_photos, "photos")

    entries = await ShareService(db).get_shared_entries(link)
    return gallery.carousel_slide(entries, index, url_builder=partial(shared_image_url, link.token))


@router.get(
    "/{token}/compare",
    response_model=ComparisonResponse,
    summary="Shared before/after comparison",
)
@share_rate_limit
async def get_shared_comparison(
    token: str,
    request: Request,
    side: PhotoSide = Query("front"),
    before: Optional[str] = Query(None),
    after: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> ComparisonResponse:
    link = await resolve_share_link(token, request, db)
    require_permission(link.show_compare and link.show_photos, "progress comparison")
    if before:
        parse_date_param(before)
    if after:
        parse_date_param(after)

    entries = await ShareService(db).get_shared_entries(link)
    try:
        return gallery.build_comparison(
            entries,
            side,
            before=before,
            after=after,
            url_builder=partial(shared_image_url, link.token),
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get(
    "/{token}/photos/{entry_date}/{side}/image",
    summary="Shared image (no auth)",
)
@share_rate_limit
async def get_shared_image(
    token: str,
    entry_date: str,
    side: PhotoSide,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    """
    공유 이미지 접근. **인증 불필요**. 공유 링크가 활성 상태이고 사진 공개가
    허용된 경우에만 소유자의 사진에 접근 가능.
    """
    link = await resolve_share_link(token, request, db)
    if not link.show_photos:
        image_access_total.labels(access_type="shared", result="denied").inc()
        require_permission(False, "photos")

    day = parse_date_param(entry_date)
    photo_service = PhotoService(db)
    entry = await photo_service.get_photo_entry(link.owner_id, day)
    if not entry or not entry.has_photo(side):
        image_access_total.labels(access_type="shared", result="denied").inc()
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Photo not found")

    return await image_response(photo_service, entry, side, access_type="shared")


@settings_router.get(
    "",
    response_model=ShareLinkResponse,
    summary="Get (or create) my share link",
)
async def get_share_settings(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> ShareLinkResponse:
    """
    The first call creates the link with every permission on, but inactive.
    """
    service = ShareService(db)
    existing = await service.get_user_share_link(current_user.id)
    if existing is not None:
        return share_link_to_response(existing)

    link = await service.get_or_create_share_link(current_user)
    share_link_operations_total.labels(operation="create", result="success").inc()
    return share_link_to_response(link)


@settings_router.patch(
    "",
    response_model=ShareLinkResponse,
    summary="Update share permissions or activation",
)
async def update_share_settings(
    update: ShareLinkUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> ShareLinkResponse:
    service = ShareService(db)
    link = await service.get_or_create_share_link(current_user)
    link = await service.update_share_link(
        link,
        permissions=update.permissions,
        is_active=update.is_active,
    )
    share_link_operations_total.labels(operation="update", result="success").inc()
    return share_link_to_response(link)


@settings_router.post(
    "/regenerate",
    response_model=ShareLinkResponse,
    summary="Regenerate the share token",
)
async def regenerate_share_token(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> ShareLinkResponse:
    """
    Issue a new token. The old URL stops working immediately and the link
    must be activated again.
    """
    service = ShareService(db)
    link = await service.get_or_create_share_link(current_user)
    try:
        link = await service.regenerate_share_token(link)
    except ValueError as e:
        share_link_operations_total.labels(operation="regenerate", result="failure").inc()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e),
        )

    share_link_operations_total.labels(operation="regenerate", result="success").inc()
    log_info("Share token regenerated", event="share")
    return share_link_to_response(link)
