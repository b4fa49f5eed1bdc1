"""
Carousel and before/after comparison over photo entries.

Entries are expected newest first, as returned by
``PhotoService.get_all_photo_entries``.
"""
from typing import List, Optional, Sequence, Tuple

from fitsnap.models.photo_entry import PhotoEntry
from fitsnap.schemas.photo import (
    CarouselResponse,
    CarouselSlide,
    ComparisonImage,
    ComparisonResponse,
)
from fitsnap.services.photo import UrlBuilder, entry_to_response, owner_image_url

MIN_COMPARE_ENTRIES = 2
NOT_ENOUGH_PHOTOS_MESSAGE = "You need at least 2 photos to compare progress."


def entries_with_photos(
    entries: Sequence[PhotoEntry],
    side: Optional[str] = None,
) -> List[PhotoEntry]:
    """Entries having any photo, or a photo on ``side``; order is preserved."""
    return [entry for entry in entries if entry.has_photo(side)]


def carousel_slide(
    entries: Sequence[PhotoEntry],
    index: int = 0,
    url_builder: UrlBuilder = owner_image_url,
) -> CarouselResponse:
    """
    One carousel position over entries with photos.

    Out-of-range indexes are clamped to the first/last slide.
    """
    slides = entries_with_photos(entries)
    total = len(slides)
    if total == 0:
        return CarouselResponse(total=0, slide=None)

    index = max(0, min(index, total - 1))
    return CarouselResponse(
        total=total,
        slide=CarouselSlide(
            entry=entry_to_response(slides[index], url_builder),
            index=index,
            position=index + 1,
            total=total,
            has_previous=index > 0,
            has_next=index < total - 1,
        ),
    )


def comparison_defaults(
    entries: Sequence[PhotoEntry],
    side: str,
) -> Optional[Tuple[str, str]]:
    """
    Default (before, after) dates: oldest and newest entries with ``side``.
    None when fewer than two entries qualify.
    """
    candidates = entries_with_photos(entries, side)
    if len(candidates) < MIN_COMPARE_ENTRIES:
        return None
    return candidates[-1].date_str, candidates[0].date_str


def build_comparison(
    entries: Sequence[PhotoEntry],
    side: str,
    before: Optional[str] = None,
    after: Optional[str] = None,
    url_builder: UrlBuilder = owner_image_url,
) -> ComparisonResponse:
    """
    Resolve a before/after pair for one side.

    Missing dates fall back to the defaults. ``can_compare`` is only set when
    both dates have an image for the side and the dates differ.

    Raises:
        ValueError: If fewer than two entries have a photo for ``side``
    """
    defaults = comparison_defaults(entries, side)
    if defaults is None:
        raise ValueError(NOT_ENOUGH_PHOTOS_MESSAGE)

    candidates = entries_with_photos(entries, side)
    by_date = {entry.date_str: entry for entry in candidates}
    before_date = before or defaults[0]
    after_date = after or defaults[1]

    def image(day: str) -> ComparisonImage:
        entry = by_date.get(day)
        return ComparisonImage(
            date=day,
            url=url_builder(entry, side) if entry is not None else None,
        )

    before_image = image(before_date)
    after_image = image(after_date)

    return ComparisonResponse(
        side=side,
        available_dates=[entry.date_str for entry in candidates],
        before=before_image,
        after=after_image,
        can_compare=bool(before_image.url and after_image.url and before_date != after_date),
    )
