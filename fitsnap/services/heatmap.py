"""
Heatmap calendar computation.

The year is laid out GitHub-style: 7 rows (Sunday=0 .. Saturday=6) by week
columns. Cells before January 1st and trailing padding are None.
"""
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Tuple

from fitsnap.models.photo_entry import PhotoEntry
from fitsnap.schemas.heatmap import HeatmapCell, HeatmapResponse, MonthLabel

MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def sunday_weekday(day: date) -> int:
    """Weekday with Sunday=0 .. Saturday=6."""
    return (day.weekday() + 1) % 7


def generate_year_grid(year: int) -> List[List[Optional[str]]]:
    """
    Build the 7-row grid of ISO dates for a year.

    Every row is padded with None to the longest row, so the grid is
    rectangular (53 or 54 columns).
    """
    rows: List[List[Optional[str]]] = [[] for _ in range(7)]
    start = date(year, 1, 1)

    for weekday in range(sunday_weekday(start)):
        rows[weekday].append(None)

    # date.max는 9999-12-31: 다음 날로 넘어가지 않도록 일수만큼만 순회
    for offset in range((date(year, 12, 31) - start).days + 1):
        day = start + timedelta(days=offset)
        rows[sunday_weekday(day)].append(day.isoformat())

    width = max(len(row) for row in rows)
    for row in rows:
        row.extend([None] * (width - len(row)))
    return rows


def get_month_labels(year: int) -> List[Tuple[str, int]]:
    """(month abbreviation, week column of the 1st) for each month."""
    start = date(year, 1, 1)
    offset = sunday_weekday(start)
    labels = []
    for month in range(1, 13):
        day_of_year = (date(year, month, 1) - start).days
        labels.append((MONTHS[month - 1], (day_of_year + offset) // 7))
    return labels


def get_years_from_entries(
    entries: Iterable[PhotoEntry],
    today: date,
    include_previous: bool = True,
) -> List[int]:
    """
    Years to offer in the year selector, newest first.

    The current year is always present; the previous year is added for the
    owner's view so retroactive uploads are possible.
    """
    years = {today.year}
    if include_previous:
        years.add(today.year - 1)
    years.update(entry.entry_date.year for entry in entries)
    return sorted(years, reverse=True)


def tooltip_text(day: str, entry: Optional[PhotoEntry]) -> str:
    if entry is None or not entry.has_photo():
        return f"{day} - No photos"
    parts = []
    if entry.front_photo_key:
        parts.append("Front")
    if entry.back_photo_key:
        parts.append("Back")
    count = len(parts)
    return f"{day}: {count} photo{'s' if count != 1 else ''} ({', '.join(parts)})"


def build_day_cell(day: str, entry: Optional[PhotoEntry], today: date) -> HeatmapCell:
    count = entry.photo_count if entry is not None else 0
    iso_today = today.isoformat()
    return HeatmapCell(
        date=day,
        photo_count=count,
        level=count,
        has_front=bool(entry and entry.front_photo_key),
        has_back=bool(entry and entry.back_photo_key),
        is_today=day == iso_today,
        # ISO 날짜 문자열은 사전순 비교가 날짜 비교와 같다
        is_future=day > iso_today,
        tooltip=tooltip_text(day, entry),
    )


def count_workout_days(entries: Iterable[PhotoEntry]) -> int:
    """Number of distinct days with at least one photo."""
    return len({entry.entry_date for entry in entries if entry.has_photo()})


def build_heatmap(
    entries: List[PhotoEntry],
    today: date,
    year: Optional[int] = None,
    include_previous_year: bool = True,
) -> HeatmapResponse:
    """
    Full heatmap payload for one year.

    ``year`` defaults to the newest available year.
    """
    years = get_years_from_entries(entries, today, include_previous=include_previous_year)
    if year is None:
        year = years[0]

    by_date: Dict[str, PhotoEntry] = {entry.date_str: entry for entry in entries}
    grid = [
        [build_day_cell(day, by_date.get(day), today) if day else None for day in row]
        for row in generate_year_grid(year)
    ]

    return HeatmapResponse(
        year=year,
        years=years,
        weeks=len(grid[0]),
        grid=grid,
        month_labels=[MonthLabel(month=m, week_index=w) for m, w in get_month_labels(year)],
        workout_days=count_workout_days(entries),
    )
