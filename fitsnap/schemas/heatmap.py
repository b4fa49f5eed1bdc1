"""
Heatmap calendar schemas.
"""
from typing import List, Optional

from pydantic import BaseModel, Field


class HeatmapCell(BaseModel):
    """State of one calendar day."""

    date: str
    photo_count: int = Field(..., ge=0, le=2)
    level: int = Field(..., ge=0, le=2, description="0=no photos, 1=one side, 2=both sides")
    has_front: bool = False
    has_back: bool = False
    is_today: bool = False
    is_future: bool = False
    tooltip: str


class MonthLabel(BaseModel):
    month: str
    week_index: int


class HeatmapResponse(BaseModel):
    """
    Year grid of 7 rows (Sunday..Saturday) by week columns.
    Cells outside the year are null.
    """

    year: int
    years: List[int]
    weeks: int
    grid: List[List[Optional[HeatmapCell]]]
    month_labels: List[MonthLabel]
    workout_days: int = Field(..., description="Days with at least one photo, across all years")
