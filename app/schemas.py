"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class ReadingOut(BaseModel):
    """One stored reading as shown in the dashboard table."""

    id: int
    temperature: float
    humidity: float
    timestamp: datetime
    label: str = Field(..., description="Timestamp formatted in the dashboard timezone.")


class ReadingPageOut(BaseModel):
    rows: List[ReadingOut] = Field(default_factory=list)
    limit: int = Field(..., ge=0)
    offset: int = Field(..., ge=0)
    next_offset: int = Field(..., ge=0, description="Offset of the following page.")
    last_updated: Optional[str] = Field(
        default=None, description="Freshness token of the newest stored reading."
    )


class ChartOut(BaseModel):
    """Bucketed averages; all three lists have the same length."""

    labels: List[str] = Field(default_factory=list)
    temperature: List[float] = Field(default_factory=list)
    humidity: List[float] = Field(default_factory=list)


class DashboardOut(BaseModel):
    page: ReadingPageOut
    chart: ChartOut


class RecordReadingResponse(BaseModel):
    message: str = "Data stored correctly"
    id: int
