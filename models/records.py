"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, slots=True)
class Reading:
    """A single persisted temperature/humidity observation."""

    id: int
    temperature: float
    humidity: float
    timestamp: datetime


@dataclass(frozen=True, slots=True)
class Bucket:
    """Averages over the readings in ``[bucket_start, bucket_start + width)``."""

    bucket_start: datetime
    avg_temperature: float
    avg_humidity: float
    reading_count: int
