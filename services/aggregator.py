"""Time-bucketed aggregation of readings for the dashboard chart."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Callable, List, Optional, Protocol

from models.records import Bucket
from services.errors import InvalidArgument

CHART_FORMAT = "%d/%m %H:%M"


class BucketSource(Protocol):
    def aggregate(self, start: datetime, end: datetime, width: timedelta) -> List[Bucket]:
        ...


@dataclass
class ChartSeries:
    """Chart labels with temperature and humidity series aligned by index."""

    labels: List[str] = field(default_factory=list)
    temperature: List[float] = field(default_factory=list)
    humidity: List[float] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.labels)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AggregationEngine:
    """Maps a look-back window onto per-bucket averages from the store."""

    def __init__(
        self,
        source: BucketSource,
        display_tz: tzinfo,
        logger: Optional[logging.Logger] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.source = source
        self.display_tz = display_tz
        self._logger = logger or logging.getLogger(__name__)
        self._clock = clock

    def aggregate_window(
        self,
        period: timedelta,
        interval: timedelta,
        now: Optional[datetime] = None,
    ) -> ChartSeries:
        if interval <= timedelta(0):
            raise InvalidArgument("interval must be a positive duration.")
        if period < timedelta(0):
            raise InvalidArgument("period must not be negative.")

        end = now if now is not None else self._clock()
        start = end - period
        buckets = self.source.aggregate(start, end, interval)
        self._logger.info(
            "Aggregated readings",
            extra={
                "bucket_count": len(buckets),
                "period_s": int(period.total_seconds()),
                "interval_s": int(interval.total_seconds()),
            },
        )
        return self.to_series(buckets)

    def to_series(self, buckets: List[Bucket]) -> ChartSeries:
        series = ChartSeries()
        for bucket in buckets:
            series.labels.append(self.format_label(bucket.bucket_start))
            series.temperature.append(bucket.avg_temperature)
            series.humidity.append(bucket.avg_humidity)
        return series

    def format_label(self, moment: datetime) -> str:
        return moment.astimezone(self.display_tz).strftime(CHART_FORMAT)
