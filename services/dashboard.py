"""Dashboard facade combining the reading store, chart aggregation and caching."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from functools import lru_cache
from typing import List, Optional
from zoneinfo import ZoneInfo

from datastore.sqlite_store import SQLiteReadingStore, build_default_store
from models.records import Reading
from services.aggregator import AggregationEngine, ChartSeries
from services.freshness import FreshnessResult, FreshnessValidator, make_token
from services.pagination import PageRequest
from settings import get_settings


@dataclass
class ReadingPage:
    request: PageRequest
    rows: List[Reading]
    last_updated_token: Optional[str]

    @property
    def is_last(self) -> bool:
        return self.request.is_last(self.rows)

    @property
    def next_request(self) -> PageRequest:
        return self.request.next()


@dataclass
class DashboardSnapshot:
    freshness: FreshnessResult
    page: Optional[ReadingPage] = None
    chart: Optional[ChartSeries] = None


class DashboardService:
    """Entry points used by the HTTP layer."""

    def __init__(
        self,
        store: SQLiteReadingStore,
        engine: AggregationEngine,
        validator: FreshnessValidator,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.store = store
        self.engine = engine
        self.validator = validator
        self._logger = logger or logging.getLogger(__name__)

    def fetch_page(self, limit: int, offset: int) -> ReadingPage:
        request = PageRequest(limit=limit, offset=offset)
        rows = self.store.list_readings(request.limit, request.offset)
        updated_on = self.store.last_updated()
        token = make_token(updated_on) if updated_on is not None else None
        self._logger.info(
            "Fetched readings",
            extra={"limit": limit, "offset": offset, "row_count": len(rows)},
        )
        return ReadingPage(request=request, rows=rows, last_updated_token=token)

    def fetch_aggregate(self, period: timedelta, interval: timedelta) -> ChartSeries:
        return self.engine.aggregate_window(period, interval)

    def check_freshness(self, client_token: Optional[str]) -> FreshnessResult:
        return self.validator.check(client_token)

    def record_reading(
        self,
        temperature: float,
        humidity: float,
        timestamp: Optional[datetime] = None,
    ) -> int:
        reading_id = self.store.insert(temperature, humidity, timestamp)
        self._logger.info("Recorded reading", extra={"reading_id": reading_id})
        return reading_id

    def fetch_dashboard(
        self,
        limit: int,
        offset: int,
        period: timedelta,
        interval: timedelta,
        client_token: Optional[str] = None,
    ) -> DashboardSnapshot:
        """Full dashboard payload, skipped entirely when the client copy is current."""
        freshness = self.validator.check(client_token)
        self._logger.info(
            "Checked freshness",
            extra={"freshness": freshness.state.value, "etag": client_token},
        )
        if freshness.not_modified:
            return DashboardSnapshot(freshness=freshness)

        page = self.fetch_page(limit, offset)
        chart = self.fetch_aggregate(period, interval)
        return DashboardSnapshot(freshness=freshness, page=page, chart=chart)

    def shutdown(self) -> None:
        self.store.close()


@lru_cache
def build_default_service() -> DashboardService:
    """Factory that wires the dashboard with the configured store and timezone."""
    settings = get_settings()
    store = build_default_store()
    engine = AggregationEngine(source=store, display_tz=ZoneInfo(settings.timezone))
    validator = FreshnessValidator(source=store)
    return DashboardService(store=store, engine=engine, validator=validator)
