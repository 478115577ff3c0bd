"""HTTP route definitions for the service."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, tzinfo
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Response, status

from app.params import interval_param, period_param
from app.schemas import (
    ChartOut,
    DashboardOut,
    ReadingOut,
    ReadingPageOut,
    RecordReadingResponse,
)
from models.records import Reading
from services.aggregator import ChartSeries
from services.dashboard import DashboardService, ReadingPage, build_default_service
from services.errors import InvalidArgument, NotAvailable
from services.freshness import format_etag, parse_etag
from services.pagination import DEFAULT_LIMIT

logger = logging.getLogger(__name__)

router = APIRouter()

RETRY_AFTER_SECONDS = "5"


def get_service() -> DashboardService:
    return build_default_service()


def _row_label(moment: datetime, display_tz: tzinfo) -> str:
    local = moment.astimezone(display_tz)
    return f"{local:%A %b} {local.day} {local:%H:%M:%S}"


def _reading_out(reading: Reading, display_tz: tzinfo) -> ReadingOut:
    return ReadingOut(
        id=reading.id,
        temperature=reading.temperature,
        humidity=reading.humidity,
        timestamp=reading.timestamp,
        label=_row_label(reading.timestamp, display_tz),
    )


def _page_out(page: ReadingPage, display_tz: tzinfo) -> ReadingPageOut:
    return ReadingPageOut(
        rows=[_reading_out(row, display_tz) for row in page.rows],
        limit=page.request.limit,
        offset=page.request.offset,
        next_offset=page.next_request.offset,
        last_updated=page.last_updated_token,
    )


def _chart_out(chart: ChartSeries) -> ChartOut:
    return ChartOut(
        labels=chart.labels,
        temperature=chart.temperature,
        humidity=chart.humidity,
    )


def _map_error(exc: Exception) -> HTTPException:
    if isinstance(exc, InvalidArgument):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    logger.error("Reading store unavailable", extra={"reason": str(exc)})
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=str(exc),
        headers={"Retry-After": RETRY_AFTER_SECONDS},
    )


@router.get(
    "/api/dashboard",
    response_model=DashboardOut,
    summary="Latest readings and chart, with conditional re-fetch via ETag.",
    responses={304: {"description": "No new readings since the supplied ETag."}},
)
def get_dashboard(
    response: Response,
    limit: int = Query(DEFAULT_LIMIT, ge=0),
    offset: int = Query(0, ge=0),
    period: timedelta = Depends(period_param),
    interval: timedelta = Depends(interval_param),
    if_none_match: Optional[str] = Header(None),
    service: DashboardService = Depends(get_service),
) -> DashboardOut | Response:
    try:
        snapshot = service.fetch_dashboard(
            limit, offset, period, interval, client_token=parse_etag(if_none_match)
        )
    except (InvalidArgument, NotAvailable) as exc:
        raise _map_error(exc) from exc

    etag = snapshot.freshness.current_token
    if snapshot.freshness.not_modified:
        return Response(
            status_code=status.HTTP_304_NOT_MODIFIED,
            headers={"ETag": format_etag(etag)} if etag else None,
        )

    if etag:
        response.headers["ETag"] = format_etag(etag)
    return DashboardOut(
        page=_page_out(snapshot.page, service.engine.display_tz),
        chart=_chart_out(snapshot.chart),
    )


@router.get(
    "/api/get-more-rows",
    response_model=ReadingPageOut,
    summary="Next page of readings, newest first. A short page is the last one.",
)
def get_more_rows(
    limit: int = Query(DEFAULT_LIMIT, ge=0),
    offset: int = Query(0, ge=0),
    service: DashboardService = Depends(get_service),
) -> ReadingPageOut:
    try:
        page = service.fetch_page(limit, offset)
    except (InvalidArgument, NotAvailable) as exc:
        raise _map_error(exc) from exc
    return _page_out(page, service.engine.display_tz)


@router.get(
    "/api/get-sensor-chart",
    response_model=ChartOut,
    summary="Bucketed temperature and humidity averages.",
)
def get_sensor_chart(
    period: timedelta = Depends(period_param),
    interval: timedelta = Depends(interval_param),
    service: DashboardService = Depends(get_service),
) -> ChartOut:
    try:
        chart = service.fetch_aggregate(period, interval)
    except (InvalidArgument, NotAvailable) as exc:
        raise _map_error(exc) from exc
    logger.info("Serving chart", extra={"bucket_count": len(chart)})
    return _chart_out(chart)


@router.post(
    "/api/sensor-data",
    response_model=RecordReadingResponse,
    summary="Store a new reading.",
)
def record_sensor_data(
    temperature: float = Query(..., description="Temperature reading."),
    humidity: float = Query(..., description="Relative humidity reading."),
    service: DashboardService = Depends(get_service),
) -> RecordReadingResponse:
    try:
        reading_id = service.record_reading(temperature, humidity)
    except (InvalidArgument, NotAvailable) as exc:
        raise _map_error(exc) from exc
    return RecordReadingResponse(id=reading_id)


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /api/dashboard for readings."}
