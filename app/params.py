"""Query-string parsing for the HTTP layer."""

from __future__ import annotations

import re
from datetime import timedelta

from fastapi import HTTPException, Query, status

DEFAULT_PERIOD = timedelta(days=7)
DEFAULT_INTERVAL = timedelta(hours=1)

_UNITS = {
    "ms": timedelta(milliseconds=1),
    "s": timedelta(seconds=1),
    "m": timedelta(minutes=1),
    "h": timedelta(hours=1),
    "d": timedelta(days=1),
}
_COMPONENT = re.compile(r"(\d+(?:\.\d+)?)(ms|s|m|h|d)")


def parse_duration(text: str) -> timedelta:
    """Parse durations such as ``168h``, ``1h30m``, ``90s`` or ``7d``."""
    candidate = text.strip().lower()
    if not candidate:
        raise ValueError("Duration is empty.")
    negative = candidate.startswith("-")
    if negative or candidate.startswith("+"):
        candidate = candidate[1:]
    if candidate == "0":
        return timedelta(0)

    total = timedelta(0)
    position = 0
    for match in _COMPONENT.finditer(candidate):
        if match.start() != position:
            break
        total += float(match.group(1)) * _UNITS[match.group(2)]
        position = match.end()
    if position == 0 or position != len(candidate):
        raise ValueError(f"Invalid duration {text!r}.")
    return -total if negative else total


def _duration_param(raw: str | None, default: timedelta, name: str) -> timedelta:
    if raw is None or not raw.strip():
        return default
    try:
        return parse_duration(raw)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{name} must be a duration such as 1h or 30m.",
        ) from exc


def period_param(
    period: str | None = Query(None, description="How far back to chart, e.g. 168h."),
) -> timedelta:
    return _duration_param(period, DEFAULT_PERIOD, "period")


def interval_param(
    interval: str | None = Query(None, description="Bucket width, e.g. 1h."),
) -> timedelta:
    return _duration_param(interval, DEFAULT_INTERVAL, "interval")
