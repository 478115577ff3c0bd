"""Conditional re-fetch support based on the newest reading's timestamp."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Protocol


class LastUpdatedSource(Protocol):
    def last_updated(self) -> Optional[datetime]:
        ...


class Freshness(str, Enum):
    not_modified = "not_modified"
    stale = "stale"


@dataclass(frozen=True)
class FreshnessResult:
    state: Freshness
    current_token: Optional[str] = None

    @property
    def not_modified(self) -> bool:
        return self.state is Freshness.not_modified


def make_token(updated_on: datetime) -> str:
    return updated_on.astimezone(timezone.utc).isoformat(timespec="microseconds")


def parse_token(token: str) -> datetime:
    """Parse a token back into an aware datetime; raises ``ValueError`` when malformed."""
    candidate = token.strip()
    if not candidate:
        raise ValueError("Token is empty.")
    if candidate.endswith("Z"):
        candidate = candidate[:-1] + "+00:00"
    parsed = datetime.fromisoformat(candidate)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_etag(token: str) -> str:
    return f'W/"{token}"'


def parse_etag(header: Optional[str]) -> Optional[str]:
    """Strip the weak-validator wrapper from an ``If-None-Match`` value."""
    if header is None:
        return None
    value = header.strip()
    if value.startswith("W/"):
        value = value[2:]
    if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
        value = value[1:-1]
    return value or None


class FreshnessValidator:
    """Decides between a full response and "not modified" for a client token."""

    def __init__(
        self,
        source: LastUpdatedSource,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.source = source
        self._logger = logger or logging.getLogger(__name__)

    def check(self, client_token: Optional[str]) -> FreshnessResult:
        updated_on = self.source.last_updated()
        if updated_on is None:
            return FreshnessResult(state=Freshness.stale)

        current_token = make_token(updated_on)
        if not client_token:
            return FreshnessResult(state=Freshness.stale, current_token=current_token)

        try:
            client_updated_on = parse_token(client_token)
        except ValueError:
            # A corrupt token must never block the response.
            self._logger.info(
                "Ignoring unparseable freshness token", extra={"etag": client_token}
            )
            return FreshnessResult(state=Freshness.stale, current_token=current_token)

        if client_updated_on == updated_on:
            return FreshnessResult(state=Freshness.not_modified, current_token=current_token)
        return FreshnessResult(state=Freshness.stale, current_token=current_token)
