from __future__ import annotations

from typing import Any, Dict, Iterator, List, Optional, Tuple

import httpx
import typer

from cli.config import CLIConfig
from services.pagination import PageRequest, iter_pages


class ApiClient:
    """Minimal HTTP client for the dashboard service."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=config.timeout)

    def close(self) -> None:
        self._client.close()

    def get_page(self, limit: int, offset: int) -> Dict[str, Any]:
        return self._get_json("/api/get-more-rows", {"limit": limit, "offset": offset})

    def iter_rows(self, limit: int, offset: int = 0) -> Iterator[Dict[str, Any]]:
        """Follow "load more" pages until the server returns a short page."""

        def fetch(request: PageRequest) -> List[Dict[str, Any]]:
            return self.get_page(request.limit, request.offset).get("rows") or []

        for rows in iter_pages(fetch, limit=limit, offset=offset):
            yield from rows

    def get_chart(self, period: str, interval: str) -> Dict[str, Any]:
        return self._get_json(
            "/api/get-sensor-chart", {"period": period, "interval": interval}
        )

    def get_dashboard(
        self, etag: Optional[str] = None, **params: Any
    ) -> Tuple[Optional[Dict[str, Any]], Optional[str]]:
        """Return ``(payload, etag)``; payload is ``None`` when nothing changed."""
        headers = {"If-None-Match": etag} if etag else {}
        try:
            response = self._client.get("/api/dashboard", params=params, headers=headers)
            if response.status_code == 304:
                return None, response.headers.get("ETag", etag)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        return response.json(), response.headers.get("ETag")

    def record(self, temperature: float, humidity: float) -> Dict[str, Any]:
        try:
            response = self._client.post(
                "/api/sensor-data",
                params={"temperature": temperature, "humidity": humidity},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        return response.json()

    def _get_json(self, path: str, params: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = self._client.get(path, params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        return response.json()

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        detail: str | None = None
        try:
            data = exc.response.json()
            detail = data.get("detail")
        except ValueError:
            detail = exc.response.text.strip()
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
