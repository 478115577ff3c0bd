from __future__ import annotations

from typing import Any, Dict, Iterable

import typer


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def render_rows(rows: Iterable[Dict[str, Any]]) -> int:
    count = 0
    for row in rows:
        typer.echo(
            f"  #{row.get('id')}  {row.get('label') or row.get('timestamp')}"
            f"  {row.get('temperature')}°C  {row.get('humidity')}%"
        )
        count += 1
    if not count:
        typer.echo("No readings.")
    return count


def render_page(payload: Dict[str, Any]) -> None:
    echo_heading("Readings")
    rows = payload.get("rows") or []
    render_rows(rows)
    limit = payload.get("limit") or 0
    if limit and len(rows) == limit:
        typer.echo(f"More rows may follow at offset {payload.get('next_offset')}.")
    else:
        typer.echo("No more data.")


def render_chart(payload: Dict[str, Any]) -> None:
    echo_heading("Chart")
    labels = payload.get("labels") or []
    if not labels:
        typer.echo("No readings in this period.")
        return
    for label, temperature, humidity in zip(
        labels, payload.get("temperature") or [], payload.get("humidity") or []
    ):
        typer.echo(f"  {label}  {temperature:.2f}°C  {humidity:.2f}%")


def render_dashboard(payload: Dict[str, Any]) -> None:
    render_page(payload.get("page") or {})
    typer.echo()
    render_chart(payload.get("chart") or {})
