from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import echo_heading, render_chart, render_dashboard, render_page, render_rows


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for interacting with the home dashboard service.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1)
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Dashboard API base URL (defaults to API_BASE_URL env or http://localhost:8080).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="HTTP timeout in seconds.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("rows")
def rows_command(
    ctx: typer.Context,
    limit: int = typer.Option(10, "--limit", "-l", min=0, help="Rows per page."),
    offset: int = typer.Option(0, "--offset", "-o", min=0, help="Rows to skip."),
    fetch_all: bool = typer.Option(
        False,
        "--all/--one-page",
        help="Keep loading pages until the last one.",
    ),
) -> None:
    """List readings, newest first."""
    state = _get_state(ctx)
    if not fetch_all:
        render_page(state.client.get_page(limit, offset))
        return
    echo_heading("Readings")
    count = render_rows(state.client.iter_rows(limit, offset))
    typer.echo(f"{count} readings.")


@app.command("chart")
def chart_command(
    ctx: typer.Context,
    period: str = typer.Option("168h", "--period", "-p", help="How far back to chart."),
    interval: str = typer.Option("1h", "--interval", "-i", help="Bucket width."),
) -> None:
    """Show bucketed temperature and humidity averages."""
    state = _get_state(ctx)
    render_chart(state.client.get_chart(period, interval))


@app.command("record")
def record_command(
    ctx: typer.Context,
    temperature: float = typer.Argument(..., help="Temperature reading."),
    humidity: float = typer.Argument(..., help="Relative humidity reading."),
) -> None:
    """Store a new reading."""
    state = _get_state(ctx)
    payload = state.client.record(temperature, humidity)
    typer.secho(
        f"{payload.get('message', 'Stored')}. id={payload.get('id')}",
        fg=typer.colors.GREEN,
    )


@app.command("dashboard")
def dashboard_command(
    ctx: typer.Context,
    etag: Optional[str] = typer.Option(
        None,
        "--etag",
        help="ETag from a previous call; nothing is printed when no new data exists.",
    ),
    limit: int = typer.Option(10, "--limit", "-l", min=0),
    period: str = typer.Option("168h", "--period", "-p"),
    interval: str = typer.Option("1h", "--interval", "-i"),
) -> None:
    """Fetch the full dashboard, conditionally on an earlier ETag."""
    state = _get_state(ctx)
    payload, current = state.client.get_dashboard(
        etag, limit=limit, period=period, interval=interval
    )
    if payload is None:
        typer.echo(f"Not modified. etag={current}")
        return
    render_dashboard(payload)
    if current:
        typer.echo()
        typer.echo(f"etag={current}")
