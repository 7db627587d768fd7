"""CLI for calkit: serve the API and run layout/recurrence/snap helpers."""

from __future__ import annotations

import json
import sys
from datetime import date
from pathlib import Path

import click
import uvicorn
from pydantic import TypeAdapter, ValidationError

from calkit.api.app import create_app
from calkit.api.models.calendar import AnyEvent
from calkit.config import CONFIG_ENV_VAR, CONFIG_FILENAME, CalendarConfig, ConfigError, load_config
from calkit.core.logging import configure_logging
from calkit.drag import minutes_from_offset, snap_minutes
from calkit.layout import (
    layout_day_column,
    layout_month,
    layout_week_row,
    split_events,
    week_start,
)
from calkit.providers import get_mapper
from calkit.recurrence import Recurrence, encode_recurrence
from calkit.temporal import (
    MINUTES_PER_DAY,
    combine,
    format_boundary_text,
    parse_boundary_text,
    resolve_zone,
)

_DEFAULT_CONFIG_TOML = """[calendar]
default_time_zone = "{time_zone}"
week_starts_on = {week_starts_on}

[calendar.layout]
month_visible_lanes = 3
week_all_day_visible_lanes = 10
min_lanes = 0

[calendar.logging]
level = "INFO"
format = "text"

[calendar.api]
host = "127.0.0.1"
port = 8400
cors_origins = []
"""


def _format_minutes(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


@click.group()
@click.version_option(version="0.1.0")
@click.option(
    "--config",
    "config_path",
    envvar=CONFIG_ENV_VAR,
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help=f"Path to {CONFIG_FILENAME} or a directory containing it",
)
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None) -> None:
    """calkit: calendar event layout and time normalization."""
    try:
        config = load_config(config_path) if config_path is not None else CalendarConfig()
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    log_root = Path(config.logging.log_root) if config.logging.log_root else None
    configure_logging(level=config.logging.level, fmt=config.logging.format, log_root=log_root)
    ctx.obj = config


@cli.command()
@click.option("--host", default=None, help="Bind address (defaults to calendar.api.host)")
@click.option("--port", type=int, default=None, help="Port (defaults to calendar.api.port)")
@click.pass_obj
def serve(config: CalendarConfig, host: str | None, port: int | None) -> None:
    """Run the calkit HTTP API."""
    host = host or config.api.host
    port = port or config.api.port
    click.echo(f"Serving calkit API on http://{host}:{port}")
    uvicorn.run(create_app(config), host=host, port=port, log_config=None)


@cli.command()
@click.option(
    "--freq",
    "frequency",
    type=click.Choice(["daily", "weekly", "monthly", "yearly"]),
    default="daily",
    show_default=True,
)
@click.option("--interval", type=int, default=1, show_default=True)
@click.option("--count", type=int, default=None)
@click.option("--until", default=None, help="YYYY-MM-DD or RFC 3339 timestamp")
@click.option("--by-day", multiple=True, help="Weekday code (SU..SA); repeatable")
@click.option("--by-month", type=int, multiple=True)
@click.option("--by-month-day", type=int, multiple=True)
@click.option(
    "--provider",
    default=None,
    help="Also print the provider wire format (google or microsoft)",
)
@click.option("--start", default=None, help="Series start, required with --provider")
def rrule(
    frequency: str,
    interval: int,
    count: int | None,
    until: str | None,
    by_day: tuple[str, ...],
    by_month: tuple[int, ...],
    by_month_day: tuple[int, ...],
    provider: str | None,
    start: str | None,
) -> None:
    """Encode a recurrence as an RRULE string."""
    try:
        recurrence = Recurrence(
            frequency=frequency,
            interval=interval,
            count=count,
            until=until,
            by_day=list(by_day) or None,
            by_month=list(by_month) or None,
            by_month_day=list(by_month_day) or None,
        )
        click.echo(encode_recurrence(recurrence))
        if provider is not None:
            if start is None:
                raise click.UsageError("--start is required with --provider")
            mapper = get_mapper(provider)
            payload = mapper.format_recurrence(recurrence, start=parse_boundary_text(start))
            click.echo(json.dumps(payload, indent=2))
    except (ValueError, KeyError) as exc:
        raise click.ClickException(str(exc)) from exc


@cli.command()
@click.argument("events_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--view",
    type=click.Choice(["month", "week", "day"]),
    default="week",
    show_default=True,
)
@click.option(
    "--day",
    "day_text",
    default=None,
    help="Any day inside the window (YYYY-MM-DD); defaults to today",
)
@click.option("--time-zone", default=None, help="IANA zone (defaults to the configured zone)")
@click.option("--max-lanes", type=int, default=None, help="Visible lane budget override")
@click.pass_obj
def layout(
    config: CalendarConfig,
    events_file: Path,
    view: str,
    day_text: str | None,
    time_zone: str | None,
    max_lanes: int | None,
) -> None:
    """Print the lane layout for a JSON list of events."""
    time_zone = time_zone or config.default_time_zone
    try:
        resolve_zone(time_zone)
        day = date.fromisoformat(day_text) if day_text else date.today()
        events = TypeAdapter(list[AnyEvent]).validate_json(events_file.read_bytes())
    except (ValueError, ValidationError) as exc:
        raise click.ClickException(str(exc)) from exc

    if view == "month":
        month = layout_month(
            events,
            day,
            time_zone=time_zone,
            week_starts_on=config.week_starts_on,
            max_visible_lanes=max_lanes or config.layout.month_visible_lanes,
        )
        rows = month.weeks
    else:
        all_day_events, timed_events = split_events(events, time_zone)
        first_day = week_start(day, config.week_starts_on) if view == "week" else day
        row = layout_week_row(
            all_day_events,
            first_day,
            time_zone=time_zone,
            max_visible_lanes=max_lanes or config.layout.week_all_day_visible_lanes,
            min_lanes=config.layout.min_lanes,
            days=7 if view == "week" else 1,
        )
        rows = [row]

    for row in rows:
        click.echo(f"{row.days[0].isoformat()} .. {row.days[-1].isoformat()}")
        for placed in row.positioned:
            columns = f"{placed.col_start}+{placed.span}"
            click.echo(f"  lane {placed.lane:<3} cols {columns:<6} {placed.event.title}")
        for overflow_day, count in row.overflow_by_day.items():
            click.echo(f"  +{count} more on {overflow_day.isoformat()}")

    if view != "month":
        for column_day in rows[0].days:
            for item in layout_day_column(timed_events, column_day, time_zone=time_zone):
                start = round(item.top * MINUTES_PER_DAY)
                end = round((item.top + item.height) * MINUTES_PER_DAY)
                click.echo(
                    f"  {column_day.isoformat()} {_format_minutes(start)}-{_format_minutes(end)} "
                    f"lane {item.lane}/{item.lane_count} {item.event.title}"
                )


@cli.command()
@click.argument("offset", type=float)
@click.argument("column_height", type=float)
@click.option("--day", "day_text", default=None, help="Column date (YYYY-MM-DD)")
@click.option("--time-zone", default=None, help="IANA zone (defaults to the configured zone)")
@click.pass_obj
def snap(
    config: CalendarConfig,
    offset: float,
    column_height: float,
    day_text: str | None,
    time_zone: str | None,
) -> None:
    """Snap a pointer OFFSET within a COLUMN_HEIGHT-pixel day column."""
    minutes = minutes_from_offset(offset, column_height)
    if minutes is None:
        raise click.ClickException("column height must be a positive number")
    snapped = snap_minutes(minutes)
    click.echo(_format_minutes(snapped))
    if day_text is not None:
        try:
            value = combine(
                date.fromisoformat(day_text),
                snapped,
                time_zone or config.default_time_zone,
            )
        except ValueError as exc:
            raise click.ClickException(str(exc)) from exc
        click.echo(format_boundary_text(value))


@cli.command()
@click.argument("directory", type=click.Path(file_okay=False, path_type=Path), default=".")
@click.option("--time-zone", default="UTC", show_default=True)
@click.option("--week-starts-on", type=click.IntRange(0, 6), default=0, show_default=True)
def init(directory: Path, time_zone: str, week_starts_on: int) -> None:
    """Write a default calkit.toml into DIRECTORY."""
    try:
        resolve_zone(time_zone)
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc
    target = directory / CONFIG_FILENAME
    if target.exists():
        click.echo(f"Config already exists: {target}")
        sys.exit(1)
    directory.mkdir(parents=True, exist_ok=True)
    target.write_text(
        _DEFAULT_CONFIG_TOML.format(time_zone=time_zone, week_starts_on=week_starts_on)
    )
    click.echo(f"Created {target}")
