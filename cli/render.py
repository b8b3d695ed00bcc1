from __future__ import annotations

from typing import Any, Dict, Iterable

import typer

from app.schemas import RemoteSinkConfig
from storage.column_log import ColumnLog, format_timestamp, format_value


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def render_tick(payload: Dict[str, Any]) -> None:
    echo_heading("Tick")
    echo_key_values(
        [
            ("status", payload.get("status")),
            ("timestamp", payload.get("timestamp")),
            ("outcome", payload.get("outcome") or "-"),
        ]
    )


def render_status(payload: Dict[str, Any]) -> None:
    echo_heading("Logger Status")
    echo_key_values(
        [
            ("sink", payload.get("sink")),
            ("interval_seconds", payload.get("interval_seconds")),
            ("slot_count", payload.get("slot_count")),
            ("last_success", payload.get("last_success") or "never"),
        ]
    )
    last_tick = payload.get("last_tick")
    typer.echo()
    if last_tick:
        render_tick(last_tick)
    else:
        typer.echo("No tick recorded yet.")


def render_log(log: ColumnLog) -> None:
    echo_heading("Columns")
    for identifier, name in zip(log.identifiers, log.names):
        typer.echo(f"  - {identifier}: {name}")

    typer.echo()
    echo_heading("Rows")
    if not log.rows:
        typer.echo("No rows recorded.")
        return
    for row in log.rows:
        typer.echo(format_timestamp(row.timestamp))
        for identifier, value in row.values.items():
            typer.echo(f"  {identifier} = {format_value(value) or '-'}")


def render_config(config: RemoteSinkConfig) -> None:
    echo_heading("Remote Sink Configuration")
    echo_key_values(config.masked().model_dump().items())
