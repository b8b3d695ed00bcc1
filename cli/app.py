from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_config, render_log, render_status, render_tick
from datastore.remote_config import RemoteConfigStore
from settings import get_settings
from storage.column_log import read_column_log


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for operating the hardware sensor logger.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        typer.secho("CLI state is uninitialized.", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Logger API base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Seconds to wait for the logger API.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("status")
def status_command(ctx: typer.Context) -> None:
    """Show the active sink and the outcome of the last tick."""
    state = _get_state(ctx)
    render_status(state.client.get_status())


@app.command("tick")
def tick_command(ctx: typer.Context) -> None:
    """Ask the running logger to process one tick now."""
    state = _get_state(ctx)
    payload = state.client.trigger_tick()
    if payload.get("status") == "skipped":
        typer.secho("Tick skipped: logging interval has not elapsed.", fg=typer.colors.YELLOW)
    render_tick(payload)


@app.command("read-log")
def read_log_command(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="Path to a daily CSV log."),
) -> None:
    """Print the rows of a column log keyed by sensor identifier."""
    try:
        log = read_column_log(file)
    except ValueError as exc:
        typer.secho(str(exc), fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    render_log(log)


@app.command("remote-config")
def remote_config_command(
    path: Optional[Path] = typer.Option(
        None,
        "--path",
        help="Configuration document (defaults to HWLOG_REMOTE_CONFIG_PATH).",
    ),
    url: Optional[str] = typer.Option(None, "--url", help="Database host."),
    port: Optional[int] = typer.Option(None, "--port", min=1, max=65535),
    db: Optional[str] = typer.Option(None, "--db", help="Database name."),
    username: Optional[str] = typer.Option(None, "--username"),
    password: Optional[str] = typer.Option(None, "--password"),
) -> None:
    """Show the remote sink configuration, updating any field given as an option."""
    store = RemoteConfigStore(path or Path(get_settings().remote_config_path))
    config = store.load()

    updates = {
        key: value
        for key, value in {
            "url": url,
            "port": port,
            "db": db,
            "username": username,
            "password": password,
        }.items()
        if value is not None
    }
    if updates:
        config = config.model_copy(update=updates)
        store.save(config)
        typer.secho(f"Saved {store.path}", fg=typer.colors.GREEN)

    render_config(config)
