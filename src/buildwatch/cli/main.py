"""
Typer application acting as a minimal build server host.

The commands drive :class:`~buildwatch.adapters.AzureDevOpsAdapter` the way a
host application does: initialize once, make the baseline "finished since"
call, then poll.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Callable, Iterable, Optional

import anyio
import typer

from ..adapters import AzureDevOpsAdapter, BuildStream
from ..config import IntegrationSettings, expand_variables, load_settings
from ..core.errors import AdapterError
from ..core.logging import configure_logging
from ..core.models import BuildInfo

app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Poll Azure DevOps / TFS build status from the command line.\n\n"
        "Settings come from the [azure_devops] table of .buildwatch/settings.toml or from"
        " BUILDWATCH_PROJECT_URL, BUILDWATCH_API_TOKEN and BUILDWATCH_DEFINITION_FILTER."
    ),
)

Emitter = Callable[[BuildInfo], None]


@dataclass(slots=True)
class CLIState:
    settings_path: Optional[Path] = None
    as_json: bool = False


def _state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        state = CLIState()
        ctx.obj = state
    return state


def _replace_variables(text: str) -> str:
    return expand_variables(text, os.environ)


def _load(state: CLIState) -> IntegrationSettings:
    try:
        bundle = load_settings(state.settings_path, strict=state.settings_path is not None)
    except FileNotFoundError as exc:
        raise typer.BadParameter(f"Settings file '{state.settings_path}' does not exist.") from exc
    if not bundle.settings.is_valid():
        typer.secho("Warning: project URL or API token missing; no builds will be reported.", err=True, fg=typer.colors.YELLOW)
    return bundle.settings


def _render(build: BuildInfo, as_json: bool) -> str:
    if as_json:
        payload = {
            "id": build.id,
            "status": build.status.value,
            "start_date": build.start_date.isoformat(),
            "description": build.description,
            "commits": list(build.commit_hashes),
            "url": build.url,
        }
        return json.dumps(payload, ensure_ascii=False)
    return f"{build.status.value:<12} {build.id:<24} {build.description.strip()}  {build.url or ''}".rstrip()


def _emitter(as_json: bool) -> Emitter:
    def _emit(build: BuildInfo) -> None:
        typer.echo(_render(build, as_json))

    return _emit


def _parse_since(value: Optional[str]) -> Optional[datetime]:
    if value is None:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError as exc:
        raise typer.BadParameter(f"'{value}' is not an ISO 8601 date.") from exc
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


async def _drain(streams: Iterable[BuildStream], emit: Emitter) -> int:
    count = 0
    for stream in streams:
        async for build in stream:
            emit(build)
            count += 1
    return count


async def _show_running(settings: IntegrationSettings, emit: Emitter) -> int:
    async with AzureDevOpsAdapter() as adapter:
        adapter.initialize(settings, replace_variables=_replace_variables)
        return await _drain([adapter.running_builds()], emit)


async def _show_finished(settings: IntegrationSettings, since: Optional[datetime], emit: Emitter) -> int:
    async with AzureDevOpsAdapter() as adapter:
        adapter.initialize(settings, replace_variables=_replace_variables)
        await adapter.finished_builds_since(since).collect()
        return await _drain([adapter.finished_builds_since(since)], emit)


async def _watch(settings: IntegrationSettings, interval: float, iterations: Optional[int], emit: Emitter) -> int:
    total = 0
    async with AzureDevOpsAdapter() as adapter:
        adapter.initialize(settings, replace_variables=_replace_variables)
        since = datetime.now(UTC)
        await adapter.finished_builds_since(since).collect()
        tick = 0
        while iterations is None or tick < iterations:
            if tick:
                await anyio.sleep(interval)
            polled_at = datetime.now(UTC)
            total += await _drain([adapter.running_builds(), adapter.finished_builds_since(since)], emit)
            since = polled_at
            tick += 1
    return total


def _run(func, *args) -> int:  # type: ignore[no-untyped-def]
    try:
        return anyio.run(func, *args)
    except AdapterError as exc:
        typer.secho(f"Build server query failed: {exc}", err=True, fg=typer.colors.RED)
        raise typer.Exit(code=1) from exc


@app.callback()
def main(
    ctx: typer.Context,
    settings: Optional[Path] = typer.Option(None, "--settings", help="Path to a settings TOML file."),
    as_json: bool = typer.Option(False, "--json", help="Emit one JSON object per build."),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Logging level (defaults to BUILDWATCH_LOG_LEVEL or WARNING)."),
) -> None:
    """Build status polling for Azure DevOps."""

    configure_logging(log_level, force=log_level is not None)
    ctx.obj = CLIState(settings_path=settings, as_json=as_json)


@app.command("running")
def running_command(ctx: typer.Context) -> None:
    """List builds that are currently queued or running."""

    state = _state(ctx)
    count = _run(_show_running, _load(state), _emitter(state.as_json))
    if not count and not state.as_json:
        typer.echo("No running builds.")


@app.command("finished")
def finished_command(
    ctx: typer.Context,
    since: Optional[str] = typer.Option(None, "--since", help="ISO 8601 lower bound on the finish time."),
    days: Optional[int] = typer.Option(None, "--days", min=1, help="Shortcut for --since N days ago."),
) -> None:
    """List builds finished since a date."""

    state = _state(ctx)
    since_date = _parse_since(since)
    if since_date is None and days is not None:
        since_date = datetime.now(UTC) - timedelta(days=days)
    count = _run(_show_finished, _load(state), since_date, _emitter(state.as_json))
    if not count and not state.as_json:
        typer.echo("No finished builds.")


@app.command("watch")
def watch_command(
    ctx: typer.Context,
    interval: float = typer.Option(30.0, "--interval", min=0.0, help="Seconds between polls."),
    iterations: Optional[int] = typer.Option(None, "--iterations", min=1, help="Stop after N polls."),
) -> None:
    """Poll running and newly finished builds until interrupted."""

    state = _state(ctx)
    _run(_watch, _load(state), interval, iterations, _emitter(state.as_json))


if __name__ == "__main__":  # pragma: no cover
    app()
