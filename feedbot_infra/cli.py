"""Typer CLI for building and publishing the feed bot images."""

from __future__ import annotations

import json
import logging
from enum import Enum
from pathlib import Path
from typing import List, NoReturn, Optional

import typer
from rich.console import Console
from rich.table import Table

from feedbot_infra.containers import available_containers, contract_problems
from feedbot_infra.core.config import REQUIRED_ENV, load_config
from feedbot_infra.core.exceptions import InvalidRevision, PipelineError
from feedbot_infra.core.logging import configure_logging, in_ci
from feedbot_infra.pipeline import build_pipeline, run_pipeline, step_commands
from feedbot_infra.tags import resolve_tag
from feedbot_infra.utils import render_command

LOGGER = logging.getLogger(__name__)

app = typer.Typer(no_args_is_help=True, help="Build and publish the bsky-feed-bot container images.")
console = Console()

CONFIG_OPTION = typer.Option(None, "--config", "-c", help="YAML file with non-secret settings.")
SET_OPTION = typer.Option(None, "--set", help="Override a setting (key=value); repeatable.")


class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


def _fail(message: str) -> NoReturn:
    typer.echo(message, err=True)
    raise typer.Exit(code=1)


def _write_report(path: Path, payload: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    LOGGER.info("[pipeline] Run report written to %s", path)


@app.command()
def publish(
    config: Optional[Path] = CONFIG_OPTION,
    overrides: Optional[List[str]] = SET_OPTION,
    dry_run: bool = typer.Option(False, "--dry-run", help="Log the commands instead of running them."),
    log_level: LogLevel = typer.Option(
        LogLevel.INFO, "--log-level", case_sensitive=False, help="Logging level."
    ),
    json_logs: Optional[bool] = typer.Option(
        None, "--json-logs/--plain-logs", help="Structured logs (default: on in CI)."
    ),
    log_dir: Optional[Path] = typer.Option(
        None, "--log-dir", help="Also write logs to this directory."
    ),
    report: Optional[Path] = typer.Option(None, "--report", help="Write a JSON run report to this path."),
) -> None:
    """Log in, build both targets, and push all four image references."""
    configure_logging(
        log_level.value,
        log_dir=log_dir,
        json_logs=in_ci() if json_logs is None else json_logs,
    )

    try:
        settings = load_config(config, overrides=overrides)
        run = run_pipeline(settings, dry_run=dry_run)
    except PipelineError as exc:
        if report and "run" in exc.metadata:
            _write_report(report, exc.metadata["run"])
        _fail(f"{exc.step} failed: {exc}")

    if report:
        _write_report(report, run.to_dict())
    typer.echo(f"Published {settings.registry} images with tag {run.image_tag}")


@app.command()
def tag(revision: str = typer.Argument(..., help="Source revision identifier.")) -> None:
    """Print the image tag derived from REVISION."""
    try:
        typer.echo(resolve_tag(revision))
    except InvalidRevision as exc:
        _fail(str(exc))


@app.command()
def plan(
    config: Optional[Path] = CONFIG_OPTION,
    overrides: Optional[List[str]] = SET_OPTION,
) -> None:
    """Show the ordered steps and commands without running them."""
    try:
        settings = load_config(config, overrides=overrides)
        steps = build_pipeline(settings)
    except PipelineError as exc:
        _fail(f"{exc.step} failed: {exc}")

    table = Table(title=f"Pipeline for {settings.revision} (tag {settings.image_tag})")
    table.add_column("#", justify="right")
    table.add_column("Step", no_wrap=True)
    table.add_column("Kind", no_wrap=True)
    table.add_column("Command", overflow="fold")
    for index, step in enumerate(steps, start=1):
        commands = step_commands(step, settings)
        rendered = "\n".join(render_command(command, args) for command, args in commands)
        table.add_row(str(index), step.name, step.kind.value, rendered)
    console.print(table)


@app.command()
def check(
    config: Optional[Path] = CONFIG_OPTION,
    overrides: Optional[List[str]] = SET_OPTION,
) -> None:
    """Verify the environment and the build description before a run."""
    problems: List[str] = []
    try:
        settings = load_config(config, overrides=overrides)
    except PipelineError as exc:
        _fail(f"{exc.step} failed: {exc}\nRequired environment: {', '.join(REQUIRED_ENV)}")

    if not settings.has_source_credentials:
        problems.append("DOCKER_USERNAME/DOCKER_TOKEN are not set; SourceLogin will fail")

    dockerfile = settings.dockerfile
    try:
        for problem in contract_problems(dockerfile, available_containers()):
            problems.append(f"{dockerfile}: {problem}")
    except FileNotFoundError as exc:
        problems.append(str(exc))

    if problems:
        _fail("\n".join(problems))
    typer.echo(f"OK: {dockerfile} satisfies the build contract; tag {settings.image_tag}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
