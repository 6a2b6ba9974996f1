"""CLI entrypoint for rask."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import replace
from pathlib import Path

import rich_click as click

from rask import __version__
from rask.config import LOG_LEVELS, Settings
from rask.orchestrator.controllers import (
    InitCommand,
    ListTasksCommand,
    RaskCliController,
    RunTaskCommand,
)
from rask.workspace.errors import RaskError

click.rich_click.USE_MARKDOWN = True
CONTROLLER = RaskCliController()


@click.group()
@click.version_option(version=__version__, prog_name="rask")
@click.option(
    "--log-level",
    type=click.Choice(sorted(LOG_LEVELS), case_sensitive=False),
    default=None,
    help="Logging level (defaults to RASK_LOG_LEVEL or WARNING).",
)
def rask(log_level: str | None) -> None:
    """Run tasks across a tree of rask.yaml configurations."""

    with _cli_errors():
        settings = Settings.from_env()
        if log_level:
            settings = replace(settings, log_level=log_level.upper())
        settings.validate()
    _configure_logging(settings.log_level)


@rask.command("run")
@click.argument("task_name")
@click.option(
    "--entry",
    type=click.Path(path_type=Path),
    default=Path("."),
    show_default=True,
    help="Entry directory or configuration file.",
)
@click.option("--prefix", is_flag=True, help="Run every task whose name starts with TASK_NAME.")
@click.option("--parallel", is_flag=True, help="Run tasks of the same depth concurrently.")
@click.option(
    "--max-workers",
    type=click.IntRange(min=1),
    default=None,
    help="Bound parallel tasks per depth (defaults to RASK_MAX_WORKERS or unbounded).",
)
@click.option(
    "--timeout",
    "timeout_seconds",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Per-task timeout in seconds (defaults to RASK_TASK_TIMEOUT_SECONDS or none).",
)
@click.option(
    "--unique-config-names/--no-unique-config-names",
    default=None,
    help="Require distinct config names across the tree.",
)
@click.option(
    "--unique-task-names/--no-unique-task-names",
    default=None,
    help="Require each task name to be defined by a single config.",
)
def run(  # noqa: PLR0913
    task_name: str,
    entry: Path,
    prefix: bool,
    parallel: bool,
    max_workers: int | None,
    timeout_seconds: float | None,
    unique_config_names: bool | None,
    unique_task_names: bool | None,
) -> None:
    """Run a task in every configuration that defines it, deepest first."""

    with _cli_errors():
        result = CONTROLLER.run(
            RunTaskCommand(
                entry=entry,
                task_name=task_name,
                prefix=prefix,
                parallel=parallel,
                max_workers=max_workers,
                timeout_seconds=timeout_seconds,
                unique_config_names=unique_config_names,
                unique_task_names=unique_task_names,
            ),
        )
    _emit_lines(result.lines)
    if not result.success:
        raise click.ClickException("Run failed.")


@rask.command("list")
@click.option(
    "--entry",
    type=click.Path(path_type=Path),
    default=Path("."),
    show_default=True,
    help="Entry directory or configuration file.",
)
def list_tasks(entry: Path) -> None:
    """List task names defined anywhere under the entry configuration."""

    with _cli_errors():
        lines = CONTROLLER.list_tasks(ListTasksCommand(entry=entry))
    _emit_lines(lines)


@rask.command("init")
@click.argument("name", required=False)
@click.option(
    "--entry",
    type=click.Path(path_type=Path),
    default=Path("."),
    show_default=True,
    help="Directory (or file path) for the new configuration.",
)
def init(name: str | None, entry: Path) -> None:
    """Create a rask.yaml; NAME defaults to the directory name."""

    with _cli_errors():
        lines = CONTROLLER.init(InitCommand(entry=entry, name=name))
    _emit_lines(lines)


@contextmanager
def _cli_errors() -> Iterator[None]:
    try:
        yield
    except (RaskError, ValueError) as error:
        raise click.ClickException(str(error)) from error


def _configure_logging(level_name: str) -> None:
    logging.basicConfig(
        level=LOG_LEVELS[level_name],
        format="%(levelname)s | %(name)s | %(message)s",
    )


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    rask()
