"""Controllers for rask CLI commands."""

from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path

from rask.config import Settings
from rask.orchestrator.executor import ConcurrencyMode, ExecutionReport
from rask.orchestrator.selector import MatchMode
from rask.orchestrator.services import list_task_names, run_task, write_new_config


@dataclass(slots=True)
class RunTaskCommand:
    """CLI input for task execution."""

    entry: Path
    task_name: str
    prefix: bool = False
    parallel: bool = False
    max_workers: int | None = None
    timeout_seconds: float | None = None
    unique_config_names: bool | None = None
    unique_task_names: bool | None = None


@dataclass(slots=True)
class RunTaskResult:
    """Run report to render in CLI."""

    lines: list[str]
    success: bool


@dataclass(slots=True)
class ListTasksCommand:
    """CLI input for task listing."""

    entry: Path


@dataclass(slots=True)
class InitCommand:
    """CLI input for creating a configuration file."""

    entry: Path
    name: str | None = None


class RaskCliController:
    """Coordinates run, list, and init CLI operations."""

    def run(self, command: RunTaskCommand) -> RunTaskResult:
        settings = _settings_for_run(command)
        match_mode = MatchMode.PREFIX if command.prefix else MatchMode.EXACT
        concurrency = ConcurrencyMode.PARALLEL if command.parallel else ConcurrencyMode.SEQUENTIAL
        report = run_task(
            command.entry,
            command.task_name,
            match_mode,
            concurrency,
            settings=settings,
        )
        return RunTaskResult(lines=_render_report(command.task_name, report), success=report.success)

    def list_tasks(self, command: ListTasksCommand) -> list[str]:
        names = sorted(list_task_names(command.entry, settings=_base_settings()))
        if not names:
            return ["No tasks defined."]
        return names

    def init(self, command: InitCommand) -> list[str]:
        path = write_new_config(command.entry, command.name)
        return [f"Rask initialised: {path}"]


def _base_settings() -> Settings:
    settings = Settings.from_env()
    settings.validate()
    return settings


def _settings_for_run(command: RunTaskCommand) -> Settings:
    settings = Settings.from_env()
    execution = settings.execution
    if command.max_workers is not None:
        execution = replace(execution, max_workers=command.max_workers)
    if command.timeout_seconds is not None:
        execution = replace(execution, timeout_seconds=command.timeout_seconds)

    validation = settings.validation
    if command.unique_config_names is not None:
        validation = replace(validation, unique_config_names=command.unique_config_names)
    if command.unique_task_names is not None:
        validation = replace(validation, unique_task_names=command.unique_task_names)

    settings = replace(settings, execution=execution, validation=validation)
    settings.validate()
    return settings


def _render_report(task_name: str, report: ExecutionReport) -> list[str]:
    if report.tasks_started == 0 and report.success:
        return [f"No tasks matching {task_name!r} found."]

    lines = [
        "Run summary: "
        f"outcome={report.outcome.value} batches={report.batches_run} "
        f"started={report.tasks_started} succeeded={report.tasks_succeeded} "
        f"failed={len(report.failures)}",
    ]
    lines.extend(failure.describe() for failure in report.failures)
    if report.failed_order is not None and report.failed_order > 0:
        lines.append(f"Skipped batches with order < {report.failed_order}.")
    return lines
