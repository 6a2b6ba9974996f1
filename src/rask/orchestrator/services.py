"""Use-case services consumed by the CLI layer."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from rask.config import Settings
from rask.orchestrator.backend import ProcessBackend
from rask.orchestrator.executor import (
    ConcurrencyMode,
    ExecutionEngine,
    ExecutionReport,
)
from rask.orchestrator.selector import MatchMode, collect_task_names, select_tasks
from rask.workspace.discovery import discover
from rask.workspace.engines import resolve_config
from rask.workspace.errors import ConfigExistsError, PathNotFoundError
from rask.workspace.loader import resolve_configuration_file, write_config
from rask.workspace.models import ResolvedConfig, StructureNode
from rask.workspace.patterns import DEFAULT_CONFIG_FILENAME
from rask.workspace.structure import build_structure, validate_structure

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Workspace:
    """Fully resolved configuration tree for one entry point."""

    root: StructureNode
    configs: dict[Path, ResolvedConfig]


def load_workspace(entry: str | Path, *, settings: Settings | None = None) -> Workspace:
    """Discover, load, resolve, and assemble every configuration under ``entry``."""

    settings = settings or Settings()
    entry_path = resolve_configuration_file(entry)
    sources = discover(entry_path)
    configs = {path: resolve_config(source) for path, source in sources.items()}
    root = build_structure(entry_path, configs, max_depth=settings.discovery.max_depth)
    validate_structure(
        root,
        unique_config_names=settings.validation.unique_config_names,
        unique_task_names=settings.validation.unique_task_names,
    )
    logger.info("Loaded %d configurations from %s", len(configs), entry_path)
    return Workspace(root=root, configs=configs)


def run_task(  # noqa: PLR0913
    entry: str | Path,
    task_name: str,
    match_mode: MatchMode = MatchMode.EXACT,
    concurrency: ConcurrencyMode = ConcurrencyMode.SEQUENTIAL,
    *,
    settings: Settings | None = None,
    backend: ProcessBackend | None = None,
) -> ExecutionReport:
    """Run ``task_name`` in every configuration that defines it."""

    settings = settings or Settings()
    workspace = load_workspace(entry, settings=settings)
    tasks = select_tasks(workspace.root, task_name, match_mode)
    logger.info("Selected %d tasks for %r (%s match)", len(tasks), task_name, match_mode.value)

    engine = ExecutionEngine(
        backend,
        max_workers=settings.execution.max_workers,
        timeout_seconds=settings.execution.timeout_seconds,
        shell_executable=settings.execution.shell,
    )
    return engine.execute(tasks, concurrency)


def list_task_names(entry: str | Path, *, settings: Settings | None = None) -> set[str]:
    return collect_task_names(load_workspace(entry, settings=settings).root)


def write_new_config(path: str | Path, name: str | None = None) -> Path:
    """Create a new configuration file; directories get the default filename."""

    target = Path(path).expanduser()
    if target.is_dir():
        target = target / DEFAULT_CONFIG_FILENAME
    if target.exists():
        raise ConfigExistsError(target)
    if not target.parent.is_dir():
        raise PathNotFoundError(target.parent)

    target = target.parent.resolve() / target.name
    config_name = name or target.parent.name
    write_config(target, config_name)
    logger.info("Initialised %s as %r", target, config_name)
    return target
