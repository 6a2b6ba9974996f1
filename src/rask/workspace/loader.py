"""Read and write rask.yaml configuration files."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from rask.workspace.errors import (
    ConfigParseError,
    ConfigReadError,
    PathNotFoundError,
)
from rask.workspace.models import ConfigSource, TaskEngine
from rask.workspace.patterns import DEFAULT_CONFIG_FILENAME

logger = logging.getLogger(__name__)

_TASK_ENGINE_KEYS = ("task_engine", "taskEngine")


def resolve_configuration_file(target: str | Path) -> Path:
    """Turn an entry argument into the canonical path of a configuration file."""

    target_path = Path(target).expanduser()
    if not target_path.exists():
        raise PathNotFoundError(target_path)

    resolved = target_path.resolve()
    if resolved.is_dir():
        # the config file itself may be a symlink
        resolved = (resolved / DEFAULT_CONFIG_FILENAME).resolve()
    if not resolved.is_file():
        raise PathNotFoundError(resolved)
    return resolved


def load_config(path: Path) -> ConfigSource:
    """Parse one configuration file into a ``ConfigSource``."""

    try:
        text = path.read_text("utf-8")
    except FileNotFoundError as error:
        raise PathNotFoundError(path) from error
    except (OSError, UnicodeDecodeError) as error:
        raise ConfigReadError(path, str(error)) from error

    try:
        payload = yaml.safe_load(text)
    except yaml.YAMLError as error:
        raise ConfigParseError(path, f"malformed YAML: {error}") from error

    source = _parse_record(path, payload)
    logger.debug(
        "Loaded config %s from %s (engine=%s, directories=%d, tasks=%d)",
        source.name,
        path,
        source.task_engine.value,
        len(source.directories),
        len(source.tasks),
    )
    return source


def write_config(path: Path, name: str) -> None:
    """Write a fresh configuration record with default optional fields."""

    payload = {
        "name": name,
        "task_engine": TaskEngine.AUTO.value,
        "directories": [],
        "tasks": {},
    }
    try:
        path.write_text(yaml.safe_dump(payload, sort_keys=False), "utf-8")
    except OSError as error:
        raise ConfigReadError(path, str(error)) from error


def _parse_record(path: Path, payload: Any) -> ConfigSource:
    if not isinstance(payload, Mapping):
        raise ConfigParseError(path, "expected a mapping at the top level")

    name = payload.get("name")
    if not isinstance(name, str) or not name.strip():
        raise ConfigParseError(path, "'name' is required and must be a non-empty string")

    return ConfigSource.create(
        name=name,
        file_path=path,
        task_engine=_parse_task_engine(path, payload),
        directories=_parse_directories(path, payload.get("directories")),
        tasks=_parse_tasks(path, payload.get("tasks")),
    )


def _parse_task_engine(path: Path, payload: Mapping[str, Any]) -> TaskEngine:
    raw = next((payload[key] for key in _TASK_ENGINE_KEYS if key in payload), None)
    if raw is None:
        return TaskEngine.AUTO
    if not isinstance(raw, str):
        raise ConfigParseError(path, f"'task_engine' must be a string, got {raw!r}")
    try:
        return TaskEngine.parse(raw)
    except ValueError as error:
        allowed = ", ".join(engine.value for engine in TaskEngine)
        raise ConfigParseError(
            path,
            f"unknown task_engine {raw!r}; expected one of: {allowed}",
        ) from error


def _parse_directories(path: Path, raw: Any) -> list[str]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ConfigParseError(path, "'directories' must be a list of glob patterns")
    for item in raw:
        if not isinstance(item, str):
            raise ConfigParseError(path, f"directory pattern must be a string, got {item!r}")
    return list(raw)


def _parse_tasks(path: Path, raw: Any) -> dict[str, str]:
    if raw is None:
        return {}
    if not isinstance(raw, Mapping):
        raise ConfigParseError(path, "'tasks' must be a mapping of task name to command")

    tasks: dict[str, str] = {}
    for key, command in raw.items():
        if not isinstance(key, str) or not key:
            raise ConfigParseError(path, f"task name must be a non-empty string, got {key!r}")
        if not isinstance(command, str):
            raise ConfigParseError(path, f"command for task {key!r} must be a string")
        tasks[key] = command
    return tasks
