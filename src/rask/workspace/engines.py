"""Task engines: turn a configuration's declarations into runnable tasks.

Explicit ``tasks`` entries are always included. Package-manager engines add
one task per manifest script, invoked as ``<manager> run <script>``. When
several sources define the same key, the first source in precedence order
wins: explicit tasks, then composer scripts, then node scripts.
"""

from __future__ import annotations

import json
import logging
import shlex
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from rask.workspace.errors import ManifestNotFoundError, ManifestParseError
from rask.workspace.models import (
    ConfigSource,
    ResolvedConfig,
    ResolvedTask,
    TaskEngine,
    TaskKind,
)

logger = logging.getLogger(__name__)

NODE_MANIFEST = "package.json"
COMPOSER_MANIFEST = "composer.json"
YARN_LOCKFILE = "yarn.lock"


def resolve_config(source: ConfigSource) -> ResolvedConfig:
    """Apply the configuration's task engine."""

    engine = source.task_engine
    sources: list[list[ResolvedTask]] = [_explicit_tasks(source)]

    if engine is TaskEngine.NPM:
        sources.append(_node_tasks(source, TaskKind.NPM, required=True))
    elif engine is TaskEngine.YARN:
        sources.append(_node_tasks(source, TaskKind.YARN, required=True))
    elif engine is TaskEngine.COMPOSER:
        sources.append(_composer_tasks(source, required=True))
    elif engine is TaskEngine.AUTO:
        sources.append(_composer_tasks(source, required=False))
        node_kind = (
            TaskKind.YARN if (source.dir_path / YARN_LOCKFILE).is_file() else TaskKind.NPM
        )
        sources.append(_node_tasks(source, node_kind, required=False))

    tasks = merge_task_sources(*sources, config_name=source.name)
    return ResolvedConfig(source=source, tasks=tuple(tasks))


def merge_task_sources(
    *sources: Iterable[ResolvedTask],
    config_name: str = "",
) -> list[ResolvedTask]:
    """Ordered merge in which the first source to define a key wins."""

    merged: dict[str, ResolvedTask] = {}
    for tasks in sources:
        for task in tasks:
            existing = merged.get(task.key)
            if existing is not None:
                logger.debug(
                    "Task %r in %s from %s shadows %s",
                    task.key,
                    config_name or "<config>",
                    existing.kind.value,
                    task.kind.value,
                )
                continue
            merged[task.key] = task
    return list(merged.values())


def build_invocation(kind: TaskKind, key: str) -> str:
    if kind is TaskKind.SHELL:
        raise ValueError("Shell tasks carry their own command.")
    return f"{kind.value} run {shlex.quote(key)}"


def _explicit_tasks(source: ConfigSource) -> list[ResolvedTask]:
    return [
        ResolvedTask(key=key, kind=TaskKind.SHELL, invocation=command)
        for key, command in source.tasks.items()
    ]


def _node_tasks(source: ConfigSource, kind: TaskKind, *, required: bool) -> list[ResolvedTask]:
    scripts = _read_scripts(source, source.dir_path / NODE_MANIFEST, required=required)
    for key, value in scripts.items():
        if not isinstance(value, str):
            raise ManifestParseError(
                source.file_path,
                source.dir_path / NODE_MANIFEST,
                f"script {key!r} must be a string",
            )
    return [
        ResolvedTask(key=key, kind=kind, invocation=build_invocation(kind, key))
        for key in scripts
    ]


def _composer_tasks(source: ConfigSource, *, required: bool) -> list[ResolvedTask]:
    manifest_path = source.dir_path / COMPOSER_MANIFEST
    scripts = _read_scripts(source, manifest_path, required=required)
    for key, value in scripts.items():
        if isinstance(value, str):
            continue
        if isinstance(value, list) and all(isinstance(item, str) for item in value):
            continue
        raise ManifestParseError(
            source.file_path,
            manifest_path,
            f"script {key!r} must be a string or a list of strings",
        )
    return [
        ResolvedTask(
            key=key,
            kind=TaskKind.COMPOSER,
            invocation=build_invocation(TaskKind.COMPOSER, key),
        )
        for key in scripts
    ]


def _read_scripts(
    source: ConfigSource,
    manifest_path: Path,
    *,
    required: bool,
) -> Mapping[str, Any]:
    if not manifest_path.is_file():
        if required:
            raise ManifestNotFoundError(source.file_path, manifest_path)
        return {}

    try:
        payload = json.loads(manifest_path.read_text("utf-8"))
    except (OSError, UnicodeDecodeError) as error:
        raise ManifestParseError(source.file_path, manifest_path, str(error)) from error
    except json.JSONDecodeError as error:
        raise ManifestParseError(
            source.file_path,
            manifest_path,
            f"invalid JSON: {error}",
        ) from error

    if not isinstance(payload, dict):
        raise ManifestParseError(source.file_path, manifest_path, "expected a JSON object")
    scripts = payload.get("scripts", {})
    if scripts is None:
        return {}
    if not isinstance(scripts, dict):
        raise ManifestParseError(source.file_path, manifest_path, "'scripts' must be an object")
    logger.debug("Read %d scripts from %s", len(scripts), manifest_path)
    return scripts
