"""Select matching tasks across the tree and assign dependency order."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from rask.workspace.models import ResolvedTask, StructureNode


class MatchMode(str, Enum):
    """How a requested task name is compared with task keys."""

    EXACT = "exact"
    PREFIX = "prefix"


@dataclass(frozen=True, slots=True)
class SelectedTask:
    """One command to run, with its directory and order (tree depth)."""

    key: str
    command: str
    working_directory: Path
    order: int
    config_name: str = ""


def select_tasks(
    root: StructureNode,
    task_name: str,
    match_mode: MatchMode = MatchMode.EXACT,
) -> list[SelectedTask]:
    """Collect matching tasks depth-first; the root has order 0."""

    selected: list[SelectedTask] = []
    for node, depth in root.walk():
        config = node.config
        selected.extend(
            SelectedTask(
                key=task.key,
                command=task.invocation,
                working_directory=config.dir_path,
                order=depth,
                config_name=config.name,
            )
            for task in config.tasks
            if _matches(task, task_name, match_mode)
        )
    return selected


def collect_task_names(root: StructureNode) -> set[str]:
    return {task.key for node, _depth in root.walk() for task in node.config.tasks}


def _matches(task: ResolvedTask, task_name: str, match_mode: MatchMode) -> bool:
    if match_mode is MatchMode.PREFIX:
        return task.key.startswith(task_name)
    return task.key == task_name
