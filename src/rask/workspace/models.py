"""Domain models for loaded and resolved configurations."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType


class TaskEngine(str, Enum):
    """How a configuration turns its declarations into runnable tasks."""

    SHELL = "shell"
    NPM = "npm"
    YARN = "yarn"
    COMPOSER = "composer"
    AUTO = "auto"

    @classmethod
    def parse(cls, value: str) -> TaskEngine:
        normalized = value.strip().lower()
        if normalized == "none":
            return cls.SHELL
        return cls(normalized)


class TaskKind(str, Enum):
    """Origin of one resolved task."""

    SHELL = "shell"
    NPM = "npm"
    YARN = "yarn"
    COMPOSER = "composer"


@dataclass(frozen=True, slots=True)
class ConfigSource:
    """One parsed rask.yaml file with its location."""

    name: str
    task_engine: TaskEngine
    directories: tuple[str, ...]
    tasks: Mapping[str, str]
    file_path: Path
    dir_path: Path

    @classmethod
    def create(  # noqa: PLR0913
        cls,
        *,
        name: str,
        file_path: Path,
        task_engine: TaskEngine = TaskEngine.AUTO,
        directories: tuple[str, ...] | list[str] = (),
        tasks: Mapping[str, str] | None = None,
    ) -> ConfigSource:
        return cls(
            name=name,
            task_engine=task_engine,
            directories=tuple(directories),
            tasks=MappingProxyType(dict(tasks or {})),
            file_path=file_path,
            dir_path=file_path.parent,
        )


@dataclass(frozen=True, slots=True)
class ResolvedTask:
    """Named, runnable task."""

    key: str
    kind: TaskKind
    invocation: str


@dataclass(frozen=True, slots=True)
class ResolvedConfig:
    """Configuration whose task engine has been applied."""

    source: ConfigSource
    tasks: tuple[ResolvedTask, ...]

    @property
    def name(self) -> str:
        return self.source.name

    @property
    def file_path(self) -> Path:
        return self.source.file_path

    @property
    def dir_path(self) -> Path:
        return self.source.dir_path

    @property
    def directories(self) -> tuple[str, ...]:
        return self.source.directories

    @property
    def task_keys(self) -> tuple[str, ...]:
        return tuple(task.key for task in self.tasks)


@dataclass(frozen=True, slots=True)
class StructureNode:
    """Node of the configuration tree rooted at the entry configuration."""

    config: ResolvedConfig
    children: tuple[StructureNode, ...] = field(default_factory=tuple)

    def walk(self, depth: int = 0) -> Iterator[tuple[StructureNode, int]]:
        """Yield nodes depth-first, pre-order, with their distance from this node."""

        yield self, depth
        for child in self.children:
            yield from child.walk(depth + 1)
