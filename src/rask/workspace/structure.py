"""Rebuild the parent/child tree from directory patterns."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path

from rask.workspace.errors import (
    DuplicateConfigNameError,
    DuplicateTaskNameError,
    StructureCycleError,
    StructureDepthError,
    UnknownConfigPathError,
)
from rask.workspace.models import ResolvedConfig, StructureNode
from rask.workspace.patterns import config_glob_pattern, matches_config_pattern

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 64


def build_structure(
    root_path: Path,
    resolved_by_path: Mapping[Path, ResolvedConfig],
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> StructureNode:
    """Build the tree rooted at ``root_path``.

    Children are matched against the discovered paths, not the filesystem.
    They follow ``directories`` order, and sorted path order within one
    pattern. A configuration is placed once; later matches of an already
    placed path are skipped.
    """

    if root_path not in resolved_by_path:
        raise UnknownConfigPathError(root_path)

    builder = _StructureBuilder(resolved_by_path, max_depth=max_depth)
    builder.placed.add(root_path)
    return builder.build(root_path, ancestors=[])


class _StructureBuilder:
    def __init__(self, resolved_by_path: Mapping[Path, ResolvedConfig], *, max_depth: int) -> None:
        self.resolved_by_path = resolved_by_path
        self.max_depth = max_depth
        self.candidates = sorted(resolved_by_path)
        self.placed: set[Path] = set()

    def build(self, path: Path, *, ancestors: list[Path]) -> StructureNode:
        config = self.resolved_by_path.get(path)
        if config is None:
            raise UnknownConfigPathError(path)
        if len(ancestors) > self.max_depth:
            raise StructureDepthError(path, self.max_depth)

        chain = [*ancestors, path]
        children = [
            self.build(child_path, ancestors=chain)
            for child_path in self._child_paths(config, chain)
        ]
        return StructureNode(config=config, children=tuple(children))

    def _child_paths(self, config: ResolvedConfig, chain: list[Path]) -> list[Path]:
        child_paths: list[Path] = []
        for pattern in config.directories:
            glob_pattern = config_glob_pattern(config.dir_path, pattern)
            for candidate in self.candidates:
                if candidate == config.file_path:
                    continue
                if not matches_config_pattern(glob_pattern, candidate):
                    continue
                if candidate in chain:
                    raise StructureCycleError([*chain, candidate])
                if candidate in self.placed:
                    logger.debug(
                        "Skipping %s under %s: already placed in the tree",
                        candidate,
                        config.name,
                    )
                    continue
                self.placed.add(candidate)
                child_paths.append(candidate)
        return child_paths


def validate_structure(
    root: StructureNode,
    *,
    unique_config_names: bool = True,
    unique_task_names: bool = False,
) -> None:
    """Apply optional uniqueness rules across the whole tree."""

    config_names: dict[str, Path] = {}
    task_owners: dict[str, Path] = {}
    for node, _depth in root.walk():
        config = node.config
        if unique_config_names:
            first = config_names.setdefault(config.name, config.file_path)
            if first != config.file_path:
                raise DuplicateConfigNameError(config.name, first, config.file_path)
        if unique_task_names:
            for key in config.task_keys:
                owner = task_owners.setdefault(key, config.file_path)
                if owner != config.file_path:
                    raise DuplicateTaskNameError(key, owner, config.file_path)
