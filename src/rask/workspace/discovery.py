"""Find every configuration reachable from an entry configuration."""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path

from rask.workspace.errors import PathNotFoundError
from rask.workspace.loader import load_config
from rask.workspace.models import ConfigSource
from rask.workspace.patterns import config_glob_pattern, expand_config_pattern

logger = logging.getLogger(__name__)


def discover(
    entry_path: Path,
    *,
    loader: Callable[[Path], ConfigSource] = load_config,
) -> dict[Path, ConfigSource]:
    """Walk ``directories`` patterns from the entry and load each config once.

    Keys of the returned mapping are the discovered set of canonical paths,
    in the order they were first found. Edges are not recorded here; the
    structure builder re-derives them from the same glob rule.
    """

    if not entry_path.exists():
        raise PathNotFoundError(entry_path)

    root = entry_path.resolve()
    found: dict[Path, ConfigSource | None] = {root: None}
    stack: list[Path] = [root]

    while stack:
        path = stack.pop()
        source = loader(path)
        found[path] = source
        logger.debug("Visiting %s (%s)", source.name, path)

        for pattern in source.directories:
            glob_pattern = config_glob_pattern(source.dir_path, pattern)
            for match in expand_config_pattern(glob_pattern):
                if match in found:
                    continue
                logger.debug("Found %s via %r in %s", match, pattern, path)
                found[match] = None
                stack.append(match)

    return {path: source for path, source in found.items() if source is not None}
