"""Directory glob rule shared by discovery and structure building.

A pattern from ``directories`` is joined to the directory of the declaring
configuration. Unless it already names a ``.yaml`` file, the default
configuration filename is appended, so ``packages/*`` means
``<dir>/packages/*/rask.yaml``.
"""

from __future__ import annotations

import fnmatch
import glob
import os
from pathlib import Path, PurePath

from rask.workspace.errors import GlobPatternError

DEFAULT_CONFIG_FILENAME = "rask.yaml"
CONFIG_SUFFIX = ".yaml"


def validate_directory_pattern(pattern: str) -> None:
    """Raise ``GlobPatternError`` when a directory pattern is unusable."""

    if not pattern.strip():
        raise GlobPatternError(pattern, "pattern is empty")
    if PurePath(pattern).is_absolute() or pattern.startswith(("/", "\\")):
        raise GlobPatternError(pattern, "pattern must be relative to its configuration")

    for component in pattern.replace("\\", "/").split("/"):
        if "**" in component and component != "**":
            raise GlobPatternError(pattern, "'**' must form a whole path component")
        _check_brackets(pattern, component)


def _check_brackets(pattern: str, component: str) -> None:
    in_class = False
    for char in component:
        if char == "[":
            in_class = True
        elif char == "]":
            in_class = False
    if in_class:
        raise GlobPatternError(pattern, "unclosed '[' in character class")


def config_glob_pattern(dir_path: Path, pattern: str) -> str:
    """Build the absolute glob for one ``directories`` entry."""

    validate_directory_pattern(pattern)
    # glob characters in the config's own directory are literal
    literal_dir = glob.escape(os.path.normpath(dir_path))
    joined = os.path.normpath(os.path.join(literal_dir, pattern))
    if not joined.endswith(CONFIG_SUFFIX):
        joined = os.path.join(joined, DEFAULT_CONFIG_FILENAME)
    return joined


def expand_config_pattern(glob_pattern: str) -> list[Path]:
    """Expand a glob on the filesystem into sorted, canonical config paths."""

    matches: list[Path] = []
    seen: set[Path] = set()
    for match in sorted(glob.glob(glob_pattern, recursive=True, include_hidden=True)):
        if not os.path.isfile(match):
            continue
        canonical = Path(match).resolve()
        if canonical in seen:
            continue
        seen.add(canonical)
        matches.append(canonical)
    return matches


def matches_config_pattern(glob_pattern: str, path: Path) -> bool:
    """Match a path against a glob without touching the filesystem.

    Escaped characters from ``config_glob_pattern`` (``[[]``, ``[*]``) are
    single-character classes for ``fnmatch`` too, so they match literally.
    """

    return _match_parts(PurePath(glob_pattern).parts, PurePath(path).parts)


def _match_parts(pattern_parts: tuple[str, ...], path_parts: tuple[str, ...]) -> bool:
    if not pattern_parts:
        return not path_parts

    head, rest = pattern_parts[0], pattern_parts[1:]
    if head == "**":
        return any(_match_parts(rest, path_parts[index:]) for index in range(len(path_parts) + 1))
    if not path_parts:
        return False
    return fnmatch.fnmatch(path_parts[0], head) and _match_parts(rest, path_parts[1:])
