"""Errors raised while loading and assembling a workspace.

Every error here is fatal to the run: nothing executes once discovery,
loading, engine resolution, or structure building has failed.
"""

from __future__ import annotations

from pathlib import Path


class RaskError(RuntimeError):
    """Base class for user-facing rask errors."""


class PathNotFoundError(RaskError):
    """Entry point or referenced configuration path does not exist."""

    def __init__(self, path: Path | str) -> None:
        super().__init__(f"Target does not exist: {path}")
        self.path = Path(path)


class ConfigReadError(RaskError):
    """Configuration file exists but cannot be read."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"Failed to read {path}: {reason}")
        self.path = path


class ConfigParseError(RaskError):
    """Configuration content is malformed or has the wrong shape."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"Invalid configuration {path}: {reason}")
        self.path = path


class ManifestNotFoundError(ConfigParseError):
    """Task engine requires a package manifest that is absent."""

    def __init__(self, path: Path, manifest_path: Path) -> None:
        super().__init__(path, f"task engine requires {manifest_path.name}, not found")
        self.manifest_path = manifest_path


class ManifestParseError(ConfigParseError):
    """Package manifest exists but cannot be interpreted."""

    def __init__(self, path: Path, manifest_path: Path, reason: str) -> None:
        super().__init__(path, f"{manifest_path.name}: {reason}")
        self.manifest_path = manifest_path


class GlobPatternError(RaskError):
    """Directory pattern cannot be used as a glob."""

    def __init__(self, pattern: str, reason: str) -> None:
        super().__init__(f"Invalid directory pattern {pattern!r}: {reason}")
        self.pattern = pattern


class UnknownConfigPathError(RaskError):
    """Structure builder was asked for a path that discovery never loaded."""

    def __init__(self, path: Path) -> None:
        super().__init__(f"No loaded configuration for {path}")
        self.path = path


class StructureCycleError(RaskError):
    """Directory patterns lead back to an ancestor configuration."""

    def __init__(self, chain: list[Path]) -> None:
        rendered = " -> ".join(str(path) for path in chain)
        super().__init__(f"Configuration cycle detected: {rendered}")
        self.chain = chain


class StructureDepthError(RaskError):
    """Configuration tree is deeper than the configured limit."""

    def __init__(self, path: Path, max_depth: int) -> None:
        super().__init__(f"Configuration tree exceeds max depth {max_depth} at {path}")
        self.path = path
        self.max_depth = max_depth


class DuplicateConfigNameError(RaskError):
    """Two configurations share one name."""

    def __init__(self, name: str, first: Path, second: Path) -> None:
        super().__init__(f"Duplicate config name {name!r} found: {first} and {second}")
        self.name = name


class DuplicateTaskNameError(RaskError):
    """Two configurations define the same task while uniqueness is enforced."""

    def __init__(self, key: str, first: Path, second: Path) -> None:
        super().__init__(f"Duplicate task name {key!r} found: {first} and {second}")
        self.key = key


class ConfigExistsError(RaskError):
    """Refusing to overwrite an existing configuration file."""

    def __init__(self, path: Path) -> None:
        super().__init__(f"Rask already initialised at {path}")
        self.path = path
