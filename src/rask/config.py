"""Runtime configuration for discovery, validation, and execution."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field

from rask.workspace.structure import DEFAULT_MAX_DEPTH

LOG_LEVELS: dict[str, int] = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


@dataclass(slots=True)
class DiscoverySettings:
    """Structure building limits."""

    max_depth: int = DEFAULT_MAX_DEPTH


@dataclass(slots=True)
class ValidationSettings:
    """Optional uniqueness rules applied to the whole tree."""

    unique_config_names: bool = True
    unique_task_names: bool = False


@dataclass(slots=True)
class ExecutionSettings:
    """Process execution settings."""

    max_workers: int | None = None
    timeout_seconds: float | None = None
    shell: str | None = None


@dataclass(slots=True)
class Settings:
    """Application settings grouped by concern."""

    discovery: DiscoverySettings = field(default_factory=DiscoverySettings)
    validation: ValidationSettings = field(default_factory=ValidationSettings)
    execution: ExecutionSettings = field(default_factory=ExecutionSettings)
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls) -> Settings:
        """Load settings from ``RASK_*`` environment variables."""

        return cls(
            discovery=DiscoverySettings(
                max_depth=int(os.getenv("RASK_MAX_DEPTH", str(DEFAULT_MAX_DEPTH))),
            ),
            validation=ValidationSettings(
                unique_config_names=_env_bool("RASK_UNIQUE_CONFIG_NAMES", default=True),
                unique_task_names=_env_bool("RASK_UNIQUE_TASK_NAMES", default=False),
            ),
            execution=ExecutionSettings(
                max_workers=_env_optional_int("RASK_MAX_WORKERS"),
                timeout_seconds=_env_optional_float("RASK_TASK_TIMEOUT_SECONDS"),
                shell=os.getenv("RASK_SHELL") or None,
            ),
            log_level=os.getenv("RASK_LOG_LEVEL", "WARNING").strip().upper() or "WARNING",
        )

    def validate(self) -> None:
        """Raise configuration error for out-of-range values."""

        if self.discovery.max_depth < 1:
            raise ValueError("RASK_MAX_DEPTH must be >= 1.")
        if self.execution.max_workers is not None and self.execution.max_workers < 1:
            raise ValueError("RASK_MAX_WORKERS must be >= 1.")
        if self.execution.timeout_seconds is not None and self.execution.timeout_seconds <= 0:
            raise ValueError("RASK_TASK_TIMEOUT_SECONDS must be > 0.")
        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(
                f"Invalid log level {self.log_level!r}. Expected one of: {', '.join(LOG_LEVELS)}",
            )


def _env_optional_int(name: str) -> int | None:
    value = os.getenv(name, "").strip()
    if not value:
        return None
    try:
        return int(value)
    except ValueError as error:
        raise ValueError(f"Invalid integer value for {name}: {value!r}") from error


def _env_optional_float(name: str) -> float | None:
    value = os.getenv(name, "").strip()
    if not value:
        return None
    try:
        return float(value)
    except ValueError as error:
        raise ValueError(f"Invalid number value for {name}: {value!r}") from error


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"Invalid boolean value for {name}: {value!r}")
