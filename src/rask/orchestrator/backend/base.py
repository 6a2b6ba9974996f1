"""Backend interface for running one task process."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol


@dataclass(slots=True)
class ProcessRunRequest:
    """Inputs required to run one task command."""

    command: str
    working_directory: Path
    env_overrides: dict[str, str] = field(default_factory=dict)
    timeout_seconds: float | None = None
    shell_executable: str | None = None


@dataclass(slots=True)
class ProcessRunResult:
    """Execution outcome from a backend runner."""

    exit_code: int
    timed_out: bool = False
    duration_seconds: float = 0.0

    @property
    def ok(self) -> bool:
        return self.exit_code == 0 and not self.timed_out


class ProcessBackend(Protocol):
    """Protocol implemented by process runners."""

    def run(self, request: ProcessRunRequest) -> ProcessRunResult:
        """Run a command to completion and return its exit status."""
