"""Process backend implementations."""

from rask.orchestrator.backend.base import ProcessBackend, ProcessRunRequest, ProcessRunResult
from rask.orchestrator.backend.shell_backend import BackendRunError, ShellBackend

__all__ = [
    "BackendRunError",
    "ProcessBackend",
    "ProcessRunRequest",
    "ProcessRunResult",
    "ShellBackend",
]
