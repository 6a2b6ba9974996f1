"""Shared test fixtures."""

from __future__ import annotations

import shlex
import sys
import threading
import time
from collections.abc import Callable
from pathlib import Path

import pytest
import yaml

from rask.orchestrator.backend import ProcessRunRequest, ProcessRunResult

_APPEND_SCRIPT = """
import sys
from pathlib import Path

with Path(sys.argv[2]).open("a", encoding="utf-8") as handle:
    handle.write(sys.argv[1] + "\\n")
raise SystemExit(int(sys.argv[3]) if len(sys.argv) > 3 else 0)
"""


class FakeBackend:
    """Records commands instead of spawning processes."""

    def __init__(
        self,
        *,
        exit_codes: dict[str, int] | None = None,
        delay_seconds: float = 0.0,
        hooks: dict[str, Callable[[], None]] | None = None,
    ) -> None:
        self.exit_codes = exit_codes or {}
        self.delay_seconds = delay_seconds
        self.hooks = hooks or {}
        self.calls: list[str] = []
        self.events: list[tuple[str, str]] = []
        self.requests: list[ProcessRunRequest] = []
        self.active = 0
        self.max_active = 0
        self._lock = threading.Lock()

    def run(self, request: ProcessRunRequest) -> ProcessRunResult:
        with self._lock:
            self.calls.append(request.command)
            self.requests.append(request)
            self.events.append(("start", request.command))
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            hook = self.hooks.get(request.command)
            if hook is not None:
                hook()
            if self.delay_seconds:
                time.sleep(self.delay_seconds)
            return ProcessRunResult(exit_code=self.exit_codes.get(request.command, 0))
        finally:
            with self._lock:
                self.active -= 1
                self.events.append(("end", request.command))


@pytest.fixture()
def fake_backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture()
def root_dir(tmp_path: Path) -> Path:
    """Canonical temporary directory, so path comparisons survive symlinked tmp roots."""
    return tmp_path.resolve()


@pytest.fixture()
def write_config() -> Callable[..., Path]:
    def _write(directory: Path, name: str, **fields: object) -> Path:
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / "rask.yaml"
        path.write_text(yaml.safe_dump({"name": name, **fields}, sort_keys=False), "utf-8")
        return path

    return _write


@pytest.fixture()
def append_command(root_dir: Path) -> Callable[..., str]:
    """Build a shell command that appends a label to a log file."""

    script = root_dir / "append_label.py"
    script.write_text(_APPEND_SCRIPT.strip() + "\n", "utf-8")

    def _command(label: str, log_path: Path, exit_code: int = 0) -> str:
        return shlex.join([sys.executable, str(script), label, str(log_path), str(exit_code)])

    return _command
