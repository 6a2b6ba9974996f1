"""Subprocess-based backend that runs task commands through a shell."""

from __future__ import annotations

import os
import subprocess
import time

from rask.orchestrator.backend.base import ProcessRunRequest, ProcessRunResult

TIMEOUT_EXIT_CODE = 124


class BackendRunError(RuntimeError):
    """Task process could not be started."""

    def __init__(self, message: str, *, command: str) -> None:
        super().__init__(message)
        self.command = command


class ShellBackend:
    """Run commands via the command interpreter, streaming output through."""

    def __init__(self, *, poll_interval_seconds: float = 0.05) -> None:
        self.poll_interval_seconds = poll_interval_seconds

    def run(self, request: ProcessRunRequest) -> ProcessRunResult:
        env = os.environ.copy()
        env.update(request.env_overrides)

        try:
            process = subprocess.Popen(  # noqa: S602
                request.command,
                shell=True,
                cwd=request.working_directory,
                env=env,
                executable=request.shell_executable,
            )
        except OSError as error:
            raise BackendRunError(
                f"Task failed to start in {request.working_directory}: {error}",
                command=request.command,
            ) from error

        return _wait_with_timeout(
            process,
            timeout_seconds=request.timeout_seconds,
            poll_interval_seconds=self.poll_interval_seconds,
        )


def _wait_with_timeout(
    process: subprocess.Popen[bytes],
    *,
    timeout_seconds: float | None,
    poll_interval_seconds: float,
) -> ProcessRunResult:
    start_monotonic = time.monotonic()
    if timeout_seconds is None:
        returncode = process.wait()
        return ProcessRunResult(
            exit_code=returncode,
            duration_seconds=time.monotonic() - start_monotonic,
        )

    while True:
        returncode = process.poll()
        elapsed = time.monotonic() - start_monotonic
        if returncode is not None:
            return ProcessRunResult(exit_code=returncode, duration_seconds=elapsed)

        if elapsed >= timeout_seconds:
            _terminate_process(process)
            return ProcessRunResult(
                exit_code=TIMEOUT_EXIT_CODE,
                timed_out=True,
                duration_seconds=time.monotonic() - start_monotonic,
            )

        time.sleep(poll_interval_seconds)


def _terminate_process(process: subprocess.Popen[bytes]) -> None:
    try:
        process.terminate()
    except OSError:
        return
    try:
        process.wait(timeout=2)
    except subprocess.TimeoutExpired:
        try:
            process.kill()
        except OSError:
            return
        process.wait(timeout=2)
