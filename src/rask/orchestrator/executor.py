"""Leveled execution of selected tasks.

Tasks run in batches by order, deepest first, so directories nested under
a configuration finish before the configuration itself. Each batch is a
barrier: the next (shallower) batch starts only when every task of the
current batch has finished, and not at all if any of them failed.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from enum import Enum

from rask.orchestrator.backend import (
    BackendRunError,
    ProcessBackend,
    ProcessRunRequest,
    ShellBackend,
)
from rask.orchestrator.selector import SelectedTask

logger = logging.getLogger(__name__)


class ConcurrencyMode(str, Enum):
    """How tasks inside one batch are run."""

    SEQUENTIAL = "sequential"
    PARALLEL = "parallel"


class ExecutionOutcome(str, Enum):
    """Terminal result of a full run."""

    SUCCESS = "success"
    FAILURE = "failure"


@dataclass(slots=True)
class TaskFailure:
    """One task that exited non-zero, timed out, or never started."""

    task: SelectedTask
    exit_code: int | None = None
    timed_out: bool = False
    error: str | None = None

    def describe(self) -> str:
        if self.timed_out:
            status = f"timed out (exit code {self.exit_code})"
        elif self.exit_code is not None:
            status = f"exit code {self.exit_code}"
        else:
            status = self.error or "failed"
        return f"Task failed: {self.task.command} in {self.task.working_directory} ({status})"


@dataclass(slots=True)
class ExecutionReport:
    """Aggregate counters and failures for CLI reporting."""

    outcome: ExecutionOutcome = ExecutionOutcome.SUCCESS
    batches_run: int = 0
    tasks_started: int = 0
    tasks_succeeded: int = 0
    failures: list[TaskFailure] = field(default_factory=list)
    failed_order: int | None = None

    @property
    def success(self) -> bool:
        return self.outcome is ExecutionOutcome.SUCCESS


class _BatchTally:
    """Pass/fail state shared by the concurrent units of one batch."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.started = 0
        self.succeeded = 0
        self.failures: list[TaskFailure] = []

    def record_start(self) -> None:
        with self._lock:
            self.started += 1

    def record_success(self) -> None:
        with self._lock:
            self.succeeded += 1

    def record_failure(self, failure: TaskFailure) -> None:
        with self._lock:
            self.failures.append(failure)

    @property
    def failed(self) -> bool:
        with self._lock:
            return bool(self.failures)


class ExecutionEngine:
    """Runs selected tasks level by level through a process backend."""

    def __init__(
        self,
        backend: ProcessBackend | None = None,
        *,
        max_workers: int | None = None,
        timeout_seconds: float | None = None,
        shell_executable: str | None = None,
    ) -> None:
        if max_workers is not None and max_workers < 1:
            raise ValueError("max_workers must be >= 1.")
        self.backend = backend or ShellBackend()
        self.max_workers = max_workers
        self.timeout_seconds = timeout_seconds
        self.shell_executable = shell_executable

    def execute(
        self,
        tasks: Sequence[SelectedTask],
        concurrency: ConcurrencyMode = ConcurrencyMode.SEQUENTIAL,
    ) -> ExecutionReport:
        """Run every batch from the highest order down to 0, stopping at a failure."""

        report = ExecutionReport()
        max_order = max((task.order for task in tasks), default=0)

        for order in range(max_order, -1, -1):
            batch = [task for task in tasks if task.order == order]
            if not batch:
                continue

            logger.info(
                "Running batch order=%d tasks=%d mode=%s",
                order,
                len(batch),
                concurrency.value,
            )
            tally = _BatchTally()
            if concurrency is ConcurrencyMode.PARALLEL:
                self._run_parallel(batch, tally)
            else:
                self._run_sequential(batch, tally)

            report.batches_run += 1
            report.tasks_started += tally.started
            report.tasks_succeeded += tally.succeeded
            if tally.failed:
                report.failures.extend(tally.failures)
                report.outcome = ExecutionOutcome.FAILURE
                report.failed_order = order
                logger.error(
                    "Batch order=%d failed (%d of %d tasks); skipping remaining batches",
                    order,
                    len(tally.failures),
                    len(batch),
                )
                return report

        return report

    def _run_sequential(self, batch: list[SelectedTask], tally: _BatchTally) -> None:
        for task in batch:
            try:
                ok = self._run_unit(task, tally)
            except Exception as error:  # noqa: BLE001
                logger.exception("Task runner crashed: %s", task.command)
                tally.record_failure(TaskFailure(task=task, error=f"runner crashed: {error}"))
                ok = False
            if not ok:
                return

    def _run_parallel(self, batch: list[SelectedTask], tally: _BatchTally) -> None:
        width = len(batch) if self.max_workers is None else min(self.max_workers, len(batch))
        with ThreadPoolExecutor(max_workers=width, thread_name_prefix="rask-task") as pool:
            futures = {pool.submit(self._run_unit, task, tally): task for task in batch}
            for future in as_completed(futures):
                task = futures[future]
                try:
                    future.result()
                except Exception as error:  # noqa: BLE001
                    logger.exception("Task runner crashed: %s", task.command)
                    tally.record_failure(TaskFailure(task=task, error=f"runner crashed: {error}"))

    def _run_unit(self, task: SelectedTask, tally: _BatchTally) -> bool:
        tally.record_start()
        logger.info("Starting %s in %s", task.command, task.working_directory)
        request = ProcessRunRequest(
            command=task.command,
            working_directory=task.working_directory,
            env_overrides={
                "RASK_TASK": task.key,
                "RASK_CONFIG_NAME": task.config_name,
                "RASK_CONFIG_DIR": str(task.working_directory),
            },
            timeout_seconds=self.timeout_seconds,
            shell_executable=self.shell_executable,
        )
        try:
            result = self.backend.run(request)
        except BackendRunError as error:
            tally.record_failure(TaskFailure(task=task, error=str(error)))
            return False

        if not result.ok:
            tally.record_failure(
                TaskFailure(task=task, exit_code=result.exit_code, timed_out=result.timed_out),
            )
            return False

        logger.info(
            "Finished %s in %s (%.2fs)",
            task.command,
            task.working_directory,
            result.duration_seconds,
        )
        tally.record_success()
        return True
