from __future__ import annotations

import shlex
import sys
import threading
from pathlib import Path

import allure
import pytest

from rask.orchestrator.backend import BackendRunError, ProcessRunRequest, ShellBackend
from rask.orchestrator.executor import (
    ConcurrencyMode,
    ExecutionEngine,
    ExecutionOutcome,
)
from rask.orchestrator.selector import SelectedTask

pytestmark = [
    allure.epic("Orchestrator"),
    allure.feature("Execution Engine"),
]


def _task(command: str, order: int, directory: Path = Path("/"), key: str = "build") -> SelectedTask:
    return SelectedTask(key=key, command=command, working_directory=directory, order=order)


def _python(code: str) -> str:
    return shlex.join([sys.executable, "-c", code])


def test_empty_task_list_succeeds_without_batches(fake_backend) -> None:
    report = ExecutionEngine(fake_backend).execute([])

    assert report.outcome is ExecutionOutcome.SUCCESS
    assert report.batches_run == 0
    assert fake_backend.calls == []


def test_batches_run_from_deepest_order_to_root(fake_backend) -> None:
    tasks = [_task("root", 0), _task("child-a", 1), _task("leaf", 2), _task("child-b", 1)]

    report = ExecutionEngine(fake_backend).execute(tasks)

    assert report.success
    assert fake_backend.calls == ["leaf", "child-a", "child-b", "root"]
    assert report.batches_run == 3
    assert report.tasks_succeeded == 4


def test_missing_orders_are_skipped(fake_backend) -> None:
    report = ExecutionEngine(fake_backend).execute([_task("deep", 3), _task("root", 0)])

    assert fake_backend.calls == ["deep", "root"]
    assert report.batches_run == 2


def test_parallel_levels_are_barriers(fake_backend) -> None:
    fake_backend.delay_seconds = 0.02
    tasks = [
        _task("root", 0),
        _task("a", 1),
        _task("b", 1),
        _task("leaf-1", 2),
        _task("leaf-2", 2),
        _task("leaf-3", 2),
    ]

    report = ExecutionEngine(fake_backend).execute(tasks, ConcurrencyMode.PARALLEL)

    assert report.success
    events = fake_backend.events
    last_end = {
        order: max(events.index(("end", t.command)) for t in tasks if t.order == order)
        for order in (1, 2)
    }
    first_start = {
        order: min(events.index(("start", t.command)) for t in tasks if t.order == order)
        for order in (0, 1)
    }
    assert last_end[2] < first_start[1]
    assert last_end[1] < first_start[0]


def test_sequential_failure_stops_remaining_batch_tasks(fake_backend) -> None:
    fake_backend.exit_codes = {"first": 2}
    tasks = [_task("root", 0), _task("first", 1), _task("second", 1)]

    report = ExecutionEngine(fake_backend).execute(tasks, ConcurrencyMode.SEQUENTIAL)

    assert report.outcome is ExecutionOutcome.FAILURE
    assert fake_backend.calls == ["first"]
    assert report.failed_order == 1
    assert [(f.task.command, f.exit_code) for f in report.failures] == [("first", 2)]


def test_parallel_failure_lets_siblings_finish_and_skips_parent(fake_backend) -> None:
    barrier = threading.Barrier(2, timeout=5)
    fake_backend.exit_codes = {"sibling-fails": 1}
    fake_backend.hooks = {"sibling-fails": barrier.wait, "sibling-ok": barrier.wait}
    tasks = [_task("root", 0), _task("sibling-fails", 1), _task("sibling-ok", 1)]

    report = ExecutionEngine(fake_backend).execute(tasks, ConcurrencyMode.PARALLEL)

    assert report.outcome is ExecutionOutcome.FAILURE
    assert sorted(fake_backend.calls) == ["sibling-fails", "sibling-ok"]
    assert report.tasks_started == 2
    assert report.tasks_succeeded == 1
    assert [f.task.command for f in report.failures] == ["sibling-fails"]
    assert "root" not in fake_backend.calls


def test_parallel_all_failures_are_reported(fake_backend) -> None:
    fake_backend.exit_codes = {"a": 1, "b": 3}

    report = ExecutionEngine(fake_backend).execute(
        [_task("a", 0), _task("b", 0)],
        ConcurrencyMode.PARALLEL,
    )

    assert sorted((f.task.command, f.exit_code) for f in report.failures) == [("a", 1), ("b", 3)]


def test_max_workers_bounds_parallel_batch(fake_backend) -> None:
    fake_backend.delay_seconds = 0.05
    tasks = [_task(f"t{index}", 0) for index in range(6)]

    report = ExecutionEngine(fake_backend, max_workers=2).execute(tasks, ConcurrencyMode.PARALLEL)

    assert report.success
    assert len(fake_backend.calls) == 6
    assert fake_backend.max_active <= 2


def test_max_workers_must_be_positive(fake_backend) -> None:
    with pytest.raises(ValueError, match="max_workers"):
        ExecutionEngine(fake_backend, max_workers=0)


def test_crashed_runner_counts_as_task_failure(fake_backend) -> None:
    def _boom() -> None:
        raise RuntimeError("boom")

    fake_backend.hooks = {"crash": _boom}

    for mode in ConcurrencyMode:
        report = ExecutionEngine(fake_backend).execute([_task("crash", 0)], mode)

        assert report.outcome is ExecutionOutcome.FAILURE
        assert report.failures[0].error == "runner crashed: boom"


def test_backend_start_error_is_task_failure(fake_backend) -> None:
    def _cannot_start() -> None:
        raise BackendRunError("Task failed to start", command="nope")

    fake_backend.hooks = {"nope": _cannot_start}

    report = ExecutionEngine(fake_backend).execute([_task("nope", 0)])

    assert report.outcome is ExecutionOutcome.FAILURE
    assert report.failures[0].exit_code is None
    assert "failed to start" in report.failures[0].describe()


def test_task_environment_identifies_task(fake_backend, root_dir: Path) -> None:
    task = SelectedTask(
        key="test",
        command="pytest",
        working_directory=root_dir,
        order=0,
        config_name="api",
    )

    ExecutionEngine(fake_backend, timeout_seconds=5, shell_executable="/bin/bash").execute([task])

    request = fake_backend.requests[0]
    assert request.env_overrides == {
        "RASK_TASK": "test",
        "RASK_CONFIG_NAME": "api",
        "RASK_CONFIG_DIR": str(root_dir),
    }
    assert request.timeout_seconds == 5
    assert request.shell_executable == "/bin/bash"


def test_failure_description_names_command_and_status(root_dir: Path) -> None:
    engine = ExecutionEngine(ShellBackend())

    report = engine.execute([_task(_python("raise SystemExit(3)"), 0, root_dir)])

    assert report.failures[0].exit_code == 3
    assert "exit code 3" in report.failures[0].describe()
    assert str(root_dir) in report.failures[0].describe()


def test_shell_backend_runs_in_working_directory(root_dir: Path) -> None:
    workdir = root_dir / "pkg"
    workdir.mkdir()
    command = _python(
        "import os, pathlib; pathlib.Path('cwd.txt').write_text(os.getcwd() + '|' + os.environ['X'])",
    )

    result = ShellBackend().run(
        ProcessRunRequest(command=command, working_directory=workdir, env_overrides={"X": "42"}),
    )

    assert result.ok
    assert (workdir / "cwd.txt").read_text("utf-8") == f"{workdir}|42"


def test_shell_backend_terminates_on_timeout(root_dir: Path) -> None:
    result = ShellBackend().run(
        ProcessRunRequest(
            command=_python("import time; time.sleep(30)"),
            working_directory=root_dir,
            timeout_seconds=0.3,
        ),
    )

    assert result.timed_out
    assert result.exit_code == 124
    assert not result.ok


def test_shell_backend_missing_directory_cannot_start(root_dir: Path) -> None:
    with pytest.raises(BackendRunError, match="failed to start"):
        ShellBackend().run(
            ProcessRunRequest(command="echo hi", working_directory=root_dir / "missing"),
        )
