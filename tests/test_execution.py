# ============================================================================
# EXECUTION ENGINE TESTS
# ============================================================================
# EPOCH: 1 - MODULE SET ORCHESTRATION
# STATUS: Tests - Local subprocess execution
# PURPOSE: Verify exit code mapping, upstream waits and cancellation
# CREATED: 19 OCT 2026
# ============================================================================
"""
Execution Engine Tests

Builds run the current Python interpreter so the tests need no build tool.
The exit code is taken from the EXIT_CODE build parameter.

Run with:
    pytest tests/test_execution.py -v
"""

import sys
import time

import pytest

from core.contracts import ExecutionStatus
from core.errors import DispatchSubmissionError
from core.models import ModuleSet
from infrastructure.execution import ThreadPoolExecutionEngine

EXIT_WITH_PARAMETER = [
    sys.executable,
    "-c",
    "import os, sys; print(os.environ['MODULE_NAME'], os.environ['BUILD_NUMBER']); "
    "sys.exit(int(os.environ.get('EXIT_CODE', '0')))",
]

SLEEP = [sys.executable, "-c", "import time; time.sleep(30)"]


def wait_for(engine, handle, timeout=20.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        status = engine.status(handle)
        if status.is_terminal():
            return status
        time.sleep(0.05)
    raise AssertionError(f"Build {handle} did not finish within {timeout}s")


@pytest.fixture
def make_engine(tmp_path):
    engines = []

    def _make(command=EXIT_WITH_PARAMETER, **kwargs):
        kwargs.setdefault("workspace", str(tmp_path))
        engine = ThreadPoolExecutionEngine(command, **kwargs)
        engines.append(engine)
        return engine

    yield _make
    for engine in engines:
        engine.shutdown(wait=False)


# ============================================================================
# EXIT CODES
# ============================================================================

class TestExitCodes:

    def test_success(self, make_engine, make_module):
        engine = make_engine()
        handle = engine.submit_module_build(make_module("acme:a", root_path=""), 7, {}, [])
        assert wait_for(engine, handle) == ExecutionStatus.SUCCESS
        assert "acme:a 7" in engine.output(handle)

    def test_failure(self, make_engine, make_module):
        engine = make_engine()
        handle = engine.submit_module_build(make_module("acme:a", root_path=""), 1, {"EXIT_CODE": 2}, [])
        assert wait_for(engine, handle) == ExecutionStatus.FAILURE

    def test_unstable_exit_code(self, make_engine, make_module):
        engine = make_engine(unstable_exit_code=3)
        handle = engine.submit_module_build(make_module("acme:a", root_path=""), 1, {"EXIT_CODE": 3}, [])
        assert wait_for(engine, handle) == ExecutionStatus.UNSTABLE

    def test_missing_module_root_fails(self, make_engine, make_module):
        engine = make_engine()
        handle = engine.submit_module_build(make_module("acme:a", root_path="missing"), 1, {}, [])
        assert wait_for(engine, handle) == ExecutionStatus.FAILURE

    def test_aggregated_build_environment(self, make_engine, make_module):
        command = [
            sys.executable,
            "-c",
            "import os; print(os.environ['MODULE_SET'], os.environ['MODULES'], os.environ['CHANGED'])",
        ]
        engine = make_engine(command)
        handle = engine.submit_aggregated_build(
            ModuleSet(name="platform"),
            [make_module("acme:a"), make_module("acme:b")],
            4,
            {"CHANGED": "acme:b"},
        )
        assert wait_for(engine, handle) == ExecutionStatus.SUCCESS
        assert "platform acme:a,acme:b acme:b" in engine.output(handle)


# ============================================================================
# UPSTREAM HANDLING
# ============================================================================

class TestUpstream:

    def test_downstream_waits_and_runs(self, make_engine, make_module):
        engine = make_engine(max_workers=2)
        first = engine.submit_module_build(make_module("acme:a", root_path=""), 1, {}, [])
        second = engine.submit_module_build(make_module("acme:b", root_path=""), 1, {}, [first])
        assert wait_for(engine, second) == ExecutionStatus.SUCCESS
        assert engine.status(first) == ExecutionStatus.SUCCESS

    def test_failed_upstream_means_not_built(self, make_engine, make_module):
        engine = make_engine()
        first = engine.submit_module_build(make_module("acme:a", root_path=""), 1, {"EXIT_CODE": 1}, [])
        second = engine.submit_module_build(make_module("acme:b", root_path=""), 1, {}, [first])
        assert wait_for(engine, second) == ExecutionStatus.NOT_BUILT
        assert engine.output(second) == ""

    def test_unknown_upstream_handle_rejected(self, make_engine, make_module):
        engine = make_engine()
        with pytest.raises(DispatchSubmissionError):
            engine.submit_module_build(make_module("acme:a"), 1, {}, ["nope"])


# ============================================================================
# SUBMISSION ERRORS / CONTROL
# ============================================================================

class TestControl:

    def test_bad_template_rejected(self, make_engine, make_module):
        engine = make_engine(["make", "{target}"])
        with pytest.raises(DispatchSubmissionError):
            engine.submit_module_build(make_module("acme:a"), 1, {}, [])

    def test_submit_after_shutdown_rejected(self, make_engine, make_module):
        engine = make_engine()
        engine.shutdown()
        with pytest.raises(DispatchSubmissionError):
            engine.submit_module_build(make_module("acme:a", root_path=""), 1, {}, [])

    def test_unknown_handle(self, make_engine):
        with pytest.raises(KeyError):
            make_engine().status("nope")

    def test_cancel_running_and_queued(self, make_engine, make_module):
        engine = make_engine(SLEEP, max_workers=1)
        running = engine.submit_module_build(make_module("acme:a", root_path=""), 1, {}, [])
        queued = engine.submit_module_build(make_module("acme:b", root_path=""), 1, {}, [])

        engine.cancel(queued)
        engine.cancel(running)

        assert wait_for(engine, queued) == ExecutionStatus.ABORTED
        assert wait_for(engine, running) == ExecutionStatus.ABORTED

    def test_cancel_finished_build_is_noop(self, make_engine, make_module):
        engine = make_engine()
        handle = engine.submit_module_build(make_module("acme:a", root_path=""), 1, {}, [])
        wait_for(engine, handle)
        engine.cancel(handle)
        assert engine.status(handle) == ExecutionStatus.SUCCESS

    def test_release_forgets_finished_builds_only(self, make_engine, make_module):
        engine = make_engine(SLEEP, max_workers=1)
        finished = engine.submit_module_build(make_module("acme:a", root_path=""), 1, {}, [])
        engine.cancel(finished)
        assert wait_for(engine, finished) == ExecutionStatus.ABORTED
        running = engine.submit_module_build(make_module("acme:b", root_path=""), 1, {}, [])

        engine.release([finished, running])

        assert engine.tracked() == 1
        with pytest.raises(KeyError):
            engine.status(finished)
        assert not engine.status(running).is_terminal()
        engine.cancel(running)
