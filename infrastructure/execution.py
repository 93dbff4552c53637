# ============================================================================
# EXECUTION ENGINE
# ============================================================================
# EPOCH: 1 - MODULE SET ORCHESTRATION
# STATUS: Infrastructure - Local build execution
# PURPOSE: Run module and aggregated builds as subprocesses on a thread pool
# CREATED: 19 OCT 2026
# ============================================================================
"""
Thread Pool Execution Engine

Runs each submitted build as one subprocess on a worker thread. A build
submitted with ``depends_on`` handles waits for those builds first and is
recorded NOT_BUILT if any of them did not succeed.

Submissions are queued FIFO and dispatch submits in dependency order, so a
build only ever waits on builds that were dequeued before it.

Command templates are argument lists with ``{module}``, ``{root}``,
``{build_number}`` and ``{module_set}`` placeholders. Build parameters and
properties are passed to the process as environment variables.

Exit codes:
    0                   -> SUCCESS
    unstable_exit_code  -> UNSTABLE (when configured)
    anything else       -> FAILURE
"""

import logging
import os
import subprocess
import threading
import uuid
from concurrent.futures import CancelledError, Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

from core.contracts import ExecutionStatus
from core.errors import DispatchSubmissionError
from core.models import Module, ModuleSet

logger = logging.getLogger(__name__)

# Characters of process output kept per build
OUTPUT_TAIL = 4000

_PASSING = (ExecutionStatus.SUCCESS, ExecutionStatus.UNSTABLE)


@dataclass
class Submission:
    """Engine-side record of one submitted build."""
    handle: str
    label: str
    command: List[str]
    cwd: Path
    env: Dict[str, str]
    depends_on: List[str] = field(default_factory=list)
    status: ExecutionStatus = ExecutionStatus.PENDING
    returncode: Optional[int] = None
    output: str = ""
    cancel_requested: bool = False
    future: Optional[Future] = None
    process: Optional[subprocess.Popen] = None


class ThreadPoolExecutionEngine:
    """
    Local execution engine.

    Usage:
        engine = ThreadPoolExecutionEngine(["make", "-C", "{root}"], max_workers=4)
        handle = engine.submit_module_build(module, 12, {}, [])
        engine.status(handle)
    """

    def __init__(
        self,
        command_template: Sequence[str],
        max_workers: int = 4,
        workspace: str = ".",
        unstable_exit_code: Optional[int] = None,
    ):
        self.command_template = list(command_template)
        self.workspace = Path(workspace)
        self.unstable_exit_code = unstable_exit_code
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="module-build"
        )
        self._lock = threading.Lock()
        self._submissions: Dict[str, Submission] = {}

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def submit_module_build(
        self,
        module: Module,
        build_number: int,
        upstream_parameters: Mapping[str, Any],
        depends_on: Sequence[str],
    ) -> str:
        env = {str(k): str(v) for k, v in upstream_parameters.items()}
        env.update({
            "BUILD_NUMBER": str(build_number),
            "MODULE_NAME": module.key,
        })
        return self._submit(
            label=module.key,
            placeholders={
                "module": module.key,
                "root": str(self.workspace / module.root_path) if module.root_path else str(self.workspace),
                "build_number": build_number,
                "module_set": "",
            },
            env=env,
            cwd=self.workspace / module.root_path,
            depends_on=depends_on,
        )

    def submit_aggregated_build(
        self,
        module_set: ModuleSet,
        modules: Sequence[Module],
        build_number: int,
        properties: Mapping[str, Any],
    ) -> str:
        env = {str(k): str(v) for k, v in properties.items()}
        env.update({
            "BUILD_NUMBER": str(build_number),
            "MODULE_SET": module_set.name,
            "MODULES": ",".join(m.key for m in modules),
        })
        return self._submit(
            label=module_set.name,
            placeholders={
                "module": "",
                "root": str(self.workspace),
                "build_number": build_number,
                "module_set": module_set.name,
            },
            env=env,
            cwd=self.workspace,
            depends_on=(),
        )

    def _submit(
        self,
        label: str,
        placeholders: Dict[str, Any],
        env: Dict[str, str],
        cwd: Path,
        depends_on: Sequence[str],
    ) -> str:
        try:
            command = [part.format(**placeholders) for part in self.command_template]
        except (KeyError, IndexError) as e:
            raise DispatchSubmissionError(label, f"invalid command template: {e}") from e

        with self._lock:
            unknown = [h for h in depends_on if h not in self._submissions]
            if unknown:
                raise DispatchSubmissionError(label, f"unknown upstream handles {unknown}")

            submission = Submission(
                handle=uuid.uuid4().hex[:12],
                label=label,
                command=command,
                cwd=cwd,
                env=env,
                depends_on=list(depends_on),
            )
            try:
                submission.future = self._executor.submit(self._run, submission)
            except RuntimeError as e:
                raise DispatchSubmissionError(label, str(e)) from e
            self._submissions[submission.handle] = submission

        logger.info(f"Submitted build of {label} as {submission.handle}: {' '.join(command)}")
        return submission.handle

    # ------------------------------------------------------------------
    # Worker
    # ------------------------------------------------------------------

    def _run(self, submission: Submission) -> ExecutionStatus:
        for handle in submission.depends_on:
            upstream = self._submissions[handle]
            try:
                upstream_status = upstream.future.result()
            except CancelledError:
                upstream_status = ExecutionStatus.ABORTED
            if upstream_status not in _PASSING:
                logger.info(
                    f"Build of {submission.label} not started: "
                    f"upstream {upstream.label} is {upstream_status.value}"
                )
                submission.status = ExecutionStatus.NOT_BUILT
                return submission.status

        with self._lock:
            if submission.cancel_requested:
                submission.status = ExecutionStatus.ABORTED
                return submission.status
            try:
                submission.process = subprocess.Popen(
                    submission.command,
                    cwd=submission.cwd,
                    env={**os.environ, **submission.env},
                    stdout=subprocess.PIPE,
                    stderr=subprocess.STDOUT,
                    text=True,
                )
            except OSError as e:
                logger.error(f"Could not start build of {submission.label}: {e}")
                submission.output = str(e)
                submission.status = ExecutionStatus.FAILURE
                return submission.status
            submission.status = ExecutionStatus.RUNNING

        output, _ = submission.process.communicate()
        submission.output = (output or "")[-OUTPUT_TAIL:]
        submission.returncode = submission.process.returncode

        if submission.cancel_requested:
            submission.status = ExecutionStatus.ABORTED
        elif submission.returncode == 0:
            submission.status = ExecutionStatus.SUCCESS
        elif self.unstable_exit_code is not None and submission.returncode == self.unstable_exit_code:
            submission.status = ExecutionStatus.UNSTABLE
        else:
            submission.status = ExecutionStatus.FAILURE

        logger.info(
            f"Build of {submission.label} ({submission.handle}) finished: "
            f"{submission.status.value} (exit {submission.returncode})"
        )
        return submission.status

    # ------------------------------------------------------------------
    # Queries and control
    # ------------------------------------------------------------------

    def _get(self, handle: str) -> Submission:
        submission = self._submissions.get(handle)
        if submission is None:
            raise KeyError(f"Unknown build handle: {handle}")
        return submission

    def status(self, handle: str) -> ExecutionStatus:
        return self._get(handle).status

    def output(self, handle: str) -> str:
        """Tail of the build's combined stdout/stderr."""
        return self._get(handle).output

    def cancel(self, handle: str) -> None:
        """Abort a build; a queued build never starts, a running one is terminated."""
        submission = self._get(handle)
        with self._lock:
            if submission.status.is_terminal():
                return
            submission.cancel_requested = True
            if submission.future is not None and submission.future.cancel():
                submission.status = ExecutionStatus.ABORTED
            elif submission.process is not None:
                submission.process.terminate()
        logger.info(f"Cancel requested for build {handle} ({submission.label})")

    def release(self, handles: Sequence[str]) -> None:
        """
        Drop records of finished builds.

        Unfinished builds are kept; later builds may still wait on them.
        """
        with self._lock:
            for handle in handles:
                submission = self._submissions.get(handle)
                if submission is not None and submission.status.is_terminal():
                    del self._submissions[handle]

    def tracked(self) -> int:
        """Number of submissions the engine still holds."""
        return len(self._submissions)

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait, cancel_futures=True)


__all__ = ["ThreadPoolExecutionEngine", "Submission"]
