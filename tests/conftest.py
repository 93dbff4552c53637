# ============================================================================
# SHARED TEST FIXTURES
# ============================================================================
# EPOCH: 1 - MODULE SET ORCHESTRATION
# STATUS: Tests - Shared factories and fakes
# PURPOSE: Module factories and an in-memory execution engine
# CREATED: 19 OCT 2026
# ============================================================================
"""
Shared fixtures.

FakeEngine records submissions and lets tests decide when (and how) each
build finishes.
"""

from typing import Any, Dict, List, Mapping, Optional, Sequence

import pytest

from core.contracts import ExecutionStatus
from core.errors import DispatchSubmissionError
from core.models import Module, ModuleSet


class FakeEngine:
    """In-memory execution engine."""

    def __init__(self):
        self.reject: set = set()
        self.submissions: List[Dict[str, Any]] = []
        self.statuses: Dict[str, ExecutionStatus] = {}
        self.cancelled: List[str] = []
        self.released: List[str] = []

    def _record(self, kind: str, label: str, **details) -> str:
        handle = f"h{len(self.submissions) + 1}"
        self.submissions.append({"kind": kind, "label": label, "handle": handle, **details})
        self.statuses[handle] = ExecutionStatus.PENDING
        return handle

    def submit_module_build(
        self,
        module: Module,
        build_number: int,
        upstream_parameters: Mapping[str, Any],
        depends_on: Sequence[str],
    ) -> str:
        if module.key in self.reject:
            raise DispatchSubmissionError(module.key, "rejected by engine")
        return self._record(
            "module",
            module.key,
            build_number=build_number,
            parameters=dict(upstream_parameters),
            depends_on=list(depends_on),
        )

    def submit_aggregated_build(
        self,
        module_set: ModuleSet,
        modules: Sequence[Module],
        build_number: int,
        properties: Mapping[str, Any],
    ) -> str:
        if module_set.name in self.reject:
            raise DispatchSubmissionError(module_set.name, "rejected by engine")
        return self._record(
            "aggregated",
            module_set.name,
            build_number=build_number,
            modules=[m.key for m in modules],
            properties=dict(properties),
        )

    def status(self, handle: str) -> ExecutionStatus:
        return self.statuses[handle]

    def cancel(self, handle: str) -> None:
        self.cancelled.append(handle)
        self.statuses[handle] = ExecutionStatus.ABORTED

    def release(self, handles: Sequence[str]) -> None:
        self.released.extend(handles)

    # Test controls

    def handle_for(self, label: str) -> Optional[str]:
        for submission in self.submissions:
            if submission["label"] == label:
                return submission["handle"]
        return None

    def finish(self, label: str, status: ExecutionStatus = ExecutionStatus.SUCCESS) -> None:
        self.statuses[self.handle_for(label)] = status

    def finish_all(self, status: ExecutionStatus = ExecutionStatus.SUCCESS) -> None:
        for handle, current in self.statuses.items():
            if not current.is_terminal():
                self.statuses[handle] = status


@pytest.fixture
def engine():
    return FakeEngine()


@pytest.fixture
def make_module():
    """Factory for creating Module instances."""
    def _make(
        name: str,
        dependencies: Sequence[str] = (),
        root_path: Optional[str] = None,
        **fields,
    ) -> Module:
        if root_path is None:
            root_path = name.split(":")[1]
        return Module(name=name, dependencies=list(dependencies), root_path=root_path, **fields)
    return _make


@pytest.fixture
def chain_modules(make_module):
    """acme:a <- acme:b <- acme:c (c depends on b, b depends on a)."""
    return [
        make_module("acme:a"),
        make_module("acme:b", ["acme:a"]),
        make_module("acme:c", ["acme:b"]),
    ]
