# ============================================================================
# BASE CONTRACTS & ENUMS
# ============================================================================
# EPOCH: 1 - MODULE SET ORCHESTRATION
# STATUS: Foundation - Core enums and base contracts
# PURPOSE: Define status enums and module identity for the module set system
# LAST_REVIEWED: 19 OCT 2026
# EXPORTS: ModuleName, ModuleStatus, BuildResult, ExecutionStatus, BuildMode
# DEPENDENCIES: enum, pydantic
# ============================================================================
"""
Base contracts for the module set orchestrator.

These define the minimal identity fields and status vocabularies that cross
boundaries:
- Persistence (module store, build number repository)
- Execution engine (submission handles and their status)
- Python (internal orchestration decisions)

Boundary-specific models inherit from or compose these contracts.
"""

from enum import Enum
from typing import ClassVar, Dict, Iterable, Optional

from pydantic import BaseModel, Field


# ============================================================================
# STATUS ENUMS
# ============================================================================

class BuildResult(str, Enum):
    """
    Terminal result of a build.

    Ordering follows severity; combining two results keeps the worse one:
        SUCCESS < UNSTABLE < FAILURE < NOT_BUILT < ABORTED
    """
    SUCCESS = "success"
    UNSTABLE = "unstable"
    FAILURE = "failure"
    NOT_BUILT = "not_built"
    ABORTED = "aborted"

    @property
    def severity(self) -> int:
        return _RESULT_SEVERITY[self]

    def combine(self, other: "BuildResult") -> "BuildResult":
        """Return the worse of two results."""
        return self if self.severity >= other.severity else other

    def is_broken(self) -> bool:
        """Broken results are retried by incremental builds."""
        return self in (BuildResult.FAILURE, BuildResult.UNSTABLE)

    @classmethod
    def worst(cls, results: Iterable["BuildResult"]) -> Optional["BuildResult"]:
        """Worst of a sequence of results, None if the sequence is empty."""
        worst = None
        for result in results:
            worst = result if worst is None else worst.combine(result)
        return worst


_RESULT_SEVERITY: Dict[BuildResult, int] = {
    BuildResult.SUCCESS: 0,
    BuildResult.UNSTABLE: 1,
    BuildResult.FAILURE: 2,
    BuildResult.NOT_BUILT: 3,
    BuildResult.ABORTED: 4,
}


class ModuleStatus(str, Enum):
    """
    Last known status of a module or module set.

    BUILDING and QUEUED are activity states; the rest mirror BuildResult.
    """
    SUCCESS = "success"
    UNSTABLE = "unstable"
    FAILURE = "failure"
    ABORTED = "aborted"
    NOT_BUILT = "not_built"
    BUILDING = "building"
    QUEUED = "queued"

    def is_active(self) -> bool:
        """Check if a build is running or waiting in the queue."""
        return self in (ModuleStatus.BUILDING, ModuleStatus.QUEUED)

    def is_broken(self) -> bool:
        return self in (ModuleStatus.FAILURE, ModuleStatus.UNSTABLE)

    @classmethod
    def from_result(cls, result: BuildResult) -> "ModuleStatus":
        return cls(result.value)


class ExecutionStatus(str, Enum):
    """
    Status of a submission as reported by the execution engine.

    State transitions:
        PENDING -> RUNNING -> SUCCESS | UNSTABLE | FAILURE
                           -> ABORTED
        PENDING -> ABORTED (cancelled before start)
        PENDING -> NOT_BUILT (an upstream build did not succeed)
    """
    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    UNSTABLE = "unstable"
    FAILURE = "failure"
    ABORTED = "aborted"
    NOT_BUILT = "not_built"

    def is_terminal(self) -> bool:
        """Check if this is a terminal state."""
        return self not in (ExecutionStatus.PENDING, ExecutionStatus.RUNNING)

    def to_result(self) -> BuildResult:
        """Map a terminal status to a build result."""
        if not self.is_terminal():
            raise ValueError(f"Execution status {self.value} is not terminal")
        return BuildResult(self.value)

    def to_module_status(self) -> ModuleStatus:
        if self == ExecutionStatus.PENDING:
            return ModuleStatus.QUEUED
        if self == ExecutionStatus.RUNNING:
            return ModuleStatus.BUILDING
        return ModuleStatus(self.value)


class BuildMode(str, Enum):
    """How a module set build dispatches its modules."""
    AGGREGATED = "aggregated"    # One invocation spanning all modules
    PER_MODULE = "per_module"    # Independently scheduled child builds


# ============================================================================
# MODULE IDENTITY
# ============================================================================

class ModuleName(BaseModel):
    """
    Structured module identity: organisation plus module name.

    String form is ``organisation:name``. The filesystem form swaps the
    separator for ``$`` so it can be used as a directory name.
    """
    organisation: str = Field(..., min_length=1, max_length=128)
    name: str = Field(..., min_length=1, max_length=128)

    model_config = {"frozen": True}

    SEPARATOR: ClassVar[str] = ":"
    FS_SEPARATOR: ClassVar[str] = "$"

    @classmethod
    def from_string(cls, value: str) -> "ModuleName":
        """
        Parse ``organisation:name``.

        Raises:
            ValueError if the string is not a valid module name
        """
        parts = value.split(cls.SEPARATOR)
        if len(parts) != 2 or not parts[0].strip() or not parts[1].strip():
            raise ValueError(f"Invalid module name: '{value}'")
        return cls(organisation=parts[0].strip(), name=parts[1].strip())

    @classmethod
    def from_file_system_name(cls, value: str) -> "ModuleName":
        return cls.from_string(value.replace(cls.FS_SEPARATOR, cls.SEPARATOR, 1))

    @classmethod
    def is_valid(cls, value: str) -> bool:
        try:
            cls.from_string(value)
        except ValueError:
            return False
        return True

    def to_file_system_name(self) -> str:
        return f"{self.organisation}{self.FS_SEPARATOR}{self.name}"

    def __str__(self) -> str:
        return f"{self.organisation}{self.SEPARATOR}{self.name}"

    def __lt__(self, other: "ModuleName") -> bool:
        return (self.organisation, self.name) < (other.organisation, other.name)


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "BuildResult",
    "ModuleStatus",
    "ExecutionStatus",
    "BuildMode",
    "ModuleName",
]
