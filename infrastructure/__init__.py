# ============================================================================
# INFRASTRUCTURE MODULE
# ============================================================================
# EPOCH: 1 - MODULE SET ORCHESTRATION
# STATUS: Infrastructure - Locking and build execution
# PURPOSE: Exclusion zones and the local execution engine
# LAST_REVIEWED: 19 OCT 2026
# ============================================================================
"""
Infrastructure module for the module set orchestrator.

Provides:
- LockService / PostgresLockService: exclusion zone for build numbering
- ThreadPoolExecutionEngine: runs builds as local subprocesses

Usage:
    from infrastructure import LockService, ThreadPoolExecutionEngine

    lock_service = LockService()
    engine = ThreadPoolExecutionEngine(["make", "-C", "{root}"], max_workers=4)
"""

from infrastructure.locking import (
    LockService,
    LockNotAcquired,
    PostgresLockService,
)
from infrastructure.execution import (
    Submission,
    ThreadPoolExecutionEngine,
)

__all__ = [
    # Locking
    "LockService",
    "LockNotAcquired",
    "PostgresLockService",
    # Execution
    "Submission",
    "ThreadPoolExecutionEngine",
]
