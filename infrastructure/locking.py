# ============================================================================
# LOCKING SERVICE
# ============================================================================
# EPOCH: 1 - MODULE SET ORCHESTRATION
# STATUS: Infrastructure - Concurrency control
# PURPOSE: Exclusion zone for build number synchronization and assignment
# LAST_REVIEWED: 19 OCT 2026
# ============================================================================
"""
Locking Service

Build number synchronization and assignment must be atomic per module set.
Two implementations share one interface:

- LockService: in-process re-entrant locks, one per key
- PostgresLockService: additionally takes a PostgreSQL session advisory
  lock so several orchestrator processes sharing one database serialize too

Advisory locks are:
- Fast (in-memory, no disk I/O)
- Auto-release on disconnect (crash-safe)
- Re-entrant within a session
- 64-bit key space

Usage:
    from infrastructure.locking import LockService

    lock_service = LockService()

    with lock_service.build_lock(module_set.name):
        number = synchronize_and_increment()

    with lock_service.build_lock(module_set.name, blocking=False) as acquired:
        if not acquired:
            logger.debug("Another cycle is assigning numbers, skipping")
"""

import hashlib
import logging
import threading
from contextlib import contextmanager
from typing import Dict, Iterator

from psycopg_pool import ConnectionPool

logger = logging.getLogger(__name__)


class LockService:
    """
    In-process locking.

    One re-entrant lock per key, so the synchronizer can call itself from
    within an outer assignment without deadlocking.
    """

    BUILD_LOCK_PREFIX = "modulesets:build:"

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.RLock] = {}

    def _local_lock(self, key: str) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.RLock()
                self._locks[key] = lock
            return lock

    @staticmethod
    def _hash_to_lock_id(key: str) -> int:
        """
        Convert string key to int64 for PostgreSQL advisory lock.

        Uses the first 8 bytes of SHA256, interpreted as signed int64.
        """
        h = hashlib.sha256(key.encode()).digest()[:8]
        return int.from_bytes(h, byteorder="big", signed=True)

    @contextmanager
    def build_lock(self, key: str, blocking: bool = True) -> Iterator[bool]:
        """
        Exclusion zone for one module set's build numbers.

        Args:
            key: Module set name
            blocking: If False, yield False immediately when the lock is held
                      by another thread

        Yields:
            bool: True if the lock was acquired
        """
        lock = self._local_lock(f"{self.BUILD_LOCK_PREFIX}{key}")
        acquired = lock.acquire(blocking=blocking)
        if not acquired:
            logger.debug(f"Build lock for {key} held elsewhere, skipping")
            yield False
            return
        try:
            yield True
        finally:
            lock.release()

    @contextmanager
    def require_build_lock(self, key: str) -> Iterator[None]:
        """
        Non-blocking exclusion zone that raises instead of yielding False.

        Raises:
            LockNotAcquired: the lock is held elsewhere
        """
        with self.build_lock(key, blocking=False) as acquired:
            if not acquired:
                raise LockNotAcquired("build", key)
            yield


class PostgresLockService(LockService):
    """
    Locking across processes with PostgreSQL session advisory locks.

    The local lock is taken first; the outermost entry of a thread then
    holds a pooled connection with the advisory lock for the duration of
    the zone.
    """

    def __init__(self, pool: ConnectionPool):
        """
        Initialize lock service.

        Args:
            pool: Database connection pool
        """
        super().__init__()
        self.pool = pool
        self._depth = threading.local()

    @contextmanager
    def build_lock(self, key: str, blocking: bool = True) -> Iterator[bool]:
        with super().build_lock(key, blocking=blocking) as acquired:
            if not acquired:
                yield False
                return

            depth = getattr(self._depth, key, 0)
            if depth:
                # Nested entry: the advisory lock is already held
                setattr(self._depth, key, depth + 1)
                try:
                    yield True
                finally:
                    setattr(self._depth, key, depth)
                return

            lock_id = self._hash_to_lock_id(f"{self.BUILD_LOCK_PREFIX}{key}")
            with self.pool.connection() as conn:
                if blocking:
                    conn.execute("SELECT pg_advisory_lock(%s)", (lock_id,))
                    got_it = True
                else:
                    row = conn.execute(
                        "SELECT pg_try_advisory_lock(%s) AS acquired",
                        (lock_id,),
                    ).fetchone()
                    # Handle both dict_row and tuple row factories
                    if row:
                        got_it = row["acquired"] if hasattr(row, "keys") else row[0]
                    else:
                        got_it = False

                if not got_it:
                    logger.debug(f"Advisory build lock for {key} held by another process")
                    yield False
                    return

                logger.debug(f"Acquired advisory build lock for {key} (lock_id={lock_id})")
                setattr(self._depth, key, 1)
                try:
                    yield True
                finally:
                    setattr(self._depth, key, 0)
                    conn.execute("SELECT pg_advisory_unlock(%s)", (lock_id,))
                    logger.debug(f"Released advisory build lock for {key}")


class LockNotAcquired(Exception):
    """
    Raised when a required lock cannot be acquired.

    Use this when blocking=False and you need to signal the failure
    as an exception rather than a boolean return.
    """

    def __init__(self, lock_type: str, key: str):
        self.lock_type = lock_type
        self.key = key
        super().__init__(f"Failed to acquire {lock_type} lock for {key}")


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = ["LockService", "PostgresLockService", "LockNotAcquired"]
