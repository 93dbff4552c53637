# ============================================================================
# BUILD NUMBER REPOSITORY
# ============================================================================
# EPOCH: 1 - MODULE SET ORCHESTRATION
# STATUS: Core - Build counter persistence
# PURPOSE: Database access for the build_numbers table
# CREATED: 19 OCT 2026
# ============================================================================
"""
Build Number Repository

Stores next-build-number counters of module sets and their modules in
PostgreSQL. A row is keyed by (module_set, target), where target is the
module name, or an empty string for the module set itself.

The upsert keeps the greater of the stored and the written value, so a
counter never moves backwards even if two processes race.
"""

import logging
from typing import Dict, Optional, Union

import psycopg
from psycopg import sql
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

from core.errors import PersistenceError
from core.models import Module, ModuleSet
from .database import SCHEMA, TABLE_BUILD_NUMBERS

logger = logging.getLogger(__name__)

SET_TARGET = ""


def _target_key(target: Union[Module, ModuleSet]) -> str:
    return SET_TARGET if isinstance(target, ModuleSet) else target.key


class PostgresBuildNumberRepository:
    """Repository for build counters."""

    def __init__(self, pool: ConnectionPool):
        self.pool = pool

    def ensure_schema(self) -> None:
        """Create the schema and table if missing."""
        try:
            with self.pool.connection() as conn:
                conn.execute(
                    sql.SQL("CREATE SCHEMA IF NOT EXISTS {}").format(sql.Identifier(SCHEMA))
                )
                conn.execute(
                    sql.SQL("""
                    CREATE TABLE IF NOT EXISTS {} (
                        module_set TEXT NOT NULL,
                        target TEXT NOT NULL,
                        next_build_number INTEGER NOT NULL CHECK (next_build_number >= 1),
                        updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
                        PRIMARY KEY (module_set, target)
                    )
                    """).format(TABLE_BUILD_NUMBERS)
                )
        except psycopg.Error as e:
            raise PersistenceError(f"Failed to create build number schema: {e}") from e
        logger.info(f"Ensured build number table {SCHEMA}.build_numbers")

    def save_next_build_number(
        self,
        module_set_name: str,
        target: Union[Module, ModuleSet],
    ) -> None:
        """
        Persist a counter.

        Raises:
            PersistenceError: the database rejected the write
        """
        key = _target_key(target)
        try:
            with self.pool.connection() as conn:
                conn.execute(
                    sql.SQL("""
                    INSERT INTO {table} (module_set, target, next_build_number, updated_at)
                    VALUES (%(module_set)s, %(target)s, %(number)s, now())
                    ON CONFLICT (module_set, target) DO UPDATE SET
                        next_build_number = GREATEST(
                            {table}.next_build_number, EXCLUDED.next_build_number
                        ),
                        updated_at = now()
                    """).format(table=TABLE_BUILD_NUMBERS),
                    {
                        "module_set": module_set_name,
                        "target": key,
                        "number": target.next_build_number,
                    },
                )
        except psycopg.Error as e:
            raise PersistenceError(
                f"Failed to save next build number of '{key or module_set_name}': {e}"
            ) from e
        logger.debug(
            f"Saved next build number {target.next_build_number} "
            f"for {module_set_name}/{key or '<set>'}"
        )

    def get_next_build_number(
        self,
        module_set_name: str,
        target_key: str = SET_TARGET,
    ) -> Optional[int]:
        try:
            with self.pool.connection() as conn:
                conn.row_factory = dict_row
                row = conn.execute(
                    sql.SQL(
                        "SELECT next_build_number FROM {} WHERE module_set = %s AND target = %s"
                    ).format(TABLE_BUILD_NUMBERS),
                    (module_set_name, target_key),
                ).fetchone()
        except psycopg.Error as e:
            raise PersistenceError(f"Failed to read build number: {e}") from e
        return row["next_build_number"] if row else None

    def load_next_build_numbers(self, module_set_name: str) -> Dict[str, int]:
        """All counters of one module set: target key -> next build number."""
        try:
            with self.pool.connection() as conn:
                conn.row_factory = dict_row
                rows = conn.execute(
                    sql.SQL(
                        "SELECT target, next_build_number FROM {} WHERE module_set = %s"
                    ).format(TABLE_BUILD_NUMBERS),
                    (module_set_name,),
                ).fetchall()
        except psycopg.Error as e:
            raise PersistenceError(f"Failed to load build numbers: {e}") from e
        return {row["target"]: row["next_build_number"] for row in rows}

    def delete_module(self, module_set_name: str, module_key: str) -> bool:
        try:
            with self.pool.connection() as conn:
                result = conn.execute(
                    sql.SQL(
                        "DELETE FROM {} WHERE module_set = %s AND target = %s"
                    ).format(TABLE_BUILD_NUMBERS),
                    (module_set_name, module_key),
                )
                return result.rowcount > 0
        except psycopg.Error as e:
            raise PersistenceError(f"Failed to delete build number: {e}") from e


__all__ = ["PostgresBuildNumberRepository", "SET_TARGET"]
