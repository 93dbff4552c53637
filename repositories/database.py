# ============================================================================
# DATABASE CONNECTION POOL
# ============================================================================
# EPOCH: 1 - MODULE SET ORCHESTRATION
# STATUS: Core - PostgreSQL connection management
# PURPOSE: Provide connection pooling for psycopg3
# LAST_REVIEWED: 19 OCT 2026
# ============================================================================
"""
Database Connection Pool

Manages PostgreSQL connections using psycopg3 and psycopg_pool. Only used
when build counters are stored in PostgreSQL (STORAGE_BACKEND=postgres).
Singleton pattern ensures one pool per application.

The orchestrator core is synchronous, so this is the blocking
ConnectionPool.

Usage:
    from repositories.database import get_pool

    pool = get_pool()
    with pool.connection() as conn:
        conn.execute("SELECT 1")
"""

import logging
import os
from typing import Optional

from psycopg import sql as psycopg_sql
from psycopg_pool import ConnectionPool

logger = logging.getLogger(__name__)

# Global pool instance
_pool: Optional[ConnectionPool] = None


def get_connection_string() -> str:
    """
    Get database connection string from environment.

    Priority:
    1. DATABASE_URL environment variable
    2. Individual POSTGRES_* components

    Returns:
        PostgreSQL connection string
    """
    if url := os.environ.get("DATABASE_URL"):
        return url

    host = os.environ.get("POSTGRES_HOST", "localhost")
    port = os.environ.get("POSTGRES_PORT", "5432")
    name = os.environ.get("POSTGRES_DB", "postgres")
    user = os.environ.get("POSTGRES_USER", "postgres")
    password = os.environ.get("POSTGRES_PASSWORD", "")
    sslmode = os.environ.get("POSTGRES_SSLMODE", "prefer")

    return f"postgresql://{user}:{password}@{host}:{port}/{name}?sslmode={sslmode}"


def _safe_conninfo(conninfo: str) -> str:
    """Connection info with credentials masked, for logs."""
    if "@" in conninfo:
        return conninfo.split("@")[-1]
    if "password=" in conninfo:
        return conninfo.split("password=")[0] + "password=***"
    return conninfo


def init_pool(
    min_size: int = 1,
    max_size: int = 4,
    connection_string: Optional[str] = None,
) -> ConnectionPool:
    """
    Initialize the global connection pool.

    Args:
        min_size: Minimum connections to maintain
        max_size: Maximum connections allowed
        connection_string: Override connection string (defaults to env)
    """
    global _pool

    if _pool is not None:
        logger.warning("Pool already initialized, returning existing pool")
        return _pool

    conninfo = connection_string or get_connection_string()
    logger.info(f"Initializing connection pool: {_safe_conninfo(conninfo)}")

    _pool = ConnectionPool(
        conninfo=conninfo,
        min_size=min_size,
        max_size=max_size,
        open=False,
    )
    _pool.open()
    logger.info(f"Connection pool opened (min={min_size}, max={max_size})")

    return _pool


def get_pool() -> ConnectionPool:
    """Get the global connection pool, initializing if needed."""
    if _pool is None:
        return init_pool()
    return _pool


def close_pool() -> None:
    """Close the global connection pool."""
    global _pool

    if _pool is not None:
        _pool.close()
        _pool = None
        logger.info("Connection pool closed")


# ============================================================================
# SCHEMA CONSTANTS
# ============================================================================

SCHEMA = "modulesets"

# Table identifiers for psycopg sql.SQL().format()
TABLE_BUILD_NUMBERS = psycopg_sql.Identifier(SCHEMA, "build_numbers")


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "get_connection_string",
    "init_pool",
    "get_pool",
    "close_pool",
    "SCHEMA",
    "TABLE_BUILD_NUMBERS",
]
