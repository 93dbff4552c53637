# ============================================================================
# REPOSITORIES MODULE
# ============================================================================
# EPOCH: 1 - MODULE SET ORCHESTRATION
# STATUS: Core - Data access layer
# PURPOSE: Persistence of module sets, modules and build counters
# LAST_REVIEWED: 19 OCT 2026
# ============================================================================
"""
Repositories Module

Data access layer for the module set orchestrator.

- FileModuleStore: YAML configuration and counter files on disk
- PostgresBuildNumberRepository: build counters in PostgreSQL
"""

from .database import (
    get_connection_string,
    init_pool,
    get_pool,
    close_pool,
)
from .module_store import FileModuleStore
from .build_number_repo import PostgresBuildNumberRepository

__all__ = [
    # Database
    "get_connection_string",
    "init_pool",
    "get_pool",
    "close_pool",
    # Repositories
    "FileModuleStore",
    "PostgresBuildNumberRepository",
]
