# ============================================================================
# CONFIGURATION MODULE
# ============================================================================
# EPOCH: 1 - MODULE SET ORCHESTRATION
# STATUS: Core - Configuration and defaults
# PURPOSE: Centralized configuration management
# CREATED: 19 OCT 2026
# ============================================================================
"""
Configuration Module

Provides centralized configuration and defaults for the orchestrator.
"""

from core.config.defaults import (
    StorageBackend,
    OrchestratorDefaults,
    DescriptorDefaults,
    PersistenceDefaults,
    Defaults,
    get_defaults,
    reset_defaults,
)

__all__ = [
    "StorageBackend",
    "OrchestratorDefaults",
    "DescriptorDefaults",
    "PersistenceDefaults",
    "Defaults",
    "get_defaults",
    "reset_defaults",
]
