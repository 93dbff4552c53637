# ============================================================================
# SERVICES MODULE
# ============================================================================
# EPOCH: 1 - MODULE SET ORCHESTRATION
# STATUS: Core - Business logic layer
# PURPOSE: Module set operations and descriptor discovery
# LAST_REVIEWED: 19 OCT 2026
# ============================================================================
"""
Services Module

Services coordinate the orchestrator core with storage, descriptor
discovery and the execution engine.

Usage:
    from services import ModuleSetService

    service = ModuleSetService(store, engine, "platform")
    service.sync_modules()
    attempt = service.trigger_build(change_set)
"""

from .descriptor_service import YamlDescriptorSource
from .module_set_service import ModuleSetService

__all__ = [
    "YamlDescriptorSource",
    "ModuleSetService",
]
