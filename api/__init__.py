# ============================================================================
# API MODULE
# ============================================================================
# EPOCH: 1 - MODULE SET ORCHESTRATION
# STATUS: Core - FastAPI routes
# PURPOSE: HTTP API for module set operations
# LAST_REVIEWED: 19 OCT 2026
# ============================================================================
"""
API Module

FastAPI routes for the module set orchestrator.
"""

from .routes import router, set_services
from .schemas import (
    BuildTriggerRequest,
    BuildTriggerResponse,
    ModuleResponse,
    ModuleSetResponse,
)

__all__ = [
    "router",
    "set_services",
    "BuildTriggerRequest",
    "BuildTriggerResponse",
    "ModuleResponse",
    "ModuleSetResponse",
]
