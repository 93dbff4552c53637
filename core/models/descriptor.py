# ============================================================================
# MODULE DESCRIPTOR MODEL
# ============================================================================
# EPOCH: 1 - MODULE SET ORCHESTRATION
# STATUS: Core model - Output of descriptor discovery
# PURPOSE: Name, dependencies and root path parsed from a module descriptor
# LAST_REVIEWED: 19 OCT 2026
# EXPORTS: ModuleDescriptor
# DEPENDENCIES: pydantic
# ============================================================================
"""
Module Descriptor Model

A descriptor is what a descriptor scan yields for one module. It is the
TEMPLATE; the Module in the registry is the INSTANCE with counters and
status.
"""

from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from core.contracts import ModuleName
from core.models.module import normalize_path


class ModuleDescriptor(BaseModel):
    """Parsed module descriptor."""
    name: ModuleName
    root_path: str = ""
    dependencies: List[ModuleName] = Field(default_factory=list)
    display_name: Optional[str] = None
    descriptor_path: Optional[str] = None

    @field_validator("name", mode="before")
    @classmethod
    def parse_name(cls, v):
        if isinstance(v, str):
            return ModuleName.from_string(v)
        return v

    @field_validator("dependencies", mode="before")
    @classmethod
    def parse_dependencies(cls, v):
        if v is None:
            return []
        return [ModuleName.from_string(d) if isinstance(d, str) else d for d in v]

    @field_validator("root_path", mode="before")
    @classmethod
    def normalize_root_path(cls, v):
        return normalize_path(v) if isinstance(v, str) else ""


__all__ = ["ModuleDescriptor"]
