# ============================================================================
# MODULE SET MODEL
# ============================================================================
# EPOCH: 1 - MODULE SET ORCHESTRATION
# STATUS: Core model - Parent build unit
# PURPOSE: Shared build policy and counters of a group of modules
# LAST_REVIEWED: 19 OCT 2026
# EXPORTS: ModuleSet
# DEPENDENCIES: pydantic
# ============================================================================
"""
Module Set Model

The parent unit that owns a collection of modules and their shared build
policy. Exactly one ModuleSet owns many Modules; the modules themselves live
in the ModuleRegistry, the ModuleSet only carries configuration and its own
build counter.

Build policy flags:
- aggregator_style_build: all modules in a single invocation (default)
- incremental_build: per-module mode only builds changed/broken modules
- ignore_upstream_changes: upstream builds do not seed incremental builds
- allowed_to_trigger_downstream: modules trigger dependants in other sets
- use_upstream_parameters: forward triggering build's parameters to children
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from core.contracts import BuildMode, BuildResult, ModuleStatus
from core.models.contributors import Contributor


class ModuleSet(BaseModel):
    """Group of modules built together under one policy."""
    name: str = Field(..., min_length=1, max_length=128)
    description: Optional[str] = None

    # Build policy
    aggregator_style_build: bool = True
    incremental_build: bool = False
    ignore_upstream_changes: bool = False
    allowed_to_trigger_downstream: bool = True
    use_upstream_parameters: bool = False
    archiving_disabled: bool = False
    changed_modules_property: Optional[str] = Field(
        default=None,
        max_length=128,
        description="Property receiving changed module names in aggregated incremental builds",
    )

    # Descriptor discovery settings
    descriptor_pattern: Optional[str] = Field(default=None, max_length=512)
    descriptor_excludes_pattern: Optional[str] = Field(default=None, max_length=512)
    relative_path_to_descriptor_from_module_root: Optional[str] = Field(
        default=None, max_length=512
    )

    # Graph contributors attached to the set
    publishers: List[Contributor] = Field(default_factory=list)
    build_wrappers: List[Contributor] = Field(default_factory=list)

    # Counters and status
    next_build_number: int = Field(default=1, ge=1)
    status: ModuleStatus = Field(default=ModuleStatus.NOT_BUILT)
    last_result: Optional[BuildResult] = None

    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @field_validator(
        "changed_modules_property",
        "descriptor_pattern",
        "descriptor_excludes_pattern",
        "relative_path_to_descriptor_from_module_root",
        mode="before",
    )
    @classmethod
    def empty_to_none(cls, v):
        """Blank form values are treated as unset."""
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v

    @property
    def key(self) -> str:
        return self.name

    @property
    def build_mode(self) -> BuildMode:
        return BuildMode.AGGREGATED if self.aggregator_style_build else BuildMode.PER_MODULE

    @property
    def uses_incremental_selection(self) -> bool:
        """Incremental selection only applies to per-module builds."""
        return self.incremental_build and not self.aggregator_style_build

    def module_publishers(self) -> List[Contributor]:
        """Publishers applied to every module build; none in aggregator mode."""
        return [] if self.aggregator_style_build else list(self.publishers)


__all__ = ["ModuleSet"]
