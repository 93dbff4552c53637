# ============================================================================
# CONFIGURATION DEFAULTS
# ============================================================================
# EPOCH: 1 - MODULE SET ORCHESTRATION
# STATUS: Core - Default configuration values
# PURPOSE: Centralized defaults for discovery, persistence and execution
# CREATED: 19 OCT 2026
# ============================================================================
"""
Configuration Defaults

Provides sensible defaults for the orchestrator. These can be overridden via
environment variables.

Design:
- Immutable dataclasses for defaults
- Environment variable overrides
- Type-safe access
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple


class StorageBackend(str, Enum):
    """Where build counters are persisted."""
    FILE = "file"
    POSTGRES = "postgres"


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class OrchestratorDefaults:
    """
    Defaults for dispatching and polling.

    The build command is a template; ``{module}``, ``{root}`` and
    ``{build_number}`` are substituted per submission.
    """
    poll_interval_seconds: float = 2.0
    max_parallel_builds: int = 4
    build_command: Tuple[str, ...] = ("ant", "-f", "{root}/build.xml")
    workspace_dir: str = "."
    unstable_exit_code: Optional[int] = None

    @classmethod
    def from_env(cls) -> "OrchestratorDefaults":
        """Create from environment variables."""
        command = os.getenv("BUILD_COMMAND")
        unstable = os.getenv("UNSTABLE_EXIT_CODE")
        return cls(
            poll_interval_seconds=float(os.getenv("ORCHESTRATOR_POLL_INTERVAL", 2.0)),
            max_parallel_builds=int(os.getenv("MAX_PARALLEL_BUILDS", 4)),
            build_command=tuple(command.split()) if command else cls.build_command,
            workspace_dir=os.getenv("WORKSPACE_DIR", "."),
            unstable_exit_code=int(unstable) if unstable else None,
        )


@dataclass(frozen=True)
class DescriptorDefaults:
    """
    Defaults for module descriptor discovery.

    Patterns are comma separated globs relative to the workspace root.
    """
    include_pattern: str = "**/module.yaml"
    exclude_pattern: Optional[str] = None
    descriptor_filename: str = "module.yaml"

    @classmethod
    def from_env(cls) -> "DescriptorDefaults":
        """Create from environment variables."""
        return cls(
            include_pattern=os.getenv("DESCRIPTOR_PATTERN", "**/module.yaml"),
            exclude_pattern=os.getenv("DESCRIPTOR_EXCLUDES_PATTERN") or None,
            descriptor_filename=os.getenv("DESCRIPTOR_FILENAME", "module.yaml"),
        )


@dataclass(frozen=True)
class PersistenceDefaults:
    """Defaults for module set storage."""
    backend: StorageBackend = StorageBackend.FILE
    root_dir: str = "./module-sets"
    module_set_name: str = "default"
    create_schema: bool = False

    @classmethod
    def from_env(cls) -> "PersistenceDefaults":
        """Create from environment variables."""
        return cls(
            backend=StorageBackend(os.getenv("STORAGE_BACKEND", StorageBackend.FILE.value)),
            root_dir=os.getenv("MODULE_SET_ROOT", "./module-sets"),
            module_set_name=os.getenv("MODULE_SET_NAME", "default"),
            create_schema=_env_bool("AUTO_BOOTSTRAP_SCHEMA", False),
        )


# ============================================================================
# GLOBAL DEFAULTS INSTANCE
# ============================================================================

@dataclass
class Defaults:
    """Container for all default configurations."""
    orchestrator: OrchestratorDefaults = field(default_factory=OrchestratorDefaults)
    descriptors: DescriptorDefaults = field(default_factory=DescriptorDefaults)
    persistence: PersistenceDefaults = field(default_factory=PersistenceDefaults)

    @classmethod
    def from_env(cls) -> "Defaults":
        """Create all defaults from environment variables."""
        return cls(
            orchestrator=OrchestratorDefaults.from_env(),
            descriptors=DescriptorDefaults.from_env(),
            persistence=PersistenceDefaults.from_env(),
        )


_defaults: Optional[Defaults] = None


def get_defaults() -> Defaults:
    """Get global defaults instance."""
    global _defaults
    if _defaults is None:
        _defaults = Defaults.from_env()
    return _defaults


def reset_defaults() -> None:
    """Reset defaults (for testing)."""
    global _defaults
    _defaults = None


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "StorageBackend",
    "OrchestratorDefaults",
    "DescriptorDefaults",
    "PersistenceDefaults",
    "Defaults",
    "get_defaults",
    "reset_defaults",
]
