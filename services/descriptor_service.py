# ============================================================================
# DESCRIPTOR SERVICE
# ============================================================================
# EPOCH: 1 - MODULE SET ORCHESTRATION
# STATUS: Service - Module descriptor discovery
# PURPOSE: Find and parse per-module YAML descriptors in a workspace
# CREATED: 19 OCT 2026
# ============================================================================
"""
Descriptor Service

Scans a workspace for module descriptor files and parses them. Patterns are
comma separated globs relative to the workspace root; a file is a
descriptor if it matches any include pattern and no exclude pattern.

Descriptor format:

    name: acme:core            # or organisation: acme / module: core
    display_name: Core library
    dependencies:
      - acme:util

A module's root is the descriptor's directory, unless the module set
declares where descriptors sit relative to module roots (for example
``build/module.yaml``), in which case that suffix is stripped.
"""

import fnmatch
import logging
from pathlib import Path
from typing import Dict, List, Optional, Union

import yaml
from pydantic import ValidationError

from core.models import ModuleDescriptor, normalize_path

logger = logging.getLogger(__name__)


def split_patterns(patterns: Optional[str]) -> List[str]:
    """Split a comma separated pattern list, dropping blanks."""
    if not patterns:
        return []
    return [p.strip() for p in patterns.split(",") if p.strip()]


class YamlDescriptorSource:
    """Discovers modules from YAML descriptors."""

    def discover_modules(
        self,
        root_path: Union[str, Path],
        include_pattern: str,
        exclude_pattern: Optional[str] = None,
        relative_path_to_descriptor: Optional[str] = None,
    ) -> List[ModuleDescriptor]:
        """
        Scan a workspace for descriptors.

        Args:
            root_path: Workspace root
            include_pattern: Comma separated globs of descriptor files
            exclude_pattern: Comma separated globs to leave out
            relative_path_to_descriptor: Descriptor location relative to
                the module root

        Returns:
            Descriptors sorted by module name. Unparseable descriptors and
            duplicate names are skipped with a warning.
        """
        root = Path(root_path)
        if not root.exists():
            logger.warning(f"Workspace not found: {root}")
            return []

        includes = split_patterns(include_pattern)
        excludes = split_patterns(exclude_pattern)

        found: Dict[str, ModuleDescriptor] = {}
        for path in self._matching_files(root, includes, excludes):
            relative = path.relative_to(root).as_posix()
            try:
                descriptor = self.parse(path, relative, relative_path_to_descriptor)
            except (yaml.YAMLError, ValidationError, ValueError, OSError) as e:
                logger.warning(f"Skipping invalid descriptor {relative}: {e}")
                continue

            key = str(descriptor.name)
            if key in found:
                logger.warning(
                    f"Duplicate module {key} in {relative}, "
                    f"already defined by {found[key].descriptor_path}"
                )
                continue
            found[key] = descriptor

        logger.info(f"Discovered {len(found)} module descriptors under {root}")
        return [found[key] for key in sorted(found)]

    @staticmethod
    def _matching_files(root: Path, includes: List[str], excludes: List[str]) -> List[Path]:
        matches = set()
        for pattern in includes:
            for path in root.glob(pattern):
                if not path.is_file():
                    continue
                relative = path.relative_to(root).as_posix()
                if any(fnmatch.fnmatch(relative, ex) for ex in excludes):
                    continue
                matches.add(path)
        return sorted(matches)

    def parse(
        self,
        path: Path,
        relative: str,
        relative_path_to_descriptor: Optional[str] = None,
    ) -> ModuleDescriptor:
        """
        Parse one descriptor file.

        Raises:
            ValueError: the file does not name a module
        """
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError("descriptor must be a mapping")

        name = data.get("name")
        if name is None and data.get("organisation") and data.get("module"):
            name = f"{data['organisation']}:{data['module']}"
        if name is None:
            raise ValueError("descriptor declares no module name")

        return ModuleDescriptor(
            name=name,
            root_path=module_root(relative, relative_path_to_descriptor),
            dependencies=data.get("dependencies") or [],
            display_name=data.get("display_name"),
            descriptor_path=relative,
        )


def module_root(descriptor_path: str, relative_path_to_descriptor: Optional[str] = None) -> str:
    """
    Module root for a workspace-relative descriptor path.

    >>> module_root("libs/core/module.yaml")
    'libs/core'
    >>> module_root("libs/core/build/module.yaml", "build/module.yaml")
    'libs/core'
    """
    descriptor_path = normalize_path(descriptor_path)
    if relative_path_to_descriptor:
        suffix = normalize_path(relative_path_to_descriptor)
        if descriptor_path == suffix:
            return ""
        if descriptor_path.endswith("/" + suffix):
            return descriptor_path[: -len(suffix) - 1]
    parent = Path(descriptor_path).parent.as_posix()
    return "" if parent == "." else parent


__all__ = ["YamlDescriptorSource", "module_root", "split_patterns"]
