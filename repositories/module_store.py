# ============================================================================
# MODULE STORE
# ============================================================================
# EPOCH: 1 - MODULE SET ORCHESTRATION
# STATUS: Core - Module set and module persistence
# PURPOSE: YAML configuration plus nextBuildNumber counter files on disk
# CREATED: 19 OCT 2026
# ============================================================================
"""
Module Store

File layout under the store root:

    <root>/<module set>/config.yaml
    <root>/<module set>/nextBuildNumber
    <root>/<module set>/modules/<organisation$name>/config.yaml
    <root>/<module set>/modules/<organisation$name>/nextBuildNumber

Counters live in their own small files so that assigning a build number
rewrites a single integer and never the configuration. Writes go to a
temporary file first and are moved into place.

Modules are persisted under, and deleted with, their module set.
"""

import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import List, Optional, Union

import yaml
from pydantic import ValidationError

from core.contracts import ModuleName
from core.errors import PersistenceError
from core.models import Module, ModuleSet

logger = logging.getLogger(__name__)

CONFIG_FILE = "config.yaml"
BUILD_NUMBER_FILE = "nextBuildNumber"
MODULES_DIR = "modules"

# Counters live in their own files, not in config.yaml
_NON_CONFIG_FIELDS = {"next_build_number", "updated_at"}


class FileModuleStore:
    """Repository for module sets and modules on the local filesystem."""

    def __init__(self, root_dir: Union[str, Path]):
        self.root_dir = Path(root_dir)

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    def set_dir(self, module_set_name: str) -> Path:
        return self.root_dir / module_set_name

    def module_dir(self, module_set_name: str, name: Union[ModuleName, str]) -> Path:
        if isinstance(name, str):
            name = ModuleName.from_string(name)
        return self.set_dir(module_set_name) / MODULES_DIR / name.to_file_system_name()

    # ------------------------------------------------------------------
    # Module sets
    # ------------------------------------------------------------------

    def list_module_sets(self) -> List[str]:
        """Names of all stored module sets, sorted."""
        if not self.root_dir.exists():
            return []
        return sorted(
            p.name for p in self.root_dir.iterdir()
            if p.is_dir() and (p / CONFIG_FILE).exists()
        )

    def load_module_set(self, name: str) -> Optional[ModuleSet]:
        """
        Load a module set.

        Returns:
            ModuleSet or None if it has never been saved
        """
        directory = self.set_dir(name)
        data = self._read_yaml(directory / CONFIG_FILE)
        if data is None:
            return None
        data["name"] = name
        number = self._read_build_number(directory)
        if number is not None:
            data["next_build_number"] = number
        return ModuleSet.model_validate(data)

    def save_module_set(self, module_set: ModuleSet) -> None:
        directory = self.set_dir(module_set.name)
        self._write_yaml(
            directory / CONFIG_FILE,
            module_set.model_dump(mode="json", exclude=_NON_CONFIG_FIELDS | {"name"}),
        )
        self.save_next_build_number(module_set.name, module_set)
        logger.info(f"Saved module set {module_set.name}")

    # ------------------------------------------------------------------
    # Modules
    # ------------------------------------------------------------------

    def load_modules(self, module_set_name: str) -> List[Module]:
        """
        Load all modules of a set, sorted by name.

        Directories whose name is not a valid module name, or whose
        configuration does not validate, are skipped with a warning.
        """
        modules_dir = self.set_dir(module_set_name) / MODULES_DIR
        if not modules_dir.exists():
            return []

        modules = []
        for child in sorted(modules_dir.iterdir()):
            if not child.is_dir():
                continue
            fs_name = child.name
            if not ModuleName.is_valid(fs_name.replace(ModuleName.FS_SEPARATOR, ModuleName.SEPARATOR, 1)):
                logger.warning(f"Skipping {child}: not a module directory")
                continue

            data = self._read_yaml(child / CONFIG_FILE) or {}
            data["name"] = str(ModuleName.from_file_system_name(fs_name))
            number = self._read_build_number(child)
            if number is not None:
                data["next_build_number"] = number

            try:
                modules.append(Module.model_validate(data))
            except ValidationError as e:
                logger.warning(f"Skipping module {fs_name}: invalid configuration: {e}")

        logger.debug(f"Loaded {len(modules)} modules of {module_set_name}")
        return modules

    def save_module(self, module_set_name: str, module: Module) -> None:
        directory = self.module_dir(module_set_name, module.name)
        data = module.model_dump(mode="json", exclude=_NON_CONFIG_FIELDS | {"name"})
        data["dependencies"] = [str(dep) for dep in module.dependencies]
        self._write_yaml(directory / CONFIG_FILE, data)
        self.save_next_build_number(module_set_name, module)

    def delete_module(self, module_set_name: str, name: Union[ModuleName, str]) -> bool:
        """Remove a module's directory. Returns False if it did not exist."""
        directory = self.module_dir(module_set_name, name)
        if not directory.exists():
            return False
        try:
            shutil.rmtree(directory)
        except OSError as e:
            raise PersistenceError(f"Failed to delete module {name}: {e}") from e
        logger.info(f"Deleted module {name} of {module_set_name}")
        return True

    # ------------------------------------------------------------------
    # Counters
    # ------------------------------------------------------------------

    def save_next_build_number(
        self,
        module_set_name: str,
        target: Union[Module, ModuleSet],
    ) -> None:
        """
        Persist a counter.

        Raises:
            PersistenceError: the file could not be written
        """
        if isinstance(target, ModuleSet):
            directory = self.set_dir(module_set_name)
        else:
            directory = self.module_dir(module_set_name, target.name)
        self._write_text(directory / BUILD_NUMBER_FILE, f"{target.next_build_number}\n")

    @staticmethod
    def _read_build_number(directory: Path) -> Optional[int]:
        path = directory / BUILD_NUMBER_FILE
        if not path.exists():
            return None
        text = path.read_text().strip()
        try:
            return int(text)
        except ValueError:
            logger.warning(f"Ignoring corrupt build number file {path}: '{text}'")
            return None

    # ------------------------------------------------------------------
    # File helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _read_yaml(path: Path) -> Optional[dict]:
        if not path.exists():
            return None
        with open(path, "r") as f:
            return yaml.safe_load(f) or {}

    def _write_yaml(self, path: Path, data: dict) -> None:
        self._write_text(path, yaml.safe_dump(data, sort_keys=False))

    @staticmethod
    def _write_text(path: Path, text: str) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.")
            try:
                with os.fdopen(fd, "w") as f:
                    f.write(text)
                os.replace(tmp, path)
            except BaseException:
                if os.path.exists(tmp):
                    os.unlink(tmp)
                raise
        except OSError as e:
            raise PersistenceError(f"Failed to write {path}: {e}") from e


__all__ = ["FileModuleStore", "CONFIG_FILE", "BUILD_NUMBER_FILE", "MODULES_DIR"]
