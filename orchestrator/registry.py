# ============================================================================
# MODULE REGISTRY
# ============================================================================
# EPOCH: 1 - MODULE SET ORCHESTRATION
# STATUS: Core - Authoritative module collection of a module set
# PURPOSE: Register, look up and order modules with a cached active order
# CREATED: 19 OCT 2026
# ============================================================================
"""
Module Registry

Holds the modules of one module set keyed by module name and derives the
topologically ordered list of active modules.

State is an immutable snapshot: a read-only mapping sorted by name plus the
cached active order. Writers serialize on a lock and publish a fresh
snapshot with a single attribute assignment; readers never take the writer
lock and always see either the old or the new snapshot.

Structural changes (membership, disabled flag) go through the registry.
Counters and status are mutated on the Module objects themselves and do
not affect ordering.
"""

import logging
import threading
from dataclasses import dataclass, replace
from types import MappingProxyType
from typing import Iterable, List, Mapping, Optional, Tuple, Union

from core.contracts import ModuleName
from core.errors import DuplicateModuleError
from core.models import Module, ModuleSet
from orchestrator.engine.graph import GraphBuilder, TopologicalSorter

logger = logging.getLogger(__name__)

NameLike = Union[ModuleName, str]


@dataclass(frozen=True)
class RegistrySnapshot:
    """One published registry state."""
    modules: Mapping[str, Module]
    active_order: Optional[Tuple[Module, ...]] = None

    @classmethod
    def of(cls, modules: Iterable[Module]) -> "RegistrySnapshot":
        by_key = {m.key: m for m in modules}
        ordered = {key: by_key[key] for key in sorted(by_key)}
        return cls(modules=MappingProxyType(ordered))


def _key(name: NameLike) -> str:
    return name if isinstance(name, str) else str(name)


class ModuleRegistry:
    """
    Module collection of one module set.

    Usage:
        registry = ModuleRegistry(module_set)
        registry.register(module)
        for module in registry.list_active():
            ...
    """

    def __init__(
        self,
        module_set: ModuleSet,
        modules: Iterable[Module] = (),
        graph_builder: Optional[GraphBuilder] = None,
        sorter: Optional[TopologicalSorter] = None,
    ):
        self.module_set = module_set
        self._graph_builder = graph_builder or GraphBuilder()
        self._sorter = sorter or TopologicalSorter()
        self._lock = threading.Lock()
        self._snapshot = RegistrySnapshot.of(modules)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def register(self, module: Module) -> None:
        """
        Add a module.

        Raises:
            DuplicateModuleError: a module with the same name exists
        """
        with self._lock:
            current = self._snapshot.modules
            if module.key in current:
                raise DuplicateModuleError(module.key)
            self._publish([*current.values(), module])
        logger.debug(f"Registered module {module.key} in {self.module_set.name}")

    def unregister(self, name: NameLike) -> Optional[Module]:
        """Remove a module. Returns the removed module, None if absent."""
        key = _key(name)
        with self._lock:
            current = self._snapshot.modules
            removed = current.get(key)
            if removed is None:
                return None
            self._publish([m for k, m in current.items() if k != key])
        logger.info(f"Unregistered module {key} from {self.module_set.name}")
        return removed

    def set_disabled(self, name: NameLike, disabled: bool) -> Optional[Module]:
        """
        Set a module's disabled flag.

        Returns the updated module, None if absent. The cached order is
        dropped only when the flag actually changes.
        """
        key = _key(name)
        with self._lock:
            current = self._snapshot.modules
            module = current.get(key)
            if module is None or module.disabled == disabled:
                return module
            updated = module.model_copy(update={"disabled": disabled})
            self._publish([updated if k == key else m for k, m in current.items()])
        logger.info(
            f"Module {key} {'disabled' if disabled else 're-enabled'} "
            f"in {self.module_set.name}"
        )
        return updated

    def update(self, module: Module) -> None:
        """
        Replace a registered module, e.g. after its descriptor changed.

        Raises:
            KeyError: no module with that name is registered
        """
        with self._lock:
            current = self._snapshot.modules
            if module.key not in current:
                raise KeyError(f"Module not registered: {module.key}")
            self._publish([module if k == module.key else m for k, m in current.items()])

    def reload(self, modules: Iterable[Module]) -> None:
        """Replace the registry contents, e.g. after loading from storage."""
        with self._lock:
            self._publish(list(modules))

    def invalidate(self) -> None:
        """Drop the cached active order."""
        with self._lock:
            self._snapshot = replace(self._snapshot, active_order=None)

    def _publish(self, modules: List[Module]) -> None:
        # Caller holds the lock
        self._snapshot = RegistrySnapshot.of(modules)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def snapshot(self) -> RegistrySnapshot:
        return self._snapshot

    def lookup(self, name: NameLike) -> Optional[Module]:
        return self._snapshot.modules.get(_key(name))

    def modules(self) -> List[Module]:
        """All modules in registry order (sorted by name)."""
        return list(self._snapshot.modules.values())

    def __len__(self) -> int:
        return len(self._snapshot.modules)

    def __contains__(self, name: NameLike) -> bool:
        return _key(name) in self._snapshot.modules

    def has_disabled_module(self) -> bool:
        return any(m.disabled for m in self._snapshot.modules.values())

    def list_active(self) -> List[Module]:
        """
        Non-disabled modules in dependency order.

        Raises:
            CycleDetectedError: the active modules' dependencies form a cycle
        """
        snap = self._snapshot
        if snap.active_order is not None:
            return list(snap.active_order)

        active = [m for m in snap.modules.values() if not m.disabled]
        graph = self._graph_builder.build(self.module_set, active)
        by_key = {m.key: m for m in active}
        order = tuple(
            by_key[key] for key in self._sorter.sort(graph, [m.key for m in active])
        )

        # Publish the cache only if nothing changed meanwhile; never wait for writers
        if self._lock.acquire(blocking=False):
            try:
                if self._snapshot is snap:
                    self._snapshot = replace(snap, active_order=order)
            finally:
                self._lock.release()

        return list(order)

    def list_disabled(self, disabled: bool) -> List[Module]:
        """
        Modules by disabled flag.

        ``list_disabled(False)`` returns the cached active order when present,
        otherwise the enabled modules in registry order.
        """
        snap = self._snapshot
        if not disabled and snap.active_order is not None:
            return list(snap.active_order)
        return [m for m in snap.modules.values() if m.disabled == disabled]


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = ["ModuleRegistry", "RegistrySnapshot"]
