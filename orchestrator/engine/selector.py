# ============================================================================
# INCREMENTAL CHANGE SELECTOR
# ============================================================================
# EPOCH: 1 - MODULE SET ORCHESTRATION
# STATUS: Core - Module selection for incremental per-module builds
# PURPOSE: Decide which modules must build given a change set
# CREATED: 19 OCT 2026
# ============================================================================
"""
Incremental Change Selector

Selection steps:
1. Map each changed path to the module whose root path is its longest
   prefix (by path component). Unmatched paths are ignored.
2. Seed with the matched modules, every module whose previous result was
   failure or unstable, and modules depending on the project that
   triggered this build (unless upstream changes are ignored).
3. Add every module downstream of a seed, transitively.
4. Nothing left means nothing to build, which is distinct from "all".

Modules that were never built are not seeded; they build once something
they contain or depend on changes.
"""

import logging
from typing import Dict, List, Mapping, Optional, Sequence, Union

from core.contracts import BuildResult, ModuleStatus
from core.models import ChangeSet, Module, ModuleSet, Selection, SelectionKind
from orchestrator.engine.graph import DependencyGraph

logger = logging.getLogger(__name__)

PreviousStatus = Union[ModuleStatus, BuildResult]


def _components(path: str) -> List[str]:
    return [part for part in path.split("/") if part]


class IncrementalSelector:
    """Selects the modules of a per-module incremental build."""

    def select(
        self,
        module_set: ModuleSet,
        modules: Sequence[Module],
        change_set: ChangeSet,
        graph: DependencyGraph,
        previous_statuses: Optional[Mapping[str, PreviousStatus]] = None,
    ) -> Selection:
        """
        Select modules to build.

        Args:
            module_set: Owning module set (supplies the build policy)
            modules: Active modules in build order
            change_set: Changed paths and upstream causes of this attempt
            graph: Dependency graph of the set
            previous_statuses: Last result per module key; overrides the
                module's recorded status

        Returns:
            Selection of kind ALL (selector bypassed), SUBSET or NONE
        """
        if not module_set.uses_incremental_selection:
            return Selection(kind=SelectionKind.ALL, modules=[m.key for m in modules])

        reasons: Dict[str, str] = {}

        for key in self.match_changed_modules(modules, change_set):
            reasons.setdefault(key, "changed")

        statuses = previous_statuses or {}
        for module in modules:
            status = statuses.get(module.key, module.status)
            if status.is_broken():
                reasons.setdefault(module.key, "broken")

        if not module_set.ignore_upstream_changes and change_set.upstream_causes:
            projects = {cause.project for cause in change_set.upstream_causes}
            for module in modules:
                if any(str(dep) in projects for dep in module.dependencies):
                    reasons.setdefault(module.key, "upstream")

        active = {m.key for m in modules}
        closure = graph.downstream_closure(reasons.keys(), within=active)
        for key in closure:
            reasons.setdefault(key, "downstream")

        selected = [m.key for m in modules if m.key in closure]
        if not selected:
            logger.info(f"No modules of {module_set.name} need to be built")
            return Selection(kind=SelectionKind.NONE)

        logger.info(
            f"Selected {len(selected)} of {len(modules)} modules of {module_set.name}"
        )
        return Selection(
            kind=SelectionKind.SUBSET,
            modules=selected,
            reasons={key: reasons[key] for key in selected},
        )

    @staticmethod
    def match_changed_modules(
        modules: Sequence[Module],
        change_set: ChangeSet,
    ) -> List[str]:
        """
        Keys of the modules containing a changed path, in module order.

        A path belongs to the module with the longest root path that is a
        component-wise prefix of it. Earlier modules win ties.
        """
        roots = [(m.key, _components(m.root_path)) for m in modules]
        matched = set()

        for path in change_set.paths:
            parts = _components(path)
            best_key = None
            best_len = -1
            for key, root in roots:
                if len(root) > best_len and parts[:len(root)] == root:
                    best_key, best_len = key, len(root)
            if best_key is None:
                logger.debug(f"Changed path {path} belongs to no module")
                continue
            matched.add(best_key)

        return [key for key, _ in roots if key in matched]


__all__ = ["IncrementalSelector"]
