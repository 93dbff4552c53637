# ============================================================================
# DEPENDENCY GRAPH
# ============================================================================
# EPOCH: 1 - MODULE SET ORCHESTRATION
# STATUS: Core - Module dependency graph construction and ordering
# PURPOSE: Build "precedes/triggers" edges and a topological module order
# CREATED: 19 OCT 2026
# ============================================================================
"""
Dependency Graph

Core logic for module ordering.

Features:
- Dependency graph construction from declared module dependencies
- Edges and resource activities from publishers / build wrappers
- Cross-set trigger edges to peer module sets
- Topological sort with cycle detection

The graph is derived state: it is rebuilt on demand from declared metadata
and never persisted. No build history is consulted.
"""

import logging
from collections import defaultdict, deque
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from core.errors import CycleDetectedError
from core.models import Contributor, Module, ModuleSet

logger = logging.getLogger(__name__)


# ============================================================================
# DATA STRUCTURES
# ============================================================================

@dataclass
class DependencyGraph:
    """
    Directed graph over the module set, its modules and external projects.

    A -> B means "A precedes / triggers B" (B depends on A).
    """
    # Node key -> nodes that depend on it
    forward_edges: Dict[str, List[str]] = field(default_factory=lambda: defaultdict(list))

    # Node key -> nodes it depends on
    backward_edges: Dict[str, List[str]] = field(default_factory=lambda: defaultdict(list))

    nodes: Set[str] = field(default_factory=set)

    # Named resources held by builds of the set (from build wrappers/publishers)
    resource_activities: Set[str] = field(default_factory=set)

    def add_node(self, node: str) -> None:
        self.nodes.add(node)

    def add_edge(self, from_node: str, to_node: str) -> None:
        """Add an edge: to_node depends on from_node. Duplicates are ignored."""
        self.nodes.add(from_node)
        self.nodes.add(to_node)
        if to_node in self.forward_edges[from_node]:
            return
        self.forward_edges[from_node].append(to_node)
        self.backward_edges[to_node].append(from_node)

    def has_edge(self, from_node: str, to_node: str) -> bool:
        return to_node in self.forward_edges.get(from_node, [])

    def get_dependencies(self, node: str) -> List[str]:
        """Get nodes that this node depends on."""
        return self.backward_edges.get(node, [])

    def get_dependents(self, node: str) -> List[str]:
        """Get nodes that depend on this node."""
        return self.forward_edges.get(node, [])

    def downstream_closure(
        self,
        seeds: Iterable[str],
        within: Optional[Set[str]] = None,
    ) -> Set[str]:
        """
        All nodes reachable from the seeds along forward edges, seeds included.

        Args:
            seeds: Starting nodes
            within: Optional node set to restrict the walk to
        """
        result = set(seeds)
        queue = deque(result)
        while queue:
            node = queue.popleft()
            for dependent in self.get_dependents(node):
                if within is not None and dependent not in within:
                    continue
                if dependent not in result:
                    result.add(dependent)
                    queue.append(dependent)
        return result

    def edge_count(self) -> int:
        return sum(len(targets) for targets in self.forward_edges.values())


# ============================================================================
# GRAPH BUILDER
# ============================================================================

PeerSet = Tuple[ModuleSet, Sequence[Module]]


class GraphBuilder:
    """Builds the dependency graph of a module set."""

    def build(
        self,
        module_set: ModuleSet,
        modules: Sequence[Module],
        contributors: Optional[Sequence[Contributor]] = None,
        peers: Sequence[PeerSet] = (),
    ) -> DependencyGraph:
        """
        Build dependency graph for a module set.

        Args:
            module_set: The owning module set (becomes a node)
            modules: Modules to include, in registry order
            contributors: Set-level publishers/build wrappers. Defaults to
                the module set's own publishers and build wrappers.
            peers: Other module sets and their modules, for cross-set
                trigger edges

        Returns:
            DependencyGraph instance
        """
        graph = DependencyGraph()
        graph.add_node(module_set.key)

        by_name = {module.name: module for module in modules}
        for module in modules:
            graph.add_node(module.key)

        # Module -> module edges from declared dependencies
        for module in modules:
            for dep in module.dependencies:
                if dep == module.name or dep not in by_name:
                    continue
                graph.add_edge(str(dep), module.key)

        # Set-level collaborators
        if contributors is None:
            contributors = [*module_set.publishers, *module_set.build_wrappers]
        self._apply_contributors(graph, module_set.key, contributors)

        # Per-module collaborators are inert in aggregator mode
        if not module_set.aggregator_style_build:
            shared = module_set.module_publishers()
            for module in modules:
                self._apply_contributors(
                    graph,
                    module.key,
                    [*shared, *module.publishers, *module.build_wrappers],
                )

        if peers:
            self._add_peer_edges(graph, module_set, by_name, peers)

        logger.debug(
            f"Built dependency graph for {module_set.name}: "
            f"{len(graph.nodes)} nodes, {graph.edge_count()} edges"
        )
        return graph

    @staticmethod
    def _apply_contributors(
        graph: DependencyGraph,
        owner: str,
        contributors: Iterable[Contributor],
    ) -> None:
        for contributor in contributors:
            for from_node, to_node in contributor.edges(owner):
                graph.add_edge(from_node, to_node)
            graph.resource_activities.update(contributor.resource_activities())

    @staticmethod
    def _add_peer_edges(
        graph: DependencyGraph,
        module_set: ModuleSet,
        by_name: Dict,
        peers: Sequence[PeerSet],
    ) -> None:
        """Edges from our modules to modules of other sets that consume them."""
        if not module_set.allowed_to_trigger_downstream:
            return

        for peer_set, peer_modules in peers:
            if peer_set.name == module_set.name or peer_set.ignore_upstream_changes:
                continue
            for peer_module in peer_modules:
                if peer_module.disabled:
                    continue
                for dep in peer_module.dependencies:
                    if dep in by_name:
                        graph.add_edge(str(dep), peer_node_key(peer_set, peer_module))


def peer_node_key(peer_set: ModuleSet, module: Module) -> str:
    """Node key for a module of another module set."""
    return f"{peer_set.name}/{module.key}"


# ============================================================================
# TOPOLOGICAL SORT / CYCLE DETECTION
# ============================================================================

class TopologicalSorter:
    """Provides a topological ordering of a subset of graph nodes."""

    def sort(self, graph: DependencyGraph, nodes: Sequence[str]) -> List[str]:
        """
        Order nodes so every edge A -> B has A before B.

        Only edges between the given nodes count. Ties keep the order of
        ``nodes``.

        Raises:
            CycleDetectedError naming the nodes that could not be ordered
        """
        members = set(nodes)
        in_degree = {node: 0 for node in nodes}

        for node in nodes:
            for dep in graph.get_dependencies(node):
                if dep in members:
                    in_degree[node] += 1

        queue = deque(node for node in nodes if in_degree[node] == 0)
        sorted_nodes: List[str] = []

        while queue:
            node = queue.popleft()
            sorted_nodes.append(node)

            for dependent in graph.get_dependents(node):
                if dependent not in members:
                    continue
                in_degree[dependent] -= 1
                if in_degree[dependent] == 0:
                    queue.append(dependent)

        if len(sorted_nodes) != len(members):
            placed = set(sorted_nodes)
            remaining = [n for n in nodes if n not in placed]
            logger.error(f"Cycle detected involving modules: {remaining}")
            raise CycleDetectedError(remaining)

        return sorted_nodes


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "DependencyGraph",
    "GraphBuilder",
    "TopologicalSorter",
    "PeerSet",
    "peer_node_key",
]
