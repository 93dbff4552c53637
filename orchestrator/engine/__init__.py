# ============================================================================
# ORCHESTRATOR ENGINE
# ============================================================================
# EPOCH: 1 - MODULE SET ORCHESTRATION
# STATUS: Core - Engine components
# PURPOSE: Dependency graph, incremental selection, blockage resolution
# LAST_REVIEWED: 19 OCT 2026
# ============================================================================
"""
Orchestrator Engine Components

- graph: dependency graph construction and topological ordering
- selector: incremental module selection from a change set
- blockage: why a pending build cannot start
"""

from orchestrator.engine.graph import (
    DependencyGraph,
    GraphBuilder,
    PeerSet,
    TopologicalSorter,
    peer_node_key,
)
from orchestrator.engine.selector import IncrementalSelector
from orchestrator.engine.blockage import BlockageResolver

__all__ = [
    # Graph
    "DependencyGraph",
    "GraphBuilder",
    "PeerSet",
    "TopologicalSorter",
    "peer_node_key",
    # Selection
    "IncrementalSelector",
    # Blockage
    "BlockageResolver",
]
