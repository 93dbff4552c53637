# ============================================================================
# DEPENDENCY GRAPH TESTS
# ============================================================================
# EPOCH: 1 - MODULE SET ORCHESTRATION
# STATUS: Tests - Graph construction, contributors, topological sort
# PURPOSE: Verify edges, peer edges, ordering and cycle detection
# CREATED: 19 OCT 2026
# ============================================================================
"""
Dependency Graph Tests

Run with:
    pytest tests/test_graph.py -v
"""

import pytest

from core.errors import CycleDetectedError
from core.models import DownstreamTrigger, ModuleSet, ResourceLock, UpstreamTrigger
from orchestrator.engine import DependencyGraph, GraphBuilder, TopologicalSorter
from orchestrator.engine.graph import peer_node_key


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def module_set():
    return ModuleSet(name="platform")


@pytest.fixture
def per_module_set():
    return ModuleSet(name="platform", aggregator_style_build=False)


@pytest.fixture
def builder():
    return GraphBuilder()


@pytest.fixture
def sorter():
    return TopologicalSorter()


# ============================================================================
# GRAPH STRUCTURE
# ============================================================================

class TestDependencyGraph:

    def test_duplicate_edges_ignored(self):
        graph = DependencyGraph()
        graph.add_edge("a", "b")
        graph.add_edge("a", "b")
        assert graph.edge_count() == 1
        assert graph.get_dependencies("b") == ["a"]
        assert graph.get_dependents("a") == ["b"]

    def test_unknown_node_has_no_neighbours(self):
        graph = DependencyGraph()
        assert graph.get_dependencies("x") == []
        assert graph.get_dependents("x") == []

    def test_downstream_closure_includes_seeds(self):
        graph = DependencyGraph()
        graph.add_edge("a", "b")
        graph.add_edge("b", "c")
        graph.add_node("d")
        assert graph.downstream_closure(["b"]) == {"b", "c"}
        assert graph.downstream_closure(["a"]) == {"a", "b", "c"}

    def test_downstream_closure_restricted(self):
        graph = DependencyGraph()
        graph.add_edge("a", "b")
        graph.add_edge("b", "c")
        assert graph.downstream_closure(["a"], within={"a", "c"}) == {"a"}


# ============================================================================
# GRAPH BUILDER
# ============================================================================

class TestGraphBuilder:

    def test_module_edges_follow_dependencies(self, builder, module_set, chain_modules):
        graph = builder.build(module_set, chain_modules)
        assert graph.has_edge("acme:a", "acme:b")
        assert graph.has_edge("acme:b", "acme:c")
        assert not graph.has_edge("acme:a", "acme:c")
        assert "platform" in graph.nodes

    def test_external_and_self_dependencies_skipped(self, builder, module_set, make_module):
        modules = [make_module("acme:a", ["acme:a", "other:lib"])]
        graph = builder.build(module_set, modules)
        assert graph.edge_count() == 0
        assert "other:lib" not in graph.nodes

    def test_set_contributors_use_set_as_owner(self, builder, chain_modules):
        module_set = ModuleSet(
            name="platform",
            publishers=[DownstreamTrigger(projects=["deploy"])],
            build_wrappers=[UpstreamTrigger(projects=["toolchain"]), ResourceLock(resource="db")],
        )
        graph = builder.build(module_set, chain_modules)
        assert graph.has_edge("platform", "deploy")
        assert graph.has_edge("toolchain", "platform")
        assert graph.resource_activities == {"db"}

    def test_explicit_contributors_replace_set_defaults(self, builder, chain_modules):
        module_set = ModuleSet(name="platform", publishers=[DownstreamTrigger(projects=["deploy"])])
        graph = builder.build(module_set, chain_modules, contributors=[])
        assert not graph.has_edge("platform", "deploy")

    def test_module_contributors_inert_in_aggregator_mode(self, builder, module_set, make_module):
        module = make_module("acme:a", publishers=[DownstreamTrigger(projects=["docs"])])
        graph = builder.build(module_set, [module])
        assert not graph.has_edge("acme:a", "docs")

    def test_module_contributors_apply_per_module(self, builder, make_module):
        module_set = ModuleSet(
            name="platform",
            aggregator_style_build=False,
            publishers=[DownstreamTrigger(projects=["deploy"])],
        )
        module = make_module("acme:a", build_wrappers=[ResourceLock(resource="gpu")])
        graph = builder.build(module_set, [module])
        assert graph.has_edge("acme:a", "deploy")
        assert graph.has_edge("platform", "deploy")
        assert "gpu" in graph.resource_activities

    def test_peer_edges_to_consuming_modules(self, builder, module_set, chain_modules, make_module):
        peer = ModuleSet(name="apps")
        consumer = make_module("acme:app", ["acme:c"])
        graph = builder.build(module_set, chain_modules, peers=[(peer, [consumer])])
        assert graph.has_edge("acme:c", peer_node_key(peer, consumer))
        assert peer_node_key(peer, consumer) == "apps/acme:app"

    def test_peer_edges_respect_policies(self, builder, chain_modules, make_module):
        consumer = make_module("acme:app", ["acme:c"])
        disabled = make_module("acme:old", ["acme:c"], disabled=True)

        quiet = ModuleSet(name="platform", allowed_to_trigger_downstream=False)
        graph = builder.build(quiet, chain_modules, peers=[(ModuleSet(name="apps"), [consumer])])
        assert graph.edge_count() == 2

        ignoring = ModuleSet(name="apps", ignore_upstream_changes=True)
        graph = builder.build(ModuleSet(name="platform"), chain_modules, peers=[(ignoring, [consumer])])
        assert graph.edge_count() == 2

        graph = builder.build(ModuleSet(name="platform"), chain_modules, peers=[(ModuleSet(name="apps"), [disabled])])
        assert graph.edge_count() == 2


# ============================================================================
# TOPOLOGICAL SORT
# ============================================================================

class TestTopologicalSorter:

    def test_dependencies_come_first(self, builder, sorter, module_set, chain_modules):
        graph = builder.build(module_set, chain_modules)
        assert sorter.sort(graph, ["acme:c", "acme:b", "acme:a"]) == ["acme:a", "acme:b", "acme:c"]

    def test_ties_keep_input_order(self, builder, sorter, module_set, make_module):
        modules = [make_module("acme:z"), make_module("acme:m"), make_module("acme:b", ["acme:z"])]
        graph = builder.build(module_set, modules)
        assert sorter.sort(graph, ["acme:z", "acme:m", "acme:b"]) == ["acme:z", "acme:m", "acme:b"]

    def test_edges_outside_subset_ignored(self, builder, sorter, module_set, chain_modules):
        graph = builder.build(module_set, chain_modules)
        assert sorter.sort(graph, ["acme:c", "acme:a"]) == ["acme:c", "acme:a"]

    def test_cycle_detected(self, builder, sorter, module_set, make_module):
        modules = [
            make_module("acme:a", ["acme:b"]),
            make_module("acme:b", ["acme:a"]),
            make_module("acme:c"),
        ]
        graph = builder.build(module_set, modules)
        with pytest.raises(CycleDetectedError) as exc_info:
            sorter.sort(graph, ["acme:a", "acme:b", "acme:c"])
        assert exc_info.value.modules == ["acme:a", "acme:b"]
