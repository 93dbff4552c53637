# ============================================================================
# BLOCKAGE RESOLVER TESTS
# ============================================================================
# EPOCH: 1 - MODULE SET ORCHESTRATION
# STATUS: Tests - Queue blockage causes
# PURPOSE: Verify why pending set and module builds cannot start
# CREATED: 19 OCT 2026
# ============================================================================
"""
Blockage Resolver Tests

Run with:
    pytest tests/test_blockage.py -v
"""

import pytest

from core.contracts import ModuleStatus
from core.models import (
    BlockageCause,
    ModuleBuildInProgress,
    ModuleSet,
    ModuleSetBuildInProgress,
    UpstreamModuleInProgress,
)
from orchestrator.engine import BlockageResolver, GraphBuilder


@pytest.fixture
def resolver():
    return BlockageResolver()


@pytest.fixture
def core_and_util(make_module):
    return [
        make_module("acme:core", ["acme:util"]),
        make_module("acme:util", status=ModuleStatus.BUILDING),
    ]


# ============================================================================
# MODULE SET BLOCKAGE
# ============================================================================

class TestResolve:

    def test_building_module_blocks_set(self, resolver, core_and_util):
        module_set = ModuleSet(name="platform")
        cause = resolver.resolve(module_set, core_and_util)
        assert isinstance(cause, ModuleBuildInProgress)
        assert cause.module == "acme:util"

    def test_unblocked_once_module_completes(self, resolver, core_and_util):
        module_set = ModuleSet(name="platform")
        core_and_util[1].status = ModuleStatus.SUCCESS
        assert resolver.resolve(module_set, core_and_util) is None

    def test_queued_module_blocks_set(self, resolver, make_module):
        modules = [make_module("acme:a", status=ModuleStatus.QUEUED)]
        assert resolver.resolve(ModuleSet(name="platform"), modules).module == "acme:a"

    def test_host_cause_wins(self, resolver, core_and_util):
        host = BlockageCause(reason="Waiting for next available executor")
        assert resolver.resolve(ModuleSet(name="platform"), core_and_util, host) is host


# ============================================================================
# MODULE BLOCKAGE
# ============================================================================

class TestResolveModule:

    def test_upstream_in_progress(self, resolver, core_and_util):
        module_set = ModuleSet(name="platform", aggregator_style_build=False)
        graph = GraphBuilder().build(module_set, core_and_util)
        cause = resolver.resolve_module(core_and_util[0], module_set, graph, core_and_util)
        assert isinstance(cause, UpstreamModuleInProgress)
        assert str(cause) == "Upstream module acme:util is building"

    def test_no_active_upstream(self, resolver, core_and_util):
        module_set = ModuleSet(name="platform", aggregator_style_build=False)
        graph = GraphBuilder().build(module_set, core_and_util)
        assert resolver.resolve_module(core_and_util[1], module_set, graph, core_and_util) is None

    def test_aggregated_set_build_blocks_modules(self, resolver, make_module):
        module_set = ModuleSet(name="platform", status=ModuleStatus.BUILDING)
        modules = [make_module("acme:a")]
        graph = GraphBuilder().build(module_set, modules)
        cause = resolver.resolve_module(modules[0], module_set, graph, modules)
        assert isinstance(cause, ModuleSetBuildInProgress)
        assert cause.module_set == "platform"

    def test_per_module_set_build_does_not_block(self, resolver, make_module):
        module_set = ModuleSet(name="platform", aggregator_style_build=False, status=ModuleStatus.BUILDING)
        modules = [make_module("acme:a")]
        graph = GraphBuilder().build(module_set, modules)
        assert resolver.resolve_module(modules[0], module_set, graph, modules) is None

    def test_first_upstream_in_registry_order(self, resolver, make_module):
        modules = [
            make_module("acme:a", status=ModuleStatus.QUEUED),
            make_module("acme:b", status=ModuleStatus.BUILDING),
            make_module("acme:c", ["acme:b", "acme:a"]),
        ]
        module_set = ModuleSet(name="platform", aggregator_style_build=False)
        graph = GraphBuilder().build(module_set, modules)
        assert resolver.resolve_module(modules[2], module_set, graph, modules).module == "acme:a"

    def test_host_cause_wins(self, resolver, core_and_util):
        module_set = ModuleSet(name="platform", status=ModuleStatus.BUILDING)
        graph = GraphBuilder().build(module_set, core_and_util)
        host = BlockageCause(reason="Executor offline")
        assert resolver.resolve_module(core_and_util[0], module_set, graph, core_and_util, host) is host
