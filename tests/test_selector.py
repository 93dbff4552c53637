# ============================================================================
# INCREMENTAL SELECTOR TESTS
# ============================================================================
# EPOCH: 1 - MODULE SET ORCHESTRATION
# STATUS: Tests - Incremental module selection
# PURPOSE: Verify changed/broken/upstream seeds and downstream closure
# CREATED: 19 OCT 2026
# ============================================================================
"""
Incremental Selector Tests

Run with:
    pytest tests/test_selector.py -v
"""

import pytest

from core.contracts import BuildResult, ModuleStatus
from core.models import ChangeSet, ModuleSet, SelectionKind, UpstreamCause
from orchestrator.engine import GraphBuilder, IncrementalSelector


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def module_set():
    return ModuleSet(name="platform", aggregator_style_build=False, incremental_build=True)


@pytest.fixture
def selector():
    return IncrementalSelector()


@pytest.fixture
def select(selector, module_set):
    def _select(modules, change_set, previous_statuses=None, owner=None):
        owner = owner or module_set
        graph = GraphBuilder().build(owner, modules)
        return selector.select(owner, modules, change_set, graph, previous_statuses)
    return _select


# ============================================================================
# SELECTION
# ============================================================================

class TestSelection:

    def test_leaf_change_selects_only_leaf(self, select, chain_modules):
        selection = select(chain_modules, ChangeSet.from_paths("c/src/main.c"))
        assert selection.kind == SelectionKind.SUBSET
        assert selection.modules == ["acme:c"]
        assert selection.reasons == {"acme:c": "changed"}

    def test_root_change_selects_everything_downstream(self, select, chain_modules):
        selection = select(chain_modules, ChangeSet.from_paths("a/README"))
        assert selection.modules == ["acme:a", "acme:b", "acme:c"]
        assert selection.reasons["acme:b"] == "downstream"

    def test_unmatched_changes_select_nothing(self, select, chain_modules):
        selection = select(chain_modules, ChangeSet.from_paths("docs/index.md"))
        assert selection.kind == SelectionKind.NONE
        assert selection.is_empty

    def test_empty_change_set_selects_nothing(self, select, chain_modules):
        assert select(chain_modules, ChangeSet()).kind == SelectionKind.NONE

    def test_broken_modules_are_seeds(self, select, make_module):
        modules = [
            make_module("acme:a"),
            make_module("acme:b", ["acme:a"], status=ModuleStatus.FAILURE),
            make_module("acme:c", ["acme:b"]),
        ]
        selection = select(modules, ChangeSet())
        assert selection.modules == ["acme:b", "acme:c"]
        assert selection.reasons["acme:b"] == "broken"

    def test_previous_statuses_override_module_status(self, select, chain_modules):
        selection = select(chain_modules, ChangeSet(), previous_statuses={"acme:c": BuildResult.UNSTABLE})
        assert selection.modules == ["acme:c"]

    def test_never_built_modules_are_not_seeds(self, select, chain_modules):
        assert all(m.status == ModuleStatus.NOT_BUILT for m in chain_modules)
        assert select(chain_modules, ChangeSet()).kind == SelectionKind.NONE

    def test_upstream_cause_seeds_dependants(self, select, make_module):
        modules = [make_module("acme:a", ["ext:lib"]), make_module("acme:b")]
        change_set = ChangeSet(upstream_causes=[UpstreamCause(project="ext:lib", build_number=4)])
        assert select(modules, change_set).reasons == {"acme:a": "upstream"}

    def test_upstream_cause_ignored_when_configured(self, select, make_module):
        owner = ModuleSet(
            name="platform",
            aggregator_style_build=False,
            incremental_build=True,
            ignore_upstream_changes=True,
        )
        modules = [make_module("acme:a", ["ext:lib"])]
        change_set = ChangeSet(upstream_causes=[UpstreamCause(project="ext:lib")])
        assert select(modules, change_set, owner=owner).kind == SelectionKind.NONE

    def test_non_incremental_bypasses_selection(self, select, chain_modules):
        owner = ModuleSet(name="platform", aggregator_style_build=False)
        selection = select(chain_modules, ChangeSet(), owner=owner)
        assert selection.kind == SelectionKind.ALL
        assert selection.modules == ["acme:a", "acme:b", "acme:c"]

    def test_aggregator_mode_bypasses_selection(self, select, chain_modules):
        owner = ModuleSet(name="platform", incremental_build=True)
        assert select(chain_modules, ChangeSet(), owner=owner).kind == SelectionKind.ALL


# ============================================================================
# PATH MATCHING
# ============================================================================

class TestMatchChangedModules:

    def test_longest_prefix_wins(self, make_module):
        modules = [make_module("acme:lib", root_path="libs"), make_module("acme:net", root_path="libs/net")]
        change_set = ChangeSet.from_paths("libs/net/socket.c", "libs/util.c")
        assert IncrementalSelector.match_changed_modules(modules, change_set) == ["acme:lib", "acme:net"]
        only_net = ChangeSet.from_paths("libs/net/socket.c")
        assert IncrementalSelector.match_changed_modules(modules, only_net) == ["acme:net"]

    def test_prefix_is_component_wise(self, make_module):
        modules = [make_module("acme:net", root_path="libs/net")]
        change_set = ChangeSet.from_paths("libs/network/x.c")
        assert IncrementalSelector.match_changed_modules(modules, change_set) == []

    def test_workspace_root_module_matches_everything(self, make_module):
        modules = [make_module("acme:root", root_path=""), make_module("acme:a", root_path="a")]
        change_set = ChangeSet.from_paths("build.gradle", "a/x")
        assert IncrementalSelector.match_changed_modules(modules, change_set) == ["acme:root", "acme:a"]

    def test_earlier_module_wins_tie(self, make_module):
        modules = [make_module("acme:x", root_path="shared"), make_module("acme:y", root_path="shared")]
        change_set = ChangeSet.from_paths("shared/file")
        assert IncrementalSelector.match_changed_modules(modules, change_set) == ["acme:x"]
