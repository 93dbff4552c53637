# ============================================================================
# DESCRIPTOR SERVICE TESTS
# ============================================================================
# EPOCH: 1 - MODULE SET ORCHESTRATION
# STATUS: Tests - Descriptor discovery
# PURPOSE: Verify pattern matching, parsing and module roots
# CREATED: 19 OCT 2026
# ============================================================================
"""
Descriptor Service Tests

Run with:
    pytest tests/test_descriptor_service.py -v
"""

import pytest

from services.descriptor_service import YamlDescriptorSource, module_root, split_patterns


@pytest.fixture
def workspace(tmp_path):
    def write(relative, text):
        path = tmp_path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text)

    write("libs/util/module.yaml", "name: acme:util\n")
    write("libs/core/module.yaml", "name: acme:core\ndisplay_name: Core\ndependencies:\n  - acme:util\n")
    write("apps/web/module.yaml", "organisation: acme\nmodule: web\ndependencies: [acme:core]\n")
    write("vendor/zlib/module.yaml", "name: vendor:zlib\n")
    return tmp_path


@pytest.fixture
def source():
    return YamlDescriptorSource()


class TestDiscovery:

    def test_discovers_sorted_by_name(self, source, workspace):
        found = source.discover_modules(workspace, "**/module.yaml")
        assert [str(d.name) for d in found] == ["acme:core", "acme:util", "acme:web", "vendor:zlib"]

    def test_parses_fields(self, source, workspace):
        core = source.discover_modules(workspace, "libs/*/module.yaml")[0]
        assert core.root_path == "libs/core"
        assert core.display_name == "Core"
        assert [str(d) for d in core.dependencies] == ["acme:util"]
        assert core.descriptor_path == "libs/core/module.yaml"

    def test_organisation_and_module_keys(self, source, workspace):
        [web] = source.discover_modules(workspace, "apps/**/module.yaml")
        assert str(web.name) == "acme:web"

    def test_excludes(self, source, workspace):
        found = source.discover_modules(workspace, "**/module.yaml", "vendor/**, apps/**")
        assert [str(d.name) for d in found] == ["acme:core", "acme:util"]

    def test_invalid_descriptors_skipped(self, source, workspace):
        (workspace / "broken").mkdir()
        (workspace / "broken" / "module.yaml").write_text("name: [unterminated\n")
        (workspace / "nameless").mkdir()
        (workspace / "nameless" / "module.yaml").write_text("display_name: nobody\n")
        (workspace / "bad").mkdir()
        (workspace / "bad" / "module.yaml").write_text("name: no-separator\n")
        found = source.discover_modules(workspace, "*/module.yaml")
        assert found == []

    def test_duplicate_names_keep_first(self, source, workspace):
        (workspace / "copy").mkdir()
        (workspace / "copy" / "module.yaml").write_text("name: acme:util\n")
        found = source.discover_modules(workspace, "**/module.yaml")
        util = next(d for d in found if str(d.name) == "acme:util")
        assert util.root_path == "copy"

    def test_missing_workspace(self, source, tmp_path):
        assert source.discover_modules(tmp_path / "nope", "**/module.yaml") == []


class TestModuleRoot:

    def test_descriptor_directory(self):
        assert module_root("libs/core/module.yaml") == "libs/core"
        assert module_root("module.yaml") == ""

    def test_relative_descriptor_location(self):
        assert module_root("libs/core/build/module.yaml", "build/module.yaml") == "libs/core"
        assert module_root("build/module.yaml", "./build/module.yaml") == ""

    def test_split_patterns(self):
        assert split_patterns(" a/*.yaml, ,b/**/x.yaml ") == ["a/*.yaml", "b/**/x.yaml"]
        assert split_patterns(None) == []
