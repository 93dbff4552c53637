# ============================================================================
# REPOSITORY TESTS
# ============================================================================
# EPOCH: 1 - MODULE SET ORCHESTRATION
# STATUS: Tests - File store and PostgreSQL counter repository
# PURPOSE: Verify on-disk layout, counter files and upsert behavior
# CREATED: 19 OCT 2026
# ============================================================================
"""
Repository Tests

The file store runs against pytest's tmp_path. The PostgreSQL repository
runs against a mocked connection pool.

Run with:
    pytest tests/test_repositories.py -v
"""

from unittest.mock import MagicMock

import psycopg
import pytest

from core.contracts import ModuleStatus
from core.errors import PersistenceError
from core.models import DownstreamTrigger, ModuleSet
from repositories import FileModuleStore, PostgresBuildNumberRepository
from repositories.build_number_repo import SET_TARGET
from repositories.database import _safe_conninfo, get_connection_string


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def store(tmp_path):
    return FileModuleStore(tmp_path / "sets")


@pytest.fixture
def module_set():
    return ModuleSet(
        name="platform",
        aggregator_style_build=False,
        publishers=[DownstreamTrigger(projects=["deploy"])],
        next_build_number=12,
    )


@pytest.fixture
def conn():
    return MagicMock()


@pytest.fixture
def pool(conn):
    pool = MagicMock()
    pool.connection.return_value.__enter__.return_value = conn
    return pool


# ============================================================================
# FILE MODULE STORE
# ============================================================================

class TestFileModuleStore:

    def test_module_set_round_trip(self, store, module_set):
        store.save_module_set(module_set)
        loaded = store.load_module_set("platform")
        assert loaded.aggregator_style_build is False
        assert loaded.next_build_number == 12
        assert loaded.publishers == module_set.publishers
        assert store.list_module_sets() == ["platform"]

    def test_counter_kept_out_of_config(self, store, module_set):
        store.save_module_set(module_set)
        directory = store.set_dir("platform")
        assert "next_build_number" not in (directory / "config.yaml").read_text()
        assert (directory / "nextBuildNumber").read_text().strip() == "12"

    def test_missing_module_set(self, store):
        assert store.load_module_set("nope") is None
        assert store.list_module_sets() == []

    def test_module_layout_and_round_trip(self, store, make_module):
        module = make_module("acme:core", ["acme:util"], next_build_number=4, status=ModuleStatus.FAILURE)
        store.save_module("platform", module)

        assert (store.set_dir("platform") / "modules" / "acme$core" / "config.yaml").exists()
        [loaded] = store.load_modules("platform")
        assert loaded.key == "acme:core"
        assert [str(d) for d in loaded.dependencies] == ["acme:util"]
        assert loaded.next_build_number == 4
        assert loaded.status == ModuleStatus.FAILURE

    def test_counter_only_write(self, store, make_module):
        module = make_module("acme:core")
        store.save_module("platform", module)
        module.next_build_number = 9
        store.save_next_build_number("platform", module)
        assert store.load_modules("platform")[0].next_build_number == 9

    def test_invalid_directories_skipped(self, store, make_module):
        store.save_module("platform", make_module("acme:core"))
        (store.set_dir("platform") / "modules" / "not-a-module").mkdir()
        (store.set_dir("platform") / "modules" / "acme$bad").mkdir()
        (store.set_dir("platform") / "modules" / "acme$bad" / "config.yaml").write_text(
            "next_build_number: 1\nstatus: exploded\n"
        )
        assert [m.key for m in store.load_modules("platform")] == ["acme:core"]

    def test_corrupt_counter_ignored(self, store, make_module):
        store.save_module("platform", make_module("acme:core", next_build_number=5))
        (store.module_dir("platform", "acme:core") / "nextBuildNumber").write_text("garbage")
        assert store.load_modules("platform")[0].next_build_number == 1

    def test_delete_module(self, store, make_module):
        store.save_module("platform", make_module("acme:core"))
        assert store.delete_module("platform", "acme:core") is True
        assert store.delete_module("platform", "acme:core") is False
        assert store.load_modules("platform") == []

    def test_write_failure_raises_persistence_error(self, tmp_path, module_set):
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")
        store = FileModuleStore(blocker)
        with pytest.raises(PersistenceError):
            store.save_next_build_number("platform", module_set)


# ============================================================================
# POSTGRES BUILD NUMBER REPOSITORY
# ============================================================================

class TestPostgresBuildNumberRepository:

    def test_save_set_counter_uses_empty_target(self, pool, conn, module_set):
        PostgresBuildNumberRepository(pool).save_next_build_number("platform", module_set)
        params = conn.execute.call_args.args[1]
        assert params == {"module_set": "platform", "target": SET_TARGET, "number": 12}

    def test_save_module_counter(self, pool, conn, make_module):
        module = make_module("acme:core", next_build_number=3)
        PostgresBuildNumberRepository(pool).save_next_build_number("platform", module)
        assert conn.execute.call_args.args[1]["target"] == "acme:core"

    def test_database_error_becomes_persistence_error(self, pool, conn, module_set):
        conn.execute.side_effect = psycopg.OperationalError("connection lost")
        with pytest.raises(PersistenceError):
            PostgresBuildNumberRepository(pool).save_next_build_number("platform", module_set)

    def test_persistence_error_is_caught_as_os_error(self, pool, conn, module_set):
        conn.execute.side_effect = psycopg.OperationalError("connection lost")
        with pytest.raises(OSError):
            PostgresBuildNumberRepository(pool).save_next_build_number("platform", module_set)

    def test_load_counters(self, pool, conn):
        conn.execute.return_value.fetchall.return_value = [
            {"target": "", "next_build_number": 12},
            {"target": "acme:core", "next_build_number": 4},
        ]
        counters = PostgresBuildNumberRepository(pool).load_next_build_numbers("platform")
        assert counters == {"": 12, "acme:core": 4}

    def test_get_missing_counter(self, pool, conn):
        conn.execute.return_value.fetchone.return_value = None
        assert PostgresBuildNumberRepository(pool).get_next_build_number("platform") is None

    def test_delete_module(self, pool, conn):
        conn.execute.return_value.rowcount = 1
        assert PostgresBuildNumberRepository(pool).delete_module("platform", "acme:core") is True


# ============================================================================
# CONNECTION SETTINGS
# ============================================================================

class TestConnectionString:

    def test_database_url_wins(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "postgresql://u:p@db:5432/builds")
        assert get_connection_string() == "postgresql://u:p@db:5432/builds"

    def test_components(self, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        monkeypatch.setenv("POSTGRES_HOST", "db")
        monkeypatch.setenv("POSTGRES_USER", "orchestrator")
        monkeypatch.setenv("POSTGRES_PASSWORD", "secret")
        monkeypatch.setenv("POSTGRES_DB", "builds")
        conninfo = get_connection_string()
        assert conninfo.startswith("postgresql://orchestrator:secret@db:5432/builds")
        assert conninfo.endswith("sslmode=prefer")

    def test_safe_conninfo_masks_credentials(self):
        assert _safe_conninfo("postgresql://u:secret@db:5432/x") == "db:5432/x"
        assert "secret" not in _safe_conninfo("host=db password=secret")
