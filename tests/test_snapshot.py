"""
Tests for RegistrySnapshot — generated, read-only decoder tables
"""

import orjson
import pytest

from loadout.config import DEFAULT_REGISTRY_PATH, DEFAULT_SNAPSHOT_DIR
from loadout.core.registry import Registry
from loadout.core.snapshot import RUNTIMES, RegistrySnapshot, build_snapshot
from loadout.errors import RegistryError


class TestBuildSnapshot:
    """Generation from the registry."""

    def test_web_has_every_category(self, web_snapshot):
        assert set(web_snapshot.categories) == set(RUNTIMES["web"])
        assert web_snapshot.resolve("preset", 2) == "pro_gamer"

    def test_terminal_has_no_preset(self, terminal_snapshot):
        assert not terminal_snapshot.has_category("preset")
        assert terminal_snapshot.resolve("preset", 1) is None
        assert terminal_snapshot.lookup("preset", "benchmarker") is None

    def test_tombstones_are_carried(self, web_snapshot, terminal_snapshot):
        for snapshot in (web_snapshot, terminal_snapshot):
            assert snapshot.is_tombstoned("optimization", 45)
            assert snapshot.resolve("optimization", 45) is None

    def test_lookup(self, web_snapshot):
        assert web_snapshot.lookup("optimization", "msi_mode") == 50
        assert web_snapshot.lookup("optimization", "old_feature") is None

    def test_schema_version_follows_registry(self, registry):
        snapshot = build_snapshot(registry, "web")
        assert snapshot.schema_versions == (registry.schema_version,)
        assert snapshot.supports(1)
        assert not snapshot.supports(2)

    def test_unknown_runtime(self, registry):
        with pytest.raises(RegistryError):
            build_snapshot(registry, "android")

    def test_category_override(self, registry):
        snapshot = build_snapshot(registry, "custom", categories=("cpu",))
        assert snapshot.categories == ("cpu",)

    def test_later_registry_changes_do_not_leak(self, registry):
        snapshot = build_snapshot(registry, "web")
        registry.assign("optimization", "new_tweak")
        assert snapshot.resolve("optimization", 101) is None


class TestImmutability:
    """Snapshots cannot drift after they are built or loaded."""

    def test_tables_are_read_only(self, web_snapshot):
        with pytest.raises(TypeError):
            web_snapshot.tables["cpu"][99] = "threadripper"
        with pytest.raises(TypeError):
            web_snapshot.tables["extra"] = {}

    def test_attributes_are_frozen(self, web_snapshot):
        with pytest.raises(AttributeError):
            web_snapshot.runtime = "terminal"

    def test_tombstones_are_frozensets(self, web_snapshot):
        assert isinstance(web_snapshot.tombstones["optimization"], frozenset)


class TestSerialization:
    """JSON files the decoders ship with."""

    def test_save_and_load(self, web_snapshot, tmp_path):
        path = tmp_path / "snapshots" / "web.json"
        web_snapshot.save(path)
        loaded = RegistrySnapshot.load(path)

        assert loaded.to_dict() == web_snapshot.to_dict()
        assert loaded.resolve("optimization", 50) == "msi_mode"

    def test_json_is_stable(self, web_snapshot):
        """Sorted keys and fixed indent: regenerating gives the same bytes."""
        assert web_snapshot.to_json() == RegistrySnapshot.from_dict(web_snapshot.to_dict()).to_json()
        assert web_snapshot.to_json().endswith(b"\n")

    def test_ids_serialize_as_strings(self, terminal_snapshot):
        data = orjson.loads(terminal_snapshot.to_json())
        assert data["tables"]["cpu"] == {"1": "amd_x3d", "2": "amd", "3": "intel"}
        assert data["tombstones"]["optimization"] == [45]

    def test_missing_file(self, tmp_path):
        with pytest.raises(RegistryError):
            RegistrySnapshot.load(tmp_path / "missing.json")

    def test_malformed_json(self, tmp_path):
        path = tmp_path / "web.json"
        path.write_text("{not json")
        with pytest.raises(RegistryError):
            RegistrySnapshot.load(path)

    @pytest.mark.parametrize("data", [
        {"tables": {}},
        {"runtime": "web"},
        {"runtime": "web", "tables": {"cpu": {"one": "amd"}}},
        {"runtime": "web", "tables": [1, 2]},
    ])
    def test_malformed_structure(self, data):
        with pytest.raises(RegistryError):
            RegistrySnapshot.from_dict(data)


class TestPackagedSnapshots:
    """The snapshot files shipped with the package match the packaged registry."""

    @pytest.mark.parametrize("runtime", sorted(RUNTIMES))
    def test_matches_registry(self, runtime):
        registry = Registry.load(DEFAULT_REGISTRY_PATH)
        shipped = RegistrySnapshot.load(DEFAULT_SNAPSHOT_DIR / f"{runtime}.json")
        assert shipped.to_dict() == build_snapshot(registry, runtime).to_dict()
