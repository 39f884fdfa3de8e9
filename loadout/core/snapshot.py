"""
Snapshots — Immutable per-runtime copies of the registry for decoders

Each decoder runtime carries its own table:
- web: every category (the browser form can carry a preset)
- terminal: every category except preset (the one-liner has no preset)

Snapshots are GENERATED from the registry (`loadout snapshot`), never
edited by hand. The audit still proves they agree, so a stale or
hand-patched snapshot fails CI instead of silently mis-decoding.
"""

from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, Mapping, Optional, Tuple

import orjson

from ..errors import RegistryError
from ..logging_config import get_logger
from .catalog import CATEGORIES
from .registry import Registry, SHARE_SCHEMA_VERSION


logger = get_logger("loadout.snapshot")

RUNTIMES = {
    "web": CATEGORIES,
    "terminal": tuple(c for c in CATEGORIES if c != "preset"),
}

SUPPORTED_SCHEMA_VERSIONS = (SHARE_SCHEMA_VERSION,)


@dataclass(frozen=True)
class RegistrySnapshot:
    """
    Read-only id tables as one decoder runtime sees them.

    Safe to share between concurrent encode/decode calls: nothing mutates it.
    """
    runtime: str
    tables: Mapping[str, Mapping[int, str]]
    tombstones: Mapping[str, FrozenSet[int]] = field(default_factory=dict)
    schema_versions: Tuple[int, ...] = SUPPORTED_SCHEMA_VERSIONS

    def __post_init__(self):
        # Freeze nested mappings so the snapshot cannot drift after load
        frozen = {c: MappingProxyType(dict(t)) for c, t in self.tables.items()}
        object.__setattr__(self, "tables", MappingProxyType(frozen))
        graves = {c: frozenset(ids) for c, ids in self.tombstones.items()}
        object.__setattr__(self, "tombstones", MappingProxyType(graves))
        object.__setattr__(self, "schema_versions", tuple(self.schema_versions))

    @property
    def categories(self) -> Tuple[str, ...]:
        return tuple(self.tables)

    def has_category(self, category: str) -> bool:
        return category in self.tables

    def resolve(self, category: str, id: int) -> Optional[str]:
        """Key for a live id; None if unknown, tombstoned or category absent."""
        if self.is_tombstoned(category, id):
            return None
        table = self.tables.get(category)
        if table is None:
            return None
        return table.get(id)

    def lookup(self, category: str, key: str) -> Optional[int]:
        table = self.tables.get(category, {})
        for id in sorted(table):
            if table[id] == key and not self.is_tombstoned(category, id):
                return id
        return None

    def is_tombstoned(self, category: str, id: int) -> bool:
        return id in self.tombstones.get(category, frozenset())

    def supports(self, version: int) -> bool:
        return version in self.schema_versions

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    def to_dict(self) -> dict:
        return {
            "runtime": self.runtime,
            "schema_versions": list(self.schema_versions),
            "tables": {
                category: {str(id): key for id, key in sorted(table.items())}
                for category, table in self.tables.items()
            },
            "tombstones": {
                category: sorted(ids) for category, ids in self.tombstones.items()
            },
        }

    def to_json(self) -> bytes:
        return orjson.dumps(
            self.to_dict(),
            option=orjson.OPT_INDENT_2 | orjson.OPT_SORT_KEYS | orjson.OPT_APPEND_NEWLINE,
        )

    @classmethod
    def from_dict(cls, data: dict) -> 'RegistrySnapshot':
        try:
            tables = {
                category: {int(id): key for id, key in table.items()}
                for category, table in data["tables"].items()
            }
            tombstones = {
                category: frozenset(int(id) for id in ids)
                for category, ids in (data.get("tombstones") or {}).items()
            }
            versions = tuple(int(v) for v in data.get("schema_versions", SUPPORTED_SCHEMA_VERSIONS))
            runtime = str(data["runtime"])
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise RegistryError(f"Malformed snapshot: {e}")
        return cls(runtime=runtime, tables=tables, tombstones=tombstones, schema_versions=versions)

    @classmethod
    def load(cls, path: Path) -> 'RegistrySnapshot':
        path = Path(path)
        try:
            data = orjson.loads(path.read_bytes())
        except OSError as e:
            raise RegistryError(f"Could not read snapshot {path}: {e}")
        except orjson.JSONDecodeError as e:
            raise RegistryError(f"Malformed snapshot {path}: {e}")
        return cls.from_dict(data)

    def save(self, path: Path):
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(self.to_json())
        logger.info("Wrote %s snapshot to %s", self.runtime, path)


def build_snapshot(
    registry: Registry,
    runtime: str,
    categories: Optional[Iterable[str]] = None
) -> RegistrySnapshot:
    """
    Generate a runtime snapshot from the registry.

    Args:
        registry: Source of truth
        runtime: "web" or "terminal"
        categories: Override the runtime's category set (tests)
    """
    if categories is None:
        if runtime not in RUNTIMES:
            raise RegistryError(f"Unknown runtime '{runtime}'. Valid: {', '.join(RUNTIMES)}")
        categories = RUNTIMES[runtime]

    tables: Dict[str, Dict[int, str]] = {}
    tombstones: Dict[str, FrozenSet[int]] = {}
    for category in categories:
        table = registry.table(category)
        tables[category] = table.live
        tombstones[category] = frozenset(entry.id for entry in table.ledger)

    return RegistrySnapshot(
        runtime=runtime,
        tables=tables,
        tombstones=tombstones,
        schema_versions=(registry.schema_version,),
    )
