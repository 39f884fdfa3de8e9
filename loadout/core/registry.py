"""
Registry — Append-only id <-> key source of truth with a deprecation ledger

Rules (enforced by assign/tombstone, verified by audit):
1. Ids are PERMANENT: once assigned, an id never changes meaning
2. Ids are never reused, not even for the key they used to mean
3. To retire an id: tombstone it (moves it to the ledger with date + reason)
4. To rename: change the key string, keep the id
5. New ids: always max(every id ever issued, tombstoned included) + 1

Each category (cpu, gpu, dns, ...) is an independent id namespace.
The registry is loaded from and saved to YAML; decoders never read it
directly, they read snapshots generated from it (see core.snapshot).
"""

from dataclasses import dataclass
from datetime import date as Date
from enum import Enum
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Union

import yaml

from ..errors import (
    RegistryError,
    UnknownCategoryError,
    KeyAlreadyAssignedError,
    IdNotLiveError,
)
from ..logging_config import get_logger
from .catalog import CATEGORIES


logger = get_logger("loadout.registry")

SHARE_SCHEMA_VERSION = 1


# =============================================================================
# Violations (shared with core.audit)
# =============================================================================

class ViolationCode(Enum):
    """Kinds of invariant violation the audit can report."""
    INVALID_ID = "invalid_id"
    DUPLICATE_KEY = "duplicate_key"
    DUPLICATE_ASSIGNMENT = "duplicate_assignment"
    TOMBSTONE_METADATA_MISSING = "tombstone_metadata_missing"
    MISSING_ID = "missing_id"
    ORPHANED_ID = "orphaned_id"
    SNAPSHOT_STALE = "snapshot_stale"
    SNAPSHOT_RESURRECTED = "snapshot_resurrected"
    SNAPSHOT_MISMATCH = "snapshot_mismatch"
    SNAPSHOT_VERSION = "snapshot_version"


@dataclass(frozen=True)
class Violation:
    """One invariant violation."""
    code: ViolationCode
    category: str
    message: str
    id: Optional[int] = None

    def sort_key(self):
        return (self.category, self.code.value, self.id or 0, self.message)

    def to_dict(self) -> dict:
        return {
            "code": self.code.value,
            "category": self.category,
            "id": self.id,
            "message": self.message,
        }


# =============================================================================
# Deprecation Ledger
# =============================================================================

@dataclass(frozen=True)
class DeprecationEntry:
    """A tombstoned id and what it used to mean."""
    id: int
    former_key: str
    removed: str   # ISO date YYYY-MM-DD
    reason: str = ""

    def missing_fields(self) -> List[str]:
        """Ledger fields that are absent or malformed."""
        missing = []
        if not self.former_key:
            missing.append("former_key")
        if not _is_iso_date(self.removed):
            missing.append("removed")
        if not self.reason or not self.reason.strip():
            missing.append("reason")
        return missing

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "was": self.former_key,
            "removed": self.removed,
            "reason": self.reason,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'DeprecationEntry':
        removed = data.get("removed", "")
        if isinstance(removed, Date):
            removed = removed.isoformat()
        return cls(
            id=_as_id(data.get("id")),
            former_key=data.get("was", "") or "",
            removed=str(removed or ""),
            reason=data.get("reason", "") or "",
        )


def _is_iso_date(value: str) -> bool:
    if not value:
        return False
    try:
        Date.fromisoformat(value)
    except ValueError:
        return False
    return len(value) == 10


def _as_id(value) -> int:
    if isinstance(value, bool):
        raise RegistryError(f"Invalid id: {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise RegistryError(f"Invalid id: {value!r}")


# =============================================================================
# IdTable (one category)
# =============================================================================

class IdTable:
    """
    Append-only bidirectional map for one category, plus its ledger.

    Live ids resolve to keys; tombstoned ids resolve to nothing,
    even though the ledger still records what they used to mean.
    """

    def __init__(
        self,
        category: str,
        live: Optional[Dict[int, str]] = None,
        ledger: Optional[List[DeprecationEntry]] = None
    ):
        self.category = category
        self._live: Dict[int, str] = dict(live or {})
        self._ledger: List[DeprecationEntry] = list(ledger or [])

    @property
    def live(self) -> Dict[int, str]:
        """Copy of the live id -> key map, ordered by id."""
        return {i: self._live[i] for i in sorted(self._live)}

    @property
    def ledger(self) -> List[DeprecationEntry]:
        return sorted(self._ledger, key=lambda e: e.id)

    def resolve(self, id: int) -> Optional[str]:
        """Key for a live id; None if never assigned or tombstoned."""
        if self.is_tombstoned(id):
            return None
        return self._live.get(id)

    def lookup(self, key: str) -> Optional[int]:
        """Live id for a key, lowest id first if (invalidly) duplicated."""
        for id in sorted(self._live):
            if self._live[id] == key and not self.is_tombstoned(id):
                return id
        return None

    def is_tombstoned(self, id: int) -> bool:
        return any(entry.id == id for entry in self._ledger)

    def issued_ids(self) -> List[int]:
        """Every id ever issued in this category, live or tombstoned."""
        return sorted(set(self._live) | {entry.id for entry in self._ledger})

    def next_id(self) -> int:
        issued = self.issued_ids()
        return (max(issued) + 1) if issued else 1

    def assign(self, key: str) -> int:
        """Bind a key to the next free id. Fails if the key is already live."""
        if not key or not key.strip():
            raise RegistryError("Key must be a non-empty string")
        existing = self.lookup(key)
        if existing is not None:
            raise KeyAlreadyAssignedError(
                f"{self.category} key '{key}' already has live id {existing}"
            )
        new_id = self.next_id()
        self._live[new_id] = key
        logger.info("Assigned %s id %d -> %s", self.category, new_id, key)
        return new_id

    def tombstone(self, id: int, reason: str, date: Union[str, Date]) -> DeprecationEntry:
        """Retire a live id permanently, recording it in the ledger."""
        key = self.resolve(id)
        if key is None:
            raise IdNotLiveError(f"{self.category} id {id} is not live (never assigned or already tombstoned)")
        if not reason or not reason.strip():
            raise RegistryError("Reason required for tombstoning (what replaced it, or why it was removed)")

        removed = date.isoformat() if isinstance(date, Date) else str(date)
        if not _is_iso_date(removed):
            raise RegistryError(f"Invalid removal date '{removed}'. Use YYYY-MM-DD")

        entry = DeprecationEntry(id=id, former_key=key, removed=removed, reason=reason.strip())
        del self._live[id]
        self._ledger.append(entry)
        logger.info("Tombstoned %s id %d (was %s): %s", self.category, id, key, entry.reason)
        return entry

    def audit(self) -> List[Violation]:
        """Every invariant violation in this table. Pure."""
        violations: List[Violation] = []
        category = self.category

        # Ids must be positive integers
        for id in self.issued_ids():
            if id < 1:
                violations.append(Violation(
                    ViolationCode.INVALID_ID, category,
                    f"{category}: id {id} is not a positive integer", id))

        # One key, one live id
        seen: Dict[str, int] = {}
        for id in sorted(self._live):
            key = self._live[id]
            if key in seen:
                violations.append(Violation(
                    ViolationCode.DUPLICATE_KEY, category,
                    f"{category}: key '{key}' is bound to live ids {seen[key]} and {id}", id))
            else:
                seen[key] = id

        # Ledger ids are never live again
        for entry in self.ledger:
            current = self._live.get(entry.id)
            if current is None:
                continue
            if current == entry.former_key:
                message = (f"{category}: id {entry.id} was tombstoned on {entry.removed} "
                           f"but is live again as '{current}' (resurrection)")
            else:
                message = (f"{category}: REUSE of id {entry.id}: was '{entry.former_key}' "
                           f"(removed {entry.removed}), now '{current}'")
            violations.append(Violation(ViolationCode.DUPLICATE_ASSIGNMENT, category, message, entry.id))

        # Ledger ids appear once
        first: Dict[int, DeprecationEntry] = {}
        for entry in self.ledger:
            if entry.id not in first:
                first[entry.id] = entry
                continue
            prior = first[entry.id]
            if prior.former_key != entry.former_key:
                message = (f"{category}: id {entry.id} tombstoned as both "
                           f"'{prior.former_key}' and '{entry.former_key}'")
            else:
                message = f"{category}: id {entry.id} tombstoned twice"
            violations.append(Violation(ViolationCode.DUPLICATE_ASSIGNMENT, category, message, entry.id))

        # Complete ledger metadata
        for entry in self.ledger:
            missing = entry.missing_fields()
            if missing:
                violations.append(Violation(
                    ViolationCode.TOMBSTONE_METADATA_MISSING, category,
                    f"{category}: tombstoned id {entry.id} missing ledger metadata: {', '.join(missing)}",
                    entry.id))

        return violations

    def to_dict(self) -> dict:
        return {
            "live": self.live,
            "tombstoned": [entry.to_dict() for entry in self.ledger],
        }

    @classmethod
    def from_dict(cls, category: str, data: Optional[dict]) -> 'IdTable':
        data = data or {}
        live = {}
        for raw_id, key in (data.get("live") or {}).items():
            live[_as_id(raw_id)] = key
        ledger = [DeprecationEntry.from_dict(entry) for entry in (data.get("tombstoned") or [])]
        return cls(category, live=live, ledger=ledger)


# =============================================================================
# Registry
# =============================================================================

class Registry:
    """
    The full set of id tables, keyed by category.

    Usage:
        registry = Registry.load(path)
        registry.resolve("optimization", 50)     # "msi_mode"
        new_id = registry.assign("optimization", "new_tweak")
        registry.tombstone("optimization", 45, "Obsolete on 24H2", "2025-01-03")
        registry.save(path)
    """

    def __init__(self, tables: Optional[Dict[str, IdTable]] = None,
                 schema_version: int = SHARE_SCHEMA_VERSION):
        self.schema_version = schema_version
        self._tables: Dict[str, IdTable] = {}
        for category in CATEGORIES:
            self._tables[category] = IdTable(category)
        for category, table in (tables or {}).items():
            self._tables[category] = table

    @property
    def categories(self) -> List[str]:
        return list(self._tables)

    def table(self, category: str) -> IdTable:
        if category not in self._tables:
            raise UnknownCategoryError(
                f"Unknown category '{category}'. Valid: {', '.join(self._tables)}"
            )
        return self._tables[category]

    def __iter__(self) -> Iterator[IdTable]:
        return iter(self._tables.values())

    def resolve(self, category: str, id: int) -> Optional[str]:
        return self.table(category).resolve(id)

    def lookup(self, category: str, key: str) -> Optional[int]:
        return self.table(category).lookup(key)

    def assign(self, category: str, key: str) -> int:
        return self.table(category).assign(key)

    def tombstone(self, category: str, id: int, reason: str, date: Union[str, Date]) -> DeprecationEntry:
        return self.table(category).tombstone(id, reason, date)

    def next_id(self, category: str) -> int:
        return self.table(category).next_id()

    def is_tombstoned(self, category: str, id: int) -> bool:
        return self.table(category).is_tombstoned(id)

    def deprecations(self, category: str) -> List[DeprecationEntry]:
        return self.table(category).ledger

    def audit(self) -> List[Violation]:
        """Every registry invariant violation across all categories. Pure."""
        violations: List[Violation] = []
        for table in self._tables.values():
            violations.extend(table.audit())
        return sorted(violations, key=Violation.sort_key)

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def to_dict(self) -> dict:
        return {
            "schema_version": self.schema_version,
            "categories": {name: table.to_dict() for name, table in self._tables.items()},
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Registry':
        if not isinstance(data, dict):
            raise RegistryError("Registry file must contain a mapping")
        categories = data.get("categories") or {}
        tables = {name: IdTable.from_dict(name, table) for name, table in categories.items()}
        return cls(tables, schema_version=int(data.get("schema_version", SHARE_SCHEMA_VERSION)))

    @classmethod
    def load(cls, path: Path) -> 'Registry':
        path = Path(path)
        try:
            with open(path) as f:
                data = yaml.safe_load(f)
        except OSError as e:
            raise RegistryError(f"Could not read registry {path}: {e}")
        except yaml.YAMLError as e:
            raise RegistryError(f"Malformed registry {path}: {e}")
        return cls.from_dict(data or {})

    def save(self, path: Path):
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)
        logger.info("Saved registry to %s", path)
