"""
Audit — Build-time proof that registry, catalog and decoder snapshots agree

Run before every release (`loadout audit`, non-zero exit on failure).
Reports EVERY violation, never just the first:

1. Registry invariants (duplicate keys, id reuse, incomplete ledger)
2. Every offered catalog key has a live id; every live id is offered
3. Each snapshot matches the registry (no stale, missing or resurrected ids)
4. Snapshots agree with each other on every id they share

Pure and deterministic: same inputs -> same report, same digest.
"""

from dataclasses import dataclass, field
from itertools import combinations
from typing import Dict, List, Mapping, Optional

import orjson
import xxhash

from ..errors import (
    RegistryAuditError,
    DuplicateAssignmentError,
    TombstoneMetadataMissingError,
)
from .catalog import Catalog
from .registry import DeprecationEntry, Registry, Violation, ViolationCode
from .snapshot import RegistrySnapshot


@dataclass
class AuditReport:
    """Outcome of one audit run."""
    violations: List[Violation] = field(default_factory=list)
    next_ids: Dict[str, int] = field(default_factory=dict)
    stats: Dict[str, Dict[str, int]] = field(default_factory=dict)
    deprecations: Dict[str, List[DeprecationEntry]] = field(default_factory=dict)

    @property
    def passed(self) -> bool:
        return not self.violations

    @property
    def exit_code(self) -> int:
        return 0 if self.passed else 1

    @property
    def digest(self) -> str:
        """Stable fingerprint of the violation list (CI can diff two runs)."""
        data = orjson.dumps([v.to_dict() for v in self.violations])
        return xxhash.xxh64(data).hexdigest()

    def by_code(self, code: ViolationCode) -> List[Violation]:
        return [v for v in self.violations if v.code is code]

    def raise_for_violations(self):
        """
        Raise the most specific audit error for this report, if any.

        Raises:
            DuplicateAssignmentError: Some id bound to two keys across history
            TombstoneMetadataMissingError: Some tombstone lacks ledger metadata
            RegistryAuditError: Any other violation
        """
        if self.passed:
            return
        if self.by_code(ViolationCode.DUPLICATE_ASSIGNMENT):
            raise DuplicateAssignmentError(self.violations)
        if self.by_code(ViolationCode.TOMBSTONE_METADATA_MISSING):
            raise TombstoneMetadataMissingError(self.violations)
        raise RegistryAuditError(self.violations)

    def to_dict(self) -> dict:
        return {
            "passed": self.passed,
            "digest": self.digest,
            "violations": [v.to_dict() for v in self.violations],
            "next_ids": dict(self.next_ids),
            "stats": {c: dict(s) for c, s in self.stats.items()},
            "deprecations": {
                c: [e.to_dict() for e in entries] for c, entries in self.deprecations.items()
            },
        }


def audit_catalog(registry: Registry, catalog: Catalog) -> List[Violation]:
    """Offered keys without ids, and live ids pointing at keys no longer offered."""
    violations: List[Violation] = []
    for category in sorted(catalog.keys):
        table = registry.table(category)
        for key in sorted(catalog.keys_for(category)):
            if table.lookup(key) is None:
                violations.append(Violation(
                    ViolationCode.MISSING_ID, category,
                    f"{category}: offered key '{key}' has no live id "
                    f"(next free id: {table.next_id()})"))
        for id, key in table.live.items():
            if table.is_tombstoned(id):
                continue
            if not catalog.offers(category, key):
                violations.append(Violation(
                    ViolationCode.ORPHANED_ID, category,
                    f"{category}: id {id} maps to '{key}', which the catalog no longer offers "
                    "(tombstone it instead of deleting)", id))
    return violations


def audit_snapshot(registry: Registry, snapshot: RegistrySnapshot) -> List[Violation]:
    """Differences between one decoder snapshot and the registry."""
    violations: List[Violation] = []
    runtime = snapshot.runtime

    if registry.schema_version not in snapshot.schema_versions:
        versions = ", ".join(str(v) for v in snapshot.schema_versions)
        violations.append(Violation(
            ViolationCode.SNAPSHOT_VERSION, "*",
            f"{runtime} snapshot supports schema [{versions}] but registry is at "
            f"{registry.schema_version}"))

    for category in snapshot.categories:
        if category not in registry.categories:
            violations.append(Violation(
                ViolationCode.SNAPSHOT_STALE, category,
                f"{runtime} snapshot has category '{category}' unknown to the registry"))
            continue

        table = registry.table(category)
        snap_table = snapshot.tables[category]
        snap_graves = snapshot.tombstones.get(category, frozenset())
        ledger_ids = {entry.id for entry in table.ledger}

        for id in sorted(snap_table):
            key = snap_table[id]
            if id in snap_graves:
                continue
            if id in ledger_ids:
                violations.append(Violation(
                    ViolationCode.SNAPSHOT_RESURRECTED, category,
                    f"{runtime} snapshot resolves tombstoned {category} id {id} to '{key}'", id))
            elif table.resolve(id) != key:
                expected = table.resolve(id)
                expected_text = f"'{expected}'" if expected else "nothing"
                violations.append(Violation(
                    ViolationCode.SNAPSHOT_STALE, category,
                    f"{runtime} snapshot maps {category} id {id} to '{key}', registry maps it to "
                    f"{expected_text}", id))

        for id, key in table.live.items():
            if id in ledger_ids:
                continue
            if id not in snap_table:
                violations.append(Violation(
                    ViolationCode.SNAPSHOT_STALE, category,
                    f"{runtime} snapshot is missing {category} id {id} ('{key}')", id))

        for id in sorted(ledger_ids - set(snap_graves)):
            violations.append(Violation(
                ViolationCode.SNAPSHOT_STALE, category,
                f"{runtime} snapshot does not record tombstoned {category} id {id}", id))

        for id in sorted(set(snap_graves) - ledger_ids):
            violations.append(Violation(
                ViolationCode.TOMBSTONE_METADATA_MISSING, category,
                f"{runtime} snapshot tombstones {category} id {id}, "
                "but the deprecation ledger has no entry for it", id))

    return violations


def audit_snapshot_pair(a: RegistrySnapshot, b: RegistrySnapshot) -> List[Violation]:
    """Ids both snapshots know but interpret differently."""
    violations: List[Violation] = []
    for category in a.categories:
        if not b.has_category(category):
            continue
        ids = sorted(set(a.tables[category]) | a.tombstones.get(category, frozenset())
                     | set(b.tables[category]) | b.tombstones.get(category, frozenset()))
        for id in ids:
            known_a = id in a.tables[category] or a.is_tombstoned(category, id)
            known_b = id in b.tables[category] or b.is_tombstoned(category, id)
            if not (known_a and known_b):
                continue
            key_a = a.resolve(category, id)
            key_b = b.resolve(category, id)
            if key_a != key_b:
                violations.append(Violation(
                    ViolationCode.SNAPSHOT_MISMATCH, category,
                    f"{category} id {id}: {a.runtime} decodes {_describe(key_a)}, "
                    f"{b.runtime} decodes {_describe(key_b)}", id))
    return violations


def _describe(key: Optional[str]) -> str:
    return f"'{key}'" if key is not None else "nothing (tombstoned)"


def audit_release(
    registry: Registry,
    catalog: Optional[Catalog] = None,
    snapshots: Optional[Mapping[str, RegistrySnapshot]] = None
) -> AuditReport:
    """
    Run every check and collect the full report.

    Args:
        registry: Source of truth
        catalog: Live catalog (None skips catalog checks)
        snapshots: runtime -> snapshot (None skips snapshot checks)
    """
    violations: List[Violation] = list(registry.audit())

    if catalog is not None:
        violations.extend(audit_catalog(registry, catalog))

    snapshots = dict(snapshots or {})
    for runtime in sorted(snapshots):
        violations.extend(audit_snapshot(registry, snapshots[runtime]))
    for left, right in combinations(sorted(snapshots), 2):
        violations.extend(audit_snapshot_pair(snapshots[left], snapshots[right]))

    # Identical violations can surface from more than one check
    unique = sorted(set(violations), key=Violation.sort_key)

    report = AuditReport(violations=unique)
    for table in registry:
        live = [id for id in table.live if not table.is_tombstoned(id)]
        tombstoned = {entry.id for entry in table.ledger}
        report.next_ids[table.category] = table.next_id()
        report.stats[table.category] = {
            "total": len(table.issued_ids()),
            "live": len(live),
            "tombstoned": len(tombstoned),
        }
        if table.ledger:
            report.deprecations[table.category] = table.ledger
    return report
