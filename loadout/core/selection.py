"""
Selection — The two shapes of a loadout

- Loadout: semantic keys ("amd_x3d", "msi_mode"), what the UI and the
  effector runner work with
- ShareSelection: numeric registry ids, what travels inside a payload

Payload schema (short keys, only present fields serialized, this order):
    {v:int, c?:int, g?:int, d?:int, p?:int[], m?:int[], o?:int[], s?:str[], r?:int}

Package keys stay raw strings (empty ones are dropped); every other field
is a registry id.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, NamedTuple, Optional, Tuple

from ..errors import PayloadCorruptError
from .registry import SHARE_SCHEMA_VERSION


class FieldSpec(NamedTuple):
    """One payload field and where it lives on both selection shapes."""
    short: str          # payload key
    attr: str           # ShareSelection attribute
    loadout_attr: str   # Loadout attribute
    category: Optional[str]  # registry category (None for packages)
    multi: bool


FIELDS: Tuple[FieldSpec, ...] = (
    FieldSpec("c", "cpu_id", "cpu", "cpu", False),
    FieldSpec("g", "gpu_id", "gpu", "gpu", False),
    FieldSpec("d", "dns_id", "dns", "dns", False),
    FieldSpec("p", "peripheral_ids", "peripherals", "peripheral", True),
    FieldSpec("m", "monitor_ids", "monitors", "monitor", True),
    FieldSpec("o", "optimization_ids", "optimizations", "optimization", True),
    FieldSpec("s", "package_keys", "packages", None, True),
    FieldSpec("r", "preset_id", "preset", "preset", False),
)

FIELDS_BY_SHORT = {f.short: f for f in FIELDS}


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass(frozen=True)
class Loadout:
    """A selection expressed in registry keys."""
    cpu: Optional[str] = None
    gpu: Optional[str] = None
    dns: Optional[str] = None
    peripherals: Tuple[str, ...] = ()
    monitors: Tuple[str, ...] = ()
    optimizations: Tuple[str, ...] = ()
    packages: Tuple[str, ...] = ()
    preset: Optional[str] = None

    def __post_init__(self):
        for name in ("peripherals", "monitors", "optimizations", "packages"):
            object.__setattr__(self, name, tuple(getattr(self, name) or ()))

    @property
    def is_empty(self) -> bool:
        return not any(getattr(self, f.loadout_attr) for f in FIELDS)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cpu": self.cpu,
            "gpu": self.gpu,
            "dns": self.dns,
            "peripherals": list(self.peripherals),
            "monitors": list(self.monitors),
            "optimizations": list(self.optimizations),
            "packages": list(self.packages),
            "preset": self.preset,
        }


@dataclass(frozen=True)
class ShareSelection:
    """
    A versioned selection expressed in registry ids. Immutable once built.
    """
    version: int = SHARE_SCHEMA_VERSION
    cpu_id: Optional[int] = None
    gpu_id: Optional[int] = None
    dns_id: Optional[int] = None
    peripheral_ids: Tuple[int, ...] = ()
    monitor_ids: Tuple[int, ...] = ()
    optimization_ids: Tuple[int, ...] = ()
    package_keys: Tuple[str, ...] = ()
    preset_id: Optional[int] = None

    def __post_init__(self):
        for name in ("peripheral_ids", "monitor_ids", "optimization_ids", "package_keys"):
            object.__setattr__(self, name, tuple(getattr(self, name) or ()))

    @classmethod
    def empty(cls, version: int = SHARE_SCHEMA_VERSION) -> 'ShareSelection':
        return cls(version=version)

    def to_payload(self) -> Dict[str, Any]:
        """Minimal payload dict. Absent/empty fields are omitted, not nulled."""
        payload: Dict[str, Any] = {"v": self.version}
        for entry in FIELDS:
            value = getattr(self, entry.attr)
            if entry.multi:
                if value:
                    payload[entry.short] = list(value)
            elif value is not None:
                payload[entry.short] = value
        return payload

    @classmethod
    def from_payload(cls, data: Any, max_list_length: Optional[int] = None) -> 'ShareSelection':
        """
        Validate and convert a payload dict.

        Unknown keys are ignored. Lists longer than max_list_length are cut.

        Raises:
            PayloadCorruptError: Not a mapping, missing/invalid version,
                or a field of the wrong type
        """
        if not isinstance(data, dict):
            raise PayloadCorruptError("Payload is not an object")

        version = data.get("v")
        if not _is_int(version):
            raise PayloadCorruptError("Payload has no valid version field")

        values: Dict[str, Any] = {"version": version}
        for entry in FIELDS:
            raw = data.get(entry.short)
            if raw is None:
                continue
            if entry.multi:
                if not isinstance(raw, list):
                    raise PayloadCorruptError(f"Field '{entry.short}' must be a list")
                if entry.category is None:
                    # Empty package keys are dropped, as in the query form
                    raw = [item for item in raw if item != ""]
                if max_list_length is not None:
                    raw = raw[:max_list_length]
                check = (lambda v: isinstance(v, str)) if entry.category is None else _is_int
                if not all(check(item) for item in raw):
                    kind = "strings" if entry.category is None else "integers"
                    raise PayloadCorruptError(f"Field '{entry.short}' must contain only {kind}")
                values[entry.attr] = tuple(raw)
            else:
                if not _is_int(raw):
                    raise PayloadCorruptError(f"Field '{entry.short}' must be an integer")
                values[entry.attr] = raw

        return cls(**values)


@dataclass
class SelectionBuild:
    """Result of turning a Loadout into a ShareSelection."""
    selection: ShareSelection
    blocked_count: int = 0
    skipped: List[Tuple[str, str]] = field(default_factory=list)  # (category, key)


def build_selection(loadout: Loadout, snapshot, catalog=None,
                    version: int = SHARE_SCHEMA_VERSION) -> SelectionBuild:
    """
    Map a Loadout's keys to live ids.

    Blocked optimizations (catalog.blocked) are withheld and counted.
    Empty package keys are dropped.
    Keys the snapshot has no live id for are skipped, so a selection
    only ever carries currently-live ids.

    Args:
        loadout: Semantic selection
        snapshot: RegistrySnapshot used for key -> id
        catalog: Catalog providing the share blocklist (None = no blocklist)
        version: Schema version to tag
    """
    values: Dict[str, Any] = {"version": version}
    blocked_count = 0
    skipped: List[Tuple[str, str]] = []

    for entry in FIELDS:
        raw = getattr(loadout, entry.loadout_attr)
        if entry.category is None:
            values[entry.attr] = tuple(key for key in raw if key)
            continue

        keys = raw if entry.multi else ([raw] if raw else [])
        ids = []
        for key in keys:
            if entry.category == "optimization" and catalog is not None and catalog.is_blocked(key):
                blocked_count += 1
                continue
            id = snapshot.lookup(entry.category, key)
            if id is None:
                skipped.append((entry.category, key))
                continue
            ids.append(id)

        if entry.multi:
            values[entry.attr] = tuple(ids)
        elif ids:
            values[entry.attr] = ids[0]

    return SelectionBuild(
        selection=ShareSelection(**values),
        blocked_count=blocked_count,
        skipped=skipped,
    )
