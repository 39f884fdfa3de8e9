"""
Decoders — Transport string -> ShareSelection, identically in every runtime

Shared logic, instantiated once per runtime with that runtime's snapshot:
- WebDecoder: URL / fragment form (compressed JSON body)
- TerminalDecoder: query-string form (one-liner environment variable)

Contract:
- Unsupported version      -> SchemaVersionError (never guess a mapping)
- Undecodable bytes        -> PayloadCorruptError
- Id unknown to snapshot   -> dropped, counted, decode still succeeds
- Tombstoned id            -> same as unknown; NEVER resurrected
- Blocked optimization     -> dropped, counted (recipient must opt in)

try_decode() wraps decode() for hosts: it never raises and falls back to
an empty selection, never a partial one.
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import urlsplit

from ..config import ShareConfig
from ..errors import LoadoutError, PayloadCorruptError, SchemaVersionError
from ..logging_config import get_logger
from .catalog import Catalog, default_catalog
from .codec import PayloadCodec
from .encoder import FRAGMENT_PREFIX, QUERY_FIELDS
from .selection import FIELDS, Loadout, ShareSelection
from .snapshot import RegistrySnapshot


logger = get_logger("loadout.decoder")

# Query form without a version tag predates the tag
LEGACY_QUERY_VERSION = 1

CATEGORY_LABELS = {
    "cpu": "CPU setting",
    "gpu": "GPU setting",
    "dns": "DNS provider",
    "peripheral": "peripheral(s)",
    "monitor": "monitor software",
    "optimization": "optimization(s)",
    "preset": "preset",
}


class DropReason(Enum):
    """Why an id was left out of a decoded selection (soft, never fatal)."""
    UNKNOWN_ID = "unknown_id_dropped"
    TOMBSTONE_HIT = "tombstone_hit_dropped"
    BLOCKED = "blocked"


@dataclass(frozen=True)
class DroppedId:
    category: str
    id: int
    reason: DropReason


@dataclass
class DecodeResult:
    """A successfully decoded payload."""
    selection: ShareSelection            # Reconstructed, live ids only
    loadout: Loadout                     # Same selection, as keys
    dropped: List[DroppedId] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def drop_count(self) -> int:
        return len(self.dropped)

    def dropped_by(self, reason: DropReason) -> List[DroppedId]:
        return [d for d in self.dropped if d.reason is reason]


@dataclass
class DecodeOutcome:
    """Host-facing result: always usable, even on hard failure."""
    success: bool
    result: DecodeResult
    error: Optional[str] = None
    reason: Optional[str] = None

    @property
    def loadout(self) -> Loadout:
        return self.result.loadout


class BaseDecoder:
    """
    Shared decode logic. Subclasses only parse their transport form.

    Subclasses implement _parse(text) -> ShareSelection (raw ids, version
    already checked). Resolution against the snapshot happens here.
    """

    runtime: str = ""

    def __init__(
        self,
        snapshot: RegistrySnapshot,
        config: Optional[ShareConfig] = None,
        catalog: Optional[Catalog] = None
    ):
        self.snapshot = snapshot
        self.config = config or ShareConfig()
        self.catalog = catalog if catalog is not None else default_catalog()
        self.codec = PayloadCodec()

    def decode(self, text: str) -> DecodeResult:
        """
        Decode a transport string.

        Raises:
            SchemaVersionError: Version not supported by this snapshot
            PayloadCorruptError: Payload cannot be parsed
        """
        if not isinstance(text, str):
            raise PayloadCorruptError("Payload must be a string")
        raw = self._parse(text.strip())
        return self._resolve(raw)

    def try_decode(self, text: str) -> DecodeOutcome:
        """decode() that never raises; empty selection on hard failure."""
        try:
            return DecodeOutcome(success=True, result=self.decode(text))
        except LoadoutError as e:
            logger.warning("%s decode failed (%s): %s", self.runtime, e.reason, e.message)
            empty = DecodeResult(selection=ShareSelection.empty(), loadout=Loadout())
            return DecodeOutcome(success=False, result=empty, error=e.message, reason=e.reason)

    def _parse(self, text: str) -> ShareSelection:
        raise NotImplementedError

    def _check_version(self, version: int):
        if not self.snapshot.supports(version):
            raise SchemaVersionError(version, self.snapshot.schema_versions)

    def _resolve(self, raw: ShareSelection) -> DecodeResult:
        """Keep ids this snapshot knows; drop and count everything else."""
        ids: Dict[str, Any] = {"version": raw.version}
        keys: Dict[str, Any] = {}
        dropped: List[DroppedId] = []
        warnings: List[str] = []

        for entry in FIELDS:
            value = getattr(raw, entry.attr)
            if entry.category is None:
                ids[entry.attr] = value
                keys[entry.loadout_attr] = value
                continue

            candidates = value if entry.multi else ([] if value is None else [value])
            kept_ids: List[int] = []
            kept_keys: List[str] = []
            field_drops: List[DroppedId] = []

            for id in candidates:
                key = self.snapshot.resolve(entry.category, id)
                if key is None:
                    if self.snapshot.is_tombstoned(entry.category, id):
                        reason = DropReason.TOMBSTONE_HIT
                    else:
                        reason = DropReason.UNKNOWN_ID
                    field_drops.append(DroppedId(entry.category, id, reason))
                    continue
                if entry.category == "optimization" and self.catalog.is_blocked(key):
                    field_drops.append(DroppedId(entry.category, id, DropReason.BLOCKED))
                    continue
                kept_ids.append(id)
                kept_keys.append(key)

            for drop in field_drops:
                logger.debug("%s decoder dropped %s id %d (%s)",
                             self.runtime, drop.category, drop.id, drop.reason.value)
            dropped.extend(field_drops)
            warnings.extend(self._warnings_for(entry, field_drops))

            if entry.multi:
                ids[entry.attr] = tuple(kept_ids)
                keys[entry.loadout_attr] = tuple(kept_keys)
            else:
                ids[entry.attr] = kept_ids[0] if kept_ids else None
                keys[entry.loadout_attr] = kept_keys[0] if kept_keys else None

        return DecodeResult(
            selection=ShareSelection(**ids),
            loadout=Loadout(**keys),
            dropped=dropped,
            warnings=warnings,
        )

    def _warnings_for(self, entry, drops: List[DroppedId]) -> List[str]:
        if not drops:
            return []
        label = CATEGORY_LABELS.get(entry.category, entry.category)
        blocked = sum(1 for d in drops if d.reason is DropReason.BLOCKED)
        unavailable = len(drops) - blocked

        warnings = []
        if unavailable:
            if entry.multi:
                warnings.append(f"{unavailable} {label} no longer available")
            else:
                warnings.append(f"Unknown {label} (ID: {drops[0].id})")
        if blocked:
            warnings.append(f"{blocked} dangerous optimization(s) removed for security")
        return warnings


class WebDecoder(BaseDecoder):
    """
    Decodes the URL form. Accepts any of:

        https://host/#b=1.eNq...
        #b=1.eNq...
        b=1.eNq...
        1.eNq...
    """

    runtime = "web"

    def _parse(self, text: str) -> ShareSelection:
        text = self._extract(text)
        version, body = self.codec.split_versioned(text)
        self._check_version(version)

        payload = self.codec.unpack(body)
        if isinstance(payload, dict) and payload.get("v") != version:
            raise PayloadCorruptError(
                f"Payload version {payload.get('v')!r} does not match header version {version}"
            )
        return ShareSelection.from_payload(payload, max_list_length=self.config.max_list_length)

    def _extract(self, text: str) -> str:
        if "://" in text:
            text = urlsplit(text).fragment
        if text.startswith("#"):
            text = text[1:]
        if text.startswith(FRAGMENT_PREFIX):
            text = text[len(FRAGMENT_PREFIX):]
        if not text:
            raise PayloadCorruptError("No share data found")
        return text


class TerminalDecoder(BaseDecoder):
    """
    Decodes the one-liner form:  v=1&c=1&g=1&o=1,2,10&s=steam,discord

    Unknown keys are ignored so newer one-liners still run on older scripts.
    """

    runtime = "terminal"

    def decode_env(self, environ: Optional[Mapping[str, str]] = None) -> DecodeResult:
        """Decode the query held in the configured environment variable."""
        environ = os.environ if environ is None else environ
        return self.decode(environ.get(self.config.env_var, ""))

    def _parse(self, text: str) -> ShareSelection:
        values = self.codec.from_query(text)

        if "v" in values:
            version = self.codec.parse_id("v", values["v"])
        else:
            version = LEGACY_QUERY_VERSION
        self._check_version(version)

        payload: Dict[str, Any] = {"v": version}
        for entry in QUERY_FIELDS:
            if entry.short not in values:
                continue
            value = values[entry.short]
            if entry.category is None:
                payload[entry.short] = self.codec.parse_token_list(value)
            elif entry.multi:
                payload[entry.short] = self.codec.parse_id_list(entry.short, value)
            else:
                payload[entry.short] = self.codec.parse_id(entry.short, value)

        ignored = sorted(set(values) - {"v"} - {entry.short for entry in QUERY_FIELDS})
        if ignored:
            logger.debug("terminal decoder ignored unknown keys: %s", ", ".join(ignored))

        return ShareSelection.from_payload(payload, max_list_length=self.config.max_list_length)
