"""
Core — Data layer for loadout sharing

- Registry: append-only id <-> key tables with a deprecation ledger
- Catalog: keys the product currently offers, share blocklist
- Selection: Loadout (keys) and ShareSelection (ids)
- Snapshot: immutable per-runtime registry copies for decoders
- Encoder / Decoder: selection <-> transport string
- Audit: release-time consistency proof
"""

from .catalog import CATEGORIES, Catalog, default_catalog, validate_packages
from .registry import (
    SHARE_SCHEMA_VERSION,
    DeprecationEntry, IdTable, Registry,
    Violation, ViolationCode,
)
from .selection import Loadout, ShareSelection, SelectionBuild, build_selection
from .snapshot import RUNTIMES, RegistrySnapshot, build_snapshot
from .codec import PayloadCodec
from .encoder import ShareEncoder, EncodeResult, OneLinerResult
from .decoder import (
    DropReason, DroppedId, DecodeResult, DecodeOutcome,
    BaseDecoder, WebDecoder, TerminalDecoder,
)
from .audit import AuditReport, audit_release

__all__ = [
    "CATEGORIES", "Catalog", "default_catalog", "validate_packages",
    "SHARE_SCHEMA_VERSION", "DeprecationEntry", "IdTable", "Registry",
    "Violation", "ViolationCode",
    "Loadout", "ShareSelection", "SelectionBuild", "build_selection",
    "RUNTIMES", "RegistrySnapshot", "build_snapshot",
    "PayloadCodec",
    "ShareEncoder", "EncodeResult", "OneLinerResult",
    "DropReason", "DroppedId", "DecodeResult", "DecodeOutcome",
    "BaseDecoder", "WebDecoder", "TerminalDecoder",
    "AuditReport", "audit_release",
]
