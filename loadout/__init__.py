"""
Loadout — Shareable system-tuning loadouts

Encodes a selection of hardware profile, DNS provider, optimizations and
packages as a compact web link or a terminal one-liner, and keeps the
numeric ids inside those links meaningful forever.

Usage:
    loadout share --cpu amd_x3d --gpu nvidia --opt pagefile --opt msi_mode
    loadout decode "https://host/#b=1.eNq..."
    loadout decode --terminal "v=1&c=1&o=1,50"
    loadout assign optimization new_tweak
    loadout tombstone optimization 45 --reason "Obsolete on 24H2"
    loadout snapshot
    loadout audit
    loadout config
"""

__version__ = "0.1.0"

# Core layer (data)
from .core.catalog import CATEGORIES, Catalog, default_catalog
from .core.registry import Registry, IdTable, DeprecationEntry, SHARE_SCHEMA_VERSION
from .core.selection import Loadout, ShareSelection
from .core.snapshot import RegistrySnapshot, build_snapshot
from .core.encoder import ShareEncoder, EncodeResult, OneLinerResult
from .core.decoder import WebDecoder, TerminalDecoder, DecodeResult, DecodeOutcome, DropReason
from .core.audit import AuditReport, audit_release

# Presentation layer
from .presentation.symbols import get_symbols, SymbolSet, UNICODE, ASCII

# Config and errors (stay at root)
from .config import Config, ConfigManager, get_config, ShareConfig, RegistryConfig, DisplayConfig
from .errors import (
    LoadoutError,
    SchemaVersionError, PayloadCorruptError,
    RegistryError, UnknownCategoryError, KeyAlreadyAssignedError, IdNotLiveError,
    RegistryAuditError, DuplicateAssignmentError, TombstoneMetadataMissingError,
)

__all__ = [
    # Core
    'CATEGORIES', 'Catalog', 'default_catalog',
    'Registry', 'IdTable', 'DeprecationEntry', 'SHARE_SCHEMA_VERSION',
    'Loadout', 'ShareSelection',
    'RegistrySnapshot', 'build_snapshot',
    'ShareEncoder', 'EncodeResult', 'OneLinerResult',
    'WebDecoder', 'TerminalDecoder', 'DecodeResult', 'DecodeOutcome', 'DropReason',
    'AuditReport', 'audit_release',
    # Presentation
    'get_symbols', 'SymbolSet', 'UNICODE', 'ASCII',
    # Config
    'Config', 'ConfigManager', 'get_config', 'ShareConfig', 'RegistryConfig', 'DisplayConfig',
    # Errors
    'LoadoutError',
    'SchemaVersionError', 'PayloadCorruptError',
    'RegistryError', 'UnknownCategoryError', 'KeyAlreadyAssignedError', 'IdNotLiveError',
    'RegistryAuditError', 'DuplicateAssignmentError', 'TombstoneMetadataMissingError',
]
