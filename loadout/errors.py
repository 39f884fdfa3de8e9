"""
Errors — Failure taxonomy for encoding, decoding and registry maintenance

Runtime (decode boundary):
- SchemaVersionError: payload from an incompatible release, user must regenerate
- PayloadCorruptError: bytes cannot be decompressed, parsed or tokenized

Maintenance (assign / tombstone):
- RegistryError and subclasses

Build time (audit only):
- RegistryAuditError, DuplicateAssignmentError, TombstoneMetadataMissingError

Soft drops (unknown / tombstoned ids) are NOT exceptions.
See core.decoder.DropReason.
"""

from typing import List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .core.audit import Violation


class LoadoutError(Exception):
    """Base error carrying a human message and a machine-readable reason code."""

    reason = "loadout_error"

    def __init__(self, message: str, reason: Optional[str] = None):
        self.message = message
        if reason:
            self.reason = reason
        super().__init__(message)


# =============================================================================
# Decode Errors (hard failures)
# =============================================================================

class SchemaVersionError(LoadoutError):
    """Payload version is not understood by this decoder."""

    reason = "schema_version"

    def __init__(self, version, supported):
        self.version = version
        self.supported = tuple(supported)
        supported_text = ", ".join(str(v) for v in self.supported)
        super().__init__(
            f"Share version {version} is not supported (supported: {supported_text}). "
            "The link or command comes from an incompatible release; regenerate it."
        )


class PayloadCorruptError(LoadoutError):
    """Payload failed to decompress, parse or tokenize."""

    reason = "payload_corrupt"


# =============================================================================
# Registry Maintenance Errors
# =============================================================================

class RegistryError(LoadoutError):
    """Invalid registry maintenance operation."""

    reason = "registry"


class UnknownCategoryError(RegistryError):
    reason = "unknown_category"


class KeyAlreadyAssignedError(RegistryError):
    reason = "key_already_assigned"


class IdNotLiveError(RegistryError):
    reason = "id_not_live"


# =============================================================================
# Audit Errors (build time only)
# =============================================================================

class RegistryAuditError(LoadoutError):
    """Audit found violations. Carries the full violation list."""

    reason = "audit_failed"

    def __init__(self, violations: List["Violation"], message: Optional[str] = None):
        self.violations = list(violations)
        if message is None:
            lines = [f"Registry audit failed with {len(self.violations)} violation(s):"]
            lines.extend(f"  - {v.message}" for v in self.violations)
            message = "\n".join(lines)
        super().__init__(message)


class DuplicateAssignmentError(RegistryAuditError):
    """An id has been bound to two different keys across history."""

    reason = "duplicate_assignment"


class TombstoneMetadataMissingError(RegistryAuditError):
    """A tombstoned id lacks complete deprecation ledger metadata."""

    reason = "tombstone_metadata_missing"
