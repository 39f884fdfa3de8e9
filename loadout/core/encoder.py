"""
ShareEncoder — Selection -> compact, versioned transport string

Two output forms from the same ShareSelection:
- Web: "b={version}.{compressed}" placed in the URL FRAGMENT only.
  Browsers never send the fragment to a server, so a shared loadout
  never leaves the recipient's machine.
- Terminal: flat "v=1&c=1&o=1,2" query, uncompressed so a user can read
  it before piping the one-liner into a shell.

Encoding is deterministic: same selection + same schema version ->
byte-identical output.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from ..config import ShareConfig
from .catalog import Catalog, default_catalog
from .codec import PayloadCodec
from .selection import FIELDS, Loadout, SelectionBuild, ShareSelection, build_selection
from .snapshot import RegistrySnapshot


FRAGMENT_PREFIX = "b="

# The one-liner form has no preset field
QUERY_FIELDS = tuple(entry for entry in FIELDS if entry.short != "r")


@dataclass
class EncodeResult:
    """Shareable web link with metadata."""
    fragment: str          # "b=1.eNq..."
    url: str               # "https://host/#b=1.eNq..."
    length: int
    too_long: bool         # Past share.url_warn_length
    blocked_count: int     # Blocked optimizations withheld from the link


@dataclass
class OneLinerResult:
    """Terminal one-liner with metadata."""
    command: str
    script_url: str
    query: str
    length: int
    too_long: bool
    blocked_count: int


class ShareEncoder:
    """
    Encode selections built from currently-live ids.

    Usage:
        encoder = ShareEncoder(snapshot)
        encoder.encode(selection)          # "1.eNqrVipT..."
        encoder.encode_query(selection)    # "v=1&c=1&o=1,2"
        encoder.share_link(loadout).url    # "https://host/#b=1.eNq..."
    """

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

    # -------------------------------------------------------------------------
    # Selection building
    # -------------------------------------------------------------------------

    def select(self, loadout: Loadout) -> SelectionBuild:
        """Map a Loadout to live ids (blocked optimizations withheld)."""
        return build_selection(
            loadout,
            self.snapshot,
            catalog=self.catalog,
            version=self.snapshot.schema_versions[-1],
        )

    def shareable(self, selection: ShareSelection) -> ShareSelection:
        """
        Copy of a selection holding only what may leave this encoder.

        Ids the snapshot cannot resolve (never assigned, or tombstoned),
        blocked optimizations and empty package keys are removed.
        """
        values: Dict[str, Any] = {"version": selection.version}
        for entry in FIELDS:
            value = getattr(selection, entry.attr)
            if entry.category is None:
                values[entry.attr] = tuple(key for key in value if key)
                continue
            ids = value if entry.multi else ([] if value is None else [value])
            kept = [id for id in ids if self._emittable(entry.category, id)]
            if entry.multi:
                values[entry.attr] = tuple(kept)
            elif kept:
                values[entry.attr] = kept[0]
        return ShareSelection(**values)

    def _emittable(self, category: str, id: int) -> bool:
        key = self.snapshot.resolve(category, id)
        if key is None:
            return False
        return not (category == "optimization" and self.catalog.is_blocked(key))

    # -------------------------------------------------------------------------
    # Raw forms
    # -------------------------------------------------------------------------

    def encode(self, selection: ShareSelection) -> str:
        """Web form body: "{version}.{compressed}". Only shareable ids are emitted."""
        selection = self.shareable(selection)
        return f"{selection.version}.{self.codec.pack(selection.to_payload())}"

    def encode_fragment(self, selection: ShareSelection) -> str:
        """Fragment content, without the leading '#'."""
        return f"{FRAGMENT_PREFIX}{self.encode(selection)}"

    def encode_query(self, selection: ShareSelection) -> str:
        """Terminal form: version tag first, then present fields in schema order."""
        selection = self.shareable(selection)
        pairs: List[Tuple[str, str]] = [("v", str(selection.version))]
        for entry in QUERY_FIELDS:
            value = getattr(selection, entry.attr)
            if entry.category is None:
                if value:
                    pairs.append((entry.short, ",".join(self.codec.quote_token(v) for v in value)))
            elif entry.multi:
                if value:
                    pairs.append((entry.short, ",".join(str(v) for v in value)))
            elif value is not None:
                pairs.append((entry.short, str(value)))
        return self.codec.to_query(pairs)

    # -------------------------------------------------------------------------
    # Shareable outputs
    # -------------------------------------------------------------------------

    def share_link(self, loadout: Loadout) -> EncodeResult:
        """Full web link for a loadout, with length warning and blocked count."""
        build = self.select(loadout)
        fragment = self.encode_fragment(build.selection)
        url = f"{self.config.base_url.rstrip('/')}/#{fragment}"
        return EncodeResult(
            fragment=fragment,
            url=url,
            length=len(url),
            too_long=len(url) > self.config.url_warn_length,
            blocked_count=build.blocked_count,
        )

    def one_liner(self, loadout: Loadout) -> OneLinerResult:
        """
        PowerShell one-liner that hands the query to the terminal script:

            $env:RT='v=1&c=1&o=1,2'; irm https://host/run.ps1 | iex
        """
        build = self.select(loadout)
        query = self.encode_query(build.selection)
        script_url = self.config.script_url

        # A bare version tag carries no selection
        if query == f"v={build.selection.version}":
            command = f"irm {script_url} | iex"
        else:
            command = f"$env:{self.config.env_var}='{query}'; irm {script_url} | iex"

        return OneLinerResult(
            command=command,
            script_url=script_url,
            query=query,
            length=len(command),
            too_long=len(command) > self.config.url_warn_length,
            blocked_count=build.blocked_count,
        )
