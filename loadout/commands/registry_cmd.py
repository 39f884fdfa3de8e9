"""
RegistryCommand — Append-only maintenance of the id registry

- assign:    bind a new key to the next free id
- tombstone: retire a live id (reason + date required, id never reused)
- snapshot:  regenerate both decoder snapshots from the registry

assign and tombstone save the registry and regenerate the snapshots in
one step, so the decoders can never lag behind a maintenance change.
"""

from datetime import date
from typing import Dict, Optional

from ..commands.base import BaseCommand
from ..core.catalog import CATEGORIES
from ..core.snapshot import RUNTIMES, RegistrySnapshot, build_snapshot
from ..errors import LoadoutError
from ..logging_config import get_logger
from ..presentation.symbols import safe_print
from ..presentation.template import OutputTemplate


logger = get_logger("loadout.commands.registry")


class RegistryCommand(BaseCommand):
    """Command for registry maintenance."""

    def _save(self) -> Dict[str, RegistrySnapshot]:
        """Persist the registry and regenerate every runtime snapshot."""
        self.registry.save(self.config.registry.source_path)
        return self._write_snapshots()

    def _write_snapshots(self) -> Dict[str, RegistrySnapshot]:
        snapshots = {}
        for runtime in RUNTIMES:
            snapshot = build_snapshot(self.registry, runtime)
            snapshot.save(self.config.registry.snapshot_path(runtime))
            snapshots[runtime] = snapshot
        self._cli.reset_snapshots()
        return snapshots

    def assign(self, category: str, key: str) -> int:
        """Bind key to the next free id in category."""
        symbols = self.symbols
        try:
            new_id = self.registry.assign(category, key)
            self._save()
        except LoadoutError as e:
            return self.report_error(e)

        template = OutputTemplate(symbols=symbols)
        template.header("LOADOUT ASSIGN", f"{category} namespace")
        template.section("ASSIGNED", f"{symbols.check_pass} {category} id {new_id} {symbols.arrow} {key}")
        if not self.catalog.offers(category, key):
            template.section(
                "WARNING",
                f"{symbols.check_warn} '{key}' is not in the catalog yet; audit will report an orphaned id"
            )
        template.footer(
            f"Next free {category} id: {self.registry.next_id(category)}",
            hint="Verify with: loadout audit",
        )
        safe_print(template.render())
        return 0

    def tombstone(self, category: str, id: int, reason: str, when: Optional[str] = None) -> int:
        """Retire a live id permanently."""
        symbols = self.symbols
        when = when or date.today().isoformat()
        try:
            entry = self.registry.tombstone(category, id, reason, when)
            self._save()
        except LoadoutError as e:
            return self.report_error(e)

        template = OutputTemplate(symbols=symbols)
        template.header("LOADOUT TOMBSTONE", f"{category} namespace")
        template.section(
            "TOMBSTONED",
            f"{symbols.deprecated} {category} id {entry.id} (was '{entry.former_key}')\n"
            f"    Removed: {entry.removed}\n"
            f"    Reason: {entry.reason}"
        )
        template.section(
            "EFFECT",
            "Links carrying this id now drop it with a warning. The id is never reused."
        )
        template.footer(
            f"Next free {category} id: {self.registry.next_id(category)}",
            hint="Remove the key from the catalog, then run: loadout audit",
        )
        safe_print(template.render())
        return 0

    def snapshot(self, check: bool = False) -> int:
        """
        Regenerate decoder snapshots, or with check=True only report drift.

        Returns:
            0 if written (or up to date), 1 if check found stale snapshots
        """
        symbols = self.symbols
        template = OutputTemplate(symbols=symbols)

        if check:
            stale = []
            for runtime in RUNTIMES:
                path = self.config.registry.snapshot_path(runtime)
                expected = build_snapshot(self.registry, runtime)
                try:
                    current = RegistrySnapshot.load(path)
                except LoadoutError as e:
                    stale.append(f"{symbols.check_fail} {runtime}: {e.message}")
                    continue
                if current.to_dict() != expected.to_dict():
                    stale.append(f"{symbols.check_fail} {runtime}: {path} differs from registry")

            template.header("LOADOUT SNAPSHOT", "Check")
            if stale:
                template.section(f"STALE ({len(stale)})", "\n".join(stale))
                template.footer(f"{symbols.check_fail} Snapshots out of date", hint="Run: loadout snapshot")
                safe_print(template.render())
                return 1
            template.footer(f"{symbols.check_pass} Snapshots match the registry")
            safe_print(template.render())
            return 0

        try:
            snapshots = self._write_snapshots()
        except LoadoutError as e:
            return self.report_error(e)

        lines = []
        for runtime, snap in snapshots.items():
            live = sum(len(table) for table in snap.tables.values())
            lines.append(
                f"{symbols.check_pass} {runtime}: {live} live id(s) across "
                f"{len(snap.categories)} categories {symbols.arrow} "
                f"{self.config.registry.snapshot_path(runtime)}"
            )
        template.header("LOADOUT SNAPSHOT", "Generated from registry")
        template.section("WRITTEN", "\n".join(lines))
        template.footer(f"{len(snapshots)} snapshot(s) written", hint="Verify with: loadout audit")
        safe_print(template.render())
        return 0


# =============================================================================
# Command Registration (Self-Registration Pattern)
# =============================================================================

COMMAND_NAMES = ['assign', 'tombstone', 'snapshot']


def register_parser(subparsers):
    """Register assign, tombstone and snapshot command parsers."""
    p1 = subparsers.add_parser('assign', help='Bind a new key to the next free id')
    p1.add_argument('category', choices=CATEGORIES, help='Id namespace')
    p1.add_argument('key', help='Key to assign (e.g., new_tweak)')

    p2 = subparsers.add_parser('tombstone', help='Retire a live id permanently')
    p2.add_argument('category', choices=CATEGORIES, help='Id namespace')
    p2.add_argument('id', type=int, help='Live id to retire')
    p2.add_argument('--reason', '-r', required=True,
                    help='What replaced it, or why it was removed')
    p2.add_argument('--date', dest='when', default=None, metavar='YYYY-MM-DD',
                    help='Removal date (default: today)')

    p3 = subparsers.add_parser('snapshot', help='Regenerate decoder snapshots from the registry')
    p3.add_argument('--check', action='store_true',
                    help='Only report whether snapshots are up to date (exit 1 if not)')

    return p1, p2, p3


def handle(cli, args):
    """Handle assign, tombstone or snapshot command dispatch."""
    if args.command == 'assign':
        return cli._registry_cmd.assign(args.category, args.key)
    if args.command == 'tombstone':
        return cli._registry_cmd.tombstone(args.category, args.id, args.reason, args.when)
    return cli._registry_cmd.snapshot(check=args.check)
