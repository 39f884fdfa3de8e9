"""
AuditCommand — Release gate for the id registry

Loads the registry, the catalog and both decoder snapshots, runs every
check and prints the full violation list. Exit code 0 when clean, 1 when
any violation exists, so CI can block a release on it.
"""

import orjson

from ..commands.base import BaseCommand
from ..core.audit import AuditReport, audit_release
from ..core.registry import ViolationCode
from ..core.snapshot import RUNTIMES, RegistrySnapshot
from ..errors import LoadoutError
from ..presentation.symbols import safe_print
from ..presentation.template import OutputTemplate


SEVERITY = {
    ViolationCode.DUPLICATE_ASSIGNMENT: "CRITICAL",
    ViolationCode.SNAPSHOT_RESURRECTED: "CRITICAL",
    ViolationCode.SNAPSHOT_MISMATCH: "CRITICAL",
    ViolationCode.INVALID_ID: "ERROR",
    ViolationCode.DUPLICATE_KEY: "ERROR",
    ViolationCode.TOMBSTONE_METADATA_MISSING: "ERROR",
    ViolationCode.MISSING_ID: "ERROR",
    ViolationCode.ORPHANED_ID: "ERROR",
    ViolationCode.SNAPSHOT_STALE: "ERROR",
    ViolationCode.SNAPSHOT_VERSION: "ERROR",
}

FIXES = {
    ViolationCode.DUPLICATE_ASSIGNMENT: "Restore the original key; retired ids are never reused",
    ViolationCode.DUPLICATE_KEY: "Keep the lowest id live and tombstone the rest",
    ViolationCode.TOMBSTONE_METADATA_MISSING: "Add 'was', 'removed' (YYYY-MM-DD) and 'reason' to the ledger entry",
    ViolationCode.MISSING_ID: "Run: loadout assign <category> <key>",
    ViolationCode.ORPHANED_ID: "Run: loadout tombstone <category> <id> --reason ...",
    ViolationCode.SNAPSHOT_STALE: "Run: loadout snapshot",
    ViolationCode.SNAPSHOT_RESURRECTED: "Run: loadout snapshot",
    ViolationCode.SNAPSHOT_MISMATCH: "Run: loadout snapshot",
    ViolationCode.SNAPSHOT_VERSION: "Run: loadout snapshot",
    ViolationCode.INVALID_ID: "Ids are positive integers",
}


class AuditCommand(BaseCommand):
    """Command for the release-time registry audit."""

    def run_audit(self) -> AuditReport:
        snapshots = {}
        for runtime in RUNTIMES:
            snapshots[runtime] = RegistrySnapshot.load(self.config.registry.snapshot_path(runtime))
        return audit_release(self.registry, self.catalog, snapshots)

    def audit(self, as_json: bool = False, strict: bool = False) -> int:
        """
        Audit registry, catalog and snapshots.

        Args:
            as_json: Print the report as JSON
            strict: Raise the typed audit error after printing the report
        """
        try:
            report = self.run_audit()
        except LoadoutError as e:
            return self.report_error(e)

        if as_json:
            print(orjson.dumps(report.to_dict(), option=orjson.OPT_INDENT_2).decode())
        else:
            safe_print(self._render(report))

        if strict:
            report.raise_for_violations()
        return report.exit_code

    def _render(self, report: AuditReport) -> str:
        symbols = self.symbols
        template = OutputTemplate(symbols=symbols)

        total_live = sum(s["live"] for s in report.stats.values())
        total_dead = sum(s["tombstoned"] for s in report.stats.values())
        template.header("LOADOUT AUDIT", "Registry, catalog and decoder snapshots")
        template.scope(f"{total_live} live id(s) | {total_dead} tombstoned | digest {report.digest}")

        rows = [
            {
                "category": category,
                "live": str(stats["live"]),
                "tombstoned": str(stats["tombstoned"]),
                "next_id": str(report.next_ids[category]),
            }
            for category, stats in report.stats.items()
        ]
        template.section(
            "NEXT FREE IDS",
            template.format_table(rows, ["Category", "Live", "Tombstoned", "Next ID"])
        )

        if report.deprecations:
            history = []
            for category, entries in report.deprecations.items():
                for entry in entries:
                    history.append(
                        f"{symbols.deprecated} {category} {entry.id} '{entry.former_key}' "
                        f"removed {entry.removed or '?'}: {entry.reason or '(no reason)'}"
                    )
            template.section("DEPRECATION HISTORY", "\n".join(history))

        if report.violations:
            lines = []
            for violation in report.violations:
                severity = SEVERITY.get(violation.code, "ERROR")
                lines.append(f"{symbols.check_fail} [{severity}] {violation.message}")
                lines.append(f"    Fix: {FIXES.get(violation.code, 'See registry.yaml')}")
            template.section(f"VIOLATIONS ({len(report.violations)})", "\n".join(lines))
            template.footer(f"{symbols.check_fail} Audit failed. Do not release.")
        else:
            template.footer(f"{symbols.check_pass} All checks passed. Safe to release.")

        return template.render()


# =============================================================================
# Command Registration (Self-Registration Pattern)
# =============================================================================

def register_parser(subparsers):
    """Register audit command parser."""
    p = subparsers.add_parser('audit', help='Verify registry, catalog and snapshots (exit 1 on violations)')
    p.add_argument('--json', action='store_true',
                   help='Print the report as JSON')
    p.add_argument('--strict', action='store_true',
                   help='Fail with the typed audit error and its reason code after the report')
    return p


def handle(cli, args):
    """Handle audit command dispatch."""
    return cli._audit_cmd.audit(as_json=args.json, strict=args.strict)
