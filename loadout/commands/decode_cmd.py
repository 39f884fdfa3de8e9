"""
DecodeCommand — Show what a shared link or one-liner query contains

Runs the same decoder the browser or terminal script would run, so the
output is exactly what a recipient gets: live keys, plus every id that
was dropped and why.
"""

from typing import Optional

import orjson

from ..commands.base import BaseCommand
from ..core.decoder import DecodeResult, DropReason
from ..core.selection import FIELDS
from ..errors import LoadoutError
from ..presentation.symbols import safe_print
from ..presentation.template import OutputTemplate


FIELD_LABELS = {
    "cpu": "CPU",
    "gpu": "GPU",
    "dns": "DNS",
    "peripherals": "Peripherals",
    "monitors": "Monitor software",
    "optimizations": "Optimizations",
    "packages": "Packages",
    "preset": "Preset",
}


class DecodeCommand(BaseCommand):
    """Command for decoding share payloads."""

    def decode(
        self,
        text: Optional[str],
        terminal: bool = False,
        from_env: bool = False,
        as_json: bool = False
    ) -> int:
        """
        Decode a payload and print the resulting loadout.

        Args:
            text: Link, fragment or query string (ignored with from_env)
            terminal: Use the terminal decoder (query-string form)
            from_env: Read the query from the configured environment variable
            as_json: Print machine-readable JSON instead of the template
        """
        decoder = self.terminal_decoder if (terminal or from_env) else self.web_decoder

        try:
            if from_env:
                result = decoder.decode_env()
            else:
                result = decoder.decode(text or "")
        except LoadoutError as e:
            if as_json:
                print(orjson.dumps({"success": False, "error": e.message, "reason": e.reason}).decode())
                return 1
            return self.report_error(e)

        if as_json:
            print(orjson.dumps(self._to_json(result)).decode())
            return 0

        safe_print(self._render(result, decoder.runtime))
        return 0

    def _to_json(self, result: DecodeResult) -> dict:
        return {
            "success": True,
            "loadout": result.loadout.to_dict(),
            "payload": result.selection.to_payload(),
            "dropped": [
                {"category": d.category, "id": d.id, "reason": d.reason.value}
                for d in result.dropped
            ],
            "warnings": list(result.warnings),
        }

    def _render(self, result: DecodeResult, runtime: str) -> str:
        symbols = self.symbols
        loadout = result.loadout

        template = OutputTemplate(symbols=symbols)

        lines = []
        for entry in FIELDS:
            value = getattr(loadout, entry.loadout_attr)
            if not value:
                continue
            label = FIELD_LABELS[entry.loadout_attr]
            if entry.multi:
                lines.append(f"{label} ({len(value)}):")
                lines.append(template.format_tree(list(value)))
            else:
                lines.append(f"{label}: {value}")

        template.header("LOADOUT DECODE", f"{runtime} decoder, schema v{result.selection.version}")
        template.section("LOADOUT", "\n".join(lines) if lines else "(empty)")

        if result.dropped:
            markers = {
                DropReason.UNKNOWN_ID: symbols.check_warn,
                DropReason.TOMBSTONE_HIT: symbols.deprecated,
                DropReason.BLOCKED: symbols.blocked,
            }
            rows = [
                f"{markers[d.reason]} {d.category} id {d.id}: {d.reason.value}"
                for d in result.dropped
            ]
            template.section(f"DROPPED ({result.drop_count})", "\n".join(rows))

        if result.warnings:
            template.section(
                "WARNINGS",
                "\n".join(f"{symbols.check_warn} {w}" for w in result.warnings)
            )

        if result.drop_count:
            template.footer(f"{symbols.check_warn} Decoded with {result.drop_count} id(s) dropped")
        else:
            template.footer(f"{symbols.check_pass} Decoded cleanly")
        return template.render()


# =============================================================================
# Command Registration (Self-Registration Pattern)
# =============================================================================

def register_parser(subparsers):
    """Register decode command parser."""
    p = subparsers.add_parser('decode', help='Decode a share link or one-liner query')
    p.add_argument('payload', nargs='?', default=None,
                   help='Link, #b=... fragment, or query string (with --terminal)')
    p.add_argument('--terminal', '-t', action='store_true',
                   help='Decode the terminal query-string form')
    p.add_argument('--env', action='store_true',
                   help='Read the query from the one-liner environment variable')
    p.add_argument('--json', action='store_true',
                   help='Print JSON instead of formatted output')
    return p


def handle(cli, args):
    """Handle decode command dispatch."""
    if args.payload is None and not args.env:
        print("Error: Provide a payload or use --env")
        return 1
    return cli._decode_cmd.decode(
        args.payload,
        terminal=args.terminal,
        from_env=args.env,
        as_json=args.json,
    )
