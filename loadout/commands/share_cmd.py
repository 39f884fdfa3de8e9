"""
ShareCommand — Build a web link and terminal one-liner for a loadout

Keys given on the command line are mapped to live ids through the web
snapshot. Blocked optimizations are withheld, never encoded.
"""

from typing import List, Optional

from ..commands.base import BaseCommand
from ..core.selection import Loadout
from ..presentation.summary import build_summary, platform_texts, social_share_urls, text_summary
from ..presentation.symbols import safe_print
from ..presentation.template import OutputTemplate


OUTPUT_MODES = (
    "all", "link", "command", "summary", "preview",
    "twitter", "reddit", "discord", "social",
)
PLATFORM_MODES = ("twitter", "reddit", "discord")


def _split(values: Optional[List[str]]) -> List[str]:
    """Flatten repeated and comma-separated flag values, keeping order."""
    result: List[str] = []
    for value in values or []:
        for part in value.split(","):
            part = part.strip()
            if part and part not in result:
                result.append(part)
    return result


class ShareCommand(BaseCommand):
    """Command for encoding loadouts into shareable forms."""

    def unknown_keys(self, loadout: Loadout) -> List[str]:
        """'category:key' for every key the catalog does not offer."""
        unknown = []
        checks = [
            ("cpu", [loadout.cpu] if loadout.cpu else []),
            ("gpu", [loadout.gpu] if loadout.gpu else []),
            ("dns", [loadout.dns] if loadout.dns else []),
            ("peripheral", loadout.peripherals),
            ("monitor", loadout.monitors),
            ("optimization", loadout.optimizations),
            ("preset", [loadout.preset] if loadout.preset else []),
        ]
        for category, keys in checks:
            for key in keys:
                if not self.catalog.offers(category, key):
                    unknown.append(f"{category}:{key}")
        return unknown

    def preview(self, loadout: Loadout, url: str, full: bool = False) -> str:
        """Preview card: labels and counts, with the link shortened to fit."""
        summary = build_summary(loadout)
        template = OutputTemplate(symbols=self.symbols, full=full)

        items = [f"CPU: {summary.cpu}", f"GPU: {summary.gpu}"]
        if summary.preset:
            items.append(f"Preset: {summary.preset}")
        items += [
            f"{summary.optimization_count} optimization(s)",
            f"{summary.package_count} package(s)",
            f"{summary.peripheral_count} peripheral(s)",
        ]

        template.header("LOADOUT PREVIEW")
        template.section("BUILD", template.format_list(items))
        template.section("LINK", template.truncate(url))
        template.footer(hint="Full link: loadout share ... --output link")
        return template.render()

    def share(self, loadout: Loadout, output: str = "all", full: bool = False) -> int:
        """
        Encode a loadout and print the requested forms.

        Args:
            loadout: Semantic selection
            output: one of OUTPUT_MODES
            full: Show the untruncated link in the preview
        """
        symbols = self.symbols
        link = self.encoder.share_link(loadout)
        one_liner = self.encoder.one_liner(loadout)
        build = self.encoder.select(loadout)

        if output == "link":
            print(link.url)
            return 0
        if output == "command":
            print(one_liner.command)
            return 0
        if output == "summary":
            safe_print(text_summary(loadout, url=link.url))
            return 0
        if output in PLATFORM_MODES:
            safe_print(getattr(platform_texts(loadout, link.url), output))
            return 0
        if output == "social":
            urls = social_share_urls(loadout, link.url)
            for name in ("twitter", "reddit", "linkedin"):
                print(f"{name}: {getattr(urls, name)}")
            return 0
        if output == "preview":
            safe_print(self.preview(loadout, link.url, full=full))
            return 0

        warnings = []
        if loadout.is_empty:
            warnings.append("Nothing selected; the link opens an empty loadout")
        for entry in self.unknown_keys(loadout):
            warnings.append(f"Not in catalog: {entry}")
        for category, key in build.skipped:
            if self.catalog.offers(category, key):
                warnings.append(f"No live id for {category}:{key} (run: loadout audit)")
        if build.blocked_count:
            warnings.append(
                f"{symbols.blocked} {build.blocked_count} dangerous optimization(s) withheld "
                "(recipients must enable them themselves)"
            )
        if link.too_long:
            warnings.append(
                f"Link is {link.length} characters; some services truncate past "
                f"{self.config.share.url_warn_length}"
            )
        if one_liner.too_long:
            warnings.append(f"One-liner is {one_liner.length} characters")

        template = OutputTemplate(symbols=symbols)
        template.header(
            "LOADOUT SHARE",
            f"{len(loadout.optimizations)} optimization(s) | {len(loadout.packages)} package(s)"
        )
        template.section("WEB LINK", link.url)
        template.section("ONE-LINER", one_liner.command)
        if warnings:
            template.section(
                f"WARNINGS ({len(warnings)})",
                "\n".join(f"{symbols.check_warn} {w}" for w in warnings)
            )
        template.footer(
            f"{symbols.check_pass} Share link ready ({link.length} chars)",
            hint="Posts: loadout share ... --output summary|twitter|reddit|discord",
        )
        safe_print(template.render())
        return 0


# =============================================================================
# Command Registration (Self-Registration Pattern)
# =============================================================================

def register_parser(subparsers):
    """Register share command parser."""
    p = subparsers.add_parser('share', help='Encode a loadout as a web link and terminal one-liner')
    p.add_argument('--cpu', help='CPU profile key (e.g., amd_x3d)')
    p.add_argument('--gpu', help='GPU profile key (e.g., nvidia)')
    p.add_argument('--dns', help='DNS provider key (e.g., cloudflare)')
    p.add_argument('--peripheral', action='append', metavar='KEY',
                   help='Peripheral software key (repeatable or comma-separated)')
    p.add_argument('--monitor', action='append', metavar='KEY',
                   help='Monitor software key (repeatable or comma-separated)')
    p.add_argument('--opt', action='append', metavar='KEY',
                   help='Optimization key (repeatable or comma-separated)')
    p.add_argument('--package', action='append', metavar='KEY',
                   help='Package key (repeatable or comma-separated)')
    p.add_argument('--preset', help='Preset key (web link only)')
    p.add_argument('--output', choices=OUTPUT_MODES, default='all',
                   help='What to print (default: all)')
    p.add_argument('--full', action='store_true',
                   help='Do not shorten the link in --output preview')
    return p


def loadout_from_args(args) -> Loadout:
    return Loadout(
        cpu=args.cpu,
        gpu=args.gpu,
        dns=args.dns,
        peripherals=_split(args.peripheral),
        monitors=_split(args.monitor),
        optimizations=_split(args.opt),
        packages=_split(args.package),
        preset=args.preset,
    )


def handle(cli, args):
    """Handle share command dispatch."""
    return cli._share_cmd.share(loadout_from_args(args), output=args.output, full=args.full)
