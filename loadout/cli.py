"""
CLI — Command interface for loadout sharing and registry maintenance

Sharing:
- loadout share     encode a loadout as web link + terminal one-liner
- loadout decode    show exactly what a recipient would get

Maintenance (append-only):
- loadout assign / tombstone / snapshot
- loadout audit     release gate, exit 1 on any violation
"""

import argparse
import os
import sys
from pathlib import Path
from typing import Dict, Optional

from .config import ConfigManager
from .errors import LoadoutError
from .core.catalog import default_catalog
from .core.decoder import TerminalDecoder, WebDecoder
from .core.encoder import ShareEncoder
from .core.registry import Registry
from .core.snapshot import RegistrySnapshot
from .presentation.symbols import get_symbols
from .commands.share_cmd import ShareCommand
from .commands.decode_cmd import DecodeCommand
from .commands.registry_cmd import RegistryCommand
from .commands.audit_cmd import AuditCommand
from .commands.config_cmd import ConfigCommand
from . import __version__


class LoadoutCLI:
    """Command-line interface for loadout sharing."""

    def __init__(self, project_dir: Path):
        self.project_dir = Path(project_dir)

        self.config_manager = ConfigManager(self.project_dir)
        self.config = self.config_manager.load()
        self.symbols = get_symbols(self.config.display.symbols)
        self.catalog = default_catalog()

        # Loaded on first use; decode never needs the registry
        self._registry: Optional[Registry] = None
        self._snapshots: Dict[str, RegistrySnapshot] = {}

        self._share_cmd = ShareCommand(self)
        self._decode_cmd = DecodeCommand(self)
        self._registry_cmd = RegistryCommand(self)
        self._audit_cmd = AuditCommand(self)
        self._config_cmd = ConfigCommand(self)

    @property
    def registry(self) -> Registry:
        if self._registry is None:
            self._registry = Registry.load(self.config.registry.source_path)
        return self._registry

    def snapshot(self, runtime: str) -> RegistrySnapshot:
        if runtime not in self._snapshots:
            path = self.config.registry.snapshot_path(runtime)
            self._snapshots[runtime] = RegistrySnapshot.load(path)
        return self._snapshots[runtime]

    def reset_snapshots(self):
        """Forget cached snapshots after they were regenerated."""
        self._snapshots.clear()

    @property
    def encoder(self) -> ShareEncoder:
        return ShareEncoder(self.snapshot("web"), self.config.share, self.catalog)

    @property
    def web_decoder(self) -> WebDecoder:
        return WebDecoder(self.snapshot("web"), self.config.share, self.catalog)

    @property
    def terminal_decoder(self) -> TerminalDecoder:
        return TerminalDecoder(self.snapshot("terminal"), self.config.share, self.catalog)


def main(argv=None) -> int:
    """
    Run the loadout CLI. Each subcommand registers its own parser.

    Returns:
        Process exit code
    """
    parser = argparse.ArgumentParser(
        prog="loadout",
        description="Loadout -- Shareable system-tuning loadouts",
        epilog="Ids are forever: assign and tombstone, never edit or reuse."
    )

    parser.add_argument(
        '--project', '-p',
        default=os.environ.get("LOADOUT_PROJECT_PATH", "."),
        help='Project directory for .loadout/config.yaml (default: LOADOUT_PROJECT_PATH or current)'
    )

    parser.add_argument(
        '--version', '-V',
        action='version',
        version=f'loadout {__version__}'
    )

    subparsers = parser.add_subparsers(dest='command', help='Commands')

    from .commands import register_all, dispatch
    register_all(subparsers)

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    cli = LoadoutCLI(Path(args.project))

    try:
        return dispatch(args.command, cli, args)
    except KeyError as e:
        print(f"Error: {e}")
        parser.print_help()
        return 2
    except LoadoutError as e:
        print(f"Error: {e.message} ({e.reason})")
        return 1


if __name__ == '__main__':
    sys.exit(main())
