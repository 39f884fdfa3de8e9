"""
BaseCommand — Shared foundation for all CLI commands

Provides access to CLI resources via composition.
Commands receive the CLI instance and access its resources through properties.
"""

from typing import TYPE_CHECKING

from ..errors import LoadoutError
from ..presentation.symbols import safe_print

if TYPE_CHECKING:
    from ..cli import LoadoutCLI


class BaseCommand:
    """
    Base class for CLI commands with access to shared resources.

    Commands don't reinitialize resources; they access them via the CLI instance.
    Handler methods return a process exit code.
    """

    def __init__(self, cli: 'LoadoutCLI'):
        self._cli = cli

    # -------------------------------------------------------------------------
    # Core resources (convenience properties)
    # -------------------------------------------------------------------------

    @property
    def project_dir(self):
        return self._cli.project_dir

    @property
    def config(self):
        """Application configuration."""
        return self._cli.config

    @property
    def symbols(self):
        """Symbol set for display (Unicode/ASCII)."""
        return self._cli.symbols

    @property
    def catalog(self):
        """Live catalog of offered keys."""
        return self._cli.catalog

    @property
    def registry(self):
        """Source-of-truth registry (loaded on first use)."""
        return self._cli.registry

    # -------------------------------------------------------------------------
    # Services (convenience properties)
    # -------------------------------------------------------------------------

    @property
    def encoder(self):
        return self._cli.encoder

    @property
    def web_decoder(self):
        return self._cli.web_decoder

    @property
    def terminal_decoder(self):
        return self._cli.terminal_decoder

    # -------------------------------------------------------------------------
    # Errors
    # -------------------------------------------------------------------------

    def report_error(self, error: LoadoutError) -> int:
        """Print a LoadoutError as 'Error: message (reason)'. Returns exit code 1."""
        safe_print(f"{self.symbols.check_fail} Error: {error.message} ({error.reason})")
        return 1
