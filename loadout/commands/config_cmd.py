"""
ConfigCommand — Configuration display and updates
"""

from ..commands.base import BaseCommand
from ..presentation.symbols import safe_print
from ..presentation.template import OutputTemplate


class ConfigCommand(BaseCommand):
    """Command for configuration management."""

    def show_config(self) -> int:
        """Show current configuration."""
        template = OutputTemplate(symbols=self.symbols)
        template.header("LOADOUT CONFIG", "Current Configuration")
        template.section("SETTINGS", self._cli.config_manager.display())
        template.footer(hint="Change with: loadout config --set share.base_url=https://...")
        safe_print(template.render())
        return 0

    def set_config(self, key: str, value: str, scope: str = "project") -> int:
        """Set a configuration value."""
        symbols = self.symbols
        manager = self._cli.config_manager
        error = manager.set(key, value, scope)

        template = OutputTemplate(symbols=symbols)
        if error:
            template.header("LOADOUT CONFIG", "Error")
            template.section("ERROR", f"{symbols.check_fail} {error}")
            safe_print(template.render())
            return 1

        path = manager.user_config_path if scope == "user" else manager.project_config_path
        template.header("LOADOUT CONFIG", "Configuration Updated")
        template.section("SETTING", f"Set {key} = {value}")
        template.section("SAVED TO", str(path))
        template.footer(f"{symbols.check_pass} Configuration saved")
        safe_print(template.render())
        return 0


# =============================================================================
# Command Registration (Self-Registration Pattern)
# =============================================================================

def register_parser(subparsers):
    """Register config command parser."""
    p = subparsers.add_parser('config', help='View or set configuration')
    p.add_argument('--set', metavar='KEY=VALUE',
                   help='Set config value (e.g., share.base_url=https://example.com)')
    p.add_argument('--user', action='store_true',
                   help='Apply to user config instead of project')
    return p


def handle(cli, args):
    """Handle config command dispatch."""
    if args.set:
        if '=' not in args.set:
            print("Error: Use format KEY=VALUE (e.g., share.env_var=RT)")
            return 1
        key, value = args.set.split('=', 1)
        scope = "user" if args.user else "project"
        return cli._config_cmd.set_config(key, value, scope)
    return cli._config_cmd.show_config()
