"""
Commands — CLI subcommands, one module per concern

A command module provides:
- register_parser(subparsers): adds its argparse subparser(s)
- handle(cli, args): runs the command and returns the exit code
- COMMAND_NAMES (optional): the subcommands handle() serves, when a
  module owns more than one; otherwise the name is the module name
  without its '_cmd' suffix
"""

import importlib
from typing import Any, Callable, Dict, List

from .base import BaseCommand

# Listed in help order
COMMAND_MODULES = [
    'share_cmd',
    'decode_cmd',
    'registry_cmd',
    'audit_cmd',
    'config_cmd',
]

_handlers: Dict[str, Callable[[Any, Any], int]] = {}


def register_all(subparsers) -> None:
    """Add every command's parser and remember its handler by subcommand name."""
    _handlers.clear()
    for module_name in COMMAND_MODULES:
        module = importlib.import_module(f'.{module_name}', __package__)
        module.register_parser(subparsers)
        names = getattr(module, 'COMMAND_NAMES', None) or [module_name[:-len('_cmd')]]
        for name in names:
            _handlers[name] = module.handle


def dispatch(command: str, cli: Any, args: Any) -> int:
    """
    Run a registered command.

    Raises:
        KeyError: command was never registered
    """
    try:
        handler = _handlers[command]
    except KeyError:
        raise KeyError(f"Unknown command: {command}. Available: {sorted(_handlers)}") from None
    return handler(cli, args) or 0


def get_registered_commands() -> List[str]:
    return list(_handlers)


__all__ = ['BaseCommand', 'COMMAND_MODULES', 'register_all', 'dispatch', 'get_registered_commands']
