"""
Configuration — Centralized settings management

Config hierarchy (highest to lowest priority):
  1. Project config (.loadout/config.yaml)
  2. User config (~/.loadout/config.yaml)
  3. Environment variables
  4. Defaults

Registry and snapshot paths default to the packaged data files.
"""

import os
import yaml
from pathlib import Path
from dataclasses import dataclass, field
from typing import Optional, Dict, Any


PACKAGE_DATA_DIR = Path(__file__).parent / "data"
DEFAULT_REGISTRY_PATH = PACKAGE_DATA_DIR / "registry.yaml"
DEFAULT_SNAPSHOT_DIR = PACKAGE_DATA_DIR / "snapshots"

DEFAULT_BASE_URL = "https://loadout.example.com"
DEFAULT_SCRIPT_PATH = "/run.ps1"
DEFAULT_ENV_VAR = "RT"


@dataclass
class ShareConfig:
    """Share link and one-liner settings."""
    base_url: str = DEFAULT_BASE_URL
    script_path: str = DEFAULT_SCRIPT_PATH
    env_var: str = DEFAULT_ENV_VAR
    url_warn_length: int = 2000   # Some browsers/services truncate past this
    max_list_length: int = 100    # Decode-side cap per list field

    @property
    def script_url(self) -> str:
        """Full URL of the terminal script."""
        return f"{self.base_url.rstrip('/')}{self.script_path}"

    def validate(self) -> Optional[str]:
        """Validate config. Returns error message or None if valid."""
        if not self.base_url.startswith(("http://", "https://")):
            return f"Invalid base_url '{self.base_url}'. Must start with http:// or https://"
        if not self.script_path.startswith("/"):
            return f"Invalid script_path '{self.script_path}'. Must start with /"
        if not self.env_var or not self.env_var.replace("_", "").isalnum():
            return f"Invalid env_var '{self.env_var}'. Use letters, digits and underscores"
        if self.url_warn_length < 1:
            return "url_warn_length must be >= 1"
        if self.max_list_length < 1:
            return "max_list_length must be >= 1"
        return None


@dataclass
class RegistryConfig:
    """Registry source and decoder snapshot locations (empty = packaged)."""
    source: str = ""
    web_snapshot: str = ""
    terminal_snapshot: str = ""

    @property
    def source_path(self) -> Path:
        return Path(self.source) if self.source else DEFAULT_REGISTRY_PATH

    @property
    def web_snapshot_path(self) -> Path:
        return Path(self.web_snapshot) if self.web_snapshot else DEFAULT_SNAPSHOT_DIR / "web.json"

    @property
    def terminal_snapshot_path(self) -> Path:
        if self.terminal_snapshot:
            return Path(self.terminal_snapshot)
        return DEFAULT_SNAPSHOT_DIR / "terminal.json"

    def snapshot_path(self, runtime: str) -> Path:
        """Snapshot path for a decoder runtime ("web" or "terminal")."""
        if runtime == "web":
            return self.web_snapshot_path
        if runtime == "terminal":
            return self.terminal_snapshot_path
        raise ValueError(f"Unknown runtime: {runtime}")

    def validate(self) -> Optional[str]:
        """Validate config. Returns error message or None if valid."""
        if not self.source_path.exists():
            return f"Registry source not found: {self.source_path}"
        return None


@dataclass
class DisplayConfig:
    """Display preferences."""
    symbols: str = "auto"  # "unicode" | "ascii" | "auto"

    def validate(self) -> Optional[str]:
        """Validate config. Returns error message or None if valid."""
        valid_symbols = ("unicode", "ascii", "auto")
        if self.symbols not in valid_symbols:
            return f"Unknown symbols setting '{self.symbols}'. Valid: {', '.join(valid_symbols)}"
        return None


@dataclass
class Config:
    """Application configuration."""
    share: ShareConfig = field(default_factory=ShareConfig)
    registry: RegistryConfig = field(default_factory=RegistryConfig)
    display: DisplayConfig = field(default_factory=DisplayConfig)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "share": {
                "base_url": self.share.base_url,
                "script_path": self.share.script_path,
                "env_var": self.share.env_var,
                "url_warn_length": self.share.url_warn_length,
                "max_list_length": self.share.max_list_length,
            },
            "registry": {
                "source": self.registry.source,
                "web_snapshot": self.registry.web_snapshot,
                "terminal_snapshot": self.registry.terminal_snapshot,
            },
            "display": {
                "symbols": self.display.symbols,
            },
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Config':
        """
        Create from dictionary.

        Values of the wrong type fall back to the default, the same way a
        malformed file is ignored.
        """
        share_data = _section(data, "share")
        registry_data = _section(data, "registry")
        display_data = _section(data, "display")

        return cls(
            share=ShareConfig(
                base_url=_text(share_data, "base_url", DEFAULT_BASE_URL),
                script_path=_text(share_data, "script_path", DEFAULT_SCRIPT_PATH),
                env_var=_text(share_data, "env_var", DEFAULT_ENV_VAR),
                url_warn_length=_number(share_data, "url_warn_length", 2000),
                max_list_length=_number(share_data, "max_list_length", 100),
            ),
            registry=RegistryConfig(
                source=_text(registry_data, "source", ""),
                web_snapshot=_text(registry_data, "web_snapshot", ""),
                terminal_snapshot=_text(registry_data, "terminal_snapshot", ""),
            ),
            display=DisplayConfig(
                symbols=_text(display_data, "symbols", "auto"),
            ),
        )

    def validate(self) -> Optional[str]:
        """Validate every section. Returns first error message or None."""
        for section in (self.share, self.registry, self.display):
            error = section.validate()
            if error:
                return error
        return None


def _section(data: Dict[str, Any], name: str) -> Dict[str, Any]:
    section = data.get(name)
    return section if isinstance(section, dict) else {}


def _text(section: Dict[str, Any], key: str, default: str) -> str:
    value = section.get(key)
    return value if isinstance(value, str) else default


def _number(section: Dict[str, Any], key: str, default: int) -> int:
    value = section.get(key, default)
    if isinstance(value, bool):
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


# Settable keys: section.setting -> type
SETTABLE_KEYS = {
    "share.base_url": str,
    "share.script_path": str,
    "share.env_var": str,
    "share.url_warn_length": int,
    "share.max_list_length": int,
    "registry.source": str,
    "registry.web_snapshot": str,
    "registry.terminal_snapshot": str,
    "display.symbols": str,
}


class ConfigManager:
    """
    Manages configuration loading and persistence.

    Hierarchy:
      1. Project config (.loadout/config.yaml)
      2. User config (~/.loadout/config.yaml)
      3. Environment
      4. Defaults
    """

    USER_CONFIG_DIR = Path.home() / ".loadout"
    USER_CONFIG_FILE = USER_CONFIG_DIR / "config.yaml"
    PROJECT_CONFIG_DIR = ".loadout"
    PROJECT_CONFIG_FILE = "config.yaml"

    def __init__(self, project_dir: Optional[Path] = None):
        self.project_dir = Path(project_dir) if project_dir else Path.cwd()
        self._config: Optional[Config] = None

    @property
    def project_config_path(self) -> Path:
        return self.project_dir / self.PROJECT_CONFIG_DIR / self.PROJECT_CONFIG_FILE

    @property
    def user_config_path(self) -> Path:
        return self.USER_CONFIG_FILE

    def load(self) -> Config:
        """Load configuration from all sources."""
        if self._config is not None:
            return self._config

        config_data: Dict[str, Any] = {}

        # Layer 1: Environment (lowest of the file-backed layers)
        if os.environ.get("LOADOUT_BASE_URL"):
            config_data.setdefault("share", {})["base_url"] = os.environ["LOADOUT_BASE_URL"]
        if os.environ.get("LOADOUT_ENV_VAR"):
            config_data.setdefault("share", {})["env_var"] = os.environ["LOADOUT_ENV_VAR"]
        if os.environ.get("LOADOUT_REGISTRY"):
            config_data.setdefault("registry", {})["source"] = os.environ["LOADOUT_REGISTRY"]

        # Layer 2: User config
        if self.user_config_path.exists():
            try:
                with open(self.user_config_path) as f:
                    user_data = yaml.safe_load(f) or {}
                if isinstance(user_data, dict):
                    config_data = self._merge(config_data, user_data)
            except (OSError, yaml.YAMLError):
                pass  # Ignore malformed user config

        # Layer 3: Project config (highest priority)
        if self.project_config_path.exists():
            try:
                with open(self.project_config_path) as f:
                    project_data = yaml.safe_load(f) or {}
                if isinstance(project_data, dict):
                    config_data = self._merge(config_data, project_data)
            except (OSError, yaml.YAMLError):
                pass  # Ignore malformed project config

        self._config = Config.from_dict(config_data)
        return self._config

    def save_project(self, config: Config):
        """Save configuration to project config file."""
        self.project_config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(self.project_config_path, 'w') as f:
            yaml.dump(config.to_dict(), f, default_flow_style=False)

        self._config = config

    def save_user(self, config: Config):
        """Save configuration to user config file."""
        self.USER_CONFIG_DIR.mkdir(parents=True, exist_ok=True)

        with open(self.user_config_path, 'w') as f:
            yaml.dump(config.to_dict(), f, default_flow_style=False)

        self._config = config

    def set(self, key: str, value: str, scope: str = "project") -> Optional[str]:
        """
        Set a configuration value.

        Args:
            key: Dot-separated key (e.g., "share.base_url")
            value: Value to set
            scope: "project" or "user"

        Returns:
            Error message or None if successful
        """
        if key not in SETTABLE_KEYS:
            return f"Unknown setting: {key}. Valid: {', '.join(SETTABLE_KEYS)}"

        caster = SETTABLE_KEYS[key]
        try:
            typed_value = caster(value)
        except ValueError:
            return f"Invalid value for {key}: {value!r} (expected {caster.__name__})"

        config = self.load()
        section, setting = key.split(".")
        setattr(getattr(config, section), setting, typed_value)

        error = getattr(config, section).validate()
        if error:
            self._config = None  # Discard invalid in-memory change
            return error

        if scope == "user":
            self.save_user(config)
        else:
            self.save_project(config)
        return None

    def display(self) -> str:
        """Format config for display."""
        config = self.load()
        registry = config.registry

        def origin(value: str) -> str:
            return "" if value else " (packaged)"

        lines = [
            "Share:",
            f"  Base URL: {config.share.base_url}",
            f"  Script URL: {config.share.script_url}",
            f"  Env var: {config.share.env_var}",
            f"  URL warn length: {config.share.url_warn_length}",
            f"  Max list length: {config.share.max_list_length}",
            "",
            "Registry:",
            f"  Source: {registry.source_path}{origin(registry.source)}",
            f"  Web snapshot: {registry.web_snapshot_path}{origin(registry.web_snapshot)}",
            f"  Terminal snapshot: {registry.terminal_snapshot_path}{origin(registry.terminal_snapshot)}",
            "",
            "Display:",
            f"  Symbols: {config.display.symbols}",
            "",
            "Config files:",
            f"  User: {self.user_config_path}",
            f"  Project: {self.project_config_path}",
        ]
        return "\n".join(lines)

    def _merge(self, base: Dict, override: Dict) -> Dict:
        """Deep merge two dictionaries."""
        result = base.copy()
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge(result[key], value)
            else:
                result[key] = value
        return result


# Module-level convenience
_manager: Optional[ConfigManager] = None


def get_config(project_dir: Optional[Path] = None) -> Config:
    """Get configuration (cached)."""
    global _manager
    if _manager is None or (project_dir and _manager.project_dir != Path(project_dir)):
        _manager = ConfigManager(project_dir)
    return _manager.load()
