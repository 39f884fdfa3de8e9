"""
Shared pytest fixtures for the loadout test suite.

Usage in tests:
    def test_something(registry, web_snapshot):
        assert web_snapshot.resolve("optimization", 50) == "msi_mode"

    def test_cli(loadout_env):
        cli = loadout_env.create_cli()
"""

import pytest

from loadout.config import ConfigManager
from loadout.core.decoder import TerminalDecoder, WebDecoder
from loadout.core.encoder import ShareEncoder
from tests.factories import LoadoutTestFactory


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path_factory, monkeypatch):
    """Keep the user's ~/.loadout config and LOADOUT_* variables out of every test."""
    home = tmp_path_factory.mktemp("home")
    monkeypatch.setattr(ConfigManager, "USER_CONFIG_DIR", home / ".loadout")
    monkeypatch.setattr(ConfigManager, "USER_CONFIG_FILE", home / ".loadout" / "config.yaml")
    for name in ("LOADOUT_BASE_URL", "LOADOUT_ENV_VAR", "LOADOUT_REGISTRY",
                 "LOADOUT_PROJECT_PATH", "LOADOUT_LOG_FILE", "RT"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def factory(tmp_path):
    """Empty LoadoutTestFactory."""
    return LoadoutTestFactory(tmp_path)


@pytest.fixture
def registry(factory):
    """Small in-memory registry (see LoadoutTestFactory.small_registry)."""
    return factory.small_registry()


@pytest.fixture
def catalog(factory, registry):
    return factory.catalog_for(registry)


@pytest.fixture
def snapshots(factory, registry):
    return factory.snapshots_for(registry)


@pytest.fixture
def web_snapshot(snapshots):
    return snapshots["web"]


@pytest.fixture
def terminal_snapshot(snapshots):
    return snapshots["terminal"]


@pytest.fixture
def encoder(web_snapshot, factory, catalog):
    return ShareEncoder(web_snapshot, factory.config.share, catalog)


@pytest.fixture
def web_decoder(web_snapshot, factory, catalog):
    return WebDecoder(web_snapshot, factory.config.share, catalog)


@pytest.fixture
def terminal_decoder(terminal_snapshot, factory, catalog):
    return TerminalDecoder(terminal_snapshot, factory.config.share, catalog)


@pytest.fixture
def loadout_env(factory):
    """
    Factory with the packaged registry written to tmp_path.

    Example:
        def test_audit_passes(loadout_env):
            cli = loadout_env.create_cli()
    """
    factory.write(factory.packaged_registry())
    return factory
