"""
Tests for ShareEncoder — web link, terminal query and one-liner
"""

import pytest

from loadout.config import ShareConfig
from loadout.core.codec import PayloadCodec
from loadout.core.encoder import ShareEncoder
from loadout.core.selection import Loadout, ShareSelection
from tests.factories import BASE_URL


EXAMPLE = Loadout(
    cpu="amd_x3d",
    gpu="nvidia",
    optimizations=("pagefile", "fastboot", "gamedvr", "msi_mode"),
    packages=("steam", "discord"),
)


class TestWebForm:
    """Compressed fragment form."""

    def test_version_prefix(self, encoder):
        text = encoder.encode(ShareSelection(cpu_id=1))
        assert text.startswith("1.")
        assert encoder.encode_fragment(ShareSelection(cpu_id=1)) == f"b={text}"

    def test_deterministic(self, encoder):
        """Same selection, same schema version -> byte-identical output."""
        first = encoder.share_link(EXAMPLE)
        second = encoder.share_link(Loadout(**EXAMPLE.to_dict()))
        assert first.url == second.url

    def test_share_link_lives_in_fragment(self, encoder):
        link = encoder.share_link(EXAMPLE)
        assert link.url.startswith(f"{BASE_URL}/#b=1.")
        assert link.url == f"{BASE_URL}/#{link.fragment}"
        assert "?" not in link.url
        assert link.length == len(link.url)
        assert not link.too_long

    def test_base_url_trailing_slash(self, web_snapshot, catalog):
        encoder = ShareEncoder(web_snapshot, ShareConfig(base_url=f"{BASE_URL}/"), catalog)
        assert encoder.share_link(EXAMPLE).url.startswith(f"{BASE_URL}/#b=")

    def test_different_selections_differ(self, encoder):
        assert encoder.share_link(EXAMPLE).url != encoder.share_link(Loadout(cpu="amd")).url

    def test_too_long(self, web_snapshot, catalog):
        encoder = ShareEncoder(web_snapshot, ShareConfig(url_warn_length=20), catalog)
        link = encoder.share_link(EXAMPLE)
        assert link.too_long


class TestQueryForm:
    """Uncompressed terminal query."""

    def test_example_query(self, encoder):
        selection = encoder.select(EXAMPLE).selection
        assert encoder.encode_query(selection) == "v=1&c=1&g=1&o=1,2,10,50&s=steam,discord"

    def test_all_fields_in_order(self, encoder):
        selection = ShareSelection(
            cpu_id=2, gpu_id=3, dns_id=1, peripheral_ids=(1, 2), monitor_ids=(1,),
            optimization_ids=(50,), package_keys=("steam",),
        )
        assert encoder.encode_query(selection) == "v=1&c=2&g=3&d=1&p=1,2&m=1&o=50&s=steam"

    def test_preset_not_in_query(self, encoder):
        """The one-liner has no preset; the web payload keeps it."""
        loadout = Loadout(cpu="amd", preset="pro_gamer")
        selection = encoder.select(loadout).selection
        assert encoder.encode_query(selection) == "v=1&c=2"
        assert selection.to_payload()["r"] == 2

    def test_package_keys_are_percent_encoded(self, encoder):
        selection = ShareSelection(package_keys=("my,pkg", "a&b"))
        assert encoder.encode_query(selection) == "v=1&s=my%2Cpkg,a%26b"

    def test_empty_selection(self, encoder):
        assert encoder.encode_query(ShareSelection.empty()) == "v=1"


class TestBlocked:
    """Blocked optimizations never leave the encoder."""

    def test_withheld_from_both_forms(self, encoder):
        loadout = Loadout(optimizations=("pagefile", "spectre_meltdown_off"))
        link = encoder.share_link(loadout)
        one_liner = encoder.one_liner(loadout)

        assert link.blocked_count == 1
        assert one_liner.blocked_count == 1
        assert one_liner.query == "v=1&o=1"
        assert "100" not in one_liner.query


class TestRawSelections:
    """Hand-built id selections are filtered against the snapshot before encoding."""

    def test_tombstoned_id_never_emitted(self, encoder):
        selection = ShareSelection(optimization_ids=(1, 45))

        assert encoder.encode_query(selection) == "v=1&o=1"
        body = encoder.encode(selection).split(".", 1)[1]
        assert PayloadCodec().unpack(body) == {"v": 1, "o": [1]}

    def test_unknown_and_blocked_ids_never_emitted(self, encoder):
        selection = ShareSelection(cpu_id=9, gpu_id=1, optimization_ids=(100, 999, 50), preset_id=2)
        assert encoder.shareable(selection) == ShareSelection(gpu_id=1, optimization_ids=(50,), preset_id=2)
        assert encoder.encode_query(selection) == "v=1&g=1&o=50"

    def test_live_selection_unchanged(self, encoder):
        selection = encoder.select(EXAMPLE).selection
        assert encoder.shareable(selection) == selection

    def test_empty_package_keys_dropped(self, encoder):
        assert encoder.encode_query(ShareSelection(package_keys=("steam", ""))) == "v=1&s=steam"
        assert encoder.select(Loadout(packages=("", "steam"))).selection.package_keys == ("steam",)


class TestOneLiner:
    """PowerShell one-liner."""

    def test_command(self, encoder):
        result = encoder.one_liner(Loadout(cpu="amd_x3d", gpu="nvidia", optimizations=("pagefile", "fastboot")))
        assert result.command == (
            f"$env:RT='v=1&c=1&g=1&o=1,2'; irm {BASE_URL}/run.ps1 | iex"
        )
        assert result.script_url == f"{BASE_URL}/run.ps1"
        assert result.length == len(result.command)

    def test_empty_loadout_has_no_assignment(self, encoder):
        assert encoder.one_liner(Loadout()).command == f"irm {BASE_URL}/run.ps1 | iex"

    def test_custom_env_var(self, web_snapshot, catalog):
        encoder = ShareEncoder(web_snapshot, ShareConfig(base_url=BASE_URL, env_var="LT"), catalog)
        assert encoder.one_liner(Loadout(cpu="intel")).command.startswith("$env:LT='v=1&c=3';")

    @pytest.mark.parametrize("loadout", [EXAMPLE, Loadout(dns="google", peripherals=("razer",))])
    def test_query_decodes_back(self, encoder, terminal_decoder, loadout):
        query = encoder.one_liner(loadout).query
        assert terminal_decoder.decode(query).loadout == loadout
