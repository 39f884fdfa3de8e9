"""
Tests for WebDecoder / TerminalDecoder

Validates:
- Round trip for live, shareable ids
- Unknown and tombstoned ids are dropped and counted, never resolved
- Blocked optimizations are stripped on receipt
- Version and corruption failures are hard errors; try_decode never raises
"""

import base64
import zlib

import pytest

from loadout.config import ShareConfig
from loadout.core.codec import PayloadCodec
from loadout.core.decoder import DropReason, DroppedId, TerminalDecoder, WebDecoder
from loadout.core.encoder import ShareEncoder
from loadout.core.selection import Loadout, ShareSelection
from loadout.errors import PayloadCorruptError, SchemaVersionError


EXAMPLE = Loadout(
    cpu="amd_x3d",
    gpu="nvidia",
    optimizations=("pagefile", "fastboot", "gamedvr", "msi_mode"),
    packages=("steam", "discord"),
)


def _web(**ids) -> str:
    """Hand-built web body; ids need not be live, so the encoder is bypassed."""
    selection = ShareSelection(**ids)
    return f"{selection.version}.{PayloadCodec().pack(selection.to_payload())}"


# =============================================================================
# Web form
# =============================================================================

class TestWebRoundTrip:
    """Encode -> decode -> encode."""

    def test_example_loadout(self, encoder, web_decoder):
        link = encoder.share_link(EXAMPLE)
        result = web_decoder.decode(link.url)

        assert result.loadout == EXAMPLE
        assert result.selection.to_payload() == {
            "v": 1, "c": 1, "g": 1, "o": [1, 2, 10, 50], "s": ["steam", "discord"],
        }
        assert result.drop_count == 0
        assert result.warnings == []

    def test_re_encode_is_identical(self, encoder, web_decoder):
        url = encoder.share_link(EXAMPLE).url
        decoded = web_decoder.decode(url).loadout
        assert encoder.share_link(decoded).url == url

    def test_preset_survives(self, encoder, web_decoder):
        loadout = Loadout(cpu="intel", preset="benchmarker")
        assert web_decoder.decode(encoder.share_link(loadout).url).loadout == loadout

    def test_accepts_every_input_shape(self, encoder, web_decoder):
        link = encoder.share_link(EXAMPLE)
        body = link.fragment[len("b="):]
        for text in (link.url, f"#{link.fragment}", link.fragment, body, f"  {body}\n"):
            assert web_decoder.decode(text).loadout == EXAMPLE

    def test_empty_selection(self, encoder, web_decoder):
        result = web_decoder.decode(encoder.share_link(Loadout()).url)
        assert result.loadout.is_empty
        assert result.selection == ShareSelection.empty()


class TestWebDrops:
    """Soft failures: the rest of the selection still decodes."""

    def test_tombstoned_id_is_dropped(self, web_decoder):
        result = web_decoder.decode(_web(optimization_ids=(1, 45)))

        assert result.loadout.optimizations == ("pagefile",)
        assert result.selection.optimization_ids == (1,)
        assert result.dropped == [DroppedId("optimization", 45, DropReason.TOMBSTONE_HIT)]
        assert result.drop_count == 1
        assert result.warnings == ["1 optimization(s) no longer available"]

    def test_unknown_id_is_dropped(self, web_decoder):
        result = web_decoder.decode(_web(optimization_ids=(999, 2)))

        assert result.loadout.optimizations == ("fastboot",)
        assert result.dropped_by(DropReason.UNKNOWN_ID) == [
            DroppedId("optimization", 999, DropReason.UNKNOWN_ID),
        ]

    def test_blocked_optimization_is_stripped(self, web_decoder):
        """A hand-crafted link cannot smuggle in a blocked optimization."""
        result = web_decoder.decode(_web(optimization_ids=(1, 100)))

        assert result.loadout.optimizations == ("pagefile",)
        assert result.dropped == [DroppedId("optimization", 100, DropReason.BLOCKED)]
        assert result.warnings == ["1 dangerous optimization(s) removed for security"]

    def test_unknown_single_value(self, web_decoder):
        result = web_decoder.decode(_web(cpu_id=9, gpu_id=2))

        assert result.loadout.cpu is None
        assert result.loadout.gpu == "amd"
        assert result.warnings == ["Unknown CPU setting (ID: 9)"]

    def test_drops_in_several_fields(self, web_decoder):
        result = web_decoder.decode(_web(dns_id=7, peripheral_ids=(1, 8, 9), preset_id=3))

        assert result.drop_count == 4
        assert result.loadout.peripherals == ("logitech",)
        assert "2 peripheral(s) no longer available" in result.warnings
        assert "Unknown DNS provider (ID: 7)" in result.warnings
        assert "Unknown preset (ID: 3)" in result.warnings

    def test_unknown_payload_keys_are_ignored(self, web_decoder):
        text = "1." + PayloadCodec().pack({"v": 1, "c": 1, "zz": [1, 2]})
        assert web_decoder.decode(text).loadout == Loadout(cpu="amd_x3d")

    def test_list_cap(self, web_snapshot, catalog):
        decoder = WebDecoder(web_snapshot, ShareConfig(max_list_length=2), catalog)
        result = decoder.decode(_web(optimization_ids=(1, 2, 10, 50)))
        assert result.loadout.optimizations == ("pagefile", "fastboot")


class TestWebFailures:
    """Hard failures."""

    def test_unsupported_version(self, web_decoder):
        with pytest.raises(SchemaVersionError) as exc:
            web_decoder.decode("2.!!!")
        assert exc.value.version == 2
        assert exc.value.supported == (1,)
        assert exc.value.reason == "schema_version"

    @pytest.mark.parametrize("text", [
        "",
        "#b=",
        "1.",
        "1.!!!",
        "1.bm90LXpsaWI",
        "no-version-here",
        "https://loadout.test/?b=1.abc",
    ])
    def test_corrupt(self, web_decoder, text):
        with pytest.raises(PayloadCorruptError):
            web_decoder.decode(text)

    def test_body_version_must_match_header(self, web_decoder):
        text = "1." + PayloadCodec().pack({"v": 2, "c": 1})
        with pytest.raises(PayloadCorruptError):
            web_decoder.decode(text)

    def test_payload_must_be_object(self, web_decoder):
        with pytest.raises(PayloadCorruptError):
            web_decoder.decode("1." + PayloadCodec().pack([1, 2, 3]))

    def test_non_string_input(self, web_decoder):
        with pytest.raises(PayloadCorruptError):
            web_decoder.decode(None)

    def test_oversized_payload_is_refused(self, web_decoder):
        """A few kilobytes of fragment must not inflate into megabytes."""
        raw = b'{"v":1,"s":["' + b"x" * (4 * 1024 * 1024) + b'"]}'
        body = base64.urlsafe_b64encode(zlib.compress(raw, 9)).decode("ascii").rstrip("=")

        outcome = web_decoder.try_decode(f"#b=1.{body}")

        assert not outcome.success
        assert outcome.reason == "payload_corrupt"
        assert outcome.loadout.is_empty


class TestTryDecode:
    """Host-facing wrapper."""

    def test_success(self, encoder, web_decoder):
        outcome = web_decoder.try_decode(encoder.share_link(EXAMPLE).url)
        assert outcome.success
        assert outcome.loadout == EXAMPLE
        assert outcome.error is None

    def test_version_failure_yields_empty_selection(self, web_decoder):
        outcome = web_decoder.try_decode("2.abc")

        assert not outcome.success
        assert outcome.reason == "schema_version"
        assert "regenerate" in outcome.error
        assert outcome.loadout == Loadout()
        assert outcome.result.selection == ShareSelection.empty()

    def test_corrupt_failure(self, terminal_decoder):
        outcome = terminal_decoder.try_decode("v=1&c")
        assert not outcome.success
        assert outcome.reason == "payload_corrupt"
        assert outcome.loadout.is_empty


# =============================================================================
# Terminal form
# =============================================================================

class TestTerminalDecoder:
    """Query form, as read from the one-liner's environment variable."""

    def test_example_query(self, terminal_decoder):
        result = terminal_decoder.decode("v=1&c=1&g=1&o=1,2,10,50&s=steam,discord")
        assert result.loadout == EXAMPLE

    def test_missing_version_means_version_one(self, terminal_decoder):
        result = terminal_decoder.decode("c=2&o=1")
        assert result.selection.version == 1
        assert result.loadout == Loadout(cpu="amd", optimizations=("pagefile",))

    def test_unsupported_version(self, terminal_decoder):
        with pytest.raises(SchemaVersionError):
            terminal_decoder.decode("v=2&c=1")

    @pytest.mark.parametrize("query", ["v=1&o=1,abc", "v=abc", "v=1&c=", "v=1&c=x", "v=1&v=1", "v=1&o"])
    def test_corrupt(self, terminal_decoder, query):
        with pytest.raises(PayloadCorruptError):
            terminal_decoder.decode(query)

    def test_unknown_keys_and_preset_are_ignored(self, terminal_decoder):
        """The one-liner carries no preset; a stray 'r' is just an unknown key."""
        result = terminal_decoder.decode("v=1&c=1&zz=9&r=2")
        assert result.loadout == Loadout(cpu="amd_x3d")
        assert result.drop_count == 0

    def test_tombstoned_and_unknown_ids(self, terminal_decoder):
        result = terminal_decoder.decode("v=1&o=1,45,999")

        assert result.loadout.optimizations == ("pagefile",)
        assert [d.reason for d in result.dropped] == [
            DropReason.TOMBSTONE_HIT, DropReason.UNKNOWN_ID,
        ]
        assert result.warnings == ["2 optimization(s) no longer available"]

    def test_blocked_optimization_is_stripped(self, terminal_decoder):
        result = terminal_decoder.decode("v=1&o=100,50")
        assert result.loadout.optimizations == ("msi_mode",)
        assert result.dropped_by(DropReason.BLOCKED)

    def test_percent_encoded_packages(self, terminal_decoder):
        result = terminal_decoder.decode("v=1&s=my%2Cpkg,steam")
        assert result.loadout.packages == ("my,pkg", "steam")

    def test_list_cap(self, terminal_snapshot, catalog):
        decoder = TerminalDecoder(terminal_snapshot, ShareConfig(max_list_length=1), catalog)
        assert decoder.decode("v=1&p=1,2").loadout.peripherals == ("logitech",)

    def test_decode_env(self, terminal_decoder):
        result = terminal_decoder.decode_env({"RT": "v=1&g=2&d=1"})
        assert result.loadout == Loadout(gpu="amd", dns="cloudflare")

    def test_decode_env_unset_is_empty(self, terminal_decoder):
        assert terminal_decoder.decode_env({}).loadout.is_empty

    def test_decode_env_reads_process_environment(self, terminal_decoder, monkeypatch):
        monkeypatch.setenv("RT", "v=1&c=3")
        assert terminal_decoder.decode_env().loadout.cpu == "intel"


# =============================================================================
# Runtimes agree
# =============================================================================

class TestRuntimesAgree:
    """Both runtimes decode the same loadout to the same keys."""

    @pytest.mark.parametrize("loadout", [
        EXAMPLE,
        Loadout(dns="google", peripherals=("razer", "logitech"), monitors=("dell",)),
        Loadout(optimizations=("msi_mode", "spectre_meltdown_off")),
        Loadout(packages=("my,pkg", "a&b=c")),
    ])
    def test_same_loadout(self, encoder, web_decoder, terminal_decoder, loadout):
        web = web_decoder.decode(encoder.share_link(loadout).url)
        terminal = terminal_decoder.decode(encoder.one_liner(loadout).query)
        assert web.loadout == terminal.loadout

    def test_same_drops(self, web_decoder, terminal_decoder):
        web = web_decoder.decode(_web(optimization_ids=(1, 45, 999, 100)))
        terminal = terminal_decoder.decode("v=1&o=1,45,999,100")
        assert web.dropped == terminal.dropped
        assert web.warnings == terminal.warnings

    def test_empty_package_keys_are_dropped_by_both(self, web_decoder, terminal_decoder):
        web = web_decoder.decode(_web(package_keys=("steam", "", "discord")))
        terminal = terminal_decoder.decode("v=1&s=steam,,discord")

        assert web.loadout.packages == ("steam", "discord")
        assert terminal.loadout.packages == web.loadout.packages


class TestAcrossReleases:
    """A later release assigns and tombstones; shared links keep their meaning."""

    @pytest.fixture
    def newer(self, factory):
        registry = factory.small_registry()
        registry.assign("optimization", "hags")
        registry.tombstone("optimization", 10, "Merged into fastboot", "2026-01-01")
        return registry

    def _pair(self, factory, registry):
        web = factory.snapshots_for(registry)["web"]
        catalog = factory.catalog_for(registry)
        return ShareEncoder(web, factory.config.share, catalog), WebDecoder(web, factory.config.share, catalog)

    def test_same_keys_from_either_release(self, factory, registry, newer):
        loadout = Loadout(cpu="amd_x3d", optimizations=("pagefile", "msi_mode"))
        for source in (registry, newer):
            encoder, decoder = self._pair(factory, source)
            assert decoder.decode(encoder.share_link(loadout).url).loadout == loadout

    def test_older_decoder_drops_newer_ids(self, factory, registry, newer):
        new_encoder, _ = self._pair(factory, newer)
        _, old_decoder = self._pair(factory, registry)

        url = new_encoder.share_link(Loadout(optimizations=("pagefile", "hags"))).url
        result = old_decoder.decode(url)

        assert result.loadout.optimizations == ("pagefile",)
        assert result.drop_count == 1
        assert result.dropped == [DroppedId("optimization", 101, DropReason.UNKNOWN_ID)]

    def test_newer_decoder_never_resurrects(self, factory, registry, newer):
        old_encoder, _ = self._pair(factory, registry)
        _, new_decoder = self._pair(factory, newer)

        result = new_decoder.decode(old_encoder.share_link(Loadout(optimizations=("gamedvr",))).url)

        assert result.loadout.optimizations == ()
        assert result.dropped == [DroppedId("optimization", 10, DropReason.TOMBSTONE_HIT)]
