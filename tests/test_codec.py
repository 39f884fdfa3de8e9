"""
Tests for PayloadCodec — deterministic body encoding and strict decoding

Validates:
- Web body is URL-safe, unpadded and deterministic
- Anything that does not decompress or parse raises PayloadCorruptError
- Query tokenizing rejects malformed pairs
"""

import base64
import re
import zlib

import pytest

from loadout.core.codec import MAX_DECOMPRESSED_SIZE, PayloadCodec
from loadout.errors import PayloadCorruptError


@pytest.fixture
def codec():
    return PayloadCodec()


def _body(raw: bytes) -> str:
    """Hand-built body: already-compressed bytes in URL-safe base64."""
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


class TestPack:
    """Web form body."""

    def test_round_trip(self, codec):
        payload = {"v": 1, "c": 1, "o": [1, 2, 10, 50], "s": ["steam", "discord"]}
        assert codec.unpack(codec.pack(payload)) == payload

    def test_deterministic(self, codec):
        """Same payload -> byte-identical body."""
        payload = {"v": 1, "g": 3, "o": list(range(1, 40))}
        assert codec.pack(payload) == codec.pack(dict(payload))

    def test_url_safe_without_padding(self, codec):
        body = codec.pack({"v": 1, "s": ["a" * 37, "~?&=#/+"]})
        assert re.fullmatch(r"[A-Za-z0-9_-]+", body)

    def test_compact_json(self, codec):
        """No whitespace in the serialized payload."""
        body = codec.pack({"v": 1, "o": [1, 2]})
        raw = zlib.decompress(base64.urlsafe_b64decode(body + "=" * (-len(body) % 4)))
        assert raw == b'{"v":1,"o":[1,2]}'


class TestUnpack:
    """Strict decoding."""

    @pytest.mark.parametrize("body", ["", "abc!", "has space", "a+b/c", "abc="])
    def test_invalid_alphabet(self, codec, body):
        with pytest.raises(PayloadCorruptError):
            codec.unpack(body)

    def test_not_compressed(self, codec):
        with pytest.raises(PayloadCorruptError):
            codec.unpack(_body(b"plain bytes, not zlib"))

    def test_truncated(self, codec):
        body = codec.pack({"v": 1, "o": list(range(1, 60))})
        with pytest.raises(PayloadCorruptError):
            codec.unpack(body[:len(body) // 2])

    def test_not_json(self, codec):
        with pytest.raises(PayloadCorruptError):
            codec.unpack(_body(zlib.compress(b"{not json")))

    def test_impossible_base64_length(self, codec):
        with pytest.raises(PayloadCorruptError):
            codec.unpack("a")

    def test_inflation_is_capped(self, codec):
        """A small body that inflates to megabytes is refused before parsing."""
        raw = b'{"v":1,"s":["' + b"a" * (8 * 1024 * 1024) + b'"]}'
        body = _body(zlib.compress(raw, 9))
        assert len(body) < 20_000

        with pytest.raises(PayloadCorruptError, match="inflates past"):
            codec.unpack(body)

    def test_large_payload_under_the_limit(self, codec):
        filler = "a" * (MAX_DECOMPRESSED_SIZE - 100)
        payload = {"v": 1, "s": [filler]}
        assert codec.unpack(codec.pack(payload)) == payload


class TestSplitVersioned:
    """'{version}.{body}' header."""

    def test_splits(self, codec):
        assert codec.split_versioned("1.eNqrVg") == (1, "eNqrVg")
        assert codec.split_versioned("12.x") == (12, "x")

    @pytest.mark.parametrize("text", ["eNqrVg", "v1.eNq", ".eNq", "-1.eNq", "1x.eNq"])
    def test_rejects_bad_header(self, codec, text):
        with pytest.raises(PayloadCorruptError):
            codec.split_versioned(text)


class TestQuery:
    """Terminal form tokenizing."""

    def test_from_query(self, codec):
        assert codec.from_query("v=1&c=2&o=1,2") == {"v": "1", "c": "2", "o": "1,2"}

    def test_leading_question_mark_and_blank_pairs(self, codec):
        assert codec.from_query("?v=1&&c=2&") == {"v": "1", "c": "2"}

    def test_empty(self, codec):
        assert codec.from_query("") == {}
        assert codec.from_query("   ") == {}

    @pytest.mark.parametrize("query", ["v=1&c", "=1", "v=1&v=2"])
    def test_malformed(self, codec, query):
        with pytest.raises(PayloadCorruptError):
            codec.from_query(query)

    def test_to_query(self, codec):
        assert codec.to_query([("v", "1"), ("o", "1,2")]) == "v=1&o=1,2"

    def test_parse_ids(self, codec):
        assert codec.parse_id("c", "7") == 7
        assert codec.parse_id_list("o", "1,2,10") == [1, 2, 10]
        assert codec.parse_id_list("o", "") == []

    @pytest.mark.parametrize("value", ["1,,2", "1,a", "-1", "1.5", "1,"])
    def test_parse_id_list_rejects(self, codec, value):
        with pytest.raises(PayloadCorruptError):
            codec.parse_id_list("o", value)

    def test_parse_id_rejects(self, codec):
        with pytest.raises(PayloadCorruptError):
            codec.parse_id("c", "amd")

    def test_tokens_are_unquoted(self, codec):
        """Percent-encoded commas stay inside one package key."""
        token = codec.quote_token("my,pkg&x=y")
        assert "," not in token and "&" not in token and "=" not in token
        assert codec.parse_token_list(f"{token},steam") == ["my,pkg&x=y", "steam"]
