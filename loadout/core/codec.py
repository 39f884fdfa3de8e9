"""
PayloadCodec — Deterministic body codec for the two transport forms

Web form (URL fragment):
    {version}.{urlsafe_base64(zlib(compact_json(payload)))}

Terminal form (query string, human-readable, never compressed):
    v=1&c=1&g=1&o=1,2,10,50&s=steam,discord

Key properties:
- DETERMINISTIC: same payload dict -> byte-identical output
- URL-SAFE: base64 alphabet [A-Za-z0-9_-], padding stripped
- STRICT DECODE: anything that does not decompress/parse/tokenize raises
  PayloadCorruptError; the caller never sees a half-parsed payload
"""

import base64
import binascii
import re
import zlib
from typing import Dict, List, Tuple
from urllib.parse import quote, unquote

import orjson

from ..errors import PayloadCorruptError


COMPRESSION_LEVEL = 9

# Inflated JSON size limit; a real loadout is a few hundred bytes
MAX_DECOMPRESSED_SIZE = 64 * 1024

# Body alphabet after the "{version}." prefix
BODY_PATTERN = re.compile(r'^[A-Za-z0-9_-]+$')
VERSION_PATTERN = re.compile(r'^[0-9]+$')
ID_LIST_PATTERN = re.compile(r'^[0-9]+(,[0-9]+)*$')


class PayloadCodec:
    """
    Stateless codec between payload dicts and transport strings.

    Usage:
        codec = PayloadCodec()
        body = codec.pack({"v": 1, "c": 1})        # "eNqrVipT..."
        codec.unpack(body)                           # {"v": 1, "c": 1}

        query = codec.to_query([("v", "1"), ("o", "1,2")])
        codec.from_query(query)                      # {"v": "1", "o": "1,2"}
    """

    # -------------------------------------------------------------------------
    # Web form body
    # -------------------------------------------------------------------------

    def pack(self, payload: Dict) -> str:
        """Compact JSON -> zlib -> URL-safe base64 without padding."""
        raw = orjson.dumps(payload)
        compressed = zlib.compress(raw, COMPRESSION_LEVEL)
        return base64.urlsafe_b64encode(compressed).decode("ascii").rstrip("=")

    def unpack(self, body: str):
        """Inverse of pack(). Raises PayloadCorruptError on any failure."""
        if not body or not BODY_PATTERN.match(body):
            raise PayloadCorruptError("Payload body is empty or contains invalid characters")

        padded = body + "=" * (-len(body) % 4)
        try:
            compressed = base64.urlsafe_b64decode(padded)
        except (binascii.Error, ValueError):
            raise PayloadCorruptError("Payload body is not valid base64")

        inflater = zlib.decompressobj()
        try:
            raw = inflater.decompress(compressed, MAX_DECOMPRESSED_SIZE)
        except zlib.error:
            raise PayloadCorruptError("Could not decompress payload")
        if inflater.unconsumed_tail:
            raise PayloadCorruptError(
                f"Payload inflates past {MAX_DECOMPRESSED_SIZE} bytes"
            )
        if not inflater.eof:
            raise PayloadCorruptError("Could not decompress payload: truncated stream")

        try:
            return orjson.loads(raw)
        except orjson.JSONDecodeError:
            raise PayloadCorruptError("Payload is not valid JSON")

    def split_versioned(self, text: str) -> Tuple[int, str]:
        """
        Split "{version}.{body}" into its parts.

        Raises:
            PayloadCorruptError: No separator or non-numeric version
        """
        version_text, sep, body = text.partition(".")
        if not sep:
            raise PayloadCorruptError("Invalid share format: missing version separator")
        if not VERSION_PATTERN.match(version_text):
            raise PayloadCorruptError(f"Invalid share format: bad version '{version_text}'")
        return int(version_text), body

    # -------------------------------------------------------------------------
    # Terminal form
    # -------------------------------------------------------------------------

    def quote_token(self, value: str) -> str:
        """Percent-encode one list element so ',' '&' '=' cannot split it."""
        return quote(value, safe="")

    def to_query(self, pairs: List[Tuple[str, str]]) -> str:
        """Join already-encoded pairs as key=value&key=value."""
        return "&".join(f"{key}={value}" for key, value in pairs)

    def from_query(self, query: str) -> Dict[str, str]:
        """
        Tokenize a query string into raw (still comma-joined) values.

        Raises:
            PayloadCorruptError: A pair without '=' or a repeated key
        """
        query = query.strip().lstrip("?")
        values: Dict[str, str] = {}
        if not query:
            return values

        for pair in query.split("&"):
            if not pair:
                continue
            key, sep, value = pair.partition("=")
            if not sep or not key:
                raise PayloadCorruptError(f"Malformed query pair: '{pair}'")
            if key in values:
                raise PayloadCorruptError(f"Repeated query key: '{key}'")
            values[key] = value
        return values

    def parse_id(self, key: str, value: str) -> int:
        if not VERSION_PATTERN.match(value):
            raise PayloadCorruptError(f"Field '{key}' must be a number, got '{value}'")
        return int(value)

    def parse_id_list(self, key: str, value: str) -> List[int]:
        if value == "":
            return []
        if not ID_LIST_PATTERN.match(value):
            raise PayloadCorruptError(f"Field '{key}' must be comma-separated numbers, got '{value}'")
        return [int(part) for part in value.split(",")]

    def parse_token_list(self, value: str) -> List[str]:
        if value == "":
            return []
        return [unquote(part) for part in value.split(",") if part]
