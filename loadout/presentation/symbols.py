"""
Symbols — Markers for share, decode and audit output

Unicode on consoles that can show it, ASCII otherwise. The choice follows
display.symbols ("auto", "unicode", "ascii") and two environment overrides:
LOADOUT_ASCII_ONLY and LOADOUT_UNICODE.

safe_print() lives here too: it never fails on a console that cannot encode
a marker.
"""

import os
import sys
from dataclasses import dataclass
from typing import Optional


_TRUTHY = ('1', 'true', 'yes')


@dataclass(frozen=True)
class SymbolSet:
    """Markers used by every command's output."""
    check_pass: str
    check_warn: str
    check_fail: str
    deprecated: str   # tombstoned id
    blocked: str      # withheld or dropped for security
    arrow: str
    tree_branch: str
    tree_end: str
    bullet: str
    ellipsis: str


UNICODE = SymbolSet(
    check_pass='✓', check_warn='⚠', check_fail='✗',
    deprecated='⊘', blocked='⛔', arrow='→',
    tree_branch='├─', tree_end='└─', bullet='•', ellipsis='…',
)

ASCII = SymbolSet(
    check_pass='[OK]', check_warn='[!]', check_fail='[ERR]',
    deprecated='[DEP]', blocked='[X]', arrow='->',
    tree_branch='+-', tree_end='+-', bullet='*', ellipsis='...',
)

_FALLBACKS = [
    (u, a) for u, a in zip(vars(UNICODE).values(), vars(ASCII).values()) if u != a
]


def _to_ascii(text: str) -> str:
    for marker, plain in _FALLBACKS:
        text = text.replace(marker, plain)
    return text


def safe_print(text: str, end: str = '\n', file=None) -> None:
    """
    Print text, degrading markers to ASCII when the stream cannot encode them.

    Anything still unencodable after that becomes '?'.
    """
    stream = file if file is not None else sys.stdout
    try:
        print(text, end=end, file=stream)
        return
    except UnicodeEncodeError:
        pass

    plain = _to_ascii(text)
    try:
        print(plain, end=end, file=stream)
    except UnicodeEncodeError:
        encoding = getattr(stream, 'encoding', None) or 'utf-8'
        print(plain.encode(encoding, errors='replace').decode(encoding), end=end, file=stream)


def _env_flag(name: str) -> bool:
    return os.environ.get(name, '').lower() in _TRUTHY


def supports_unicode() -> bool:
    """
    Guess whether stdout can show Unicode markers.

    Legacy Windows code pages (cp437, cp1252) and latin-1 get ASCII; the
    one-liner runs in exactly those consoles.
    """
    if _env_flag('LOADOUT_ASCII_ONLY'):
        return False
    if _env_flag('LOADOUT_UNICODE'):
        return True

    encoding = (getattr(sys.stdout, 'encoding', None) or '').lower()
    normalized = encoding.replace('-', '').replace('_', '')
    if normalized.startswith('cp') or normalized in ('ascii', 'latin1', 'iso88591'):
        return False

    locale = ' '.join(os.environ.get(v, '') for v in ('LANG', 'LC_ALL')).lower()
    if 'utf-8' in locale or 'utf8' in locale or os.environ.get('WT_SESSION'):
        return True
    return 'utf' in encoding


def get_symbols(preference: Optional[str] = None) -> SymbolSet:
    """Symbol set for "unicode", "ascii", or auto-detection (anything else)."""
    if preference == 'unicode':
        return UNICODE
    if preference == 'ascii':
        return ASCII
    return UNICODE if supports_unicode() else ASCII
