"""
Presentation — Display layer for the loadout CLI

Contains display and formatting:
- Symbols: Visual vocabulary (unicode/ascii)
- Template: Structured output with header/section/footer
- Summary: Plain-text loadout summary for sharing
"""

from .symbols import (
    SymbolSet, UNICODE, ASCII, get_symbols, supports_unicode,
    safe_print,
)
from .template import OutputTemplate, TemplateSection
from .summary import text_summary

__all__ = [
    # Symbols
    "SymbolSet", "UNICODE", "ASCII", "get_symbols", "supports_unicode",
    "safe_print",
    # Template
    "OutputTemplate", "TemplateSection",
    # Summary
    "text_summary",
]
