"""
OutputTemplate — Consistent CLI output structure

Builder for structured command output with header, sections and footer.

Usage:
    from loadout.presentation.template import OutputTemplate

    template = OutputTemplate(symbols=symbols)
    template.header("LOADOUT SHARE", "Web link and terminal one-liner")
    template.section("WEB LINK", url)
    template.section("ONE-LINER", command)
    template.footer("3 optimizations | 2 packages")
    print(template.render())
"""

import shutil
from dataclasses import dataclass, field
from typing import List, Dict, Optional

from .symbols import SymbolSet, get_symbols


HEADER_CHAR = "="
SECTION_CHAR = "-"
DEFAULT_WIDTH = 80
MAX_WIDTH = 100


@dataclass
class TemplateSection:
    """A titled section of output."""
    title: str
    content: str


@dataclass
class TemplateLegend:
    """Legend mapping symbols to meanings."""
    items: Dict[str, str] = field(default_factory=dict)

    def render(self) -> str:
        if not self.items:
            return ""
        parts = [f"{symbol} {meaning}" for symbol, meaning in self.items.items()]
        return "Legend: " + "  ".join(parts)


class OutputTemplate:
    """
    Builder for structured CLI output.

    Creates consistent output with:
    - HEADER: Command identity, legend, scope
    - SECTIONS: Titled content blocks
    - FOOTER: Summary line and optional next-step hint
    """

    def __init__(
        self,
        symbols: Optional[SymbolSet] = None,
        width: Optional[int] = None,
        full: bool = False
    ):
        """
        Args:
            symbols: SymbolSet for visual elements (auto-detect if None)
            width: Terminal width (auto-detect if None, capped at MAX_WIDTH)
            full: If True, don't truncate content
        """
        self.symbols = symbols or get_symbols()
        self.width = width or min(shutil.get_terminal_size().columns or DEFAULT_WIDTH, MAX_WIDTH)
        self.full = full

        self._title: Optional[str] = None
        self._subtitle: Optional[str] = None
        self._legend: Optional[TemplateLegend] = None
        self._scope: Optional[str] = None
        self._sections: List[TemplateSection] = []
        self._summary: Optional[str] = None
        self._hint: Optional[str] = None

    # =========================================================================
    # Builder Methods
    # =========================================================================

    def header(self, title: str, subtitle: Optional[str] = None) -> "OutputTemplate":
        self._title = title
        self._subtitle = subtitle
        return self

    def legend(self, items: Dict[str, str]) -> "OutputTemplate":
        """Set legend mapping symbols to meanings, e.g. {"⊘": "tombstoned"}."""
        self._legend = TemplateLegend(items=items)
        return self

    def scope(self, text: str) -> "OutputTemplate":
        """Set scope line (count/context info in header)."""
        self._scope = text
        return self

    def section(self, title: str, content: str) -> "OutputTemplate":
        """Add a titled section. Empty content still renders the title."""
        self._sections.append(TemplateSection(title=title, content=content))
        return self

    def footer(self, summary: Optional[str] = None, hint: Optional[str] = None) -> "OutputTemplate":
        """
        Set footer summary text and an optional next-step hint.

        Args:
            summary: Summary metrics (e.g., "86 live ids | 1 tombstoned")
            hint: Follow-up suggestion (e.g., "Run: loadout snapshot")
        """
        self._summary = summary
        self._hint = hint
        return self

    # =========================================================================
    # Rendering
    # =========================================================================

    def render(self) -> str:
        lines: List[str] = []

        if self._title:
            lines.extend(self._render_header())

        for section in self._sections:
            lines.extend(self._render_section(section))

        lines.extend(self._render_footer())
        return "\n".join(lines)

    def _render_header(self) -> List[str]:
        lines: List[str] = []
        border = HEADER_CHAR * self.width
        lines.append(border)

        if self._subtitle:
            lines.append(f"{self._title} - {self._subtitle}")
        else:
            lines.append(self._title or "")
        lines.append(border)

        if self._legend:
            legend_text = self._legend.render()
            if legend_text:
                lines.append(legend_text)

        if self._scope:
            lines.append(self._scope)

        lines.append("")
        return lines

    def _render_section(self, section: TemplateSection) -> List[str]:
        lines: List[str] = []
        if section.title:
            lines.append(section.title)
            lines.append(SECTION_CHAR * len(section.title))
        if section.content:
            lines.append(section.content)
        lines.append("")
        return lines

    def _render_footer(self) -> List[str]:
        lines: List[str] = [SECTION_CHAR * self.width]
        if self._summary:
            lines.append(f"Summary: {self._summary}")
        if self._hint:
            lines.append(f"{self.symbols.arrow} {self._hint}")
        lines.append(HEADER_CHAR * self.width)
        return lines

    # =========================================================================
    # Utility Methods
    # =========================================================================

    def truncate(self, text: str, length: Optional[int] = None) -> str:
        """Truncate text with ellipsis (original text if full=True)."""
        if not text:
            return ""
        if self.full:
            return text

        max_len = length or (self.width - 4)
        if len(text) <= max_len:
            return text

        ellipsis = self.symbols.ellipsis
        return text[:max_len - len(ellipsis)] + ellipsis

    def format_table(
        self,
        rows: List[Dict[str, str]],
        columns: List[str],
        keys: Optional[List[str]] = None
    ) -> str:
        """
        Format data as simple aligned table (grep-parseable).

        Args:
            rows: List of dicts with data
            columns: Column headers
            keys: Dict keys for columns (defaults to lowercase headers)
        """
        if not rows:
            return ""

        keys = keys or [c.lower().replace(" ", "_") for c in columns]

        widths = [len(c) for c in columns]
        for row in rows:
            for i, key in enumerate(keys):
                widths[i] = max(widths[i], len(str(row.get(key, ""))))

        lines: List[str] = []
        lines.append("  ".join(col.ljust(widths[i]) for i, col in enumerate(columns)).rstrip())
        for row in rows:
            parts = [str(row.get(key, "")).ljust(widths[i]) for i, key in enumerate(keys)]
            lines.append("  ".join(parts).rstrip())
        return "\n".join(lines)

    def format_list(self, items: List[str], bullet: Optional[str] = None) -> str:
        if not items:
            return ""
        bullet = bullet or self.symbols.bullet
        return "\n".join(f"{bullet} {item}" for item in items)

    def format_tree(self, items: List[str]) -> str:
        """Format items as a tree under the previous line."""
        if not items:
            return ""
        lines = []
        for i, item in enumerate(items):
            marker = self.symbols.tree_end if i == len(items) - 1 else self.symbols.tree_branch
            lines.append(f"  {marker} {item}")
        return "\n".join(lines)
