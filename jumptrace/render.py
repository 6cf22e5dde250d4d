"""Terminal rendering of highlighted reference blocks and source lines.

The configured CSS highlight colour is translated into a true-colour SGR
background so CLI output matches what the editor shows.
"""

from __future__ import annotations

import re
from collections.abc import Sequence

from .syntax import sanitize_terminal_text

RESET_SGR = "\033[0m"
FALLBACK_BG_SGR = "48;2;58;92;188"

_HEX_RE = re.compile(r"^#([0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")
_RGB_RE = re.compile(
    r"^rgba?\(\s*(\d{1,3})\s*,\s*(\d{1,3})\s*,\s*(\d{1,3})\s*(?:,\s*([0-9]*\.?[0-9]+)\s*)?\)$"
)


def css_color_to_sgr(color: str) -> str | None:
    """Return a ``48;2;r;g;b`` background SGR for a CSS colour, or ``None``.

    Accepts ``#rgb``, ``#rrggbb``, ``rgb(...)`` and ``rgba(...)``. Alpha is
    blended against a black terminal background.
    """
    value = color.strip()
    hex_match = _HEX_RE.match(value)
    if hex_match:
        digits = hex_match.group(1)
        if len(digits) == 3:
            digits = "".join(ch * 2 for ch in digits)
        red, green, blue = (int(digits[idx:idx + 2], 16) for idx in (0, 2, 4))
        return f"48;2;{red};{green};{blue}"

    rgb_match = _RGB_RE.match(value)
    if rgb_match is None:
        return None
    channels = [min(255, int(part)) for part in rgb_match.group(1, 2, 3)]
    alpha_text = rgb_match.group(4)
    alpha = 1.0 if alpha_text is None else max(0.0, min(1.0, float(alpha_text)))
    red, green, blue = (round(channel * alpha) for channel in channels)
    return f"48;2;{red};{green};{blue}"


def _gutter(line: int, width: int) -> str:
    return f"{line + 1:>{width}} | "


def render_block(
    lines: Sequence[str],
    start_line: int,
    line_count: int,
    *,
    background_sgr: str | None,
    context: int = 0,
) -> str:
    """Render ``line_count`` lines from ``start_line`` with a highlighted background.

    ``context`` extra lines above and below are printed unhighlighted. Lines are
    numbered 1-based in a gutter; ``background_sgr=None`` disables colour.
    """
    first = max(0, start_line - context)
    last = min(len(lines), start_line + line_count + context)
    width = len(str(last))
    out: list[str] = []
    for line in range(first, last):
        text = sanitize_terminal_text(lines[line])
        row = _gutter(line, width) + text
        highlighted = start_line <= line < start_line + line_count
        if highlighted and background_sgr:
            row = f"\033[{background_sgr}m{row}{RESET_SGR}"
        elif highlighted:
            row = f"> {row}"
        elif background_sgr is None:
            row = f"  {row}"
        out.append(row)
    return "\n".join(out)


def render_source_line(line: int, colored_text: str) -> str:
    """Render one 1-based source line with its number."""
    return f"{line:>6} | {colored_text}"


__all__ = ["css_color_to_sgr", "render_block", "render_source_line"]
