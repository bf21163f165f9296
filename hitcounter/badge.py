"""
Badge rendering.

Pure functions mapping a label and a count to a standalone SVG document or
to a shields.io "endpoint" schema. Segment widths are estimated from
character counts, not measured:

* classic:  6px per character + 10px padding per segment, height 20
* terminal: 8px per character + 14px padding per segment, height 24; the
  value starts right after the label segment

Colors and fonts are checked against an allow-list and silently replaced by
the documented defaults when they do not pass, so nothing from the query
string reaches the markup unsanitized.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional
from xml.sax.saxutils import escape

STYLE_CLASSIC = "classic"
STYLE_TERMINAL = "terminal"
TERMINAL_ALIASES = frozenset({STYLE_TERMINAL, "mono"})

DEFAULT_LABEL = "views"
DEFAULT_COLOR = "blue"
DEFAULT_FONT = "Verdana,Geneva,DejaVu Sans,sans-serif"

DEFAULT_TERMINAL_BG = "#1e1e1e"
DEFAULT_TERMINAL_LABEL_COLOR = "#aaa"
DEFAULT_TERMINAL_VALUE_COLOR = "#3cffb3"
DEFAULT_TERMINAL_FONT = "SFMono-Regular, SF Mono, Menlo, ui-monospace, monospace"

NAMED_COLORS = frozenset(
    {"blue", "green", "red", "orange", "yellow", "gray", "grey", "purple", "teal"}
)

CLASSIC_CHAR_WIDTH = 6
CLASSIC_PADDING = 10
TERMINAL_CHAR_WIDTH = 8
TERMINAL_PADDING = 14

_HEX_COLOR = re.compile(r"^#(?:[0-9a-f]{3}|[0-9a-f]{6})$")
_FONT_FAMILY = re.compile(r"^[A-Za-z0-9 ,_-]{1,200}$")
_ATTR_ENTITIES = {'"': "&quot;"}


def normalize_color(value: Optional[str], fallback: str = DEFAULT_COLOR) -> str:
    """Return a safe color: a named color, ``#rgb``/``#rrggbb``, or ``fallback``."""
    if not value:
        return fallback
    color = value.strip().lower()
    if color in NAMED_COLORS or _HEX_COLOR.match(color):
        return color
    return fallback


def normalize_font(value: Optional[str], fallback: str = DEFAULT_FONT) -> str:
    if not value:
        return fallback
    font = value.strip()
    if _FONT_FAMILY.match(font):
        return font
    return fallback


def segment_width(text: str, char_width: int, padding: int) -> int:
    return char_width * len(text) + padding


@dataclass(frozen=True)
class BadgeSchema:
    """shields.io endpoint badge document."""

    label: str
    message: str
    color: str
    schema_version: int = 1

    def as_dict(self) -> dict:
        return {
            "schemaVersion": self.schema_version,
            "label": self.label,
            "message": self.message,
            "color": self.color,
        }


def render_badge_schema(label: str, value: int, color: str = "") -> BadgeSchema:
    return BadgeSchema(
        label=label or DEFAULT_LABEL,
        message=str(value),
        color=normalize_color(color, DEFAULT_COLOR),
    )


def _classic_svg(label: str, value_text: str, color: str, font: str) -> str:
    label_width = segment_width(label, CLASSIC_CHAR_WIDTH, CLASSIC_PADDING)
    value_width = segment_width(value_text, CLASSIC_CHAR_WIDTH, CLASSIC_PADDING)
    total = label_width + value_width
    label_x = label_width // 2
    value_x = label_width + value_width // 2
    label_text = escape(label)
    aria = escape(f"{label}: {value_text}", _ATTR_ENTITIES)
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        f'<svg xmlns="http://www.w3.org/2000/svg" width="{total}" height="20" '
        f'role="img" aria-label="{aria}">\n'
        '<linearGradient id="s" x2="0" y2="100%"><stop offset="0" '
        'stop-color="#bbb" stop-opacity=".1"/><stop offset="1" '
        'stop-opacity=".1"/></linearGradient>\n'
        f'<rect rx="3" width="{total}" height="20" fill="#555"/>\n'
        f'<rect rx="3" x="{label_width}" width="{value_width}" height="20" '
        f'fill="{color}"/>\n'
        f'<rect rx="3" width="{total}" height="20" fill="url(#s)"/>\n'
        f'<g fill="#fff" text-anchor="middle" font-family="{font}" '
        'font-size="11">\n'
        f'<text x="{label_x}" y="15" fill="#010101" fill-opacity=".3">'
        f"{label_text}</text>\n"
        f'<text x="{label_x}" y="15">{label_text}</text>\n'
        f'<text x="{value_x}" y="15" fill="#010101" fill-opacity=".3">'
        f"{value_text}</text>\n"
        f'<text x="{value_x}" y="15">{value_text}</text>\n'
        "</g>\n"
        "</svg>"
    )


def _terminal_svg(
    label: str,
    value_text: str,
    font: str,
    bg: str,
    label_color: str,
    value_color: str,
) -> str:
    prompt = label + ":"
    label_width = segment_width(prompt, TERMINAL_CHAR_WIDTH, TERMINAL_PADDING)
    value_width = segment_width(value_text, TERMINAL_CHAR_WIDTH, TERMINAL_PADDING)
    total = label_width + value_width
    aria = escape(f"{label}: {value_text}", _ATTR_ENTITIES)
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        f'<svg xmlns="http://www.w3.org/2000/svg" width="{total}" height="24" '
        f'role="img" aria-label="{aria}">\n'
        f'<rect rx="4" width="{total}" height="24" fill="{bg}"/>\n'
        f'<text x="{TERMINAL_CHAR_WIDTH}" y="16" font-family="{font}" '
        f'font-size="12" fill="{label_color}">{escape(prompt)}</text>\n'
        f'<text x="{label_width}" y="16" font-family="{font}" font-size="12" '
        f'font-weight="600" fill="{value_color}">{value_text}</text>\n'
        "</svg>"
    )


def render_badge_svg(
    label: str,
    value: int,
    style: str = STYLE_CLASSIC,
    color: Optional[str] = None,
    bg: Optional[str] = None,
    label_color: Optional[str] = None,
    value_color: Optional[str] = None,
    font: Optional[str] = None,
) -> str:
    """
    Render a counter badge as a complete SVG document.

    ``style`` selects ``classic`` (default, also used for unknown values) or
    ``terminal``/``mono``. ``color`` only applies to classic badges; ``bg``,
    ``label_color`` and ``value_color`` only to terminal badges.
    """
    label = label or DEFAULT_LABEL
    value_text = str(value)
    if (style or "").strip().lower() in TERMINAL_ALIASES:
        return _terminal_svg(
            label,
            value_text,
            font=normalize_font(font, DEFAULT_TERMINAL_FONT),
            bg=normalize_color(bg, DEFAULT_TERMINAL_BG),
            label_color=normalize_color(label_color, DEFAULT_TERMINAL_LABEL_COLOR),
            value_color=normalize_color(value_color, DEFAULT_TERMINAL_VALUE_COLOR),
        )
    return _classic_svg(
        label,
        value_text,
        color=normalize_color(color, DEFAULT_COLOR),
        font=normalize_font(font, DEFAULT_FONT),
    )
