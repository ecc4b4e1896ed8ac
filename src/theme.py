"""Color & style helpers for the terminal board.

Decisions:
- Truecolor preferred; falls back to the 256-color cube if unsupported.
- Disabled when not a TTY unless FORCE_COLOR=1; NO_COLOR disables it entirely.
- Column palette can be overridden with KANBAN_* hex values (env or .env).
"""
from __future__ import annotations
import os, sys

from config import setting

_FORCE = os.environ.get("FORCE_COLOR", "").lower() in {"1", "true", "yes", "on"}
_NO_COLOR = os.environ.get("NO_COLOR") is not None
_ENABLE = (_FORCE or sys.stdout.isatty()) and not _NO_COLOR
_COLORTERM = os.environ.get("COLORTERM", "").lower()
_USE_TRUECOLOR = _ENABLE and any(tok in _COLORTERM for tok in ("truecolor", "24bit"))


def _code(part: str) -> str:
    """ANSI escape code for one style part, or "" when colour is off."""
    return f"\033[{part}m" if _ENABLE else ''


def _valid_hex(value: str | None) -> bool:
    """True for a six-digit hex colour, with or without the leading #."""
    h = (value or '').lstrip('#')
    return len(h) == 6 and all(c in '0123456789abcdefABCDEF' for c in h)


def _hex_to_rgb(hex_code: str) -> tuple[int, int, int]:
    """Convert a hex colour code to an RGB tuple."""
    h = hex_code.lstrip('#')
    return int(h[0:2], 16), int(h[2:4], 16), int(h[4:6], 16)


def _fg_256(r: int, g: int, b: int) -> str:
    """Approximate RGB with the xterm 256-color cube."""
    def to_6(x: int) -> int:
        return int(round(x / 255 * 5))
    return f"\033[38;5;{16 + 36 * to_6(r) + 6 * to_6(g) + to_6(b)}m"


def from_hex(hex_code: str) -> str:
    """Foreground escape for a hex colour: truecolor when supported, else the 256 cube."""
    if not _ENABLE or not _valid_hex(hex_code):
        return ''
    r, g, b = _hex_to_rgb(hex_code)
    if _USE_TRUECOLOR:
        return f"\033[38;2;{r};{g};{b}m"
    return _fg_256(r, g, b)


def _palette(name: str, default: str) -> str:
    """Hex override from the environment or .env, falling back to default."""
    value = setting(name)
    return '#' + value.lstrip('#') if _valid_hex(value) else default


RESET = _code('0')
BOLD = _code('1')
DIM = _code('2')

HEX_PRIMARY = _palette('KANBAN_PRIMARY', '#476EAE')
HEX_TODO = _palette('KANBAN_TODO', '#48B3AF')
HEX_INPROGRESS = _palette('KANBAN_INPROGRESS', '#F6FF99')
HEX_ONHOLD = _palette('KANBAN_ONHOLD', '#F2A65A')
HEX_DONE = _palette('KANBAN_DONE', '#A7E399')

PRIMARY = from_hex(HEX_PRIMARY)

COLUMN_COLOR = {
    'todo': from_hex(HEX_TODO),
    'inProgress': from_hex(HEX_INPROGRESS),
    'onHold': from_hex(HEX_ONHOLD),
    'done': from_hex(HEX_DONE),
}

PRIORITY_COLOR = {
    'low': from_hex('#4caf50'),
    'medium': from_hex('#ff9800'),
    'high': from_hex('#f44336'),
}

DUE_COLOR = {
    'overdue': from_hex('#f44336'),
    'today': from_hex('#ff9800'),
    'soon': from_hex('#eab308'),
    'normal': DIM,
}

HEADER_COLOR = PRIMARY
ID_COLOR = PRIMARY + BOLD
EMPTY_COLOR = DIM + PRIMARY


def color(text: str, *styles: str) -> str:
    """Wrap text in the given ANSI styles and a reset."""
    if not _ENABLE:
        return text
    return ''.join(styles) + text + RESET


__all__ = [
    'color', 'from_hex', 'RESET', 'BOLD', 'DIM', 'COLUMN_COLOR', 'PRIORITY_COLOR', 'DUE_COLOR',
    'HEADER_COLOR', 'ID_COLOR', 'EMPTY_COLOR',
]
