"""Hex colour parsing for canvas fills."""
from __future__ import annotations

import re

from assets.errors import InvalidColorError

_HEX_RE = re.compile(r"^#?([0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")

WHITE = (255, 255, 255)


def parse_hex_color(value: str | None) -> tuple[int, int, int]:
    """'#3b82f6', '3b82f6' or '#fff' -> (r, g, b)."""
    match = _HEX_RE.match((value or "").strip())
    if not match:
        raise InvalidColorError(f"Invalid hex colour: {value!r}")
    digits = match.group(1)
    if len(digits) == 3:
        digits = "".join(c * 2 for c in digits)
    return int(digits[0:2], 16), int(digits[2:4], 16), int(digits[4:6], 16)


def is_hex_color(value: str | None) -> bool:
    return bool(_HEX_RE.match((value or "").strip()))


def normalize_hex_color(value: str) -> str:
    r, g, b = parse_hex_color(value)
    return f"#{r:02x}{g:02x}{b:02x}"
