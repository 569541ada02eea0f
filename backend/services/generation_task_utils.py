"""Shared helpers for normalizing model payload values."""

from __future__ import annotations

import re
from typing import Iterable, Optional

from schemas.validators import clip_text


_HEX_COLOR_RE = re.compile(r"^#?([0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")


def clamp_score(value: object, *, default: int = 85) -> int:
    """Normalize an arbitrary score value to integer 0..100."""
    if isinstance(value, bool):
        return default
    try:
        score = int(round(float(value)))  # type: ignore[arg-type]
    except Exception:
        return default
    if score < 0:
        return 0
    if score > 100:
        return 100
    return score


def normalize_text(value: object, default: str, *, max_length: Optional[int] = None) -> str:
    """
    Return stripped text, or `default` for non-strings and blanks.

    With `max_length`, longer text is clipped to fit the settings field it
    will be merged into.
    """
    if not isinstance(value, str):
        return default
    try:
        value.encode("utf-8")
    except UnicodeEncodeError:
        return default
    text = value.strip()
    if text and max_length is not None:
        text = clip_text(text, max_length)
    return text or default


def normalize_hex_color(value: object) -> Optional[str]:
    """Normalize "#abc", "AABBCC", etc. to "#AABBCC"; None when invalid."""
    if not isinstance(value, str):
        return None
    match = _HEX_COLOR_RE.match(value.strip())
    if not match:
        return None
    digits = match.group(1)
    if len(digits) == 3:
        digits = "".join(ch * 2 for ch in digits)
    return f"#{digits.upper()}"


def normalize_hex_colors(
    raw: object,
    *,
    default: Iterable[str],
    limit: int = 5,
) -> list[str]:
    """Keep valid hex colors (deduplicated, in order, at most `limit`)."""
    colors: list[str] = []
    if isinstance(raw, list):
        for item in raw:
            color = normalize_hex_color(item)
            if color and color not in colors:
                colors.append(color)
            if len(colors) >= limit:
                break
    return colors or list(default)


def normalize_text_list(raw: object, *, limit: int) -> list[str]:
    """Keep non-blank string items, at most `limit`."""
    if not isinstance(raw, list):
        return []
    items: list[str] = []
    for item in raw:
        if not isinstance(item, str):
            continue
        text = item.strip()
        if text:
            items.append(text)
        if len(items) >= limit:
            break
    return items
