"""Text normalizers shared by the settings schema and model-reply parsing.

No imports from sibling schema modules, so both sides can use them.
"""

import unicodedata
from typing import Any


def _is_edge_noise(ch: str) -> bool:
    return ch.isspace() or unicodedata.category(ch) == "Cf"


def strip_invisible_edges(value: str) -> str:
    """
    Trim whitespace and Unicode format characters (zero-width space, BOM)
    from both ends of a prompt fragment.

    Text pasted from design tools often carries them, and they would end up
    inside the generation instruction.
    """
    start, end = 0, len(value)
    while start < end and _is_edge_noise(value[start]):
        start += 1
    while end > start and _is_edge_noise(value[end - 1]):
        end -= 1
    return value[start:end]


def ensure_utf8_encodable(value: str) -> str:
    """Reject lone surrogates (e.g. a JSON "\\uD800"), which break UTF-8 responses."""
    try:
        value.encode("utf-8")
    except UnicodeEncodeError:
        raise ValueError("Text contains invalid Unicode characters")
    return value


def normalize_optional_text(value: Any) -> Any:
    """Trim a free-text field; blank becomes None. Non-strings pass through."""
    if not isinstance(value, str):
        return value
    text = strip_invisible_edges(value)
    if not text:
        return None
    return ensure_utf8_encodable(text)


def clip_text(value: str, max_length: int) -> str:
    """Cut `value` to at most `max_length` characters, preferring a word break."""
    if len(value) <= max_length:
        return value
    clipped = value[:max_length]
    cut = clipped.rfind(" ")
    if cut > max_length // 2:
        clipped = clipped[:cut]
    return clipped.rstrip(" ,;:-")
