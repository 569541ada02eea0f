"""Map a free-text color mood to a single accent color for gallery cards."""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class MoodAccent:
    name: str
    light: str
    dark: str


NEUTRAL = MoodAccent("neutral", "#E2E8F0", "#334155")

BLUE = MoodAccent("blue", "#93C5FD", "#1D4ED8")
ORANGE = MoodAccent("orange", "#FDBA74", "#C2410C")
CYAN = MoodAccent("cyan", "#67E8F9", "#0E7490")
SLATE_DARK = MoodAccent("slate-dark", "#475569", "#64748B")
FUCHSIA = MoodAccent("fuchsia", "#E879F9", "#A21CAF")
STONE = MoodAccent("stone", "#D6D3D1", "#57534E")

MOOD_KEYWORDS: dict[str, MoodAccent] = {
    "blue": BLUE,
    "professional": BLUE,
    "tech": BLUE,
    "warm": ORANGE,
    "gold": ORANGE,
    "orange": ORANGE,
    "cool": CYAN,
    "cyan": CYAN,
    "dark": SLATE_DARK,
    "black": SLATE_DARK,
    "neon": FUCHSIA,
    "cyber": FUCHSIA,
    "fuchsia": FUCHSIA,
    "nature": STONE,
    "earth": STONE,
    "wood": STONE,
}


def accent_for_mood(mood: Optional[str]) -> MoodAccent:
    """
    Resolve the accent for `mood`.

    The keyword that occurs earliest in the text wins; a tie at the same
    position goes to the longest keyword. Unknown or empty moods are neutral.
    """
    if not mood:
        return NEUTRAL
    text = mood.lower()

    best: Optional[tuple[int, int]] = None
    accent = NEUTRAL
    for keyword, candidate in MOOD_KEYWORDS.items():
        position = text.find(keyword)
        if position < 0:
            continue
        rank = (position, -len(keyword))
        if best is None or rank < best:
            best = rank
            accent = candidate
    return accent
