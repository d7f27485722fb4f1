"""Capture recency encoded as fill opacity."""

import math
from typing import Optional

from .models import Faction

DAY_MS = 24 * 60 * 60 * 1000

FULL_ALPHA = 0xFF
BASELINE_ALPHA = 0xBB  # ~73% opacity once a capture is a day old
ALPHA_DECAY = FULL_ALPHA - BASELINE_ALPHA

# Grayscale fills, readable on e-paper displays
FACTION_FILLS = {
    Faction.WARDENS: "#404040",
    Faction.COLONIALS: "#A0A0A0",
    Faction.NONE: "#F0F0F0",
}


def encode_alpha(last_change_at: int, now: int) -> int:
    """
    Map the time since the last faction change to an alpha byte.

    Decays linearly from 255 at the moment of capture to 0xBB after 24
    hours and stays flat afterwards. Timestamps from the future (clock skew
    between writer and reader) are treated as "just captured".

    Args:
        last_change_at: Epoch ms of the last transition
        now: Current epoch ms

    Returns:
        Alpha value in [0xBB, 0xFF]
    """
    elapsed = max(0, now - last_change_at)
    if elapsed >= DAY_MS:
        return BASELINE_ALPHA
    return math.floor(FULL_ALPHA - (elapsed / DAY_MS) * ALPHA_DECAY)


def color_with_alpha(
    faction: Faction, last_change_at: Optional[int] = None, now: Optional[int] = None
) -> str:
    """8-digit hex fill for a faction, with recency alpha when known."""
    alpha = BASELINE_ALPHA
    if last_change_at is not None and now is not None:
        alpha = encode_alpha(last_change_at, now)
    return f"{FACTION_FILLS.get(faction, FACTION_FILLS[Faction.NONE])}{alpha:02X}"

