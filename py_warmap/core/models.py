"""
Domain types shared by the territory control engine.

Settlement rows are owned by the town ledger; regions and cells come from
the static geometry file and are never modified after loading.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

Point = Tuple[float, float]
Ring = Tuple[Point, ...]


class Faction(str, Enum):
    """Controlling side of a settlement, named after the feed's teamId values."""

    NONE = "NONE"
    COLONIALS = "COLONIALS"
    WARDENS = "WARDENS"

    @classmethod
    def parse(cls, value: Optional[str]) -> "Faction":
        """Lenient conversion used for stored and upstream values."""
        if not value:
            return cls.NONE
        try:
            return cls(value.upper())
        except ValueError:
            return cls.NONE

    @property
    def display_name(self) -> str:
        return {
            Faction.COLONIALS: "Colonial",
            Faction.WARDENS: "Warden",
        }.get(self, "Neutral")


class RegionControl(str, Enum):
    """Control label of a region or cell, recomputed for every snapshot."""

    NEUTRAL = "NEUTRAL"
    COLONIALS = "COLONIALS"
    WARDENS = "WARDENS"
    CONTESTED = "CONTESTED"
    INACTIVE = "INACTIVE"

    @classmethod
    def from_faction(cls, faction: Faction) -> "RegionControl":
        if faction is Faction.COLONIALS:
            return cls.COLONIALS
        if faction is Faction.WARDENS:
            return cls.WARDENS
        return cls.NEUTRAL


class WarPhase(str, Enum):
    """Phase of the war that decides how scorched towns are accounted."""

    NORMAL = "NORMAL"
    RESISTANCE = "RESISTANCE"


@dataclass(frozen=True)
class Settlement:
    """A capturable town as recorded in the ledger."""

    id: str
    icon_code: int
    x: float
    y: float
    region_id: str
    current_faction: Faction
    previous_faction: Optional[Faction]
    last_change_at: int  # epoch ms
    label: str = ""
    flags: int = 0
    created_at: int = 0
    updated_at: int = 0


@dataclass(frozen=True)
class Cell:
    """Sub-polygon of a region associated with one settlement by containment."""

    id: str
    region_id: str
    label: str
    boundary: Ring


@dataclass(frozen=True)
class Region:
    """A hex region of the world map."""

    id: str
    boundary: Ring
    display_name: str = ""
    active: bool = True

    @property
    def name(self) -> str:
        return self.display_name or region_display_name(self.id)


def region_display_name(region_id: str) -> str:
    """Readable fallback name, e.g. ``DeadLandsHex`` -> ``Dead Lands``."""
    base = region_id.replace("Hex", "")
    out = []
    for i, ch in enumerate(base):
        if ch.isupper() and i > 0:
            out.append(" ")
        out.append(ch)
    return "".join(out).strip()
