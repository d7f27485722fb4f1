"""
Map item icon registry of the world conquest API.

Only icons flagged ``conquer`` are capturable towns and get a ledger row.
"""

from typing import Dict, NamedTuple, Optional

from ..core.models import Faction


class IconType(NamedTuple):
    """Static description of a map icon."""
    kind: str
    icon: str
    notes: str
    conquer: bool = False


ICON_TYPES: Dict[int, IconType] = {
    # Towns and victory points
    27: IconType("town", "Keep", "Keep", conquer=True),
    56: IconType("town", "TownHall1", "Town Hall T1", conquer=True),
    57: IconType("town", "TownHall2", "Town Hall T2", conquer=True),
    58: IconType("town", "TownHall3", "Town Hall T3", conquer=True),
    45: IconType("town", "RelicBase1", "Small Relic Base", conquer=True),
    46: IconType("town", "RelicBase2", "Medium Relic Base", conquer=True),
    47: IconType("town", "RelicBase3", "Large Relic Base", conquer=True),

    # Industry
    11: IconType("industry", "Hospital", "Hospital"),
    12: IconType("industry", "VehicleFactory", "Vehicle Factory"),
    15: IconType("industry", "Workshop", "Workshop"),
    16: IconType("industry", "Manufacturing", "Manufacturing Plant"),
    17: IconType("industry", "Refinery", "Refinery"),
    18: IconType("industry", "Shipyard", "Shipyard"),

    # Resource fields
    20: IconType("field", "SalvageField", "Salvage Field"),
    21: IconType("field", "ComponentField", "Component Field"),
    23: IconType("field", "SulfurField", "Sulfur Field"),
    61: IconType("field", "CoalField", "Coal Field"),
    62: IconType("field", "OilField", "Oil Field"),
}


def is_conquerable(icon_code: int) -> bool:
    icon = ICON_TYPES.get(icon_code)
    return bool(icon and icon.conquer)


def icon_label(icon_code: int) -> str:
    icon = ICON_TYPES.get(icon_code)
    return icon.notes if icon else f"Icon {icon_code}"


def team_to_faction(team_id: Optional[str]) -> Faction:
    """Map a feed ``teamId`` to a faction; anything unknown is neutral."""
    if team_id == "COLONIALS":
        return Faction.COLONIALS
    if team_id == "WARDENS":
        return Faction.WARDENS
    return Faction.NONE
