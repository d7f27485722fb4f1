"""
Region and cell control classification.

Region control is a threshold vote over the victory towns of the region:
a faction holding at least 60% of the claimed towns owns the region, a
split between both factions is contested, and a region without claimed
towns is neutral. Cells are not voted on; each mirrors the single town it
contains.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import structlog

from ..errors import GeometryError
from .geometry import clip_polygon, point_in_polygon, settlement_to_world
from .models import Cell, Faction, Point, Region, RegionControl, Ring, Settlement
from .victory import is_victory_eligible

logger = structlog.get_logger()

CONTROL_THRESHOLD = 0.6


def classify_counts(colonial: int, warden: int) -> RegionControl:
    """Control label from the number of towns held by each faction."""
    total = colonial + warden
    if total == 0:
        return RegionControl.NEUTRAL

    if colonial / total >= CONTROL_THRESHOLD:
        return RegionControl.COLONIALS
    if warden / total >= CONTROL_THRESHOLD:
        return RegionControl.WARDENS

    if colonial > 0 and warden > 0:
        return RegionControl.CONTESTED

    if colonial > warden:
        return RegionControl.COLONIALS
    if warden > colonial:
        return RegionControl.WARDENS
    return RegionControl.NEUTRAL


def classify_region(settlements: Iterable[Settlement], active: bool = True) -> RegionControl:
    """
    Control label of a region.

    Args:
        settlements: Ledger rows of the region
        active: False when the current war phase excludes the region

    Returns:
        INACTIVE for inactive regions, otherwise the vote over the
        region's victory towns (unclaimed towns do not vote)
    """
    if not active:
        return RegionControl.INACTIVE

    colonial = 0
    warden = 0
    for settlement in settlements:
        if not is_victory_eligible(settlement.icon_code, settlement.flags):
            continue
        if settlement.current_faction is Faction.COLONIALS:
            colonial += 1
        elif settlement.current_faction is Faction.WARDENS:
            warden += 1

    return classify_counts(colonial, warden)


@dataclass(frozen=True)
class CellControl:
    """Classification of one clipped cell."""
    cell_id: str
    region_id: str
    label: str
    control: RegionControl
    boundary: Ring
    settlement_id: Optional[str] = None


def clip_cells(region: Region, cells: Iterable[Cell]) -> List[Tuple[Cell, Ring]]:
    """Clip every cell to its region, dropping degenerate results."""
    clipped = []
    for cell in cells:
        ring = clip_polygon(cell.boundary, region.boundary)
        if ring is None:
            logger.warning("Skipping degenerate cell", region=region.id, cell=cell.id, label=cell.label)
            continue
        clipped.append((cell, ring))
    return clipped


def settlement_positions(region: Region, settlements: Iterable[Settlement]) -> List[Tuple[Settlement, Point]]:
    """
    World positions of a region's settlements.

    Raises:
        GeometryError: If the region boundary is degenerate
    """
    return [
        (s, settlement_to_world(s.x, s.y, region.boundary))
        for s in settlements
    ]


def find_contained(ring: Sequence[Point], positioned: Sequence[Tuple[Settlement, Point]]) -> List[Settlement]:
    """All settlements whose position lies inside ``ring``."""
    return [s for s, pos in positioned if point_in_polygon(pos, ring)]


def classify_cells(
    region: Region,
    cells: Iterable[Cell],
    settlements: Sequence[Settlement],
) -> Dict[str, CellControl]:
    """
    Control label of every cell of a region.

    A cell takes the faction of the town inside it, or NEUTRAL if it holds
    none. A cell containing several towns is a data defect: it is logged and
    the first town in ledger order is used. Cells whose clipped geometry is
    degenerate are left out of the result, as are all cells of a region
    whose own boundary is degenerate.
    """
    try:
        positioned = settlement_positions(region, settlements)
    except GeometryError as e:
        logger.warning("Skipping cells of region with bad boundary", region=region.id, error=str(e))
        return {}

    return classify_clipped_cells(region, clip_cells(region, cells), positioned)


def classify_clipped_cells(
    region: Region,
    clipped: Iterable[Tuple[Cell, Ring]],
    positioned: Sequence[Tuple[Settlement, Point]],
) -> Dict[str, CellControl]:
    """Cell classification over already clipped cells and positioned towns."""
    result: Dict[str, CellControl] = {}
    for cell, ring in clipped:
        inside = find_contained(ring, positioned)
        if len(inside) > 1:
            logger.warning(
                "Cell contains more than one town",
                region=region.id,
                cell=cell.label,
                towns=[s.id for s in inside],
            )

        owner = inside[0] if inside else None
        result[cell.id] = CellControl(
            cell_id=cell.id,
            region_id=region.id,
            label=cell.label,
            control=RegionControl.from_faction(owner.current_faction) if owner else RegionControl.NEUTRAL,
            boundary=ring,
            settlement_id=owner.id if owner else None,
        )
    return result
