"""
Point-in-time control snapshot.

A snapshot is assembled in one pass from ledger rows that were read before
assembly started. It holds no reference to the ledger, so a renderer
working from it sees a single consistent instant however long rendering
takes. Snapshots are never mutated after :func:`build_snapshot` returns.
"""

from collections import defaultdict
from dataclasses import dataclass, replace
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import structlog

from ..errors import GeometryError
from .control import (
    CellControl,
    classify_clipped_cells,
    classify_region,
    clip_cells,
    find_contained,
    settlement_positions,
)
from .models import Cell, Faction, Region, RegionControl, Settlement, WarPhase, region_display_name
from .victory import VictoryAccountant, VictoryTally

logger = structlog.get_logger()

RECENT_WINDOW_MS = 48 * 60 * 60 * 1000


@dataclass(frozen=True)
class TownState:
    """Control state of one town as exposed to consumers."""
    id: str
    faction: Faction
    previous_faction: Optional[Faction]
    last_change_at: int
    region_id: str
    icon_code: int
    label: str
    x: float
    y: float
    flags: int = 0


@dataclass(frozen=True)
class RecentCapture:
    """Entry of the recent transitions view."""
    town_id: str
    region_id: str
    region_name: str
    town_name: str
    faction: Faction
    previous_faction: Optional[Faction]
    last_change_at: int
    elapsed_ms: int

    @property
    def elapsed_text(self) -> str:
        return format_elapsed(self.elapsed_ms)


def format_elapsed(elapsed_ms: int) -> str:
    """Compact age, e.g. ``3h 12m`` or ``45m``."""
    hours = elapsed_ms // (60 * 60 * 1000)
    minutes = (elapsed_ms % (60 * 60 * 1000)) // (60 * 1000)
    return f"{hours}h {minutes}m" if hours > 0 else f"{minutes}m"


@dataclass(frozen=True)
class ControlSnapshot:
    taken_at: int
    towns: Mapping[str, TownState]
    regions: Tuple[Region, ...]
    region_control: Mapping[str, RegionControl]
    cell_control: Mapping[str, CellControl]
    town_cells: Mapping[str, str]
    victory: VictoryTally
    war_number: Optional[int] = None
    conquest_start: Optional[int] = None

    def region(self, region_id: str) -> Optional[Region]:
        for region in self.regions:
            if region.id == region_id:
                return region
        return None

    def region_name(self, region_id: str) -> str:
        region = self.region(region_id)
        return region.name if region else region_display_name(region_id)

    def cells_of(self, region_id: str) -> List[CellControl]:
        return [c for c in self.cell_control.values() if c.region_id == region_id]

    def recent_transitions(self, window_ms: int = RECENT_WINDOW_MS) -> List[RecentCapture]:
        """
        Towns whose control changed within ``window_ms`` of the snapshot,
        most recent first, tagged with region and cell names.
        """
        recent = []
        for town in self.towns.values():
            elapsed = max(0, self.taken_at - town.last_change_at)
            if elapsed >= window_ms:
                continue
            recent.append(
                RecentCapture(
                    town_id=town.id,
                    region_id=town.region_id,
                    region_name=self.region_name(town.region_id),
                    town_name=self.town_cells.get(town.id) or town.label or town.id,
                    faction=town.faction,
                    previous_faction=town.previous_faction,
                    last_change_at=town.last_change_at,
                    elapsed_ms=elapsed,
                )
            )
        recent.sort(key=lambda c: (-c.last_change_at, c.town_id))
        return recent

    def to_conquer_status(self) -> Dict[str, Any]:
        """Serializable feature map keyed by town id."""
        features = {}
        for town in self.towns.values():
            features[town.id] = {
                "team": town.faction.value,
                "lastChange": town.last_change_at,
                "lastTeam": town.previous_faction.value if town.previous_faction else None,
                "notes": town.label,
                "iconType": town.icon_code,
                "x": town.x,
                "y": town.y,
                "region": town.region_id,
            }
        return {
            "version": str(self.taken_at),
            "features": features,
            "warNumber": self.war_number,
            "full": True,
        }


def build_snapshot(
    ledger_rows: Iterable[Settlement],
    regions: Sequence[Region],
    cells: Iterable[Cell],
    now: int,
    active_region_ids: Optional[Iterable[str]] = None,
    required_victory_towns: int = 32,
    phase: WarPhase = WarPhase.NORMAL,
    war_number: Optional[int] = None,
    conquest_start: Optional[int] = None,
) -> ControlSnapshot:
    """
    Assemble a control snapshot.

    Args:
        ledger_rows: Ledger rows read before assembly; consumed once
        regions: Static region geometry
        cells: Static cell geometry of all regions
        now: Snapshot time in epoch ms
        active_region_ids: Regions in play this war phase, None for all
        required_victory_towns: Base victory requirement of the war
        phase: Current war phase
        war_number: Upstream war number, for display
        conquest_start: Epoch ms the conquest started, for display

    Returns:
        Immutable snapshot
    """
    rows = tuple(ledger_rows)
    active_ids = None if active_region_ids is None else frozenset(active_region_ids)

    rows_by_region: Dict[str, List[Settlement]] = defaultdict(list)
    for row in rows:
        rows_by_region[row.region_id].append(row)

    cells_by_region: Dict[str, List[Cell]] = defaultdict(list)
    for cell in cells:
        cells_by_region[cell.region_id].append(cell)

    resolved_regions = []
    region_control: Dict[str, RegionControl] = {}
    cell_control: Dict[str, CellControl] = {}
    town_cells: Dict[str, str] = {}

    for region in regions:
        active = active_ids is None or region.id in active_ids
        region = replace(region, active=active)
        resolved_regions.append(region)

        region_rows = rows_by_region.get(region.id, [])
        region_control[region.id] = classify_region(region_rows, active=active)

        try:
            positioned = settlement_positions(region, region_rows)
        except GeometryError as e:
            logger.warning("Skipping cells of region with bad boundary", region=region.id, error=str(e))
            continue

        clipped = clip_cells(region, cells_by_region.get(region.id, []))
        for cell, ring in clipped:
            for town in find_contained(ring, positioned):
                town_cells.setdefault(town.id, cell.label)

        if active:
            cell_control.update(classify_clipped_cells(region, clipped, positioned))

    towns = {
        row.id: TownState(
            id=row.id,
            faction=row.current_faction,
            previous_faction=row.previous_faction,
            last_change_at=row.last_change_at,
            region_id=row.region_id,
            icon_code=row.icon_code,
            label=row.label,
            x=row.x,
            y=row.y,
            flags=row.flags,
        )
        for row in rows
    }

    # Rows of regions out of play are never refreshed and do not count
    live_rows = [r for r in rows if active_ids is None or r.region_id in active_ids]
    victory = VictoryAccountant(live_rows).tally(required_victory_towns, phase)

    logger.debug(
        "Snapshot built",
        towns=len(towns),
        regions=len(resolved_regions),
        cells=len(cell_control),
    )

    return ControlSnapshot(
        taken_at=now,
        towns=MappingProxyType(towns),
        regions=tuple(resolved_regions),
        region_control=MappingProxyType(region_control),
        cell_control=MappingProxyType(cell_control),
        town_cells=MappingProxyType(town_cells),
        victory=victory,
        war_number=war_number,
        conquest_start=conquest_start,
    )
