"""
Territory control engine.
"""

from .models import Cell, Faction, Region, RegionControl, Settlement, WarPhase
from .geometry import (
    WORLD_BOUNDS, Bounds, CanvasTransform, clip_polygon, point_in_polygon,
    settlement_to_world, world_to_canvas,
)
from .control import CellControl, classify_cells, classify_region
from .recency import encode_alpha, color_with_alpha
from .victory import VictoryAccountant, VictoryTally, is_victory_eligible
from .snapshot import ControlSnapshot, RecentCapture, TownState, build_snapshot

__all__ = ['Cell', 'Faction', 'Region', 'RegionControl', 'Settlement', 'WarPhase',
           'WORLD_BOUNDS', 'Bounds', 'CanvasTransform', 'clip_polygon', 'point_in_polygon',
           'settlement_to_world', 'world_to_canvas',
           'CellControl', 'classify_cells', 'classify_region',
           'encode_alpha', 'color_with_alpha',
           'VictoryAccountant', 'VictoryTally', 'is_victory_eligible',
           'ControlSnapshot', 'RecentCapture', 'TownState', 'build_snapshot']
