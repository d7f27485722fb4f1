"""
Upstream data sources: the live war API and the static map geometry.
"""

from .client import WarApiClient
from .icons import ICON_TYPES, IconType, icon_label, is_conquerable, team_to_faction
from .models import DynamicMap, MapItem, WarState
from .static_data import HEX_REGIONS, Landmark, StaticGeometry, generate_cells, load_static_geometry, parse_static_geometry

__all__ = [
    'WarApiClient',
    'ICON_TYPES', 'IconType', 'icon_label', 'is_conquerable', 'team_to_faction',
    'DynamicMap', 'MapItem', 'WarState',
    'HEX_REGIONS', 'Landmark', 'StaticGeometry', 'generate_cells', 'load_static_geometry', 'parse_static_geometry',
]
