"""
Static map geometry.

The static file is a GeoJSON-like feature list exported by the map viewer:

- ``properties.type == "Region"``: hex region outline, ``id`` is the region id
- ``properties.type == "voronoi"``: pre-computed cell of ``properties.region``,
  labelled by ``properties.notes``
- ``properties.type`` ``"Major"`` / ``"Minor"``: named map label (point)

Regions that ship without cells get a Voronoi partition of their Major
labels, clipped to the region outline.
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np
import structlog
from scipy.spatial import QhullError, Voronoi

from ..errors import StaticDataError
from ..core.geometry import clip_polygon, open_ring, ring_bounds
from ..core.models import Cell, Point, Region

logger = structlog.get_logger()

# Regions in stitching order, west to east and north to south
HEX_REGIONS = [
    'BasinSionnachHex', 'SpeakingWoodsHex', 'HowlCountyHex',
    'CallumsCapeHex', 'ReachingTrailHex', 'ClansheadValleyHex',
    'NevishLineHex', 'MooringCountyHex', 'ViperPitHex', 'MorgensCrossingHex',
    'OarbreakerHex', 'StonecradleHex', 'CallahansPassageHex', 'WeatheredExpanseHex', 'GodcroftsHex',
    'FarranacCoastHex', 'LinnMercyHex', 'MarbanHollow', 'StlicanShelfHex',
    'WestgateHex', 'LochMorHex', 'DrownedValeHex', 'EndlessShoreHex',
    'FishermansRowHex', 'KingsCageHex', 'DeadLandsHex', 'ClahstraHex', 'TempestIslandHex',
    'StemaLandingHex', 'SableportHex', 'UmbralWildwoodHex', 'AllodsBightHex', 'TheFingersHex',
    'OriginHex', 'HeartlandsHex', 'ShackledChasmHex', 'ReaversPassHex',
    'AshFieldsHex', 'GreatMarchHex', 'TerminusHex',
    'RedRiverHex', 'AcrithiaHex',
    'KalokaiHex',
]


@dataclass(frozen=True)
class Landmark:
    """Named map label."""
    region_id: str
    label: str
    position: Point
    major: bool = True


@dataclass(frozen=True)
class StaticGeometry:
    """Regions, cells and labels, loaded once per process."""
    regions: Tuple[Region, ...]
    cells: Tuple[Cell, ...]
    landmarks: Tuple[Landmark, ...] = ()

    @property
    def region_ids(self) -> List[str]:
        return [r.id for r in self.regions]

    def region(self, region_id: str) -> Optional[Region]:
        for region in self.regions:
            if region.id == region_id:
                return region
        return None

    def cells_of(self, region_id: str) -> List[Cell]:
        return [c for c in self.cells if c.region_id == region_id]


def _outer_ring(geometry: Mapping[str, Any]) -> Optional[Tuple[Point, ...]]:
    """Outer ring of a Polygon, or of the first part of a MultiPolygon."""
    coords = geometry.get("coordinates")
    if not coords:
        return None
    if geometry.get("type") == "MultiPolygon":
        coords = coords[0]
    if not coords or not coords[0]:
        return None
    return open_ring(coords[0])


def _region_order(region_id: str) -> int:
    try:
        return HEX_REGIONS.index(region_id)
    except ValueError:
        return len(HEX_REGIONS)


def parse_static_geometry(data: Mapping[str, Any], generate_missing_cells: bool = True) -> StaticGeometry:
    """
    Build static geometry from the parsed static file.

    Malformed features are skipped with a warning.
    """
    features = data.get("features")
    if not isinstance(features, list):
        raise StaticDataError("Static data has no feature list")

    regions: Dict[str, Region] = {}
    cells: List[Cell] = []
    landmarks: List[Landmark] = []

    for index, feature in enumerate(features):
        try:
            props = feature.get("properties") or {}
            geometry = feature.get("geometry") or {}
            kind = props.get("type")

            if kind == "Region":
                ring = _outer_ring(geometry)
                if ring is None or len(ring) < 3:
                    logger.warning("Skipping region without outline", region=feature.get("id"))
                    continue
                region_id = str(feature["id"])
                regions[region_id] = Region(id=region_id, boundary=ring, display_name=props.get("notes") or "")

            elif kind == "voronoi":
                ring = _outer_ring(geometry)
                if ring is None:
                    continue
                region_id = props["region"]
                cell_id = str(feature.get("id") or f"{region_id}:{index}")
                cells.append(Cell(id=cell_id, region_id=region_id, label=props.get("notes") or "", boundary=ring))

            elif kind in ("Major", "Minor"):
                x, y = geometry["coordinates"][:2]
                landmarks.append(
                    Landmark(
                        region_id=props.get("region", ""),
                        label=props.get("notes") or props.get("text") or "",
                        position=(float(x), float(y)),
                        major=kind == "Major",
                    )
                )
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Skipping malformed static feature", index=index, error=str(e))

    ordered = tuple(sorted(regions.values(), key=lambda r: _region_order(r.id)))

    if generate_missing_cells:
        have_cells = {c.region_id for c in cells}
        for region in ordered:
            if region.id in have_cells:
                continue
            majors = [lm for lm in landmarks if lm.region_id == region.id and lm.major]
            cells.extend(generate_cells(region, majors))

    logger.info("Static geometry loaded", regions=len(ordered), cells=len(cells), landmarks=len(landmarks))
    return StaticGeometry(regions=ordered, cells=tuple(cells), landmarks=tuple(landmarks))


def load_static_geometry(path, generate_missing_cells: bool = True) -> StaticGeometry:
    """
    Load static geometry from a file.

    Raises:
        StaticDataError: If the file cannot be read or parsed
    """
    path = Path(path)
    try:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        raise StaticDataError(f"Cannot load static data from {path}: {e}") from e

    return parse_static_geometry(data, generate_missing_cells=generate_missing_cells)


def _sort_ring(vertices: np.ndarray) -> np.ndarray:
    """Order the vertices of a convex polygon counter-clockwise."""
    center = vertices.mean(axis=0)
    angles = np.arctan2(vertices[:, 1] - center[1], vertices[:, 0] - center[0])
    return vertices[np.argsort(angles)]


def generate_cells(region: Region, landmarks: Sequence[Landmark]) -> List[Cell]:
    """
    Voronoi cells of a region's landmarks, clipped to the region.

    Four far-away sentinel points surround the region so that every
    landmark gets a bounded Voronoi cell before clipping.
    """
    unique: Dict[Point, Landmark] = {}
    for landmark in landmarks:
        unique.setdefault(landmark.position, landmark)
    if not unique:
        return []

    sites = list(unique.values())
    points = np.array([lm.position for lm in sites], dtype=float)

    bounds = ring_bounds(region.boundary)
    cx = (bounds.min_x + bounds.max_x) / 2
    cy = (bounds.min_y + bounds.max_y) / 2
    pad = max(bounds.width, bounds.height, 1.0) * 10
    sentinels = np.array([
        [cx - pad, cy - pad],
        [cx + pad, cy - pad],
        [cx + pad, cy + pad],
        [cx - pad, cy + pad],
    ])

    try:
        vor = Voronoi(np.vstack([points, sentinels]))
    except QhullError as e:
        logger.warning("Voronoi generation failed", region=region.id, error=str(e))
        return []

    cells = []
    for i, landmark in enumerate(sites):
        vertex_ids = vor.regions[vor.point_region[i]]
        if not vertex_ids or -1 in vertex_ids:
            logger.warning("Unbounded Voronoi cell", region=region.id, label=landmark.label)
            continue

        raw = _sort_ring(vor.vertices[vertex_ids])
        ring = clip_polygon([tuple(v) for v in raw], region.boundary)
        if ring is None:
            continue
        cells.append(Cell(id=f"{region.id}:{i}", region_id=region.id, label=landmark.label, boundary=ring))

    logger.debug("Generated cells", region=region.id, cells=len(cells))
    return cells
