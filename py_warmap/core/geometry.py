"""
Coordinate transforms and polygon helpers.

World space is the map tile grid of the upstream map viewer: X grows to the
east from 0 and Y grows *upward*, so every point of the map has a negative Y
(the full extent is ``[0, -12432, 14336, 0]``). Canvas space is SVG space
with Y growing downward, hence the inverted Y in :func:`world_to_canvas`.

Rings are tuples of ``(x, y)`` tuples. Closed input rings (first vertex
repeated at the end, as in GeoJSON) are accepted everywhere; rings produced
here are open.
"""

from dataclasses import dataclass
from typing import Iterable, NamedTuple, Optional, Sequence

import numpy as np
import structlog
from shapely.errors import GEOSException
from shapely.geometry import Polygon

from ..errors import GeometryError
from .models import Point, Ring

logger = structlog.get_logger()


class Bounds(NamedTuple):
    """Axis-aligned bounding box."""
    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y


# Tile grid extent of the whole world map
WORLD_BOUNDS = Bounds(min_x=0.0, min_y=-12432.0, max_x=14336.0, max_y=0.0)

# Per-region scale of the feed's normalized map item coordinates. This is a
# property of the upstream coordinate system; it is not derivable from the
# region polygons.
REGION_EXTENT = (-2046.0, 1777.0)


def open_ring(points: Iterable[Sequence[float]]) -> Ring:
    """Convert a coordinate sequence to an open ring of float tuples."""
    ring = [(float(p[0]), float(p[1])) for p in points]
    if len(ring) > 1 and ring[0] == ring[-1]:
        ring = ring[:-1]
    return tuple(ring)


def ring_bounds(ring: Sequence[Point]) -> Bounds:
    """Bounding box of a ring."""
    if len(ring) == 0:
        raise GeometryError("Cannot compute bounds of an empty ring")
    coords = np.asarray(ring, dtype=float)
    return Bounds(
        min_x=float(coords[:, 0].min()),
        min_y=float(coords[:, 1].min()),
        max_x=float(coords[:, 0].max()),
        max_y=float(coords[:, 1].max()),
    )


def world_to_canvas(
    point: Point, world_bounds: Bounds, scale: float, offset: Point
) -> Point:
    """
    Affine transform from world space to canvas space.

    Args:
        point: World-space (x, y)
        world_bounds: World extent being drawn
        scale: Uniform world-to-canvas scale
        offset: Canvas position of the world's top-left corner

    Returns:
        Canvas-space (x, y), Y inverted
    """
    x, y = point
    return (
        offset[0] + (x - world_bounds.min_x) * scale,
        offset[1] + (world_bounds.max_y - y) * scale,
    )


@dataclass(frozen=True)
class CanvasTransform:
    """World-to-canvas mapping that fits a world extent inside a canvas box."""

    world_bounds: Bounds
    scale: float
    offset: Point

    @classmethod
    def fit(
        cls,
        world_bounds: Bounds,
        canvas_bounds: Bounds,
        center: bool = True,
    ) -> "CanvasTransform":
        """
        Largest uniform scale that fits ``world_bounds`` into ``canvas_bounds``.

        With ``center`` the map is centred horizontally in the free space;
        it is always anchored to the top of the canvas box.
        """
        if world_bounds.width <= 0 or world_bounds.height <= 0:
            raise GeometryError("World bounds must have a positive area")

        scale = min(
            canvas_bounds.width / world_bounds.width,
            canvas_bounds.height / world_bounds.height,
        )
        offset_x = canvas_bounds.min_x
        if center:
            offset_x += (canvas_bounds.width - world_bounds.width * scale) / 2
        return cls(world_bounds=world_bounds, scale=scale, offset=(offset_x, canvas_bounds.min_y))

    def apply(self, point: Point) -> Point:
        return world_to_canvas(point, self.world_bounds, self.scale, self.offset)

    def apply_ring(self, ring: Sequence[Point]) -> Ring:
        return tuple(self.apply(p) for p in ring)


def settlement_to_world(
    x: float,
    y: float,
    region_boundary: Sequence[Point],
    extent: Sequence[float] = REGION_EXTENT,
) -> Point:
    """
    Map a feed position inside a region to world space.

    The feed reports map items relative to the region's top-left corner,
    normalized to the unit square.

    Raises:
        GeometryError: If the region boundary is degenerate
    """
    if len(open_ring(region_boundary)) < 3:
        raise GeometryError("Region boundary needs at least three vertices")

    bounds = ring_bounds(region_boundary)
    return (bounds.min_x - x * extent[0], bounds.max_y - y * extent[1])


def point_in_polygon(point: Point, ring: Sequence[Point]) -> bool:
    """
    Ray-casting containment test.

    A horizontal ray from the point toggles the result at every edge it
    crosses. Points on a left or bottom edge count as inside, points on a
    right or top edge as outside, so adjacent cells never both claim a
    shared edge. Self-intersecting rings are not supported.
    """
    x, y = point
    n = len(ring)
    if n < 3:
        return False

    inside = False
    j = n - 1
    for i in range(n):
        xi, yi = ring[i]
        xj, yj = ring[j]
        if (yi > y) != (yj > y):
            x_cross = (xj - xi) * (y - yi) / (yj - yi) + xi
            if x < x_cross:
                inside = not inside
        j = i
    return inside


def clip_polygon(cell: Sequence[Point], region: Sequence[Point]) -> Optional[Ring]:
    """
    Intersect a cell boundary with its region boundary.

    Returns:
        Open ring of the intersection, or None when it is empty or has
        fewer than three vertices. When the intersection falls apart into
        several pieces the largest one is kept.
    """
    cell_ring = open_ring(cell)
    region_ring = open_ring(region)
    if len(set(cell_ring)) < 3 or len(set(region_ring)) < 3:
        return None

    try:
        cell_poly = Polygon(cell_ring)
        region_poly = Polygon(region_ring)
        if not cell_poly.is_valid:
            cell_poly = cell_poly.buffer(0)
        if not region_poly.is_valid:
            region_poly = region_poly.buffer(0)
        clipped = cell_poly.intersection(region_poly)
    except (GEOSException, ValueError) as e:
        logger.warning("Polygon clipping failed", error=str(e))
        return None

    if clipped.is_empty:
        return None

    pieces = [g for g in getattr(clipped, "geoms", [clipped]) if isinstance(g, Polygon) and not g.is_empty]
    if not pieces:
        return None

    largest = max(pieces, key=lambda g: g.area)
    if largest.area <= 0:
        return None

    ring = open_ring(largest.exterior.coords)
    if len(ring) < 3:
        return None
    return ring
