"""
Vector map of a control snapshot.

Regions are drawn with a CSS class per control label, cells are filled
with the colour of their town's faction plus a recency alpha byte, and the
header and footer carry victory counts and the latest captures.
"""

import io
from dataclasses import dataclass
from typing import Dict, List, Optional

import structlog
import svgwrite

from ..core.geometry import WORLD_BOUNDS, Bounds, CanvasTransform
from ..core.models import Faction, RegionControl
from ..core.recency import color_with_alpha
from ..core.snapshot import RECENT_WINDOW_MS, ControlSnapshot, RecentCapture

logger = structlog.get_logger()

DAY_MS = 24 * 60 * 60 * 1000
HOUR_MS = 60 * 60 * 1000

FONT_FAMILY = "'Segoe UI', sans-serif"

REGION_CSS = """
.colonials-region { fill: rgba(0, 0, 0, 0.15); stroke: rgba(0, 0, 0, 0.9); stroke-width: 2; }
.wardens-region { fill: rgba(0, 0, 0, 0.08); stroke: rgba(0, 0, 0, 0.7); stroke-width: 2; }
.contested-region { fill: rgba(0, 0, 0, 0.12); stroke: rgba(0, 0, 0, 0.8); stroke-width: 2; }
.neutral-region { fill: rgba(0, 0, 0, 0.02); stroke: rgba(0, 0, 0, 0.4); stroke-width: 1; }
.inactive-region { fill: #FFFFFF; stroke: rgba(0, 0, 0, 0.2); stroke-width: 1; stroke-dasharray: 4 2; }
.cell { stroke: rgba(0, 0, 0, 0.8); }
"""


@dataclass(frozen=True)
class Layout:
    """Canvas geometry of one output format."""
    name: str
    width: int
    height: int
    map_box: Bounds
    captures_per_faction: int
    captures_top: int
    captures_inset: int
    line_height: int
    font_size: int
    cell_stroke_width: float
    elapsed_suffix: str


LAYOUTS: Dict[str, Layout] = {
    "standard": Layout(
        name="standard",
        width=1200,
        height=900,
        map_box=Bounds(min_x=50.0, min_y=60.0, max_x=1150.0, max_y=810.0),
        captures_per_faction=8,
        captures_top=700,
        captures_inset=20,
        line_height=20,
        font_size=12,
        cell_stroke_width=1.0,
        elapsed_suffix=" ago",
    ),
    # 7.5" e-paper panel
    "epaper": Layout(
        name="epaper",
        width=800,
        height=480,
        map_box=Bounds(min_x=20.0, min_y=15.0, max_x=775.0, max_y=445.0),
        captures_per_faction=6,
        captures_top=360,
        captures_inset=10,
        line_height=18,
        font_size=11,
        cell_stroke_width=0.5,
        elapsed_suffix="",
    ),
}


def get_layout(name: str) -> Layout:
    try:
        return LAYOUTS[name]
    except KeyError:
        raise ValueError(f"Unknown layout {name!r}, expected one of {sorted(LAYOUTS)}") from None


def format_war_duration(conquest_start: Optional[int], now: int) -> str:
    """War age as ``Day N Hh``, ``Day 0`` before the war has started."""
    if not conquest_start:
        return "Day 0"
    elapsed = max(0, now - conquest_start)
    return f"Day {elapsed // DAY_MS} {(elapsed % DAY_MS) // HOUR_MS}h"


def captures_by_faction(
    snapshot: ControlSnapshot, limit: int, window_ms: int = RECENT_WINDOW_MS
) -> Dict[Faction, List[RecentCapture]]:
    """Most recent captures of each faction, newest first."""
    grouped: Dict[Faction, List[RecentCapture]] = {Faction.COLONIALS: [], Faction.WARDENS: []}
    for capture in snapshot.recent_transitions(window_ms):
        entries = grouped.get(capture.faction)
        if entries is not None and len(entries) < limit:
            entries.append(capture)
    return grouped


class SvgRenderer:
    """Renders control snapshots in one layout."""

    def __init__(self, layout: str = "standard", window_ms: int = RECENT_WINDOW_MS):
        self.layout = get_layout(layout)
        self.window_ms = window_ms
        self.transform = CanvasTransform.fit(WORLD_BOUNDS, self.layout.map_box)

    def render(self, snapshot: ControlSnapshot) -> str:
        layout = self.layout
        # Fill colours carry an alpha byte, which svgwrite's validator rejects
        dwg = svgwrite.Drawing(
            size=(layout.width, layout.height),
            viewBox=f"0 0 {layout.width} {layout.height}",
            debug=False,
        )
        dwg.defs.add(dwg.style(REGION_CSS))
        dwg.add(dwg.rect((0, 0), (layout.width, layout.height), fill="white"))

        dwg.add(self._draw_map(dwg, snapshot))
        dwg.add(self._draw_header(dwg, snapshot))
        dwg.add(self._draw_captures(dwg, snapshot))

        buffer = io.StringIO()
        dwg.write(buffer)
        logger.debug("Map rendered", layout=layout.name, regions=len(snapshot.regions))
        return buffer.getvalue()

    def _draw_map(self, dwg, snapshot: ControlSnapshot):
        group = dwg.g(id="map")

        for region in snapshot.regions:
            control = snapshot.region_control.get(region.id, RegionControl.NEUTRAL)
            region_group = dwg.g(id=f"region-{region.id}")
            region_group.add(
                dwg.polygon(
                    points=self._points(region.boundary),
                    class_=f"{control.value.lower()}-region",
                )
            )

            for cell in snapshot.cells_of(region.id):
                town = snapshot.towns.get(cell.settlement_id) if cell.settlement_id else None
                fill = color_with_alpha(
                    Faction.NONE if town is None else town.faction,
                    None if town is None else town.last_change_at,
                    snapshot.taken_at,
                )
                region_group.add(
                    dwg.polygon(
                        points=self._points(cell.boundary),
                        fill=fill,
                        class_="cell",
                        stroke_width=self.layout.cell_stroke_width,
                    )
                )

            group.add(region_group)

        return group

    def _points(self, ring):
        return [(round(x, 2), round(y, 2)) for x, y in self.transform.apply_ring(ring)]

    def _text(self, dwg, content: str, insert, size: int, bold: bool = False, anchor: str = "start"):
        return dwg.text(
            content,
            insert=insert,
            font_family=FONT_FAMILY,
            font_size=f"{size}px",
            font_weight="bold" if bold else "normal",
            fill="#000000",
            text_anchor=anchor,
        )

    def _draw_header(self, dwg, snapshot: ControlSnapshot):
        width = self.layout.width
        victory = snapshot.victory
        required = victory.required_towns

        group = dwg.g(id="header")
        group.add(self._text(dwg, "Colonial", (20, 25), 16, bold=True))
        group.add(self._text(dwg, f"{victory.colonial_towns} / {required}", (20, 45), 18, bold=True))

        war = "?" if snapshot.war_number is None else snapshot.war_number
        duration = format_war_duration(snapshot.conquest_start, snapshot.taken_at)
        group.add(self._text(dwg, f"War #{war} - {duration}", (width / 2, 25), 14, bold=True, anchor="middle"))

        group.add(self._text(dwg, "Warden", (width - 20, 25), 16, bold=True, anchor="end"))
        group.add(
            self._text(dwg, f"{victory.warden_towns} / {required}", (width - 20, 45), 18, bold=True, anchor="end")
        )
        return group

    def _draw_captures(self, dwg, snapshot: ControlSnapshot):
        layout = self.layout
        grouped = captures_by_faction(snapshot, layout.captures_per_faction, self.window_ms)

        group = dwg.g(id="recent-captures")
        columns = (
            (Faction.COLONIALS, layout.captures_inset, "start"),
            (Faction.WARDENS, layout.width - layout.captures_inset, "end"),
        )
        for faction, x, anchor in columns:
            captures = grouped[faction]
            if not captures:
                continue

            group.add(self._text(dwg, faction.display_name, (x, layout.captures_top), 14, bold=True, anchor=anchor))
            for index, capture in enumerate(captures, start=1):
                line = f"{capture.region_name} - {capture.town_name} - {capture.elapsed_text}{layout.elapsed_suffix}"
                group.add(
                    self._text(
                        dwg,
                        line,
                        (x, layout.captures_top + index * layout.line_height),
                        layout.font_size,
                        anchor=anchor,
                    )
                )
        return group


def render_svg(snapshot: ControlSnapshot, layout: str = "standard", window_ms: int = RECENT_WINDOW_MS) -> str:
    """Render ``snapshot`` as an SVG document."""
    return SvgRenderer(layout, window_ms=window_ms).render(snapshot)
