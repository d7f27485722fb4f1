"""Smoke tests for SVG map rendering."""

import pytest

from py_warmap.core.models import Cell, Faction, Region, WarPhase
from py_warmap.core.snapshot import build_snapshot
from py_warmap.core.victory import VICTORY_FLAG
from py_warmap.db.connection import Database
from py_warmap.db.ledger import TownLedger
from py_warmap.render.svg import (
    LAYOUTS, SvgRenderer, captures_by_faction, format_war_duration, get_layout, render_svg,
)

MINUTE_MS = 60 * 1000
HOUR_MS = 60 * MINUTE_MS
DAY_MS = 24 * HOUR_MS

T0 = 1_700_000_000_000

BOUNDARY = ((0.0, 0.0), (2046.0, 0.0), (2046.0, -1777.0), (0.0, -1777.0))
REGIONS = (Region(id="DeadLandsHex", boundary=BOUNDARY),)
CELLS = (
    Cell(id="west", region_id="DeadLandsHex", label="Iron Junction",
         boundary=((0.0, 0.0), (1023.0, 0.0), (1023.0, -1777.0), (0.0, -1777.0))),
    Cell(id="east", region_id="DeadLandsHex", label="Jade Cove",
         boundary=((1023.0, 0.0), (2046.0, 0.0), (2046.0, -1777.0), (1023.0, -1777.0))),
)


class TestSvgRenderer:
    """Test rendered output."""

    def setup_method(self):
        database = Database("sqlite:///:memory:")
        database.initialize()
        ledger = TownLedger(database)
        ledger.record_observation(56, 0.25, 0.5, "DeadLandsHex", Faction.COLONIALS, now=T0, flags=VICTORY_FLAG)
        ledger.record_observation(57, 0.75, 0.5, "DeadLandsHex", Faction.WARDENS, now=T0 - 2 * DAY_MS, flags=VICTORY_FLAG)

        self.snapshot = build_snapshot(
            ledger.get_all(),
            REGIONS,
            CELLS,
            T0 + 3 * HOUR_MS + 12 * MINUTE_MS,
            required_victory_towns=32,
            phase=WarPhase.NORMAL,
            war_number=120,
            conquest_start=T0 - 5 * DAY_MS,
        )

    def test_document(self):
        svg = render_svg(self.snapshot)

        assert svg.startswith("<?xml")
        assert 'width="1200"' in svg
        assert 'height="900"' in svg
        assert svg.rstrip().endswith("</svg>")

    def test_region_class(self):
        svg = render_svg(self.snapshot)
        assert 'class="contested-region"' in svg

    def test_cell_fill_encodes_recency(self):
        svg = render_svg(self.snapshot)
        # Colonial capture 3h12m old, warden capture two days old
        assert 'fill="#A0A0A0F5"' in svg
        assert 'fill="#404040BB"' in svg

    def test_header(self):
        svg = render_svg(self.snapshot)
        assert "1 / 32" in svg
        assert "War #120 - Day 5 3h" in svg

    def test_recent_captures(self):
        svg = render_svg(self.snapshot)
        assert "Dead Lands - Iron Junction - 3h 12m ago" in svg
        # Two days old, outside the recent window
        assert "Jade Cove -" not in svg

    def test_epaper_layout(self):
        svg = render_svg(self.snapshot, layout="epaper")
        assert 'width="800"' in svg
        assert 'height="480"' in svg
        assert "Dead Lands - Iron Junction - 3h 12m<" in svg

    def test_map_fits_canvas(self):
        for name, layout in LAYOUTS.items():
            renderer = SvgRenderer(name)
            x0, y0 = renderer.transform.apply((0.0, 0.0))
            x1, y1 = renderer.transform.apply((14336.0, -12432.0))
            assert layout.map_box.min_x <= x0 < x1 <= layout.map_box.max_x
            assert layout.map_box.min_y <= y0 < y1 <= layout.map_box.max_y + 1e-6

    def test_unknown_layout(self):
        with pytest.raises(ValueError):
            get_layout("poster")


class TestHelpers:

    def test_war_duration(self):
        assert format_war_duration(None, T0) == "Day 0"
        assert format_war_duration(T0, T0 + 2 * DAY_MS + 5 * HOUR_MS + 59 * MINUTE_MS) == "Day 2 5h"

    def test_captures_limited_per_faction(self):
        database = Database("sqlite:///:memory:")
        database.initialize()
        ledger = TownLedger(database)
        for i in range(10):
            ledger.record_observation(56, i / 10, 0.5, "DeadLandsHex", Faction.WARDENS, now=T0 + i)
        ledger.record_observation(57, 0.5, 0.9, "DeadLandsHex", Faction.NONE, now=T0)

        snapshot = build_snapshot(ledger.get_all(), REGIONS, CELLS, T0 + HOUR_MS)
        grouped = captures_by_faction(snapshot, 6)

        assert len(grouped[Faction.WARDENS]) == 6
        assert grouped[Faction.COLONIALS] == []
        assert grouped[Faction.WARDENS][0].last_change_at == T0 + 9
