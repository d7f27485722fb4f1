"""
Unit tests for region and cell control classification.

Tests cover:
- Threshold vote over victory towns
- Inactive regions
- Cell control by town containment
- Degenerate geometry handling
"""

from py_warmap.core.control import CONTROL_THRESHOLD, classify_cells, classify_counts, classify_region
from py_warmap.core.models import Cell, Faction, Region, RegionControl, Settlement
from py_warmap.core.victory import VICTORY_FLAG

REGION = Region(
    id="DeadLandsHex",
    boundary=((0.0, 0.0), (2046.0, 0.0), (2046.0, -1777.0), (0.0, -1777.0)),
)
WEST = Cell(id="west", region_id="DeadLandsHex", label="Iron Junction",
            boundary=((0.0, 0.0), (1023.0, 0.0), (1023.0, -1777.0), (0.0, -1777.0)))
EAST = Cell(id="east", region_id="DeadLandsHex", label="Jade Cove",
            boundary=((1023.0, 0.0), (2046.0, 0.0), (2046.0, -1777.0), (1023.0, -1777.0)))


def town(town_id, faction, x=0.5, y=0.5, icon_code=56, flags=VICTORY_FLAG):
    return Settlement(
        id=town_id,
        icon_code=icon_code,
        x=x,
        y=y,
        region_id="DeadLandsHex",
        current_faction=faction,
        previous_faction=Faction.NONE,
        last_change_at=0,
        flags=flags,
    )


def towns(colonial, warden, neutral=0):
    result = []
    for i in range(colonial):
        result.append(town(f"c{i}", Faction.COLONIALS))
    for i in range(warden):
        result.append(town(f"w{i}", Faction.WARDENS))
    for i in range(neutral):
        result.append(town(f"n{i}", Faction.NONE))
    return result


class TestClassifyCounts:
    """Test the raw threshold vote."""

    def test_threshold(self):
        assert CONTROL_THRESHOLD == 0.6

    def test_majority_wins(self):
        assert classify_counts(4, 1) is RegionControl.COLONIALS
        assert classify_counts(1, 4) is RegionControl.WARDENS

    def test_threshold_is_inclusive(self):
        """Exactly 60% is enough."""
        assert classify_counts(3, 2) is RegionControl.COLONIALS
        assert classify_counts(2, 3) is RegionControl.WARDENS

    def test_split_is_contested(self):
        assert classify_counts(3, 3) is RegionControl.CONTESTED
        assert classify_counts(11, 9) is RegionControl.CONTESTED

    def test_single_faction(self):
        assert classify_counts(2, 0) is RegionControl.COLONIALS
        assert classify_counts(0, 1) is RegionControl.WARDENS

    def test_empty_is_neutral(self):
        assert classify_counts(0, 0) is RegionControl.NEUTRAL


class TestClassifyRegion:
    """Test region classification from ledger rows."""

    def test_vote(self):
        assert classify_region(towns(4, 1)) is RegionControl.COLONIALS
        assert classify_region(towns(3, 3)) is RegionControl.CONTESTED
        assert classify_region([]) is RegionControl.NEUTRAL

    def test_unclaimed_towns_do_not_vote(self):
        """Neutral towns are left out of the denominator."""
        assert classify_region(towns(3, 0, neutral=10)) is RegionControl.COLONIALS
        assert classify_region(towns(0, 0, neutral=3)) is RegionControl.NEUTRAL

    def test_only_victory_towns_vote(self):
        rows = [town("c0", Faction.COLONIALS)] + [
            town(f"w{i}", Faction.WARDENS, flags=0) for i in range(4)
        ] + [
            town("keep", Faction.WARDENS, icon_code=27)
        ]
        assert classify_region(rows) is RegionControl.COLONIALS

    def test_inactive(self):
        assert classify_region(towns(4, 1), active=False) is RegionControl.INACTIVE


class TestClassifyCells:
    """Test cell classification by containment."""

    def test_cell_mirrors_contained_town(self):
        rows = [
            town("west-town", Faction.WARDENS, x=0.25),
            town("east-town", Faction.COLONIALS, x=0.75),
        ]
        result = classify_cells(REGION, [WEST, EAST], rows)

        assert result["west"].control is RegionControl.WARDENS
        assert result["west"].settlement_id == "west-town"
        assert result["east"].control is RegionControl.COLONIALS
        assert result["east"].label == "Jade Cove"

    def test_no_threshold_for_cells(self):
        """A cell follows its town even if the town is not a victory town."""
        rows = [town("keep", Faction.WARDENS, x=0.25, icon_code=27, flags=0)]
        result = classify_cells(REGION, [WEST], rows)
        assert result["west"].control is RegionControl.WARDENS

    def test_empty_cell_is_neutral(self):
        rows = [town("west-town", Faction.WARDENS, x=0.25)]
        result = classify_cells(REGION, [WEST, EAST], rows)

        assert result["east"].control is RegionControl.NEUTRAL
        assert result["east"].settlement_id is None

    def test_unclaimed_town_is_neutral(self):
        rows = [town("west-town", Faction.NONE, x=0.25)]
        result = classify_cells(REGION, [WEST], rows)
        assert result["west"].control is RegionControl.NEUTRAL
        assert result["west"].settlement_id == "west-town"

    def test_multiple_towns_uses_first(self):
        rows = [
            town("first", Faction.COLONIALS, x=0.1),
            town("second", Faction.WARDENS, x=0.2),
        ]
        result = classify_cells(REGION, [WEST], rows)
        assert result["west"].settlement_id == "first"
        assert result["west"].control is RegionControl.COLONIALS

    def test_cell_is_clipped_to_region(self):
        oversized = Cell(id="big", region_id="DeadLandsHex", label="Big",
                         boundary=((-500.0, 500.0), (1023.0, 500.0), (1023.0, -2500.0), (-500.0, -2500.0)))
        result = classify_cells(REGION, [oversized], [])

        xs = [x for x, _ in result["big"].boundary]
        ys = [y for _, y in result["big"].boundary]
        assert min(xs) == 0.0
        assert max(ys) == 0.0
        assert min(ys) == -1777.0

    def test_degenerate_cell_skipped(self):
        outside = Cell(id="outside", region_id="DeadLandsHex", label="Nowhere",
                       boundary=((5000.0, 0.0), (6000.0, 0.0), (6000.0, -100.0)))
        result = classify_cells(REGION, [WEST, outside], [])
        assert set(result) == {"west"}

    def test_degenerate_region_skipped(self):
        flat = Region(id="FlatHex", boundary=((0.0, 0.0), (1.0, 1.0)))
        assert classify_cells(flat, [WEST], towns(1, 0)) == {}
