"""Tests for victory town accounting."""

from py_warmap.core.models import Faction, Settlement, WarPhase
from py_warmap.core.victory import (
    SCORCHED_FLAG, VICTORY_FLAG, VICTORY_ICON_CODES, VictoryAccountant, is_victory_eligible,
)


def town(town_id, faction, icon_code=56, flags=VICTORY_FLAG):
    return Settlement(
        id=town_id,
        icon_code=icon_code,
        x=0.5,
        y=0.5,
        region_id="DeadLandsHex",
        current_faction=faction,
        previous_faction=None,
        last_change_at=0,
        flags=flags,
    )


class TestEligibility:
    """Test victory town detection."""

    def test_whitelisted_codes_with_flag(self):
        for code in VICTORY_ICON_CODES:
            assert is_victory_eligible(code, VICTORY_FLAG)

    def test_flag_required(self):
        for code in VICTORY_ICON_CODES:
            assert not is_victory_eligible(code, 0)
            assert not is_victory_eligible(code, SCORCHED_FLAG)

    def test_other_bits_ignored(self):
        assert is_victory_eligible(45, VICTORY_FLAG | 0x01)
        assert is_victory_eligible(58, VICTORY_FLAG | SCORCHED_FLAG)

    def test_other_codes_rejected(self):
        for code in (27, 46, 47, 11, 0):
            assert not is_victory_eligible(code, VICTORY_FLAG)


class TestVictoryAccountant:
    """Test holdings and requirements."""

    def setup_method(self):
        self.accountant = VictoryAccountant([
            town("c1", Faction.COLONIALS),
            town("c2", Faction.COLONIALS, icon_code=57),
            town("w1", Faction.WARDENS),
            town("w2", Faction.WARDENS, flags=0),
            town("n1", Faction.NONE, flags=VICTORY_FLAG | SCORCHED_FLAG),
            town("n2", Faction.NONE, flags=VICTORY_FLAG | SCORCHED_FLAG),
            town("keep", Faction.WARDENS, icon_code=27),
        ])

    def test_holdings(self):
        assert self.accountant.count_victory_holdings(Faction.COLONIALS) == 2
        assert self.accountant.count_victory_holdings(Faction.WARDENS) == 1

    def test_scorched(self):
        assert self.accountant.scorched_count() == 2

    def test_scorched_lower_requirement(self):
        assert self.accountant.required_to_win(32, WarPhase.NORMAL) == 30

    def test_resistance_keeps_requirement(self):
        assert self.accountant.required_to_win(32, WarPhase.RESISTANCE) == 32

    def test_requirement_never_negative(self):
        assert self.accountant.required_to_win(1, WarPhase.NORMAL) == 0

    def test_tally(self):
        tally = self.accountant.tally(32, WarPhase.NORMAL)
        assert tally.colonial_towns == 2
        assert tally.warden_towns == 1
        assert tally.scorched_towns == 2
        assert tally.required_towns == 30
        assert tally.held_by(Faction.WARDENS) == 1
        assert tally.held_by(Faction.NONE) == 0
