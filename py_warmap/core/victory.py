"""
Victory town accounting.

A war is won by holding a required number of victory towns. Towns that
were scorched (neutralized) lower that requirement during the normal phase
of the war; once the resistance phase starts the requirement is fixed.
"""

from dataclasses import dataclass
from typing import Iterable, Tuple

from .models import Faction, Settlement, WarPhase

# Relic base T1 and the three town hall tiers
VICTORY_ICON_CODES = frozenset({45, 56, 57, 58})

VICTORY_FLAG = 0x20
SCORCHED_FLAG = 0x10


def is_victory_eligible(icon_code: int, flags: int) -> bool:
    """True for whitelisted icon codes carrying the victory flag."""
    return icon_code in VICTORY_ICON_CODES and bool(flags & VICTORY_FLAG)


def is_scorched(flags: int) -> bool:
    return bool(flags & SCORCHED_FLAG)


@dataclass(frozen=True)
class VictoryTally:
    """Victory accounting at one instant."""
    colonial_towns: int
    warden_towns: int
    scorched_towns: int
    required_towns: int
    phase: WarPhase

    def held_by(self, faction: Faction) -> int:
        if faction is Faction.COLONIALS:
            return self.colonial_towns
        if faction is Faction.WARDENS:
            return self.warden_towns
        return 0


class VictoryAccountant:
    """Counts victory towns over a fixed set of ledger rows."""

    def __init__(self, settlements: Iterable[Settlement]):
        self._eligible: Tuple[Settlement, ...] = tuple(
            s for s in settlements if is_victory_eligible(s.icon_code, s.flags)
        )

    def count_victory_holdings(self, faction: Faction) -> int:
        """Victory towns currently held by ``faction`` across all regions."""
        return sum(1 for s in self._eligible if s.current_faction is faction)

    def scorched_count(self) -> int:
        """Victory towns reported as scorched."""
        return sum(1 for s in self._eligible if is_scorched(s.flags))

    def required_to_win(self, base_requirement: int, phase: WarPhase) -> int:
        """
        Victory towns a faction must hold to win.

        Scorched towns reduce the requirement only outside the resistance
        phase; the result never drops below zero.
        """
        if phase is WarPhase.RESISTANCE:
            return base_requirement
        return max(0, base_requirement - self.scorched_count())

    def tally(self, base_requirement: int, phase: WarPhase) -> VictoryTally:
        return VictoryTally(
            colonial_towns=self.count_victory_holdings(Faction.COLONIALS),
            warden_towns=self.count_victory_holdings(Faction.WARDENS),
            scorched_towns=self.scorched_count(),
            required_towns=self.required_to_win(base_requirement, phase),
            phase=phase,
        )
