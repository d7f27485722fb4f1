"""
Town control ledger.

The ledger is the only writer of town rows. Every observation of a town is
an upsert keyed by :meth:`TownLedger.derive_id`; a row's ``last_change_at``
moves only when its controlling faction changes, which makes repeated
observations of an unchanged town idempotent.
"""

from __future__ import annotations

import math
import time
from dataclasses import dataclass, field
from typing import Iterable, List, NamedTuple, Optional

import structlog
from sqlalchemy.exc import SQLAlchemyError

from ..core.models import Faction, Settlement
from .connection import Database
from .models import TownRecord

logger = structlog.get_logger()

# Feed coordinates are kept to 3 decimals in town ids
COORDINATE_PRECISION = 1000


def now_ms() -> int:
    return int(time.time() * 1000)


def _quantize(value: float) -> int:
    # Half-up rounding; round() would send x.5 to the even neighbour
    return math.floor(value * COORDINATE_PRECISION + 0.5)


class TownObservation(NamedTuple):
    """One capturable town as reported by the feed."""
    icon_code: int
    x: float
    y: float
    region_id: str
    faction: Faction
    label: str = ""
    flags: int = 0


class ObservationResult(NamedTuple):
    town_id: str
    changed: bool
    created: bool = False


@dataclass
class BatchResult:
    """Outcome of recording a batch of observations."""
    written: int = 0
    transitions: int = 0
    created: int = 0
    failed: List[str] = field(default_factory=list)


class TownLedger:
    """Durable per-town control state."""

    def __init__(self, database: Database):
        self.db = database

    @staticmethod
    def derive_id(icon_code: int, x: float, y: float) -> str:
        """
        Stable town id.

        Coordinates are rounded to three decimals first, so feed jitter
        below that precision maps to the same id.
        """
        return f"{int(icon_code)}_{_quantize(x)}_{_quantize(y)}"

    def record_observation(
        self,
        icon_code: int,
        x: float,
        y: float,
        region_id: str,
        observed_faction: Faction,
        label: str = "",
        now: Optional[int] = None,
        flags: int = 0,
    ) -> ObservationResult:
        """
        Upsert the row of an observed town.

        A new town starts with ``previous_faction = NONE`` and
        ``last_change_at = now``. An unchanged faction only refreshes
        bookkeeping fields. A changed faction shifts the current faction to
        ``previous_faction`` and stamps ``last_change_at``.

        Raises:
            SQLAlchemyError: If the write fails; the row keeps its prior state
        """
        now = now_ms() if now is None else now
        town_id = self.derive_id(icon_code, x, y)

        with self.db.get_session() as session:
            record = session.get(TownRecord, town_id)

            if record is None:
                session.add(
                    TownRecord(
                        id=town_id,
                        icon_code=int(icon_code),
                        x=float(x),
                        y=float(y),
                        region=region_id,
                        current_faction=observed_faction.value,
                        previous_faction=Faction.NONE.value,
                        last_change_at=now,
                        label=label,
                        flags=int(flags),
                        created_at=now,
                        updated_at=now,
                    )
                )
                logger.debug("New town tracked", town_id=town_id, region=region_id, team=observed_faction.value)
                return ObservationResult(town_id=town_id, changed=False, created=True)

            record.region = region_id
            record.label = label
            record.flags = int(flags)
            record.updated_at = now

            if record.current_faction == observed_faction.value:
                logger.debug("Town unchanged", town_id=town_id, team=record.current_faction)
                return ObservationResult(town_id=town_id, changed=False)

            previous = record.current_faction
            record.previous_faction = previous
            record.current_faction = observed_faction.value
            record.last_change_at = max(now, record.last_change_at)

        logger.info(
            "Town captured",
            town=label or town_id,
            town_id=town_id,
            region=region_id,
            previous_team=previous,
            team=observed_faction.value,
        )
        return ObservationResult(town_id=town_id, changed=True)

    def record_batch(self, observations: Iterable[TownObservation], now: Optional[int] = None) -> BatchResult:
        """
        Record observations one by one.

        A failed write, or a town whose position cannot be turned into an
        id, is logged and skipped; it never stops the rest of the batch.
        """
        now = now_ms() if now is None else now
        result = BatchResult()

        for obs in observations:
            try:
                town_id = self.derive_id(obs.icon_code, obs.x, obs.y)
            except (ValueError, OverflowError) as e:
                # NaN and infinite coordinates have no id
                logger.error(
                    "Skipping town with invalid position",
                    icon=obs.icon_code, x=obs.x, y=obs.y, region=obs.region_id, error=str(e),
                )
                result.failed.append(f"{obs.icon_code}_{obs.x}_{obs.y}")
                continue

            try:
                outcome = self.record_observation(
                    obs.icon_code,
                    obs.x,
                    obs.y,
                    obs.region_id,
                    obs.faction,
                    label=obs.label,
                    now=now,
                    flags=obs.flags,
                )
            except SQLAlchemyError as e:
                logger.error("Failed to record town", town_id=town_id, region=obs.region_id, error=str(e))
                result.failed.append(town_id)
                continue

            result.written += 1
            if outcome.changed:
                result.transitions += 1
            if outcome.created:
                result.created += 1

        return result

    def get(self, town_id: str) -> Optional[Settlement]:
        with self.db.get_session() as session:
            record = session.get(TownRecord, town_id)
            return _to_settlement(record) if record else None

    def get_all(self) -> List[Settlement]:
        """All towns ordered by region, then position."""
        with self.db.get_session() as session:
            records = (
                session.query(TownRecord)
                .order_by(TownRecord.region, TownRecord.x, TownRecord.y)
                .all()
            )
            return [_to_settlement(r) for r in records]

    def get_in_region(self, region_id: str) -> List[Settlement]:
        with self.db.get_session() as session:
            records = (
                session.query(TownRecord)
                .filter(TownRecord.region == region_id)
                .order_by(TownRecord.x, TownRecord.y)
                .all()
            )
            return [_to_settlement(r) for r in records]

    def count(self) -> int:
        with self.db.get_session() as session:
            return session.query(TownRecord).count()

    def purge_older_than(self, retention_ms: int, now: Optional[int] = None) -> int:
        """
        Delete rows not observed within the retention window.

        Age is measured from ``updated_at``, not ``last_change_at``: a town
        held by the same faction for weeks is still observed every cycle.

        Returns:
            Number of deleted rows
        """
        now = now_ms() if now is None else now
        cutoff = now - retention_ms

        with self.db.get_session() as session:
            deleted = (
                session.query(TownRecord)
                .filter(TownRecord.updated_at < cutoff)
                .delete(synchronize_session=False)
            )

        logger.info("Cleaned up old town records", deleted=deleted, cutoff=cutoff)
        return deleted


def _to_settlement(record: TownRecord) -> Settlement:
    return Settlement(
        id=record.id,
        icon_code=record.icon_code,
        x=record.x,
        y=record.y,
        region_id=record.region,
        current_faction=Faction.parse(record.current_faction),
        previous_faction=Faction.parse(record.previous_faction) if record.previous_faction else None,
        last_change_at=record.last_change_at,
        label=record.label or "",
        flags=record.flags or 0,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )
