"""
Periodic ingestion of the live feed into the town ledger.

One update cycle refreshes the war metadata, then works through one task
per region: fetch the region's dynamic map and record every capturable
town. A region whose fetch fails keeps its existing ledger rows and the
cycle moves on; a town whose write fails keeps its prior state and the rest
of the region is still recorded.
"""

import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Sequence

import structlog

from ..config import settings
from ..db.ledger import BatchResult, TownLedger, TownObservation, now_ms
from ..errors import FeedError
from ..feed.client import WarApiClient
from ..feed.models import WarState

logger = structlog.get_logger()


class TaskStatus(str, Enum):
    DONE = "done"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class RegionTaskResult:
    region_id: str
    status: TaskStatus
    batch: Optional[BatchResult] = None
    error: Optional[str] = None


@dataclass
class UpdateReport:
    """Summary of one update cycle."""
    started_at: int
    tasks: List[RegionTaskResult] = field(default_factory=list)
    war_refreshed: bool = False

    def _with(self, status: TaskStatus) -> List[str]:
        return [t.region_id for t in self.tasks if t.status is status]

    @property
    def regions_processed(self) -> List[str]:
        return self._with(TaskStatus.DONE)

    @property
    def regions_failed(self) -> List[str]:
        return self._with(TaskStatus.FAILED)

    @property
    def regions_skipped(self) -> List[str]:
        return self._with(TaskStatus.SKIPPED)

    @property
    def observations(self) -> int:
        return sum(t.batch.written for t in self.tasks if t.batch)

    @property
    def transitions(self) -> int:
        return sum(t.batch.transitions for t in self.tasks if t.batch)

    @property
    def write_failures(self) -> int:
        return sum(len(t.batch.failed) for t in self.tasks if t.batch)


class DataUpdater:
    """Runs update cycles, either on demand or on a background thread."""

    def __init__(
        self,
        ledger: TownLedger,
        client: WarApiClient,
        region_ids: Sequence[str],
        interval_seconds: Optional[float] = None,
        request_delay_seconds: Optional[float] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.ledger = ledger
        self.client = client
        self.region_ids = list(region_ids)
        self.interval_seconds = (
            settings.update_interval_seconds if interval_seconds is None else interval_seconds
        )
        self.request_delay_seconds = (
            settings.request_delay_seconds if request_delay_seconds is None else request_delay_seconds
        )
        self._sleep = sleep

        self.war_state: Optional[WarState] = None
        self.last_report: Optional[UpdateReport] = None

        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._cycle_lock = threading.Lock()

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def refresh_war_state(self) -> bool:
        """Fetch war metadata; on failure the previous state stays cached."""
        try:
            self.war_state = self.client.war_state()
        except FeedError as e:
            logger.warning("Failed to refresh war state", error=str(e))
            return False

        logger.info(
            "War state refreshed",
            war_number=self.war_state.war_number,
            active_regions=len(self.war_state.active_region_ids or ()),
        )
        return True

    def _run_task(self, region_id: str, now: Optional[int]) -> RegionTaskResult:
        if self.war_state is not None and not self.war_state.is_active(region_id):
            logger.debug("Skipping inactive region", region=region_id)
            return RegionTaskResult(region_id=region_id, status=TaskStatus.SKIPPED)

        try:
            dynamic = self.client.dynamic_map(region_id)
        except FeedError as e:
            logger.warning("Failed to fetch region", region=region_id, error=str(e))
            return RegionTaskResult(region_id=region_id, status=TaskStatus.FAILED, error=str(e))

        observations = [
            TownObservation(
                icon_code=item.icon_type,
                x=item.x,
                y=item.y,
                region_id=region_id,
                faction=item.faction,
                label=item.label,
                flags=item.flags,
            )
            for item in dynamic.conquerable_items()
        ]
        batch = self.ledger.record_batch(observations, now=now_ms() if now is None else now)
        logger.debug(
            "Region processed",
            region=region_id,
            towns=len(observations),
            transitions=batch.transitions,
            failed=len(batch.failed),
        )
        return RegionTaskResult(region_id=region_id, status=TaskStatus.DONE, batch=batch)

    def run_cycle(self, now: Optional[int] = None) -> UpdateReport:
        """
        Run one update cycle.

        Args:
            now: Timestamp recorded for every observation; defaults to the
                wall clock at the time each region is processed

        Returns:
            Per-region outcome of the cycle
        """
        with self._cycle_lock:
            report = UpdateReport(started_at=now_ms() if now is None else now)
            logger.info("Updating town control data", regions=len(self.region_ids))

            report.war_refreshed = self.refresh_war_state()

            for index, region_id in enumerate(self.region_ids):
                result = self._run_task(region_id, now)
                report.tasks.append(result)

                if result.status is not TaskStatus.SKIPPED and index < len(self.region_ids) - 1:
                    self._sleep(self.request_delay_seconds)

            logger.info(
                "Data update complete",
                processed=len(report.regions_processed),
                failed=len(report.regions_failed),
                skipped=len(report.regions_skipped),
                transitions=report.transitions,
                write_failures=report.write_failures,
            )
            self.last_report = report
            return report

    def _loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.run_cycle()
            except Exception as e:
                logger.error("Update cycle crashed", error=str(e))
            if self._stop_event.wait(self.interval_seconds):
                break

    def start(self) -> None:
        """Run cycles on a background thread until :meth:`stop`."""
        if self.is_running:
            logger.info("Data updater is already running")
            return

        self._stop_event.clear()
        self._thread = threading.Thread(target=self._loop, name="data-updater", daemon=True)
        self._thread.start()
        logger.info("Data updater started", interval_seconds=self.interval_seconds)

    def stop(self, timeout: Optional[float] = None) -> None:
        if self._thread is None:
            return

        self._stop_event.set()
        self._thread.join(timeout)
        self._thread = None
        logger.info("Data updater stopped")

    def cleanup(self, retention_ms: Optional[int] = None, now: Optional[int] = None) -> int:
        """Purge ledger rows not observed within the retention window."""
        return self.ledger.purge_older_than(
            settings.retention_ms if retention_ms is None else retention_ms, now=now
        )
