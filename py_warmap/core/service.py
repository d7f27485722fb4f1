"""
Territory service: the wiring between storage, feed, geometry and rendering.
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import NamedTuple, Optional

import structlog

from ..config import settings
from ..db.connection import Database, db
from ..db.ledger import TownLedger, now_ms
from ..errors import StaticDataError
from ..feed.client import WarApiClient
from ..feed.static_data import HEX_REGIONS, StaticGeometry, load_static_geometry
from ..render.svg import render_svg
from .models import WarPhase
from .snapshot import ControlSnapshot, build_snapshot
from .updater import DataUpdater

logger = structlog.get_logger()


class SavedRender(NamedTuple):
    filename: str
    path: Path
    latest_path: Path


def latest_filename(layout: str) -> str:
    return "latest.svg" if layout == "standard" else f"latest-{layout}.svg"


class TerritoryService:
    """
    Owns the ledger, the static geometry and the update loop.

    Snapshots are built from ledger rows and the war state cached by the
    updater, so building one never touches the network.
    """

    def __init__(
        self,
        database: Optional[Database] = None,
        geometry: Optional[StaticGeometry] = None,
        client: Optional[WarApiClient] = None,
        updater: Optional[DataUpdater] = None,
    ):
        self.database = database or db
        self.ledger = TownLedger(self.database)
        self.geometry = geometry
        self.client = client
        self.updater = updater

    def initialize(self) -> None:
        if not self.database.is_initialized:
            self.database.initialize()

        if self.geometry is None:
            try:
                self.geometry = load_static_geometry(settings.static_data_path)
            except StaticDataError as e:
                logger.error("Static geometry unavailable, rendering without regions", error=str(e))
                self.geometry = StaticGeometry(regions=(), cells=())

        if self.client is None:
            self.client = WarApiClient()

        if self.updater is None:
            region_ids = self.geometry.region_ids or HEX_REGIONS
            self.updater = DataUpdater(self.ledger, self.client, region_ids)

        logger.info(
            "Territory service initialized",
            regions=len(self.geometry.regions),
            cells=len(self.geometry.cells),
        )

    def shutdown(self) -> None:
        if self.updater is not None:
            self.updater.stop()
        if self.client is not None:
            self.client.close()
        self.database.dispose()

    def snapshot(self, now: Optional[int] = None) -> ControlSnapshot:
        now = now_ms() if now is None else now
        geometry = self.geometry or StaticGeometry(regions=(), cells=())
        war = self.updater.war_state if self.updater else None

        rows = self.ledger.get_all()

        if war is None:
            return build_snapshot(
                rows,
                geometry.regions,
                geometry.cells,
                now,
                required_victory_towns=settings.default_required_victory_towns,
            )

        return build_snapshot(
            rows,
            geometry.regions,
            geometry.cells,
            now,
            active_region_ids=war.active_region_ids,
            required_victory_towns=war.required_victory_towns or settings.default_required_victory_towns,
            phase=war.phase(now) if war.ongoing else WarPhase.NORMAL,
            war_number=war.war_number,
            conquest_start=war.conquest_start_time,
        )

    def render(self, layout: str = "standard", now: Optional[int] = None) -> str:
        return render_svg(self.snapshot(now), layout=layout, window_ms=settings.recent_window_ms)

    def save_render(self, layout: str = "standard", now: Optional[int] = None) -> SavedRender:
        """Render to a timestamped file and refresh the layout's ``latest`` copy."""
        content = self.render(layout, now)

        output_dir = Path(settings.output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)

        stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%f")
        filename = f"map-{layout}-{stamp}.svg"
        path = output_dir / filename
        latest_path = output_dir / latest_filename(layout)

        path.write_text(content, encoding="utf-8")
        latest_path.write_text(content, encoding="utf-8")

        logger.info("Map saved", layout=layout, path=str(path))
        return SavedRender(filename=filename, path=path, latest_path=latest_path)

    def latest_render_path(self, layout: str = "standard") -> Optional[Path]:
        path = Path(settings.output_dir) / latest_filename(layout)
        return path if path.exists() else None
