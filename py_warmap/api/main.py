"""FastAPI main application."""

from typing import Dict, List, Optional

import structlog
from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, Response
from pydantic import BaseModel, Field

from .. import __version__
from ..config import settings
from ..core.service import TerritoryService
from ..core.snapshot import ControlSnapshot
from ..logging_config import configure_logging
from ..render.svg import get_layout

configure_logging(settings.log_level, settings.log_format)

logger = structlog.get_logger()

# Initialize FastAPI app
app = FastAPI(
    title="Foxhole War Map API",
    description="Town control tracking and SVG war maps for the Foxhole world conquest",
    version=__version__,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

service = TerritoryService()


# Response models
class HealthResponse(BaseModel):
    status: str
    database: str
    towns_tracked: int
    updater_running: bool
    last_update: Optional[int] = Field(None, description="Start of the last update cycle, epoch ms")


class TownFeature(BaseModel):
    """Tracked state of one town."""

    team: str
    lastChange: int
    lastTeam: Optional[str] = None
    notes: str
    iconType: int
    x: float
    y: float
    region: str


class ConquerStatusResponse(BaseModel):
    version: str
    warNumber: Optional[int] = None
    full: bool = True
    features: Dict[str, TownFeature]


class CellInfo(BaseModel):
    id: str
    label: str
    control: str
    town_id: Optional[str] = None


class RegionInfo(BaseModel):
    id: str
    name: str
    control: str
    active: bool
    cells: List[CellInfo]


class VictoryInfo(BaseModel):
    colonial_towns: int
    warden_towns: int
    scorched_towns: int
    required_towns: int
    phase: str


class ControlResponse(BaseModel):
    taken_at: int
    war_number: Optional[int] = None
    regions: List[RegionInfo]
    victory: VictoryInfo


class RecentCaptureInfo(BaseModel):
    town_id: str
    region: str
    region_name: str
    town_name: str
    team: str
    previous_team: Optional[str] = None
    last_change: int
    elapsed_ms: int
    elapsed: str


class SavedRenderResponse(BaseModel):
    success: bool
    layout: str
    filename: str
    latest: str


def _validate_layout(layout: str) -> str:
    try:
        get_layout(layout)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return layout


def _snapshot() -> ControlSnapshot:
    try:
        return service.snapshot()
    except Exception as e:
        logger.error("Failed to build snapshot", error=str(e))
        raise HTTPException(status_code=500, detail="Failed to read control state")


# Event handlers
@app.on_event("startup")
async def startup_event():
    """Initialize storage and geometry, then start the update loop."""
    logger.info("Starting Foxhole War Map API")
    service.initialize()
    if settings.start_updater:
        service.updater.start()
    logger.info("API startup complete")


@app.on_event("shutdown")
async def shutdown_event():
    """Stop the update loop."""
    logger.info("Shutting down Foxhole War Map API")
    service.shutdown()


# API endpoints; handlers that read storage or render are plain functions so they run in the threadpool
@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Foxhole War Map API",
        "version": __version__,
        "status": "running",
    }


@app.get("/health", response_model=HealthResponse)
def health_check():
    """Health check endpoint."""
    try:
        service.database.ping()
        towns = service.ledger.count()
    except Exception as e:
        logger.error("Health check failed", error=str(e))
        raise HTTPException(status_code=503, detail="Service unhealthy")

    updater = service.updater
    last_report = updater.last_report if updater else None
    return HealthResponse(
        status="healthy",
        database="connected",
        towns_tracked=towns,
        updater_running=bool(updater and updater.is_running),
        last_update=last_report.started_at if last_report else None,
    )


@app.get("/api/conquerStatus", response_model=ConquerStatusResponse)
def conquer_status():
    """Tracked state of every town, keyed by town id."""
    return ConquerStatusResponse(**_snapshot().to_conquer_status())


@app.get("/api/control", response_model=ControlResponse)
def control():
    """Region and cell control labels with victory accounting."""
    snapshot = _snapshot()

    regions = []
    for region in snapshot.regions:
        cells = [
            CellInfo(id=c.cell_id, label=c.label, control=c.control.value, town_id=c.settlement_id)
            for c in snapshot.cells_of(region.id)
        ]
        regions.append(
            RegionInfo(
                id=region.id,
                name=region.name,
                control=snapshot.region_control[region.id].value,
                active=region.active,
                cells=cells,
            )
        )

    victory = snapshot.victory
    return ControlResponse(
        taken_at=snapshot.taken_at,
        war_number=snapshot.war_number,
        regions=regions,
        victory=VictoryInfo(
            colonial_towns=victory.colonial_towns,
            warden_towns=victory.warden_towns,
            scorched_towns=victory.scorched_towns,
            required_towns=victory.required_towns,
            phase=victory.phase.value,
        ),
    )


@app.get("/api/recent-captures", response_model=List[RecentCaptureInfo])
def recent_captures(hours: Optional[float] = Query(None, gt=0, description="Window in hours")):
    """Towns captured within the window, most recent first."""
    window_ms = settings.recent_window_ms if hours is None else int(hours * 60 * 60 * 1000)

    return [
        RecentCaptureInfo(
            town_id=c.town_id,
            region=c.region_id,
            region_name=c.region_name,
            town_name=c.town_name,
            team=c.faction.value,
            previous_team=c.previous_faction.value if c.previous_faction else None,
            last_change=c.last_change_at,
            elapsed_ms=c.elapsed_ms,
            elapsed=c.elapsed_text,
        )
        for c in _snapshot().recent_transitions(window_ms)
    ]


@app.get("/api/generate-svg")
def generate_svg(layout: str = "standard"):
    """Render the current map as SVG."""
    layout = _validate_layout(layout)
    try:
        content = service.render(layout)
    except Exception as e:
        logger.error("SVG generation failed", layout=layout, error=str(e))
        raise HTTPException(status_code=500, detail="Failed to generate SVG")

    return Response(content=content, media_type="image/svg+xml")


@app.post("/api/generate-svg", response_model=SavedRenderResponse)
def save_svg(layout: str = "standard"):
    """Render the current map and store it in the output directory."""
    layout = _validate_layout(layout)
    try:
        saved = service.save_render(layout)
    except Exception as e:
        logger.error("SVG generation failed", layout=layout, error=str(e))
        raise HTTPException(status_code=500, detail="Failed to generate SVG")

    return SavedRenderResponse(
        success=True,
        layout=layout,
        filename=saved.filename,
        latest=saved.latest_path.name,
    )


@app.get("/view-svg")
def view_svg(layout: str = "standard"):
    """Latest stored map."""
    layout = _validate_layout(layout)
    path = service.latest_render_path(layout)
    if path is None:
        raise HTTPException(status_code=404, detail="No SVG generated yet")
    return FileResponse(path, media_type="image/svg+xml")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
