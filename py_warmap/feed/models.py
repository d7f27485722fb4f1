"""Payload models of the world conquest API."""

from typing import FrozenSet, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..core.models import Faction, WarPhase
from .icons import icon_label, is_conquerable, team_to_faction


class MapItem(BaseModel):
    """Entry of a region's dynamic map."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    team_id: str = Field(default="NONE", alias="teamId", description="Owning team")
    icon_type: int = Field(alias="iconType", description="Icon code")
    x: float = Field(ge=0, le=1, allow_inf_nan=False, description="X position, normalized to the region")
    y: float = Field(ge=0, le=1, allow_inf_nan=False, description="Y position, normalized to the region")
    flags: int = Field(default=0, description="Map item bit flags")

    @property
    def faction(self) -> Faction:
        return team_to_faction(self.team_id)

    @property
    def conquerable(self) -> bool:
        return is_conquerable(self.icon_type)

    @property
    def label(self) -> str:
        return icon_label(self.icon_type)


class DynamicMap(BaseModel):
    """Dynamic state of one region."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    region_id: Optional[int] = Field(default=None, alias="regionId", description="Numeric region id")
    map_items: List[MapItem] = Field(default_factory=list, alias="mapItems")

    def conquerable_items(self) -> List[MapItem]:
        return [item for item in self.map_items if item.conquerable]


class WarState(BaseModel):
    """War metadata plus the regions currently in play."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    war_number: Optional[int] = Field(default=None, alias="warNumber")
    winner: str = Field(default="NONE")
    conquest_start_time: Optional[int] = Field(default=None, alias="conquestStartTime")
    conquest_end_time: Optional[int] = Field(default=None, alias="conquestEndTime")
    resistance_start_time: Optional[int] = Field(default=None, alias="resistanceStartTime")
    required_victory_towns: Optional[int] = Field(default=None, alias="requiredVictoryTowns")
    active_region_ids: Optional[FrozenSet[str]] = Field(
        default=None, description="Regions in play; None when unknown"
    )

    def phase(self, now: int) -> WarPhase:
        """Resistance starts at ``resistance_start_time`` and lasts to the end of the war."""
        if self.resistance_start_time is not None and now >= self.resistance_start_time:
            return WarPhase.RESISTANCE
        return WarPhase.NORMAL

    @property
    def ongoing(self) -> bool:
        return self.winner in ("NONE", "", None)

    def is_active(self, region_id: str) -> bool:
        return self.active_region_ids is None or region_id in self.active_region_ids
