"""Client for the Foxhole world conquest API."""

from typing import Any, List, Optional

import requests
import structlog
from pydantic import ValidationError

from ..config import settings
from ..errors import FeedError
from .models import DynamicMap, WarState

logger = structlog.get_logger()


class WarApiClient:
    """
    Thin synchronous client of the war API.

    Every failure (transport error, non-2xx status, unparsable body) is
    raised as :class:`FeedError`; retrying is left to the caller's next
    update cycle.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        user_agent: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = (base_url or settings.war_api_url).rstrip("/")
        self.user_agent = user_agent or settings.war_api_user_agent
        self.timeout = timeout if timeout is not None else settings.request_timeout_seconds
        self.session = session or requests.Session()

    def request(self, path: str) -> Any:
        url = f"{self.base_url}/{path}"
        try:
            response = self.session.get(
                url,
                headers={"Content-Type": "application/json", "User-Agent": self.user_agent},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise FeedError(f"War API request failed: {e}", path=path) from e

        if not response.ok:
            raise FeedError(
                f"War API request failed: {response.status_code}",
                path=path,
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise FeedError("War API returned invalid JSON", path=path) from e

    def war(self) -> WarState:
        """Current war metadata, without the active region list."""
        data = self.request("worldconquest/war")
        try:
            return WarState.model_validate(data)
        except ValidationError as e:
            raise FeedError(f"Malformed war payload: {e}", path="worldconquest/war") from e

    def maps(self) -> List[str]:
        """Ids of the regions active in the current war."""
        data = self.request("worldconquest/maps")
        if isinstance(data, dict):
            data = data.get("maps", [])
        if not isinstance(data, list):
            raise FeedError("Malformed map list payload", path="worldconquest/maps")
        return [m["name"] if isinstance(m, dict) else str(m) for m in data if m]

    def dynamic_map(self, region_id: str) -> DynamicMap:
        path = f"worldconquest/maps/{region_id}/dynamic/public"
        data = self.request(path)
        try:
            return DynamicMap.model_validate(data)
        except ValidationError as e:
            raise FeedError(f"Malformed dynamic map payload: {e}", path=path) from e

    def war_state(self) -> WarState:
        """
        War metadata together with the active region list.

        A failed map list leaves ``active_region_ids`` unknown rather than
        failing the whole call.
        """
        state = self.war()
        try:
            active = frozenset(self.maps())
        except FeedError as e:
            logger.warning("Failed to fetch active regions", error=str(e))
            return state
        return state.model_copy(update={"active_region_ids": active})

    def close(self) -> None:
        self.session.close()
