"""Answer origin -> destination departure queries from published datasets."""

import logging
from datetime import datetime, timedelta
from typing import Optional
from zoneinfo import ZoneInfo

from .cache import TTLCache
from .config import DEFAULT_QUERY_HOURS, QUERY_CACHE_TTL, TIMEZONE, ModeConfig
from .datasets import DatasetStore, dataset_key, stations_key
from .errors import OriginNotFoundError, RouteNotFoundError
from .stations import StationIndex, station_slug
from .time_window import filter_departures, local_now, validate_hours

logger = logging.getLogger(__name__)


class RouteQueryService:
    """
    Looks up departures between two stops or stations.

    Train origins and destinations may be given as station slugs, station
    names or platform stop ids; ferry ones are stop ids.
    """

    def __init__(
        self,
        store: DatasetStore,
        mode: ModeConfig,
        cache: Optional[TTLCache] = None,
        station_index: Optional[StationIndex] = None,
        tz: Optional[ZoneInfo] = None,
    ):
        self.store = store
        self.mode = mode
        self.cache = cache if cache is not None else TTLCache(ttl=QUERY_CACHE_TTL)
        self.tz = tz or ZoneInfo(TIMEZONE)
        self.station_index = station_index
        if self.station_index is None and mode.group_stations:
            document = store.get(stations_key(mode.name))
            if document is not None:
                self.station_index = StationIndex.from_dict(document)
            else:
                logger.warning(f"No station index published for {mode.name}; using slugs only")

    def resolve(self, identifier: str) -> str:
        """Map a user-supplied origin/destination to its dataset identifier."""
        identifier = identifier.strip()
        if not self.mode.group_stations:
            return identifier
        if self.station_index is not None:
            station = self.station_index.resolve(identifier)
            if station is not None:
                return station.slug
        return station_slug(identifier)

    def query_route(
        self,
        origin: str,
        destination: str,
        hours: int = DEFAULT_QUERY_HOURS,
        now: Optional[datetime] = None,
    ) -> dict:
        """
        Departures from origin to destination within the next `hours` hours.

        Raises:
            ValueError: If hours is outside 1-168.
            OriginNotFoundError: No dataset exists for the origin.
            RouteNotFoundError: The origin exists but no trip reaches the destination.
        """
        validate_hours(hours)
        origin_id = self.resolve(origin)
        destination_id = self.resolve(destination)

        # only live queries are cached; an explicit now asks about another moment
        live = now is None
        cache_key = f"{self.mode.name}:{origin_id}:{destination_id}:{hours}"
        if live:
            cached = self.cache.get(cache_key)
            if cached is not None:
                return cached

        document = self.store.get(dataset_key(self.mode.name, origin_id))
        if document is None:
            raise OriginNotFoundError(
                f"No {self.mode.name} departures published for '{origin}'", origin, destination
            )

        route = document.get("routes", {}).get(destination_id)
        if route is None:
            raise RouteNotFoundError(
                f"No direct {self.mode.name} service from '{origin}' to '{destination}'",
                origin,
                destination,
            )

        now = now or local_now(self.tz)
        departures = filter_departures(route.get("departures", []), hours, now=now, tz=self.tz)
        logger.debug(
            f"{origin_id} -> {destination_id}: {len(departures)} departures in next {hours}h"
        )

        response = {
            "origin": document.get("origin"),
            "destination": route.get("destination"),
            "departures": departures,
            "totalDepartures": len(departures),
            "timeWindow": {
                "hours": hours,
                "from": now.isoformat(),
                "to": (now + timedelta(hours=hours)).isoformat(),
            },
            "generated": now.isoformat(),
            "validUntil": (now + timedelta(seconds=self.cache.ttl)).isoformat(),
        }
        if live:
            self.cache.set(cache_key, response)
        return response
