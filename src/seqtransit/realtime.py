"""TransLink GTFS-Realtime fetcher and per-mode feed filter."""

import logging
from typing import Callable, Optional

import requests
from google.transit import gtfs_realtime_pb2

from .cache import TTLCache
from .config import REALTIME_BASE_URL, REALTIME_CACHE_TTL, REALTIME_TIMEOUT, ModeConfig
from .errors import FeedDownloadError

logger = logging.getLogger(__name__)

RoutePredicate = Callable[[str], bool]


def mode_route_predicate(mode: ModeConfig) -> RoutePredicate:
    """
    Route-id test for a mode's real-time entities.

    Ferry route ids start with "F"; every other id on the rail feed is a train.
    """
    if mode.route_id_prefix:
        prefix = mode.route_id_prefix
        return lambda route_id: bool(route_id) and route_id.startswith(prefix)
    return lambda route_id: bool(route_id) and not route_id.startswith("F")


def entity_route_id(entity) -> str:
    """Route id of a trip update or vehicle position entity ("" if none)."""
    if entity.HasField("trip_update"):
        return entity.trip_update.trip.route_id
    if entity.HasField("vehicle"):
        return entity.vehicle.trip.route_id
    return ""


def filter_feed(feed_data: bytes, route_predicate: RoutePredicate) -> bytes:
    """
    Decode a FeedMessage, keep matching entities and re-encode it.

    Alert entities are always kept; trip updates and vehicle positions are
    kept only when their route id satisfies the predicate.
    """
    feed = gtfs_realtime_pb2.FeedMessage()
    feed.ParseFromString(feed_data)

    filtered = gtfs_realtime_pb2.FeedMessage()
    filtered.header.CopyFrom(feed.header)

    kept = 0
    for entity in feed.entity:
        if entity.HasField("alert") or route_predicate(entity_route_id(entity)):
            filtered.entity.add().CopyFrom(entity)
            kept += 1

    logger.debug(f"Kept {kept}/{len(feed.entity)} real-time entities")
    return filtered.SerializeToString()


class RealtimeClient:
    """Fetches TransLink GTFS-Realtime feeds with a short-lived cache."""

    def __init__(
        self,
        base_url: str = REALTIME_BASE_URL,
        session: Optional[requests.Session] = None,
        cache: Optional[TTLCache] = None,
        timeout: float = REALTIME_TIMEOUT,
    ):
        self.base_url = base_url
        self.session = session or requests.Session()
        self.cache = cache if cache is not None else TTLCache(ttl=REALTIME_CACHE_TTL, max_size=10)
        self.timeout = timeout

    def fetch(self, endpoint: str) -> bytes:
        """
        Fetch a raw feed, e.g. "TripUpdates".

        Raises:
            FeedDownloadError: On network failure or a non-2xx response.
        """
        url = f"{self.base_url}{endpoint}"
        logger.debug(f"Fetching {url}")
        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            logger.error(f"Failed to fetch {url}: {e}")
            raise FeedDownloadError(f"Failed to fetch {url}: {e}") from e
        return response.content

    def get_mode_feed(self, mode: ModeConfig, endpoint: str = "TripUpdates") -> bytes:
        """
        Real-time feed restricted to one mode.

        Falls back to the last cached copy, however old, when the upstream
        fetch fails.
        """
        cache_key = f"{mode.name}:{endpoint}"
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        try:
            data = filter_feed(self.fetch(endpoint), mode_route_predicate(mode))
        except FeedDownloadError:
            stale = self.cache.get_stale(cache_key)
            if stale is None:
                raise
            logger.warning(f"Returning stale {cache_key} feed after fetch failure")
            return stale

        self.cache.set(cache_key, data)
        return data

    def close(self) -> None:
        self.cache.clear()
        self.session.close()
