"""Restrict a GTFS feed to a single transit mode."""

import logging

from .config import ModeConfig
from .models import GTFSFeed, Route

logger = logging.getLogger(__name__)


def route_matches(route: Route, mode: ModeConfig) -> bool:
    """True if the route belongs to the mode by route type and id prefix."""
    if route.route_type != mode.route_type:
        return False
    if mode.route_id_prefix and not route.route_id.startswith(mode.route_id_prefix):
        return False
    return True


def filter_mode(feed: GTFSFeed, mode: ModeConfig) -> GTFSFeed:
    """
    Return a new feed holding only the routes, trips, stop times and stops of one mode.

    The input feed is left untouched; calendar tables are shared as-is since
    they are never mutated.
    """
    routes = [route for route in feed.routes if route_matches(route, mode)]
    route_ids = {route.route_id for route in routes}

    trips = [trip for trip in feed.trips if trip.route_id in route_ids]
    trip_ids = {trip.trip_id for trip in trips}

    stop_times = [st for st in feed.stop_times if st.trip_id in trip_ids]
    stop_ids = {st.stop_id for st in stop_times}

    stops = [stop for stop in feed.stops if stop.stop_id in stop_ids]

    logger.info(
        f"Filtered {mode.name}: {len(routes)} routes, {len(trips)} trips, "
        f"{len(stop_times)} stop times, {len(stops)} stops"
    )

    return GTFSFeed(
        stops=stops,
        routes=routes,
        trips=trips,
        stop_times=stop_times,
        calendar=list(feed.calendar),
        calendar_dates=list(feed.calendar_dates),
    )
