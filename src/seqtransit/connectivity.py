"""Trip-verified connectivity and departure generation."""

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import date, datetime, time, tzinfo
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from .models import Departure, GTFSFeed, Route, SequenceEntry, Stop, Trip, parse_gtfs_time
from .sequences import build_trip_sequences, collapse_to_stations
from .service_calendar import ServiceCalendar
from .stations import StationIndex

logger = logging.getLogger(__name__)

Pair = Tuple[str, str]


class ConnectivityIndex:
    """
    Directed origin -> destination reachability, scoped to real trip patterns.

    A pair exists only when a single recorded pattern visits the origin before
    the destination. Patterns are never chained together.
    """

    def __init__(self):
        self._patterns: Set[Tuple[str, ...]] = set()
        self._destinations: Dict[str, Set[str]] = {}

    def add_pattern(self, keys: Sequence[str]) -> bool:
        """Record a trip's stop/station sequence. Returns False if already known."""
        pattern = tuple(keys)
        if pattern in self._patterns:
            return False
        self._patterns.add(pattern)
        for i, origin in enumerate(pattern):
            destinations = self._destinations.setdefault(origin, set())
            destinations.update(key for key in pattern[i + 1:] if key != origin)
        return True

    def has_pair(self, origin: str, destination: str) -> bool:
        return destination in self._destinations.get(origin, ())

    def destinations(self, origin: str) -> List[str]:
        return sorted(self._destinations.get(origin, ()))

    def pairs(self) -> Set[Pair]:
        return {(o, d) for o, dests in self._destinations.items() for d in dests}

    @property
    def pattern_count(self) -> int:
        return len(self._patterns)

    def as_dict(self) -> Dict[str, List[str]]:
        """Origin -> sorted destinations, origins in alphabetical order."""
        return {
            origin: sorted(dests)
            for origin, dests in sorted(self._destinations.items())
            if dests
        }


@dataclass
class ConnectivityResult:
    """Output of one generation pass."""
    pairs: "OrderedDict[Pair, List[Departure]]" = field(default_factory=OrderedDict)
    index: ConnectivityIndex = field(default_factory=ConnectivityIndex)
    trips_processed: int = 0
    trips_inactive: int = 0
    trips_too_short: int = 0

    @property
    def departure_count(self) -> int:
        return sum(len(deps) for deps in self.pairs.values())


class ConnectivityGenerator:
    """
    Expands every active trip into departures for each ordered pair of its stops.

    In station mode (trains) platforms are collapsed into stations first, so a
    trip calling at two platforms of the same station yields one entry.
    """

    def __init__(
        self,
        feed: GTFSFeed,
        calendar: ServiceCalendar,
        tz: tzinfo,
        station_index: Optional[StationIndex] = None,
    ):
        """
        Args:
            feed: Mode-filtered GTFS feed.
            calendar: Active services over the processing horizon.
            tz: Operator timezone used for absolute departure timestamps.
            station_index: Platform grouping; None to pair individual stops.
        """
        self.feed = feed
        self.calendar = calendar
        self.tz = tz
        self.station_index = station_index
        self.stops: Dict[str, Stop] = {stop.stop_id: stop for stop in feed.stops}
        self.routes: Dict[str, Route] = {route.route_id: route for route in feed.routes}

    def trip_sequence(self, trip: Trip, sequences: Dict[str, List[SequenceEntry]]) -> List[SequenceEntry]:
        sequence = sequences.get(trip.trip_id, [])
        if self.station_index is not None:
            sequence = collapse_to_stations(sequence, self.station_index)
        return sequence

    def generate(self, trips: Optional[Iterable[Trip]] = None) -> ConnectivityResult:
        """Generate departures for all trips (or the given subset)."""
        trips = self.feed.trips if trips is None else list(trips)
        sequences = build_trip_sequences(self.feed.stop_times)
        result = ConnectivityResult()

        for trip in trips:
            if not self.calendar.is_active_in_range(trip.service_id):
                result.trips_inactive += 1
                continue

            sequence = self.trip_sequence(trip, sequences)
            if len(sequence) < 2:
                result.trips_too_short += 1
                continue

            result.index.add_pattern([entry.key for entry in sequence])
            self._expand_trip(trip, sequence, self.calendar.active_dates(trip.service_id), result)

            result.trips_processed += 1
            if result.trips_processed % 1000 == 0:
                logger.info(f"Processed {result.trips_processed}/{len(trips)} trips...")

        logger.info(
            f"Generated {result.departure_count} departures for {len(result.pairs)} pairs "
            f"from {result.trips_processed} trips ({result.trips_inactive} inactive, "
            f"{result.trips_too_short} with fewer than 2 stops)"
        )
        return result

    def _expand_trip(
        self,
        trip: Trip,
        sequence: List[SequenceEntry],
        service_dates: List[date],
        result: ConnectivityResult,
    ) -> None:
        route = self.routes.get(trip.route_id)
        for i in range(len(sequence) - 1):
            origin = sequence[i]
            for j in range(i + 1, len(sequence)):
                destination = sequence[j]
                if origin.key == destination.key:
                    continue
                for service_date in service_dates:
                    departure = self._departure(trip, route, origin, destination, service_date)
                    if departure is None:
                        continue
                    result.pairs.setdefault((origin.key, destination.key), []).append(departure)

    def _departure(
        self,
        trip: Trip,
        route: Optional[Route],
        origin: SequenceEntry,
        destination: SequenceEntry,
        service_date: date,
    ) -> Optional[Departure]:
        try:
            departs_at = self._absolute_time(service_date, origin.departure_time)
            arrives_at = self._absolute_time(service_date, destination.arrival_time)
        except ValueError as e:
            logger.debug(f"Skipping trip {trip.trip_id} pair {origin.key}->{destination.key}: {e}")
            return None

        platform = None
        platform_details = None
        if self.station_index is not None:
            origin_stop = self.stops.get(origin.stop_id)
            destination_stop = self.stops.get(destination.stop_id)
            platform = origin_stop.platform_code if origin_stop else None
            platform_details = {
                "origin": self._platform_detail(origin.stop_id, origin_stop),
                "destination": self._platform_detail(destination.stop_id, destination_stop),
            }

        return Departure(
            trip_id=trip.trip_id,
            route_id=trip.route_id,
            route_name=route.display_name if route else "Unknown",
            headsign=trip.headsign,
            direction_id=trip.direction_id,
            scheduled_departure=origin.departure_time,
            scheduled_arrival=destination.arrival_time,
            service_id=trip.service_id,
            service_date=service_date,
            departure_time=departs_at.isoformat(),
            arrival_time=arrives_at.isoformat(),
            platform=platform,
            platform_details=platform_details,
        )

    def _absolute_time(self, service_date: date, value: str) -> datetime:
        midnight = datetime.combine(service_date, time.min, tzinfo=self.tz)
        return midnight + parse_gtfs_time(value)

    @staticmethod
    def _platform_detail(stop_id: str, stop: Optional[Stop]) -> dict:
        return {
            "id": stop_id,
            "number": stop.platform_code if stop else None,
            "name": stop.name if stop else "Unknown",
        }

    def describe(self, key: str) -> dict:
        """Identity and coordinates of an origin/destination key."""
        if self.station_index is not None:
            station = self.station_index.stations.get(key)
            if station is not None:
                return station.to_dict()
        stop = self.stops.get(key)
        if stop is None:
            return {"id": key, "name": "Unknown", "lat": 0.0, "lng": 0.0}
        return {"id": stop.stop_id, "name": stop.name, "lat": stop.latitude, "lng": stop.longitude}
