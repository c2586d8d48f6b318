"""Data models for SEQ transit schedule processing."""

from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Dict, FrozenSet, List, Optional

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


def parse_gtfs_time(value: str) -> timedelta:
    """
    Parse a GTFS time-of-day string into an offset from service-day midnight.

    GTFS allows hours past 23 for trips running after midnight, so "25:10:00"
    is returned as 25h10m rather than rejected.

    Raises:
        ValueError: If the value is not H:MM:SS / HH:MM:SS.
    """
    parts = (value or "").strip().split(":")
    if len(parts) != 3 or not all(p.isdigit() for p in parts):
        raise ValueError(f"Invalid GTFS time '{value}'")
    hours, minutes, seconds = (int(p) for p in parts)
    if minutes > 59 or seconds > 59:
        raise ValueError(f"Invalid GTFS time '{value}'")
    return timedelta(hours=hours, minutes=minutes, seconds=seconds)


@dataclass(frozen=True)
class Stop:
    """A physical boarding location (platform, berth or bus stop)."""
    stop_id: str
    name: str
    latitude: float
    longitude: float
    platform_code: Optional[str] = None
    parent_station: Optional[str] = None
    location_type: Optional[str] = None


@dataclass(frozen=True)
class Route:
    """A GTFS route."""
    route_id: str
    short_name: str
    long_name: str
    route_type: int

    @property
    def display_name(self) -> str:
        return self.short_name or self.long_name or "Unknown"


@dataclass(frozen=True)
class Trip:
    """A single scheduled vehicle journey."""
    trip_id: str
    route_id: str
    service_id: str
    headsign: str = ""
    direction_id: Optional[str] = None


@dataclass(frozen=True)
class StopTime:
    """A trip's visit to a stop. Times keep their GTFS text form."""
    trip_id: str
    stop_id: str
    stop_sequence: int
    arrival_time: str
    departure_time: str


@dataclass(frozen=True)
class CalendarEntry:
    """Weekly service rule from calendar.txt."""
    service_id: str
    weekdays: FrozenSet[str]
    start_date: date
    end_date: date

    def runs_on(self, day: date) -> bool:
        if not self.start_date <= day <= self.end_date:
            return False
        return WEEKDAYS[day.weekday()] in self.weekdays


@dataclass(frozen=True)
class CalendarException:
    """Date-specific override from calendar_dates.txt."""
    ADD = 1
    REMOVE = 2

    service_id: str
    date: date
    exception_type: int


@dataclass
class GTFSFeed:
    """Typed tables of one static feed."""
    stops: List[Stop] = field(default_factory=list)
    routes: List[Route] = field(default_factory=list)
    trips: List[Trip] = field(default_factory=list)
    stop_times: List[StopTime] = field(default_factory=list)
    calendar: List[CalendarEntry] = field(default_factory=list)
    calendar_dates: List[CalendarException] = field(default_factory=list)


@dataclass
class Station:
    """Logical train station grouping one or more platform stops."""
    name: str
    slug: str
    platforms: List[str]
    latitude: float
    longitude: float
    platform_numbers: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "slug": self.slug,
            "platforms": list(self.platforms),
            "platformNumbers": list(self.platform_numbers),
            "lat": self.latitude,
            "lng": self.longitude,
        }


@dataclass(frozen=True)
class SequenceEntry:
    """One position in a trip's ordered stop (or station) sequence."""
    stop_id: str
    sequence: int
    arrival_time: str
    departure_time: str
    station: Optional[str] = None  # station slug, train mode only

    @property
    def key(self) -> str:
        """Identifier used for pairing: station slug when grouped, else stop id."""
        return self.station or self.stop_id


@dataclass(frozen=True)
class Departure:
    """A scheduled ride from one origin to one destination on a single trip."""
    trip_id: str
    route_id: str
    route_name: str
    headsign: str
    scheduled_departure: str
    scheduled_arrival: str
    service_id: str
    service_date: date
    departure_time: str  # ISO 8601 with the operator's UTC offset
    arrival_time: str
    direction_id: Optional[str] = None
    platform: Optional[str] = None
    platform_details: Optional[dict] = None

    def to_dict(self) -> dict:
        data = {
            "tripId": self.trip_id,
            "routeId": self.route_id,
            "routeName": self.route_name,
            "headsign": self.headsign,
            "directionId": self.direction_id,
            "scheduledDeparture": self.scheduled_departure,
            "scheduledArrival": self.scheduled_arrival,
            "departureTime": self.departure_time,
            "arrivalTime": self.arrival_time,
            "serviceId": self.service_id,
            "serviceDate": self.service_date.isoformat(),
        }
        if self.platform_details is not None:
            data["platform"] = self.platform
            data["platformDetails"] = self.platform_details
        return data


@dataclass
class OriginDataset:
    """All departures reachable from one origin, grouped by destination."""
    origin_id: str
    origin: dict
    routes: "OrderedDict[str, dict]" = field(default_factory=OrderedDict)

    def add_departure(self, destination_id: str, destination: dict, departure: Departure) -> None:
        entry = self.routes.get(destination_id)
        if entry is None:
            entry = {"destination": destination, "departures": []}
            self.routes[destination_id] = entry
        entry["departures"].append(departure)

    @property
    def total_departures(self) -> int:
        return sum(len(r["departures"]) for r in self.routes.values())

    def to_document(self, mode: str, generated: str) -> Dict[str, object]:
        routes = {}
        for destination_id, entry in self.routes.items():
            routes[destination_id] = {
                "destination": entry["destination"],
                "departures": [d.to_dict() for d in entry["departures"]],
                "totalDepartures": len(entry["departures"]),
            }
        return {
            "mode": mode,
            "origin": self.origin,
            "routes": routes,
            "totalRoutes": len(routes),
            "generated": generated,
        }
