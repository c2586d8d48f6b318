"""Group train platforms into logical stations."""

import logging
import re
from typing import Dict, Iterable, List, Optional

from .models import Station, Stop

logger = logging.getLogger(__name__)

# "Central station, platform 3" -> "Central station"
_PLATFORM_SUFFIX = re.compile(r"^(.+?),?\s*platform\s+\w+$", re.IGNORECASE)
_PLATFORM_NUMBER = re.compile(r"platform\s+(\w+)$", re.IGNORECASE)
_STATION_SUFFIX = re.compile(r"\s+station$", re.IGNORECASE)
_NON_ALNUM = re.compile(r"[^A-Z0-9]+")


def station_name(stop_name: str) -> str:
    """Strip a trailing platform designation from a stop name."""
    match = _PLATFORM_SUFFIX.match(stop_name.strip())
    return match.group(1).strip() if match else stop_name.strip()


def station_slug(name: str) -> str:
    """
    URL-safe station identifier, e.g. "Bowen Hills station" -> "BOWEN_HILLS".

    Used both when datasets are generated and when queries are resolved, so
    both sides must go through this function. Idempotent.
    """
    name = _STATION_SUFFIX.sub("", name.strip()).strip().upper()
    return _NON_ALNUM.sub("_", name).strip("_")


class StationIndex:
    """Platform -> station and slug -> station lookups for one processing run."""

    def __init__(self):
        self.stations: Dict[str, Station] = {}  # slug -> station
        self.platform_to_station: Dict[str, str] = {}  # stop_id -> slug

    @classmethod
    def from_stops(cls, stops: Iterable[Stop]) -> "StationIndex":
        """
        Group stops sharing a normalized name into stations.

        A stop that cannot be placed is skipped with a warning; trips then
        leave that platform out.
        """
        index = cls()
        for stop in stops:
            try:
                index.upsert(stop)
            except ValueError as e:
                logger.warning(f"Skipping platform {stop.stop_id}: {e}")
        logger.info(
            f"Grouped {len(index.platform_to_station)} platforms into {len(index.stations)} stations"
        )
        return index

    def upsert(self, stop: Stop) -> Station:
        """Add a platform stop to its station, creating the station on first sight."""
        name = station_name(stop.name)
        slug = station_slug(name)
        if not slug:
            raise ValueError(f"Stop {stop.stop_id} has no usable station name: '{stop.name}'")

        previous = self.platform_to_station.get(stop.stop_id)
        if previous is not None and previous != slug:
            raise ValueError(f"Platform {stop.stop_id} already belongs to station {previous}")

        station = self.stations.get(slug)
        if station is None:
            # coordinates come from the first platform seen
            station = Station(
                name=name,
                slug=slug,
                platforms=[],
                latitude=stop.latitude,
                longitude=stop.longitude,
            )
            self.stations[slug] = station
        elif station.name != name:
            logger.warning(
                f"Station names '{station.name}' and '{name}' share slug {slug}; merging platforms"
            )

        if stop.stop_id not in station.platforms:
            station.platforms.append(stop.stop_id)
            number = stop.platform_code or _platform_number(stop.name)
            if number and number not in station.platform_numbers:
                station.platform_numbers.append(number)
        self.platform_to_station[stop.stop_id] = slug
        return station

    def station_for_platform(self, stop_id: str) -> Optional[Station]:
        slug = self.platform_to_station.get(stop_id)
        return self.stations.get(slug) if slug else None

    def station_for_slug(self, slug: str) -> Optional[Station]:
        return self.stations.get(station_slug(slug))

    def resolve(self, identifier: str) -> Optional[Station]:
        """Find a station from either a platform stop id or a slug/name."""
        return self.station_for_platform(identifier) or self.station_for_slug(identifier)

    def to_dict(self) -> Dict[str, List[dict]]:
        return {"stations": [station.to_dict() for station in self.stations.values()]}

    @classmethod
    def from_dict(cls, data: dict) -> "StationIndex":
        """Rebuild an index from a published to_dict() document."""
        index = cls()
        for item in data.get("stations", []):
            station = Station(
                name=item["name"],
                slug=item["slug"],
                platforms=list(item.get("platforms", [])),
                latitude=item.get("lat", 0.0),
                longitude=item.get("lng", 0.0),
                platform_numbers=list(item.get("platformNumbers", [])),
            )
            index.stations[station.slug] = station
            for platform in station.platforms:
                index.platform_to_station[platform] = station.slug
        return index

    def __len__(self) -> int:
        return len(self.stations)


def _platform_number(stop_name: str) -> Optional[str]:
    match = _PLATFORM_NUMBER.search(stop_name.strip())
    return match.group(1) if match else None
