"""Feed locations, timeouts and per-mode settings."""

from dataclasses import dataclass
from typing import Dict, Optional

# TransLink SEQ static GTFS bundle
GTFS_URL = "https://gtfsrt.api.translink.com.au/GTFS/SEQ_GTFS.zip"

# TransLink SEQ GTFS-Realtime endpoints (TripUpdates, VehiclePositions, Alerts)
REALTIME_BASE_URL = "https://gtfsrt.api.translink.com.au/api/realtime/SEQ/"

TIMEZONE = "Australia/Brisbane"

DOWNLOAD_TIMEOUT = 60  # seconds
REALTIME_TIMEOUT = 10
REALTIME_CACHE_TTL = 30
QUERY_CACHE_TTL = 300

DEFAULT_QUERY_HOURS = 24
MIN_QUERY_HOURS = 1
MAX_QUERY_HOURS = 168

PUBLISH_WORKERS = 8

REQUIRED_FILES = (
    "stops.txt",
    "routes.txt",
    "trips.txt",
    "stop_times.txt",
    "calendar.txt",
    "calendar_dates.txt",
)


@dataclass(frozen=True)
class ModeConfig:
    """Settings that select and shape one transit mode."""
    name: str
    route_type: int
    route_id_prefix: Optional[str] = None
    group_stations: bool = False
    sort_departures: bool = False
    horizon_days: int = 2


TRAIN = ModeConfig(name="train", route_type=2, group_stations=True)
FERRY = ModeConfig(name="ferry", route_type=4, route_id_prefix="F", sort_departures=True)

MODES: Dict[str, ModeConfig] = {TRAIN.name: TRAIN, FERRY.name: FERRY}


def get_mode_config(name: str) -> ModeConfig:
    """Look up a mode by name (case-insensitive)."""
    key = (name or "").strip().lower()
    if key not in MODES:
        raise ValueError(f"Unknown mode '{name}'. Must be one of: {', '.join(sorted(MODES))}")
    return MODES[key]
