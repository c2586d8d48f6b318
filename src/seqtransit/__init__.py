"""seqtransit - TransLink SEQ ferry and train connectivity from GTFS schedules."""

__version__ = "0.1.0"

from .config import FERRY, TRAIN, ModeConfig, get_mode_config
from .connectivity import ConnectivityGenerator, ConnectivityIndex
from .datasets import LocalDatasetStore, build_origin_datasets, publish_datasets
from .errors import (
    FeedDownloadError,
    OriginNotFoundError,
    RouteNotFoundError,
    SeqTransitError,
)
from .gtfs_loader import GTFSLoader
from .models import Departure, GTFSFeed, OriginDataset, Station
from .processor import ScheduleProcessor
from .query import RouteQueryService
from .realtime import RealtimeClient, filter_feed
from .service_calendar import ServiceCalendar, active_services
from .stations import StationIndex, station_slug
from .time_window import filter_departures

__all__ = [
    "ScheduleProcessor",
    "RouteQueryService",
    "GTFSLoader",
    "RealtimeClient",
    "ConnectivityGenerator",
    "ConnectivityIndex",
    "ServiceCalendar",
    "StationIndex",
    "LocalDatasetStore",
    "ModeConfig",
    "TRAIN",
    "FERRY",
    "get_mode_config",
    "active_services",
    "build_origin_datasets",
    "publish_datasets",
    "filter_departures",
    "filter_feed",
    "station_slug",
    "Departure",
    "GTFSFeed",
    "OriginDataset",
    "Station",
    "SeqTransitError",
    "FeedDownloadError",
    "OriginNotFoundError",
    "RouteNotFoundError",
]
