"""One schedule-processing run: feed in, per-origin datasets out."""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional
from zoneinfo import ZoneInfo

from .config import TIMEZONE, ModeConfig
from .connectivity import ConnectivityGenerator
from .datasets import (
    DatasetStore,
    PublishResult,
    build_origin_datasets,
    index_key,
    publish_datasets,
    remove_stale_datasets,
    stations_key,
)
from .gtfs_loader import GTFSLoader
from .mode_filter import filter_mode
from .service_calendar import ServiceCalendar
from .stations import StationIndex
from .time_window import local_now

logger = logging.getLogger(__name__)


@dataclass
class RunSummary:
    """Counts reported at the end of a processing run."""
    mode: str
    generated: str
    trips_processed: int = 0
    pairs: int = 0
    departures: int = 0
    origins: int = 0
    stations: int = 0
    removed: int = 0
    publish: PublishResult = field(default_factory=PublishResult)

    def to_dict(self) -> dict:
        return {
            "mode": self.mode,
            "generated": self.generated,
            "tripsProcessed": self.trips_processed,
            "pairs": self.pairs,
            "departures": self.departures,
            "origins": self.origins,
            "stations": self.stations,
            "removed": self.removed,
            "uploaded": self.publish.uploaded,
            "failed": self.publish.failed,
        }


class ScheduleProcessor:
    """
    Runs the full pipeline for one mode.

    Nothing is published until connectivity generation has finished, so a
    failed download or parse leaves the previously published datasets alone.
    """

    def __init__(
        self,
        mode: ModeConfig,
        store: DatasetStore,
        loader: Optional[GTFSLoader] = None,
        tz: Optional[ZoneInfo] = None,
    ):
        self.mode = mode
        self.store = store
        self.loader = loader or GTFSLoader()
        self.tz = tz or ZoneInfo(TIMEZONE)

    def run(self, now: Optional[datetime] = None, source: Optional[str] = None) -> RunSummary:
        """
        Process the feed and publish the mode's datasets.

        Args:
            now: Reference time for the service horizon (defaults to local now).
            source: Local GTFS archive or directory; downloads the feed when None.
        """
        now = now or local_now(self.tz)
        generated = now.isoformat()
        logger.info(f"Processing {self.mode.name} schedule at {generated}")

        try:
            feed = self.loader.load(source)
        except Exception:
            logger.error(f"Loading GTFS feed for {self.mode.name} failed", exc_info=True)
            raise

        feed = filter_mode(feed, self.mode)

        start_date = now.date()
        end_date = start_date + timedelta(days=self.mode.horizon_days)
        calendar = ServiceCalendar(feed.calendar, feed.calendar_dates, start_date, end_date)

        station_index = None
        if self.mode.group_stations:
            station_index = StationIndex.from_stops(feed.stops)

        generator = ConnectivityGenerator(feed, calendar, self.tz, station_index)
        result = generator.generate()
        datasets = build_origin_datasets(
            result.pairs, generator.describe, sort_chronologically=self.mode.sort_departures
        )

        summary = RunSummary(
            mode=self.mode.name,
            generated=generated,
            trips_processed=result.trips_processed,
            pairs=len(result.pairs),
            departures=result.departure_count,
            origins=len(datasets),
            stations=len(station_index) if station_index is not None else 0,
        )

        with self.store:
            previous_index = self.store.get(index_key(self.mode.name)) or {}
            summary.publish = publish_datasets(self.store, self.mode.name, datasets, generated)
            if station_index is not None:
                self.store.put(stations_key(self.mode.name), station_index.to_dict())
            self.store.put(
                index_key(self.mode.name),
                {
                    "mode": self.mode.name,
                    "generated": generated,
                    "timezone": str(self.tz),
                    "horizon": {"from": start_date.isoformat(), "to": end_date.isoformat()},
                    "counts": {
                        "trips": result.trips_processed,
                        "pairs": summary.pairs,
                        "departures": summary.departures,
                        "origins": summary.origins,
                        "stations": summary.stations,
                    },
                    "origins": {
                        origin_id: dataset.origin for origin_id, dataset in datasets.items()
                    },
                    "connectivity": result.index.as_dict(),
                },
            )
            summary.removed = len(
                remove_stale_datasets(
                    self.store, self.mode.name, previous_index.get("origins", {}), datasets
                )
            )

        logger.info(
            f"{self.mode.name}: {summary.departures} departures across {summary.pairs} pairs "
            f"from {summary.origins} origins"
        )
        return summary
