"""GTFS static feed download, extraction and parsing for TransLink SEQ data."""

import io
import logging
import zipfile
from datetime import date, datetime
from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd
import requests

from .config import DOWNLOAD_TIMEOUT, GTFS_URL, REQUIRED_FILES
from .errors import FeedDownloadError
from .models import (
    CalendarEntry,
    CalendarException,
    GTFSFeed,
    Route,
    Stop,
    StopTime,
    Trip,
    WEEKDAYS,
)

logger = logging.getLogger(__name__)

Table = List[Dict[str, str]]


def read_table(content: bytes, filename: str = "") -> Table:
    """
    Parse header-driven CSV text into row dicts.

    Every value stays a string; empty cells are empty strings, never NaN.
    """
    if not content.strip():
        return []
    try:
        df = pd.read_csv(
            io.BytesIO(content),
            dtype=str,
            keep_default_na=False,
            na_filter=False,
            skipinitialspace=True,
            encoding="utf-8-sig",
        )
    except pd.errors.EmptyDataError:
        logger.warning(f"{filename or 'table'} has no header row")
        return []
    df.columns = [str(c).strip() for c in df.columns]
    return df.to_dict("records")


def extract_tables(archive: bytes, filenames=REQUIRED_FILES) -> Dict[str, Table]:
    """
    Unpack the GTFS zip archive into named in-memory tables.

    A missing member is not fatal: it becomes an empty table and a warning.
    """
    tables: Dict[str, Table] = {}
    with zipfile.ZipFile(io.BytesIO(archive)) as zip_file:
        members = {Path(name).name: name for name in zip_file.namelist()}
        for filename in filenames:
            member = members.get(filename)
            if member is None:
                logger.warning(f"{filename} not found in GTFS archive")
                tables[filename] = []
                continue
            tables[filename] = read_table(zip_file.read(member), filename)
            logger.info(f"{filename}: {len(tables[filename])} records")
    return tables


def _parse_date(value: str) -> date:
    return datetime.strptime(value.strip(), "%Y%m%d").date()


def _optional(value: Optional[str]) -> Optional[str]:
    value = (value or "").strip()
    return value or None


def _stop(row: Dict[str, str]) -> Stop:
    return Stop(
        stop_id=row["stop_id"].strip(),
        name=row["stop_name"].strip(),
        latitude=float(row["stop_lat"]),
        longitude=float(row["stop_lon"]),
        platform_code=_optional(row.get("platform_code")),
        parent_station=_optional(row.get("parent_station")),
        location_type=_optional(row.get("location_type")),
    )


def _route(row: Dict[str, str]) -> Route:
    return Route(
        route_id=row["route_id"].strip(),
        short_name=(row.get("route_short_name") or "").strip(),
        long_name=(row.get("route_long_name") or "").strip(),
        route_type=int(row["route_type"]),
    )


def _trip(row: Dict[str, str]) -> Trip:
    return Trip(
        trip_id=row["trip_id"].strip(),
        route_id=row["route_id"].strip(),
        service_id=row["service_id"].strip(),
        headsign=(row.get("trip_headsign") or "").strip(),
        direction_id=_optional(row.get("direction_id")),
    )


def _stop_time(row: Dict[str, str]) -> StopTime:
    return StopTime(
        trip_id=row["trip_id"].strip(),
        stop_id=row["stop_id"].strip(),
        stop_sequence=int(row["stop_sequence"]),
        arrival_time=row["arrival_time"].strip(),
        departure_time=row["departure_time"].strip(),
    )


def _calendar_entry(row: Dict[str, str]) -> CalendarEntry:
    weekdays = frozenset(day for day in WEEKDAYS if (row.get(day) or "").strip() == "1")
    return CalendarEntry(
        service_id=row["service_id"].strip(),
        weekdays=weekdays,
        start_date=_parse_date(row["start_date"]),
        end_date=_parse_date(row["end_date"]),
    )


def _calendar_exception(row: Dict[str, str]) -> CalendarException:
    return CalendarException(
        service_id=row["service_id"].strip(),
        date=_parse_date(row["date"]),
        exception_type=int(row["exception_type"]),
    )


# filename -> (required columns, row parser)
SCHEMAS: Dict[str, tuple] = {
    "stops.txt": (("stop_id", "stop_name", "stop_lat", "stop_lon"), _stop),
    "routes.txt": (("route_id", "route_type"), _route),
    "trips.txt": (("route_id", "service_id", "trip_id"), _trip),
    "stop_times.txt": (
        ("trip_id", "arrival_time", "departure_time", "stop_id", "stop_sequence"),
        _stop_time,
    ),
    "calendar.txt": (("service_id", "start_date", "end_date"), _calendar_entry),
    "calendar_dates.txt": (("service_id", "date", "exception_type"), _calendar_exception),
}


def parse_rows(filename: str, rows: Table) -> list:
    """Validate rows against the table schema, skipping rows that don't fit."""
    required, parser = SCHEMAS[filename]
    records = []
    skipped = 0
    for row in rows:
        if any(not (row.get(column) or "").strip() for column in required):
            skipped += 1
            continue
        try:
            records.append(parser(row))
        except ValueError as e:
            logger.debug(f"Skipping {filename} row {row}: {e}")
            skipped += 1
    if skipped:
        logger.warning(f"Skipped {skipped} invalid rows in {filename}")
    return records


def parse_feed(tables: Dict[str, Table]) -> GTFSFeed:
    """Turn raw text tables into a typed GTFSFeed."""
    return GTFSFeed(
        stops=parse_rows("stops.txt", tables.get("stops.txt", [])),
        routes=parse_rows("routes.txt", tables.get("routes.txt", [])),
        trips=parse_rows("trips.txt", tables.get("trips.txt", [])),
        stop_times=parse_rows("stop_times.txt", tables.get("stop_times.txt", [])),
        calendar=parse_rows("calendar.txt", tables.get("calendar.txt", [])),
        calendar_dates=parse_rows("calendar_dates.txt", tables.get("calendar_dates.txt", [])),
    )


class GTFSLoader:
    """Downloads and loads the TransLink SEQ GTFS static feed."""

    def __init__(
        self,
        url: str = GTFS_URL,
        session: Optional[requests.Session] = None,
        timeout: float = DOWNLOAD_TIMEOUT,
    ):
        """
        Initialize the loader.

        Args:
            url: Location of the GTFS zip archive.
            session: Optional requests session (injected in tests).
            timeout: Seconds before the download is abandoned.
        """
        self.url = url
        self.session = session or requests.Session()
        self.timeout = timeout

    def download(self) -> bytes:
        """
        Download the GTFS archive.

        Raises:
            FeedDownloadError: On a network error, timeout or non-2xx response.
        """
        logger.info(f"Downloading GTFS data from {self.url}")
        try:
            response = self.session.get(self.url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            logger.error(f"Failed to download GTFS data: {e}")
            raise FeedDownloadError(f"Failed to download {self.url}: {e}") from e
        logger.info(f"Downloaded {len(response.content) / 1024 / 1024:.2f} MB")
        return response.content

    def load_from_url(self) -> GTFSFeed:
        """Download, extract and parse the feed."""
        return self.load_from_bytes(self.download())

    def load_from_bytes(self, archive: bytes) -> GTFSFeed:
        try:
            tables = extract_tables(archive)
        except zipfile.BadZipFile as e:
            raise FeedDownloadError(f"GTFS archive is not a valid zip file: {e}") from e
        feed = parse_feed(tables)
        self._log_summary(feed)
        return feed

    def load_from_archive(self, path: str) -> GTFSFeed:
        """Load a GTFS zip archive from disk."""
        logger.info(f"Loading GTFS archive {path}")
        return self.load_from_bytes(Path(path).read_bytes())

    def load_from_directory(self, path: str) -> GTFSFeed:
        """Load an unpacked GTFS feed from a directory of .txt files."""
        logger.info(f"Loading GTFS data from {path}")
        tables: Dict[str, Table] = {}
        for filename in REQUIRED_FILES:
            file_path = Path(path) / filename
            if not file_path.exists():
                logger.warning(f"{filename} not found in {path}")
                tables[filename] = []
                continue
            tables[filename] = read_table(file_path.read_bytes(), filename)
        feed = parse_feed(tables)
        self._log_summary(feed)
        return feed

    def load(self, source: Optional[str] = None) -> GTFSFeed:
        """Load from a local archive or directory, or download when no source is given."""
        if source is None:
            return self.load_from_url()
        if Path(source).is_dir():
            return self.load_from_directory(source)
        return self.load_from_archive(source)

    @staticmethod
    def _log_summary(feed: GTFSFeed) -> None:
        logger.info(
            f"Loaded {len(feed.stops)} stops, {len(feed.routes)} routes, "
            f"{len(feed.trips)} trips and {len(feed.stop_times)} stop times"
        )
