"""Filter departures to those leaving within the next few hours."""

import logging
from datetime import datetime, timedelta, time, tzinfo
from typing import Iterable, List, Mapping, Optional
from zoneinfo import ZoneInfo

from .config import MAX_QUERY_HOURS, MIN_QUERY_HOURS, TIMEZONE
from .models import parse_gtfs_time

logger = logging.getLogger(__name__)

# A time-of-day already past today is read as tomorrow's only late in the
# evening, or for early-morning departures.
ROLLOVER_FROM_HOUR = 20
EARLY_MORNING_MAX_HOUR = 4


def validate_hours(hours: int) -> int:
    if not MIN_QUERY_HOURS <= hours <= MAX_QUERY_HOURS:
        raise ValueError(
            f"Hours must be between {MIN_QUERY_HOURS} and {MAX_QUERY_HOURS}, got {hours}"
        )
    return hours


def local_now(tz: Optional[tzinfo] = None) -> datetime:
    return datetime.now(tz or ZoneInfo(TIMEZONE))


def parse_timestamp(value: str, tz: tzinfo) -> datetime:
    """Parse an ISO 8601 timestamp; naive values are taken as local time."""
    parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz)
    return parsed.astimezone(tz)


def resolve_time_of_day(value: str, now: datetime) -> Optional[datetime]:
    """
    Pin a bare HH:MM:SS departure to a calendar date relative to now.

    Resolved against today; if that is already past, it is moved to tomorrow
    when the current hour is 20 or later, or the departure hour is 4 or
    earlier. Otherwise the departure has gone and None is returned.
    """
    offset = parse_gtfs_time(value)
    midnight = datetime.combine(now.date(), time.min, tzinfo=now.tzinfo)
    resolved = midnight + offset
    if resolved >= now:
        return resolved

    departure_hour = (offset.seconds // 3600) % 24
    if now.hour >= ROLLOVER_FROM_HOUR or departure_hour <= EARLY_MORNING_MAX_HOUR:
        return resolved + timedelta(days=1)
    return None


def departure_datetime(record: Mapping, now: datetime) -> Optional[datetime]:
    """
    Absolute departure time of a record.

    Records carry either "departureTime" (ISO timestamp) or only
    "scheduledDeparture" (time of day).

    Raises:
        ValueError: If the time value is malformed.
    """
    timestamp = record.get("departureTime")
    if timestamp:
        return parse_timestamp(timestamp, now.tzinfo)
    time_of_day = record.get("scheduledDeparture")
    if not time_of_day:
        raise ValueError("record has no departure time")
    return resolve_time_of_day(time_of_day, now)


def filter_departures(
    departures: Iterable[Mapping],
    hours: int,
    now: Optional[datetime] = None,
    tz: Optional[tzinfo] = None,
) -> List[Mapping]:
    """
    Keep departures with now <= departure <= now + hours, in their original order.

    Args:
        departures: Departure records (dicts as published).
        hours: Window length, 1 to 168.
        now: Current time; defaults to the operator's local time.
        tz: Operator timezone; defaults to Australia/Brisbane.

    Raises:
        ValueError: If hours is out of range.
    """
    validate_hours(hours)
    tz = tz or ZoneInfo(TIMEZONE)
    now = now or local_now(tz)
    now = now.replace(tzinfo=tz) if now.tzinfo is None else now.astimezone(tz)
    cutoff = now + timedelta(hours=hours)

    kept = []
    for record in departures:
        try:
            departs_at = departure_datetime(record, now)
        except (ValueError, TypeError) as e:
            logger.debug(f"Excluding departure {record.get('tripId')}: {e}")
            continue
        if departs_at is not None and now <= departs_at <= cutoff:
            kept.append(record)
    return kept
