"""Resolve which GTFS services run on which dates."""

import logging
from datetime import date, timedelta
from typing import Dict, FrozenSet, Iterable, List, Set

from .models import CalendarEntry, CalendarException

logger = logging.getLogger(__name__)


def date_range(start_date: date, end_date: date) -> List[date]:
    """Every calendar day from start_date to end_date, both inclusive."""
    days = []
    current = start_date
    while current <= end_date:
        days.append(current)
        current += timedelta(days=1)
    return days


def active_services(
    calendar: Iterable[CalendarEntry],
    exceptions: Iterable[CalendarException],
    start_date: date,
    end_date: date,
) -> Dict[date, FrozenSet[str]]:
    """
    Compute the active service ids for each day in [start_date, end_date].

    For each day the weekly calendar rules are applied first, then the
    calendar_dates exceptions dated exactly that day: an add inserts the
    service even without a matching rule, a remove deletes it even when a
    rule matched.

    Returns:
        Mapping of date -> frozenset of active service ids.
    """
    calendar = list(calendar)
    exceptions_by_date: Dict[date, List[CalendarException]] = {}
    for exception in exceptions:
        exceptions_by_date.setdefault(exception.date, []).append(exception)

    services_by_date: Dict[date, FrozenSet[str]] = {}
    for day in date_range(start_date, end_date):
        active: Set[str] = {entry.service_id for entry in calendar if entry.runs_on(day)}

        for exception in exceptions_by_date.get(day, []):
            if exception.exception_type == CalendarException.ADD:
                active.add(exception.service_id)
            elif exception.exception_type == CalendarException.REMOVE:
                active.discard(exception.service_id)
            else:
                logger.debug(
                    f"Ignoring exception type {exception.exception_type} "
                    f"for {exception.service_id} on {day}"
                )

        services_by_date[day] = frozenset(active)

    return services_by_date


class ServiceCalendar:
    """Active services over one processing horizon, computed once and reused."""

    def __init__(
        self,
        calendar: Iterable[CalendarEntry],
        exceptions: Iterable[CalendarException],
        start_date: date,
        end_date: date,
    ):
        self.start_date = start_date
        self.end_date = end_date
        self.services_by_date = active_services(calendar, exceptions, start_date, end_date)
        self._dates_by_service: Dict[str, List[date]] = {}
        for day in sorted(self.services_by_date):
            for service_id in self.services_by_date[day]:
                self._dates_by_service.setdefault(service_id, []).append(day)
        logger.info(
            f"Resolved {len(self._dates_by_service)} active services "
            f"between {start_date} and {end_date}"
        )

    def is_active_on(self, service_id: str, day: date) -> bool:
        return service_id in self.services_by_date.get(day, frozenset())

    def is_active_in_range(self, service_id: str) -> bool:
        """True if the service runs on any day of the horizon."""
        return service_id in self._dates_by_service

    def active_dates(self, service_id: str) -> List[date]:
        """Dates in the horizon the service runs on, in ascending order."""
        return list(self._dates_by_service.get(service_id, []))
