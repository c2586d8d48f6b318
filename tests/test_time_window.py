"""Tests for the departure time-window filter."""

import unittest
import sys
from datetime import datetime
from pathlib import Path
from zoneinfo import ZoneInfo

# Add src to path so we can import seqtransit
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from seqtransit.time_window import filter_departures, resolve_time_of_day, validate_hours

BRISBANE = ZoneInfo("Australia/Brisbane")


def at(hour, minute=0, second=0, day=11):
    return datetime(2024, 6, day, hour, minute, second, tzinfo=BRISBANE)


class TestTimestampWindow(unittest.TestCase):
    """Records carrying absolute departure timestamps."""

    def setUp(self):
        self.now = at(8)

    def test_boundaries_inclusive(self):
        records = [
            {"tripId": "now", "departureTime": "2024-06-11T08:00:00+10:00"},
            {"tripId": "edge", "departureTime": "2024-06-11T10:00:00+10:00"},
            {"tripId": "late", "departureTime": "2024-06-11T10:00:01+10:00"},
            {"tripId": "gone", "departureTime": "2024-06-11T07:59:59+10:00"},
        ]
        kept = filter_departures(records, 2, now=self.now)
        self.assertEqual([r["tripId"] for r in kept], ["now", "edge"])

    def test_other_offsets_compared_as_instants(self):
        records = [{"tripId": "utc", "departureTime": "2024-06-10T22:30:00Z"}]
        self.assertEqual(len(filter_departures(records, 1, now=self.now)), 1)

    def test_order_preserved(self):
        records = [
            {"tripId": "b", "departureTime": "2024-06-11T09:00:00+10:00"},
            {"tripId": "a", "departureTime": "2024-06-11T08:30:00+10:00"},
        ]
        kept = filter_departures(records, 4, now=self.now)
        self.assertEqual([r["tripId"] for r in kept], ["b", "a"])

    def test_malformed_records_excluded(self):
        records = [
            {"tripId": "bad", "departureTime": "soon"},
            {"tripId": "none"},
            {"tripId": "bad-time", "scheduledDeparture": "8 o'clock"},
            {"tripId": "ok", "departureTime": "2024-06-11T09:00:00+10:00"},
        ]
        kept = filter_departures(records, 4, now=self.now)
        self.assertEqual([r["tripId"] for r in kept], ["ok"])

    def test_naive_now_taken_as_local(self):
        records = [{"tripId": "t", "departureTime": "2024-06-11T08:30:00+10:00"}]
        self.assertEqual(len(filter_departures(records, 1, now=datetime(2024, 6, 11, 8, 0))), 1)


class TestTimeOfDayWindow(unittest.TestCase):
    """Records carrying only a scheduled time of day."""

    def test_later_today(self):
        self.assertEqual(resolve_time_of_day("09:15:00", at(8)), at(9, 15))

    def test_past_midday_departure_is_gone(self):
        self.assertIsNone(resolve_time_of_day("07:00:00", at(12)))

    def test_rolls_to_tomorrow_late_in_evening(self):
        self.assertEqual(resolve_time_of_day("06:00:00", at(21)), at(6, day=12))

    def test_early_morning_rolls_to_tomorrow(self):
        self.assertEqual(resolve_time_of_day("04:30:00", at(10)), at(4, 30, day=12))

    def test_hours_past_midnight(self):
        self.assertEqual(resolve_time_of_day("25:00:00", at(22)), at(1, day=12))

    def test_late_evening_window(self):
        records = [{"tripId": "t", "scheduledDeparture": "23:45:00"}]
        now = at(23, 50)
        self.assertEqual(filter_departures(records, 4, now=now), [])
        self.assertEqual(filter_departures(records, 24, now=now), records)

    def test_timestamp_preferred_over_time_of_day(self):
        records = [{
            "tripId": "t",
            "scheduledDeparture": "09:00:00",
            "departureTime": "2024-06-13T09:00:00+10:00",
        }]
        self.assertEqual(filter_departures(records, 4, now=at(8)), [])


class TestHoursValidation(unittest.TestCase):
    """Window length must be between 1 and 168 hours."""

    def test_bounds(self):
        self.assertEqual(validate_hours(1), 1)
        self.assertEqual(validate_hours(168), 168)
        for hours in (0, -1, 169):
            with self.assertRaises(ValueError):
                filter_departures([], hours)


if __name__ == "__main__":
    unittest.main()
