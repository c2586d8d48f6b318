"""Tests for train station grouping."""

import unittest
import sys
from pathlib import Path

# Add src to path so we can import seqtransit
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from seqtransit.models import Stop
from seqtransit.stations import StationIndex, station_name, station_slug


def platform(stop_id, name, code=None, lat=-27.46, lng=153.02):
    return Stop(stop_id=stop_id, name=name, latitude=lat, longitude=lng, platform_code=code)


class TestStationNames(unittest.TestCase):
    """Test platform suffix stripping and slugs."""

    def test_station_name(self):
        self.assertEqual(station_name("Central station, platform 1"), "Central station")
        self.assertEqual(station_name("Roma Street station platform 10"), "Roma Street station")
        self.assertEqual(station_name("Bowen Hills station"), "Bowen Hills station")

    def test_slug(self):
        self.assertEqual(station_slug("Bowen Hills station"), "BOWEN_HILLS")
        self.assertEqual(station_slug("Central Station"), "CENTRAL")
        self.assertEqual(station_slug("Ormeau - Coomera (Gold Coast)"), "ORMEAU_COOMERA_GOLD_COAST")

    def test_slug_idempotent(self):
        for name in ("Bowen Hills station", "South Bank", "  Fortitude Valley station "):
            slug = station_slug(name)
            self.assertEqual(station_slug(slug), slug)

    def test_distinct_names_distinct_slugs(self):
        names = ["Central station", "Roma Street station", "South Brisbane station", "South Bank"]
        slugs = {station_slug(name) for name in names}
        self.assertEqual(len(slugs), len(names))


class TestStationIndex(unittest.TestCase):
    """Test grouping platforms into stations."""

    def setUp(self):
        self.index = StationIndex.from_stops([
            platform("600005", "Central station, platform 1", "1", lat=-27.4661),
            platform("600006", "Central station, platform 2", "2", lat=-27.4662),
            platform("600010", "Roma Street station, platform 3"),
        ])

    def test_platforms_grouped(self):
        central = self.index.stations["CENTRAL"]
        self.assertEqual(central.name, "Central station")
        self.assertEqual(central.platforms, ["600005", "600006"])
        self.assertEqual(central.platform_numbers, ["1", "2"])
        self.assertEqual(central.latitude, -27.4661)
        self.assertEqual(len(self.index), 2)

    def test_platform_number_from_name(self):
        self.assertEqual(self.index.stations["ROMA_STREET"].platform_numbers, ["3"])

    def test_each_platform_in_one_station(self):
        self.assertEqual(self.index.station_for_platform("600006").slug, "CENTRAL")
        with self.assertRaises(ValueError):
            self.index.upsert(platform("600006", "Roma Street station, platform 4"))

    def test_upsert_is_repeatable(self):
        self.index.upsert(platform("600005", "Central station, platform 1", "1"))
        self.assertEqual(self.index.stations["CENTRAL"].platforms, ["600005", "600006"])

    def test_resolve(self):
        self.assertEqual(self.index.resolve("600010").slug, "ROMA_STREET")
        self.assertEqual(self.index.resolve("Roma Street station").slug, "ROMA_STREET")
        self.assertEqual(self.index.resolve("central").slug, "CENTRAL")
        self.assertIsNone(self.index.resolve("Milton"))

    def test_unnamed_stop_rejected(self):
        with self.assertRaises(ValueError):
            StationIndex().upsert(platform("1", "---"))

    def test_unplaceable_stops_skipped(self):
        with self.assertLogs("seqtransit.stations", level="WARNING") as logs:
            index = StationIndex.from_stops([
                platform("1", "Central station, platform 1"),
                platform("2", "---"),
                platform("1", "Roma Street station, platform 3"),
            ])

        self.assertEqual(list(index.stations), ["CENTRAL"])
        self.assertIsNone(index.station_for_platform("2"))
        self.assertEqual(index.station_for_platform("1").slug, "CENTRAL")
        self.assertEqual(len(logs.output), 2)

    def test_dict_round_trip(self):
        rebuilt = StationIndex.from_dict(self.index.to_dict())
        self.assertEqual(rebuilt.stations, self.index.stations)
        self.assertEqual(rebuilt.platform_to_station, self.index.platform_to_station)


if __name__ == "__main__":
    unittest.main()
