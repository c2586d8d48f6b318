"""Tests for per-origin dataset assembly and publication."""

import json
import tempfile
import unittest
import sys
from collections import OrderedDict
from datetime import date
from pathlib import Path
from unittest.mock import MagicMock

# Add src to path so we can import seqtransit
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from seqtransit.datasets import (
    LocalDatasetStore,
    build_origin_datasets,
    dataset_key,
    publish_datasets,
    remove_stale_datasets,
)
from seqtransit.models import Departure


def departure(trip_id, departs, day=11):
    return Departure(
        trip_id=trip_id,
        route_id="F1",
        route_name="F1",
        headsign="",
        scheduled_departure=f"{departs}:00",
        scheduled_arrival=f"{departs}:00",
        service_id="DAILY",
        service_date=date(2024, 6, day),
        departure_time=f"2024-06-{day}T{departs}:00+10:00",
        arrival_time=f"2024-06-{day}T{departs}:00+10:00",
    )


def describe(key):
    return {"id": key, "name": f"Stop {key}", "lat": -27.0, "lng": 153.0}


class TestBuildOriginDatasets(unittest.TestCase):
    """Test regrouping pair departures by origin."""

    def setUp(self):
        self.pairs = OrderedDict([
            (("A", "C"), [departure("T2", "09:00", day=11), departure("T2", "09:00", day=12)]),
            (("A", "B"), [departure("T1", "08:00", day=12), departure("T1", "08:00", day=11)]),
            (("B", "C"), [departure("T1", "08:30", day=11)]),
            (("C", "D"), []),
        ])

    def test_grouped_in_generation_order(self):
        datasets = build_origin_datasets(self.pairs, describe)

        self.assertEqual(list(datasets), ["A", "B"])
        self.assertEqual(list(datasets["A"].routes), ["C", "B"])
        self.assertEqual(
            [d.service_date.day for d in datasets["A"].routes["B"]["departures"]], [12, 11]
        )
        self.assertEqual(datasets["A"].total_departures, 4)

    def test_origin_without_departures_omitted(self):
        datasets = build_origin_datasets(self.pairs, describe)
        self.assertNotIn("C", datasets)

    def test_chronological_sort(self):
        datasets = build_origin_datasets(self.pairs, describe, sort_chronologically=True)

        self.assertEqual(list(datasets["A"].routes), ["B", "C"])
        times = [d.departure_time for d in datasets["A"].routes["B"]["departures"]]
        self.assertEqual(times, sorted(times))

    def test_document_shape(self):
        document = build_origin_datasets(self.pairs, describe)["B"].to_document("ferry", "now")

        self.assertEqual(document["mode"], "ferry")
        self.assertEqual(document["origin"]["id"], "B")
        self.assertEqual(document["totalRoutes"], 1)
        route = document["routes"]["C"]
        self.assertEqual(route["destination"]["name"], "Stop C")
        self.assertEqual(route["totalDepartures"], 1)
        self.assertEqual(route["departures"][0]["tripId"], "T1")
        self.assertEqual(route["departures"][0]["serviceDate"], "2024-06-11")


class TestLocalDatasetStore(unittest.TestCase):
    """Test JSON file publication."""

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.root = Path(self.tmp.name) / "out"

    def tearDown(self):
        self.tmp.cleanup()

    def test_put_and_get(self):
        with LocalDatasetStore(self.root) as store:
            store.put("ferry-origin-A", {"routes": {}})
            self.assertEqual(store.get("ferry-origin-A"), {"routes": {}})
            self.assertIsNone(store.get("ferry-origin-Z"))

        self.assertTrue((self.root / "ferry-origin-A.json").exists())

    def test_put_replaces_previous_document(self):
        with LocalDatasetStore(self.root) as store:
            store.put("k", {"version": 1, "extra": True})
            store.put("k", {"version": 2})
            self.assertEqual(store.get("k"), {"version": 2})
        self.assertEqual([p.name for p in self.root.iterdir()], ["k.json"])

    def test_delete(self):
        with LocalDatasetStore(self.root) as store:
            store.put("k", {})
            store.delete("k")
            store.delete("never-written")
            self.assertIsNone(store.get("k"))

    def test_remove_stale_datasets(self):
        with LocalDatasetStore(self.root) as store:
            for origin_id in ("A", "B", "C"):
                store.put(dataset_key("ferry", origin_id), {})
            removed = remove_stale_datasets(store, "ferry", ["A", "B", "C"], {"B": None})

            self.assertEqual(removed, ["A", "C"])
            self.assertIsNone(store.get("ferry-origin-A"))
            self.assertEqual(store.get("ferry-origin-B"), {})

    def test_publish_datasets(self):
        datasets = build_origin_datasets(
            {("A", "B"): [departure("T1", "08:00")], ("B", "C"): [departure("T1", "08:30")]},
            describe,
        )
        with LocalDatasetStore(self.root) as store:
            result = publish_datasets(store, "ferry", datasets, "2024-06-11T06:00:00+10:00")

        self.assertEqual((result.uploaded, result.failed), (2, 0))
        document = json.loads((self.root / "ferry-origin-A.json").read_text(encoding="utf-8"))
        self.assertEqual(document["generated"], "2024-06-11T06:00:00+10:00")


class TestPublishFailures(unittest.TestCase):
    """A failing origin must not stop the others."""

    def test_failed_origin_counted(self):
        datasets = build_origin_datasets(
            {("A", "B"): [departure("T1", "08:00")], ("B", "C"): [departure("T1", "08:30")]},
            describe,
        )
        store = MagicMock()

        def put(key, document):
            if key == dataset_key("ferry", "A"):
                raise OSError("disk full")

        store.put.side_effect = put
        with self.assertLogs("seqtransit.datasets", level="ERROR"):
            result = publish_datasets(store, "ferry", datasets, "now", max_workers=2)

        self.assertEqual((result.uploaded, result.failed), (1, 1))
        self.assertEqual(store.put.call_count, 2)


if __name__ == "__main__":
    unittest.main()
