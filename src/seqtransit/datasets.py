"""Per-origin dataset assembly and publication."""

import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from collections import OrderedDict
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from .config import PUBLISH_WORKERS
from .models import Departure, OriginDataset

logger = logging.getLogger(__name__)


def dataset_key(mode: str, origin_id: str) -> str:
    return f"{mode}-origin-{origin_id}"


def index_key(mode: str) -> str:
    return f"{mode}-index"


def stations_key(mode: str) -> str:
    return f"{mode}-stations"


def build_origin_datasets(
    pairs: Mapping[Tuple[str, str], List[Departure]],
    describe: Callable[[str], dict],
    sort_chronologically: bool = False,
) -> "OrderedDict[str, OriginDataset]":
    """
    Regroup pair departures by origin.

    Destinations appear in first-seen order and departures keep generation
    order, unless sort_chronologically is set: then every departure is sorted
    by absolute departure time before grouping. Origins without departures
    are left out.
    """
    records = [
        (origin, destination, departure)
        for (origin, destination), departures in pairs.items()
        for departure in departures
    ]
    if sort_chronologically:
        records.sort(key=lambda record: datetime.fromisoformat(record[2].departure_time))

    datasets: "OrderedDict[str, OriginDataset]" = OrderedDict()
    identities: Dict[str, dict] = {}
    for origin, destination, departure in records:
        dataset = datasets.get(origin)
        if dataset is None:
            dataset = OriginDataset(origin_id=origin, origin=_identity(identities, describe, origin))
            datasets[origin] = dataset
        dataset.add_departure(destination, _identity(identities, describe, destination), departure)

    logger.info(f"Built datasets for {len(datasets)} origins")
    return datasets


def _identity(cache: Dict[str, dict], describe: Callable[[str], dict], key: str) -> dict:
    if key not in cache:
        cache[key] = describe(key)
    return cache[key]


class DatasetStore(ABC):
    """
    Destination for published documents.

    Stores are opened for the duration of one processing run or one request
    and closed afterwards; use as a context manager.
    """

    def open(self) -> "DatasetStore":
        return self

    def close(self) -> None:
        pass

    @abstractmethod
    def put(self, key: str, document: dict) -> None:
        """Publish a document, fully replacing any previous version."""

    @abstractmethod
    def get(self, key: str) -> Optional[dict]:
        """Fetch a published document, or None if absent."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove a published document; absent keys are ignored."""

    def __enter__(self) -> "DatasetStore":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class LocalDatasetStore(DatasetStore):
    """Stores each document as <root>/<key>.json."""

    def __init__(self, root: str):
        self.root = Path(root)

    def open(self) -> "LocalDatasetStore":
        self.root.mkdir(parents=True, exist_ok=True)
        return self

    def path_for(self, key: str) -> Path:
        return self.root / f"{key}.json"

    def put(self, key: str, document: dict) -> None:
        # write then rename so readers never see a partial file
        fd, tmp_path = tempfile.mkstemp(dir=self.root, prefix=f".{key}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document, f, separators=(",", ":"))
            os.replace(tmp_path, self.path_for(key))
        except BaseException:
            Path(tmp_path).unlink(missing_ok=True)
            raise

    def get(self, key: str) -> Optional[dict]:
        path = self.path_for(key)
        if not path.exists():
            return None
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)

    def delete(self, key: str) -> None:
        self.path_for(key).unlink(missing_ok=True)


@dataclass
class PublishResult:
    uploaded: int = 0
    failed: int = 0


def publish_datasets(
    store: DatasetStore,
    mode: str,
    datasets: Mapping[str, OriginDataset],
    generated: str,
    max_workers: int = PUBLISH_WORKERS,
) -> PublishResult:
    """
    Write one document per origin. Origins are independent, so writes run in
    parallel; a failed origin is logged and does not stop the others.
    """
    result = PublishResult()

    def _publish(origin_id: str, dataset: OriginDataset) -> None:
        store.put(dataset_key(mode, origin_id), dataset.to_document(mode, generated))

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = {
            executor.submit(_publish, origin_id, dataset): origin_id
            for origin_id, dataset in datasets.items()
        }
        for future in as_completed(futures):
            origin_id = futures[future]
            try:
                future.result()
                result.uploaded += 1
            except Exception as e:
                logger.error(f"Failed to publish {dataset_key(mode, origin_id)}: {e}")
                result.failed += 1
            if result.uploaded and result.uploaded % 50 == 0:
                logger.info(f"Published {result.uploaded}/{len(futures)} origins...")

    logger.info(f"Published {result.uploaded} {mode} datasets ({result.failed} failed)")
    return result


def remove_stale_datasets(
    store: DatasetStore, mode: str, previous_ids: Iterable[str], current_ids: Iterable[str]
) -> List[str]:
    """
    Delete origin documents left over from an earlier run.

    Returns the origin ids whose documents were removed.
    """
    current = set(current_ids)
    stale = sorted(origin_id for origin_id in previous_ids if origin_id not in current)
    for origin_id in stale:
        store.delete(dataset_key(mode, origin_id))
    if stale:
        logger.info(f"Removed {len(stale)} {mode} datasets no longer served")
    return stale
