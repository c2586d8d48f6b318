"""Build ordered stop sequences for each trip."""

import logging
from typing import Dict, Iterable, List

from .models import SequenceEntry, StopTime
from .stations import StationIndex

logger = logging.getLogger(__name__)


def build_trip_sequences(stop_times: Iterable[StopTime]) -> Dict[str, List[SequenceEntry]]:
    """Group stop times by trip, each trip ordered by stop_sequence ascending."""
    sequences: Dict[str, List[SequenceEntry]] = {}
    for st in stop_times:
        sequences.setdefault(st.trip_id, []).append(
            SequenceEntry(
                stop_id=st.stop_id,
                sequence=st.stop_sequence,
                arrival_time=st.arrival_time,
                departure_time=st.departure_time,
            )
        )
    for entries in sequences.values():
        entries.sort(key=lambda entry: entry.sequence)
    logger.debug(f"Built stop sequences for {len(sequences)} trips")
    return sequences


def collapse_to_stations(
    sequence: List[SequenceEntry], station_index: StationIndex
) -> List[SequenceEntry]:
    """
    Replace platforms with their stations, keeping each station once per trip.

    The first visit to a station keeps its platform, arrival and departure;
    later visits to any platform of the same station are dropped. Platforms
    missing from the index are left out of the sequence.
    """
    collapsed: List[SequenceEntry] = []
    seen = set()
    for entry in sequence:
        station = station_index.station_for_platform(entry.stop_id)
        if station is None:
            logger.debug(f"Platform {entry.stop_id} has no station; excluded from trip")
            continue
        if station.slug in seen:
            continue
        seen.add(station.slug)
        collapsed.append(
            SequenceEntry(
                stop_id=entry.stop_id,
                sequence=entry.sequence,
                arrival_time=entry.arrival_time,
                departure_time=entry.departure_time,
                station=station.slug,
            )
        )
    return collapsed
