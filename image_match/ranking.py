"""
Nearest-neighbor ranking over a feature database.

A full linear scan: the query is compared with every record, records
whose vectors cannot be compared (SizeMismatch raised, or a negative
distance returned) are dropped, and the rest are sorted by ascending
distance. The sort is stable so exact ties keep database order.
"""

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Iterable, List, NamedTuple, Optional, Sequence, Tuple

import numpy as np

from .errors import SizeMismatch

logger = logging.getLogger(__name__)

Record = Tuple[str, np.ndarray]


class MatchRecord(NamedTuple):
    identifier: str
    distance: float


def compute_distances(query: np.ndarray,
                      records: Sequence[Record],
                      metric: Callable[[np.ndarray, np.ndarray], float],
                      workers: Optional[int] = None) -> List[MatchRecord]:
    """
    Compare the query with every record.

    Args:
        query: Query feature vector.
        records: (identifier, vector) pairs in database order.
        metric: Distance function.
        workers: Optional thread count for the distance loop. Results
            come back in database order either way.

    Returns:
        MatchRecords in database order, excluding records the metric
        rejected with SizeMismatch, or that produced NaN or a
        negative (mismatch) distance.
    """
    def measure(record: Record) -> Optional[float]:
        identifier, vector = record
        try:
            distance = metric(query, vector)
        except SizeMismatch as e:
            logger.debug(f"Skipping {identifier}: {e}")
            return None
        if math.isnan(distance):
            logger.debug(f"Skipping {identifier}: distance is NaN")
            return None
        if distance < 0:
            logger.debug(f"Skipping {identifier}: negative distance {distance}")
            return None
        return distance

    if workers and workers > 1 and len(records) > 1:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            distances = list(pool.map(measure, records))
    else:
        distances = [measure(record) for record in records]

    matches = [
        MatchRecord(identifier, float(distance))
        for (identifier, _), distance in zip(records, distances)
        if distance is not None
    ]

    skipped = len(records) - len(matches)
    if skipped:
        logger.warning(f"Excluded {skipped} of {len(records)} records with mismatched vectors")
    return matches


def rank_results(matches: Iterable[MatchRecord]) -> List[MatchRecord]:
    """Sort by ascending distance; ties keep their input order."""
    return sorted(matches, key=lambda m: m.distance)


def select_top(matches: Iterable[MatchRecord], top_n: int) -> List[MatchRecord]:
    """The top_n closest matches in ascending distance order."""
    if top_n < 0:
        raise ValueError(f"top_n must be non-negative, got {top_n}")
    return rank_results(matches)[:top_n]


def rank(query: np.ndarray,
         records: Sequence[Record],
         metric: Callable[[np.ndarray, np.ndarray], float],
         top_n: int,
         workers: Optional[int] = None) -> List[MatchRecord]:
    """
    Rank database records against a query vector.

    Args:
        query: Query feature vector.
        records: (identifier, vector) pairs.
        metric: Distance function with its parameters bound.
        top_n: Number of matches to return.
        workers: Optional thread count for the distance loop.

    Returns:
        Up to top_n MatchRecords, closest first. Empty when no record
        can be compared.
    """
    if top_n < 0:
        raise ValueError(f"top_n must be non-negative, got {top_n}")
    matches = compute_distances(query, records, metric, workers=workers)
    return select_top(matches, top_n)
