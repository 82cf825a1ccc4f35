"""
Image search over a precomputed feature file.

Search modes:
    1. Extracted features: the query image goes through the same method
       that built the feature file, then every stored vector is ranked
       with the method's metric.
    2. Embedding lookup: the query's vector is looked up by file name in
       an externally computed embedding table and ranked by L2 distance.
    3. Hybrid: embedding distance and color histogram distance blended,
       with both tables passed in explicitly.
"""

import logging
from typing import Any, Dict, List, Optional

import numpy as np

from .detection import Detector
from .distances import check_pairing, get_metric, hybrid_distance
from .embeddings import EmbeddingTable, basename, by_basename
from .errors import InvalidInput, SizeMismatch
from .feature_store import FeatureSet, read_features
from .histograms import HIST_BINS
from .methods import extract_features, get_method
from .preprocessing import load_image
from .ranking import MatchRecord, compute_distances, rank, select_top

logger = logging.getLogger(__name__)


class SearchEngine:
    """
    Ranks a feature database against query images.

    Loads a feature file written by build_features(), checks that its
    method tag matches the requested method, and binds the metric with
    its weights.
    """

    def __init__(self,
                 features,
                 method,
                 metric=None,
                 bins: int = None,
                 detector: Optional[Detector] = None,
                 metric_params: Optional[Dict[str, Any]] = None,
                 workers: Optional[int] = None):
        """
        Args:
            features: Path to a feature CSV, or an already loaded FeatureSet.
            method: Extraction method name the database was built with.
            metric: Metric name; defaults to the method's own metric.
            bins: Histogram bin count; defaults to the file's tag, then
                IMAGE_MATCH_BINS.
            detector: Face detector for the face method.
            metric_params: Weight overrides bound into the metric.
            workers: Optional thread count for the distance loop.

        Raises:
            UnknownMethod: Unknown method/metric or incompatible pairing.
            SizeMismatch: The file was built with a different method or
                bin count.
            FileNotFoundError: The feature file does not exist.
        """
        self.method = get_method(method)
        self.metric_name = check_pairing(self.method, metric)
        self.metric = get_metric(self.metric_name, **(metric_params or {}))
        self.detector = detector
        self.workers = workers

        if isinstance(features, FeatureSet):
            self.features = features
        else:
            self.features = read_features(features)

        if self.features.method and self.features.method != self.method.value:
            raise SizeMismatch(
                f"Feature file was built with '{self.features.method}', "
                f"not '{self.method.value}'"
            )
        if bins is not None and self.features.bins and bins != self.features.bins:
            raise SizeMismatch(
                f"Feature file uses {self.features.bins} bins, not {bins}"
            )
        self.bins = bins or self.features.bins or HIST_BINS

        logger.info(
            f"Search engine ready: {len(self.features)} records, "
            f"method={self.method.value}, metric={self.metric_name.value}"
        )

    def extract(self, image: np.ndarray) -> np.ndarray:
        return extract_features(image, self.method, bins=self.bins, detector=self.detector)

    def search(self, query_path: str, top_n: int = 5) -> List[MatchRecord]:
        """
        Find the top_n closest database images to a query image file.

        Raises:
            DecodeError, InvalidInput, NoFaceDetected
        """
        image = load_image(query_path)
        return self.search_image(image, top_n)

    def search_image(self, image: np.ndarray, top_n: int = 5) -> List[MatchRecord]:
        return self.search_vector(self.extract(image), top_n)

    def search_vector(self, query: np.ndarray, top_n: int = 5) -> List[MatchRecord]:
        results = rank(query, self.features.records, self.metric, top_n,
                       workers=self.workers)
        logger.info(
            f"Search complete: {len(self.features)} records -> {len(results)} results"
        )
        return results


def search_embeddings(query_name: str,
                      embeddings: EmbeddingTable,
                      top_n: int = 5) -> List[MatchRecord]:
    """
    Rank an embedding table against the entry for query_name.

    Raises:
        InvalidInput: If the query image is not in the table.
    """
    query = embeddings.lookup(query_name)
    return embeddings.search(query, top_n)


def hybrid_search(query_name: str,
                  embeddings: EmbeddingTable,
                  histograms: FeatureSet,
                  top_n: int = 5,
                  embedding_weight: float = None,
                  embedding_scale: float = None,
                  workers: Optional[int] = None) -> List[MatchRecord]:
    """
    Rank images by blended embedding and color histogram distance.

    The two tables are joined on file basename. Images missing from the
    histogram table, or with mismatched vector sizes, are excluded.

    Args:
        query_name: Query image path or file name.
        embeddings: Embedding table covering the database.
        histograms: Color histogram feature set for the same images.
        top_n: Number of matches to return.
        embedding_weight: Weight of the scaled embedding distance.
        embedding_scale: Divisor applied to the embedding distance.

    Raises:
        InvalidInput: If the query is missing from either table.
    """
    if query_name not in embeddings:
        raise InvalidInput(f"{basename(query_name)} not found in embedding table")
    query_embedding = embeddings.get(query_name)
    colors = by_basename(histograms.records)
    query_color = colors.get(basename(query_name))
    if query_color is None:
        raise InvalidInput(f"{basename(query_name)} not found in histogram table")

    joined = []
    for identifier, vector in embeddings.records:
        color = colors.get(basename(identifier))
        if color is None:
            logger.debug(f"Skipping {identifier}: no color histogram")
            continue
        joined.append((identifier, (vector, color)))

    def metric(query, record):
        return hybrid_distance(query[0], record[0], query[1], record[1],
                               embedding_weight=embedding_weight,
                               embedding_scale=embedding_scale)

    matches = compute_distances((query_embedding, query_color), joined, metric,
                                workers=workers)
    return select_top(matches, top_n)
