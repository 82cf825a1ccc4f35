"""
Externally computed embedding tables.

Some feature files hold vectors computed by another tool (for example a
CNN's penultimate layer) keyed by image file name. These cannot be
re-extracted for a query image, so the query vector is looked up by
file name instead, and the table is searched with an exact FAISS
IndexFlatL2.

Records whose dimension differs from the table's majority dimension
are left out of the index, as a length mismatch would be during a
linear scan.
"""

import os
import logging
from collections import Counter
from typing import Dict, List, Optional, Sequence, Tuple

import faiss
import numpy as np

from .errors import InvalidInput, SizeMismatch
from .feature_store import read_features
from .ranking import MatchRecord, select_top

logger = logging.getLogger(__name__)


def basename(identifier: str) -> str:
    """File name part of an identifier, for either path separator."""
    return os.path.basename(identifier.replace("\\", "/"))


def by_basename(records: Sequence[Tuple[str, np.ndarray]]) -> Dict[str, np.ndarray]:
    """Map file basename to vector; the first record wins on duplicates."""
    table: Dict[str, np.ndarray] = {}
    for identifier, vector in records:
        table.setdefault(basename(identifier), vector)
    return table


class EmbeddingTable:
    """
    Identifier -> vector table with exact L2 search.

    Lookups match on file basename, so a table written with full paths
    answers queries given by bare file name and vice versa.
    """

    def __init__(self, records: Sequence[Tuple[str, np.ndarray]]):
        self.records = list(records)
        self._by_name = by_basename(self.records)

        dims = Counter(len(v) for _, v in self.records)
        self.dim = dims.most_common(1)[0][0] if dims else 0

        self.identifiers: List[str] = [
            identifier for identifier, vector in self.records if len(vector) == self.dim
        ]
        skipped = len(self.records) - len(self.identifiers)
        if skipped:
            logger.warning(f"Excluded {skipped} embeddings with dimension != {self.dim}")

        self.index = faiss.IndexFlatL2(self.dim) if self.dim else None
        if self.identifiers:
            vectors = np.vstack([
                v for _, v in self.records if len(v) == self.dim
            ]).astype(np.float32)
            self.index.add(vectors)
            logger.info(f"Built FlatL2 index: {self.index.ntotal} vectors, {self.dim}d")

    @classmethod
    def from_file(cls, path: str) -> "EmbeddingTable":
        return cls(read_features(path).records)

    def __len__(self):
        return len(self.records)

    def __contains__(self, name: str) -> bool:
        return basename(name) in self._by_name

    def get(self, name: str) -> Optional[np.ndarray]:
        return self._by_name.get(basename(name))

    def lookup(self, name: str) -> np.ndarray:
        """
        Vector for an image, matched by basename.

        Raises:
            InvalidInput: If the image is not in the table.
        """
        vector = self.get(name)
        if vector is None:
            raise InvalidInput(f"{basename(name)} not found in embedding table")
        return vector

    def search(self, query: np.ndarray, top_n: int) -> List[MatchRecord]:
        """
        Rank the table by Euclidean distance to the query.

        Every indexed vector is retrieved and re-sorted by
        (distance, table position) so exact ties keep table order.

        Raises:
            SizeMismatch: If the query dimension differs from the table's.
        """
        if top_n < 0:
            raise ValueError(f"top_n must be non-negative, got {top_n}")
        if self.index is None or self.index.ntotal == 0:
            return []

        query = np.asarray(query, dtype=np.float32).reshape(1, -1)
        if query.shape[1] != self.index.d:
            raise SizeMismatch(
                f"Query dimension {query.shape[1]} doesn't match "
                f"index dimension {self.index.d}"
            )

        distances, indices = self.index.search(query, self.index.ntotal)

        order = sorted(
            (float(d), int(i)) for d, i in zip(distances[0], indices[0]) if i >= 0
        )
        matches = [
            MatchRecord(self.identifiers[i], float(np.sqrt(max(d, 0.0))))
            for d, i in order
        ]
        return select_top(matches, top_n)
