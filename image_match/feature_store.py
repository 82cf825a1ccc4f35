"""
CSV persistence for feature vectors.

Each row is `identifier,v1,...,vn`. Files written by build_features()
start with a tag line

    # method=chistogram bins=16

so a search can refuse vectors produced by a different method. Files
from other tools (e.g. externally computed CNN embeddings) have no tag
and load with method=None.

Values are written with the shortest repr that round-trips, so float32
vectors read back bit-for-bit.
"""

import csv
import os
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import numpy as np

logger = logging.getLogger(__name__)

TAG_PREFIX = "#"


@dataclass
class FeatureSet:
    """Records loaded from one feature file, with its method tag."""
    method: Optional[str] = None
    bins: Optional[int] = None
    records: List[Tuple[str, np.ndarray]] = field(default_factory=list)

    def __len__(self):
        return len(self.records)


def format_tag(method: str, bins: Optional[int] = None) -> str:
    tag = f"{TAG_PREFIX} method={method}"
    if bins is not None:
        tag += f" bins={int(bins)}"
    return tag


def parse_tag(line: str) -> Tuple[Optional[str], Optional[int]]:
    """Parse a `# method=... bins=...` line into (method, bins)."""
    fields = dict(
        item.split("=", 1)
        for item in line.lstrip(TAG_PREFIX).split()
        if "=" in item
    )
    bins = fields.get("bins")
    return fields.get("method"), int(bins) if bins and bins.isdigit() else None


def is_tag_row(row: List[str]) -> bool:
    """
    A tag is a single-cell first row. Records always carry at least one
    value, so an identifier starting with "#" is never mistaken for it.
    """
    return (len(row) == 1 and row[0].startswith(TAG_PREFIX)
            and parse_tag(row[0])[0] is not None)


def append_features(path: str,
                    identifier: str,
                    vector: np.ndarray,
                    reset: bool = False,
                    method: Optional[str] = None,
                    bins: Optional[int] = None) -> None:
    """
    Write one feature record.

    Args:
        path: CSV file path.
        identifier: Record identifier, usually the image path.
        vector: Feature vector.
        reset: Truncate the file first (and write the tag line if a
            method is given). Otherwise append.
        method: Method tag written on reset.
        bins: Bin count written with the tag.
    """
    values = np.asarray(vector, dtype=np.float32).reshape(-1)
    with open(path, "w" if reset else "a", newline="", encoding="utf-8") as f:
        if reset and method:
            f.write(format_tag(method, bins) + "\n")
        writer = csv.writer(f)
        writer.writerow([identifier] + [repr(float(v)) for v in values])


def read_features(path: str) -> FeatureSet:
    """
    Read every record from a feature CSV.

    Rows with unparseable values are skipped with a warning.

    Raises:
        FileNotFoundError: If the file does not exist.
    """
    if not os.path.exists(path):
        raise FileNotFoundError(f"Feature file not found: {path}")

    method, bins = None, None
    records = []
    with open(path, newline="", encoding="utf-8") as f:
        for line_no, row in enumerate(csv.reader(f), start=1):
            if not row:
                continue
            if line_no == 1 and is_tag_row(row):
                method, bins = parse_tag(row[0])
                continue
            try:
                vector = np.array([float(v) for v in row[1:] if v.strip()],
                                  dtype=np.float32)
            except ValueError:
                logger.warning(f"Skipping malformed row {line_no} in {path}")
                continue
            records.append((row[0], vector))

    logger.info(f"Loaded {len(records)} feature vectors from {path} (method={method})")
    return FeatureSet(method, bins, records)
