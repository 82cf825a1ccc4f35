"""
Distance metrics between feature vectors.

Every metric takes two vectors of equal length and returns a float
where smaller means more similar. Length mismatches raise SizeMismatch.

The combined histogram metrics split each vector into the segments the
matching extractor produced and take a weighted sum of per-segment
histogram intersection distances. Segment boundaries come from vector
length alone, so a metric must only be used with its own method's
vectors; check_pairing() enforces that at configuration time.

Weights are loaded from the environment and can be overridden per call.
"""

import os
import logging
from enum import Enum
from functools import partial
from typing import Callable, Dict, FrozenSet

import numpy as np

from .errors import InvalidInput, SizeMismatch, UnknownMethod
from .histograms import texture_bins_for_length
from .methods import Method, get_method

logger = logging.getLogger(__name__)

# Combination weights. Tune for your image collection.
MHIST_WHOLE_WEIGHT = float(os.environ.get("MHIST_WHOLE_W", "0.5"))
TEXTURE_COLOR_WEIGHT = float(os.environ.get("TEXTURE_COLOR_W", "0.5"))
FACE_WEIGHTS = (
    float(os.environ.get("FACE_WHOLE_W", "0.2")),
    float(os.environ.get("FACE_REGION_W", "0.6")),
    float(os.environ.get("FACE_BACKGROUND_W", "0.2")),
)
HYBRID_EMBEDDING_WEIGHT = float(os.environ.get("HYBRID_EMBEDDING_W", "0.5"))
# Typical embedding distances run 0-50; scale them onto the histogram range
HYBRID_EMBEDDING_SCALE = float(os.environ.get("HYBRID_EMBEDDING_SCALE", "50.0"))


def _as_pair(a, b):
    a = np.asarray(a, dtype=np.float64).reshape(-1)
    b = np.asarray(b, dtype=np.float64).reshape(-1)
    if a.shape != b.shape:
        raise SizeMismatch(f"Vector sizes do not match: {a.size} vs {b.size}")
    return a, b


def euclidean_distance(a, b) -> float:
    """sqrt(sum((a - b)^2))"""
    a, b = _as_pair(a, b)
    return float(np.sqrt(np.sum((a - b) ** 2)))


def histogram_intersection(a, b) -> float:
    """1 - sum(min(a, b)); 0 for identical normalized histograms."""
    a, b = _as_pair(a, b)
    return float(1.0 - np.minimum(a, b).sum())


def multi_histogram_distance(a, b, whole_weight: float = None) -> float:
    """
    Weighted intersection distance of whole-image and center halves.

    Args:
        a, b: 2*H*H vectors from the mhistogram method.
        whole_weight: Weight of the whole-image half; the center half
            gets 1 - whole_weight.
    """
    if whole_weight is None:
        whole_weight = MHIST_WHOLE_WEIGHT
    a, b = _as_pair(a, b)
    if a.size % 2:
        raise SizeMismatch(f"Multi-histogram vector has odd length {a.size}")

    half = a.size // 2
    whole = histogram_intersection(a[:half], b[:half])
    center = histogram_intersection(a[half:], b[half:])
    return whole_weight * whole + (1.0 - whole_weight) * center


def texture_color_distance(a, b, color_weight: float = None) -> float:
    """
    Weighted intersection distance of color and texture segments.

    Args:
        a, b: H*H + H vectors from the texture method.
        color_weight: Weight of the color histogram; texture gets
            1 - color_weight.
    """
    if color_weight is None:
        color_weight = TEXTURE_COLOR_WEIGHT
    a, b = _as_pair(a, b)
    bins = texture_bins_for_length(a.size)
    if not bins:
        raise SizeMismatch(f"Length {a.size} is not a texture+color layout")

    split = bins * bins
    color = histogram_intersection(a[:split], b[:split])
    texture = histogram_intersection(a[split:], b[split:])
    return color_weight * color + (1.0 - color_weight) * texture


def face_distance(a, b,
                  whole_weight: float = None,
                  face_weight: float = None,
                  background_weight: float = None) -> float:
    """
    Weighted intersection distance of whole, face and background thirds.

    The weights need not sum to 1.
    """
    defaults = FACE_WEIGHTS
    whole_weight = defaults[0] if whole_weight is None else whole_weight
    face_weight = defaults[1] if face_weight is None else face_weight
    background_weight = defaults[2] if background_weight is None else background_weight

    a, b = _as_pair(a, b)
    if a.size % 3:
        raise SizeMismatch(f"Face histogram vector length {a.size} is not divisible by 3")

    n = a.size // 3
    whole = histogram_intersection(a[:n], b[:n])
    face = histogram_intersection(a[n:2 * n], b[n:2 * n])
    background = histogram_intersection(a[2 * n:], b[2 * n:])
    return whole_weight * whole + face_weight * face + background_weight * background


def cosine_distance(a, b) -> float:
    """1 - cos(a, b); 1.0 when either vector has zero norm."""
    a, b = _as_pair(a, b)
    norm_a = np.linalg.norm(a)
    norm_b = np.linalg.norm(b)
    if norm_a == 0 or norm_b == 0:
        return 1.0
    return float(1.0 - np.dot(a, b) / (norm_a * norm_b))


def hybrid_distance(embedding_a, embedding_b, hist_a, hist_b,
                    embedding_weight: float = None,
                    embedding_scale: float = None) -> float:
    """
    Blend an embedding distance with a color histogram distance.

    The Euclidean embedding distance is divided by embedding_scale to
    bring it near the [0, 1] range of histogram intersection.

    Raises:
        InvalidInput: If embedding_scale is not positive.
    """
    if embedding_weight is None:
        embedding_weight = HYBRID_EMBEDDING_WEIGHT
    if embedding_scale is None:
        embedding_scale = HYBRID_EMBEDDING_SCALE
    if embedding_scale <= 0:
        raise InvalidInput(f"embedding_scale must be positive, got {embedding_scale}")

    embedding = euclidean_distance(embedding_a, embedding_b) / embedding_scale
    color = histogram_intersection(hist_a, hist_b)
    return embedding_weight * embedding + (1.0 - embedding_weight) * color


class Metric(str, Enum):
    EUCLIDEAN = "euclidean"
    INTERSECTION = "intersection"
    MULTI_HISTOGRAM = "multi_histogram"
    TEXTURE_COLOR = "texture_color"
    FACE = "face"
    COSINE = "cosine"


METRICS: Dict[Metric, Callable[..., float]] = {
    Metric.EUCLIDEAN: euclidean_distance,
    Metric.INTERSECTION: histogram_intersection,
    Metric.MULTI_HISTOGRAM: multi_histogram_distance,
    Metric.TEXTURE_COLOR: texture_color_distance,
    Metric.FACE: face_distance,
    Metric.COSINE: cosine_distance,
}

DEFAULT_METRICS: Dict[Method, Metric] = {
    Method.BASELINE: Metric.EUCLIDEAN,
    Method.COLOR_HISTOGRAM: Metric.INTERSECTION,
    Method.MULTI_HISTOGRAM: Metric.MULTI_HISTOGRAM,
    Method.TEXTURE_COLOR: Metric.TEXTURE_COLOR,
    Method.FACE: Metric.FACE,
}

# Metrics that understand each method's vector layout
_GENERIC = frozenset({Metric.EUCLIDEAN, Metric.COSINE})
_HISTOGRAM = _GENERIC | {Metric.INTERSECTION}
COMPATIBLE_METRICS: Dict[Method, FrozenSet[Metric]] = {
    Method.BASELINE: _GENERIC,
    Method.COLOR_HISTOGRAM: _HISTOGRAM,
    Method.MULTI_HISTOGRAM: _HISTOGRAM | {Metric.MULTI_HISTOGRAM},
    Method.TEXTURE_COLOR: _HISTOGRAM | {Metric.TEXTURE_COLOR},
    Method.FACE: _HISTOGRAM | {Metric.FACE},
}


def resolve_metric(name) -> Metric:
    if isinstance(name, Metric):
        return name
    try:
        return Metric(str(name).lower())
    except ValueError:
        valid = ", ".join(m.value for m in Metric)
        raise UnknownMethod(f"Unknown distance metric '{name}' (expected one of: {valid})")


def get_metric(name, **params) -> Callable[[np.ndarray, np.ndarray], float]:
    """
    Look up a metric and bind its weight parameters.

    Example:
        metric = get_metric("face", face_weight=0.8)
        metric(a, b)
    """
    func = METRICS[resolve_metric(name)]
    return partial(func, **params) if params else func


def check_pairing(method, metric) -> Metric:
    """
    Ensure a metric understands the vector layout of a method.

    Returns:
        The resolved Metric (the method's default when metric is None).

    Raises:
        UnknownMethod: For unknown names or an incompatible pairing.
    """
    method = get_method(method)
    if metric is None:
        return DEFAULT_METRICS[method]

    metric = resolve_metric(metric)
    if metric not in COMPATIBLE_METRICS[method]:
        raise UnknownMethod(
            f"Metric '{metric.value}' cannot compare '{method.value}' vectors"
        )
    return metric
