"""Weighted k-nearest-prototype classifier with a rejection threshold."""

from __future__ import annotations

import logging
from collections import Counter
from enum import Enum
from typing import List, Optional, Tuple, Union

import numpy as np

from facegeom.errors import DimensionMismatchError
from facegeom.recognition.prototypes import PrototypeStore
from facegeom.types import UNKNOWN_LABEL, Neighbor, Prediction

LOGGER = logging.getLogger("facegeom.recognition.classifier")


class DistanceMetric(str, Enum):
    EUCLIDEAN = "euclidean"
    COSINE = "cosine"

    @classmethod
    def parse(cls, value: Union[str, "DistanceMetric"]) -> "DistanceMetric":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(
                f"Unknown distance metric {value!r}; expected one of {[m.value for m in cls]}"
            ) from None


def _prepare(
    a: np.ndarray, b: np.ndarray, weights: Optional[np.ndarray]
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    a = np.asarray(a, dtype=np.float64).reshape(-1)
    b = np.asarray(b, dtype=np.float64).reshape(-1)
    if a.shape != b.shape:
        raise DimensionMismatchError(f"Vector dimensions differ: {a.shape[0]} vs {b.shape[0]}")
    if weights is None:
        w = np.ones_like(a)
    else:
        w = np.asarray(weights, dtype=np.float64).reshape(-1)
        if w.shape != a.shape:
            raise DimensionMismatchError(
                f"Weight dimension {w.shape[0]} does not match vector dimension {a.shape[0]}"
            )
    return a, b, w


def weighted_euclidean(a: np.ndarray, b: np.ndarray, weights: Optional[np.ndarray] = None) -> float:
    """sqrt(sum_i w_i * (a_i - b_i)^2); unit weights when ``weights`` is None."""
    a, b, w = _prepare(a, b, weights)
    diff = a - b
    return float(np.sqrt(np.sum(w * diff * diff)))


def weighted_cosine_distance(
    a: np.ndarray, b: np.ndarray, weights: Optional[np.ndarray] = None
) -> float:
    """1 - weighted cosine similarity; infinite when either weighted norm is zero."""
    a, b, w = _prepare(a, b, weights)
    norm_a = float(np.sqrt(np.sum(w * a * a)))
    norm_b = float(np.sqrt(np.sum(w * b * b)))
    if norm_a == 0.0 or norm_b == 0.0:
        return float("inf")
    return 1.0 - float(np.sum(w * a * b)) / (norm_a * norm_b)


_METRICS = {
    DistanceMetric.EUCLIDEAN: weighted_euclidean,
    DistanceMetric.COSINE: weighted_cosine_distance,
}


def rank_prototypes(
    store: PrototypeStore,
    query: np.ndarray,
    weights: Optional[np.ndarray] = None,
    metric: Union[str, DistanceMetric] = DistanceMetric.EUCLIDEAN,
) -> List[Neighbor]:
    """Distances from ``query`` to every prototype, ascending; ties keep store order."""
    distance_fn = _METRICS[DistanceMetric.parse(metric)]
    scores = [
        (label, distance_fn(query, record.vector, weights))
        for label, record in store.items()
    ]
    scores.sort(key=lambda item: item[1])
    return scores


def vote(neighbors: List[Neighbor]) -> str:
    """Plurality label among ``neighbors``; ties go to the earliest-ranked label."""
    counts = Counter(label for label, _ in neighbors)
    best = max(counts.values())
    for label, _ in neighbors:
        if counts[label] == best:
            return label
    raise ValueError("Cannot vote on an empty neighbor list")


def classify(
    store: PrototypeStore,
    query: np.ndarray,
    weights: Optional[np.ndarray] = None,
    k: int = 1,
    metric: Union[str, DistanceMetric] = DistanceMetric.EUCLIDEAN,
    threshold: float = 2.0,
) -> Optional[Prediction]:
    """Classify ``query`` against the stored prototypes.

    Returns None when the store is empty (no reference data). When the nearest
    distance exceeds ``threshold`` the prediction is ``UNKNOWN_LABEL``.
    The reported distance is always the nearest neighbor's, even when the
    vote selects a different label.
    """
    if k < 1:
        raise ValueError(f"k must be >= 1, got {k}")
    if threshold < 0:
        raise ValueError(f"threshold must be >= 0, got {threshold}")
    if len(store) == 0:
        return None

    ranked = rank_prototypes(store, query, weights, metric)
    neighbors = ranked[:k]
    nearest_label, nearest_distance = neighbors[0]

    if nearest_distance > threshold:
        LOGGER.debug(
            "Rejected: nearest %s at %.4f exceeds threshold %.4f",
            nearest_label,
            nearest_distance,
            threshold,
        )
        return Prediction(
            label=UNKNOWN_LABEL, distance=nearest_distance, neighbors=neighbors, rejected=True
        )

    label = vote(neighbors)
    LOGGER.debug("Predicted %s (nearest %s at %.4f, k=%d)", label, nearest_label, nearest_distance, k)
    return Prediction(label=label, distance=nearest_distance, neighbors=neighbors)
