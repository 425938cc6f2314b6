"""Common dataclasses and type aliases used across the facegeom package."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Tuple, Union

import numpy as np

# Ordered landmarks for one face; (N, 2) or (N, 3) array-like.
Landmarks = Union[np.ndarray, Sequence[Sequence[float]]]
# Ranked (label, distance) pairs.
Neighbor = Tuple[str, float]

UNKNOWN_LABEL = "unknown"


@dataclass
class PrototypeRecord:
    """Aggregated feature vector for one enrolled identity."""

    vector: np.ndarray
    sample_count: int = 1

    def __post_init__(self) -> None:
        self.vector = np.asarray(self.vector, dtype=np.float64).reshape(-1)
        self.sample_count = int(self.sample_count)

    @property
    def dimension(self) -> int:
        return int(self.vector.shape[0])

    def to_dict(self) -> Dict:
        return {
            "vector": self.vector.tolist(),
            "sampleCount": self.sample_count,
        }


@dataclass
class Prediction:
    """Outcome of a nearest-prototype classification."""

    label: str
    distance: float
    neighbors: List[Neighbor] = field(default_factory=list)
    # True when the nearest distance exceeded the threshold.
    rejected: bool = False

    @property
    def is_unknown(self) -> bool:
        return self.rejected


@dataclass
class LandmarkFrame:
    """Detector output for one processed camera frame."""

    timestamp_ms: float
    faces: List[np.ndarray] = field(default_factory=list)

    @classmethod
    def from_dict(cls, payload: Dict) -> "LandmarkFrame":
        faces = [np.asarray(face, dtype=np.float64) for face in payload.get("faces") or []]
        return cls(timestamp_ms=float(payload.get("timestamp_ms", 0.0)), faces=faces)


def mean_vector(vectors: Sequence[np.ndarray]) -> np.ndarray:
    """Arithmetic mean of equally weighted vectors."""
    if not vectors:
        return np.empty((0,), dtype=np.float64)
    stacked = np.stack([np.asarray(v, dtype=np.float64) for v in vectors], axis=0)
    return stacked.mean(axis=0)
