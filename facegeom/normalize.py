"""Landmark normalization into translation and scale invariant feature vectors."""

from __future__ import annotations

import logging
from typing import Iterable, Optional, Tuple, Union

import numpy as np

from facegeom.types import Landmarks
from facegeom.zones import DEFAULT_ZONES, FacialZone, zone_weight_vector

LOGGER = logging.getLogger("facegeom.normalize")

# MediaPipe FaceMesh reference points (outer eye corners, subject's right/left).
LEFT_EYE_INDEX = 33
RIGHT_EYE_INDEX = 263
MIN_IPD = 1e-6

CAPTURE_MODE = "capture"
INFERENCE_MODE = "inference"


def _as_points(landmarks: Landmarks) -> np.ndarray:
    """Return an (N, 2) float array of x/y coordinates; z is dropped."""
    points = np.asarray(landmarks, dtype=np.float64)
    if points.ndim != 2 or points.shape[1] < 2:
        raise ValueError(f"Landmarks must have shape (N, 2) or (N, 3), got {points.shape}")
    return points[:, :2]


def _reference_points(
    points: np.ndarray, left_eye_index: int, right_eye_index: int
) -> Tuple[np.ndarray, np.ndarray]:
    needed = max(left_eye_index, right_eye_index)
    if points.shape[0] <= needed:
        raise ValueError(
            f"Landmark list of length {points.shape[0]} has no reference index {needed}"
        )
    return points[left_eye_index], points[right_eye_index]


def interpupillary_distance(
    landmarks: Landmarks,
    left_eye_index: int = LEFT_EYE_INDEX,
    right_eye_index: int = RIGHT_EYE_INDEX,
) -> float:
    """Euclidean distance between the two reference landmarks."""
    left, right = _reference_points(_as_points(landmarks), left_eye_index, right_eye_index)
    return float(np.linalg.norm(right - left))


def normalize_landmarks(
    landmarks: Landmarks,
    left_eye_index: int = LEFT_EYE_INDEX,
    right_eye_index: int = RIGHT_EYE_INDEX,
) -> np.ndarray:
    """Center on the eye midpoint and scale by the interpupillary distance.

    Returns a flat ``[x0, y0, x1, y1, ...]`` vector of length 2*N. When the
    reference points (nearly) coincide the raw coordinates are returned
    unchanged; such vectors are not comparable with normally scaled ones.
    """
    points = _as_points(landmarks)
    left, right = _reference_points(points, left_eye_index, right_eye_index)
    ipd = float(np.linalg.norm(right - left))
    if ipd < MIN_IPD:
        LOGGER.warning("IPD %.2e below %.0e; using unnormalized coordinates", ipd, MIN_IPD)
        return points.reshape(-1).copy()
    center = (left + right) / 2.0
    return ((points - center) / ipd).reshape(-1)


def capture_features(
    landmarks: Landmarks,
    left_eye_index: int = LEFT_EYE_INDEX,
    right_eye_index: int = RIGHT_EYE_INDEX,
) -> Tuple[np.ndarray, np.ndarray]:
    """Feature vector plus uniform unit weights."""
    vector = normalize_landmarks(landmarks, left_eye_index, right_eye_index)
    return vector, np.ones_like(vector)


def inference_features(
    landmarks: Landmarks,
    zones: Iterable[FacialZone] = DEFAULT_ZONES,
    left_eye_index: int = LEFT_EYE_INDEX,
    right_eye_index: int = RIGHT_EYE_INDEX,
) -> Tuple[np.ndarray, np.ndarray]:
    """Feature vector plus per-dimension weights from the active zones."""
    vector = normalize_landmarks(landmarks, left_eye_index, right_eye_index)
    weights = zone_weight_vector(zones, vector.shape[0] // 2)
    return vector, weights


def normalize(
    landmarks: Landmarks,
    mode: str = CAPTURE_MODE,
    zones: Optional[Iterable[FacialZone]] = None,
    left_eye_index: int = LEFT_EYE_INDEX,
    right_eye_index: int = RIGHT_EYE_INDEX,
) -> Union[np.ndarray, Tuple[np.ndarray, np.ndarray]]:
    """Normalize ``landmarks`` for capture (vector) or inference (vector, weights)."""
    if mode == CAPTURE_MODE:
        return normalize_landmarks(landmarks, left_eye_index, right_eye_index)
    if mode == INFERENCE_MODE:
        return inference_features(
            landmarks,
            DEFAULT_ZONES if zones is None else zones,
            left_eye_index,
            right_eye_index,
        )
    raise ValueError(f"Unknown normalization mode: {mode}")
