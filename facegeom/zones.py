"""Facial zones used to weight landmark dimensions at inference time.

Index sets follow the MediaPipe FaceMesh 468-point topology.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional

import numpy as np

LOGGER = logging.getLogger("facegeom.zones")

EYE_INDICES = frozenset({
    # right eye (subject's)
    33, 7, 163, 144, 145, 153, 154, 155, 133, 246, 161, 160, 159, 158, 157, 173,
    # left eye
    263, 249, 390, 373, 374, 380, 381, 382, 362, 466, 388, 387, 386, 385, 384, 398,
})

EYEBROW_INDICES = frozenset({
    46, 53, 52, 65, 55, 70, 63, 105, 66, 107,
    276, 283, 282, 295, 285, 300, 293, 334, 296, 336,
})

NOSE_INDICES = frozenset({
    1, 2, 4, 5, 6, 19, 45, 48, 64, 94, 97, 98, 115, 168, 195, 197,
    220, 275, 278, 294, 326, 327, 344, 440,
})

MOUTH_INDICES = frozenset({
    61, 146, 91, 181, 84, 17, 314, 405, 321, 375, 291, 185, 40, 39, 37, 0,
    267, 269, 270, 409, 78, 95, 88, 178, 87, 14, 317, 402, 318, 324, 308,
    191, 80, 81, 82, 13, 312, 311, 310, 415,
})

CONTOUR_INDICES = frozenset({
    10, 338, 297, 332, 284, 251, 389, 356, 454, 323, 361, 288, 397, 365,
    379, 378, 400, 377, 152, 148, 176, 149, 150, 136, 172, 58, 132, 93,
    234, 127, 162, 21, 54, 103, 67, 109,
})


@dataclass
class FacialZone:
    """Named group of landmark indices with an activation flag and weight."""

    name: str
    indices: FrozenSet[int] = field(default_factory=frozenset)
    active: bool = True
    weight: float = 1.0

    def __post_init__(self) -> None:
        self.indices = frozenset(int(i) for i in self.indices)
        self.weight = float(self.weight)
        if not self.weight > 0.0:
            raise ValueError(f"Zone {self.name!r} weight must be > 0, got {self.weight}")


def default_zones() -> List[FacialZone]:
    """Return a fresh list of the built-in zones, all active with weight 1.0."""
    return [
        FacialZone("eyes", EYE_INDICES),
        FacialZone("eyebrows", EYEBROW_INDICES),
        FacialZone("nose", NOSE_INDICES),
        FacialZone("mouth", MOUTH_INDICES),
        FacialZone("contour", CONTOUR_INDICES),
    ]


DEFAULT_ZONES = tuple(default_zones())


def landmark_weights(zones: Iterable[FacialZone], num_landmarks: int) -> np.ndarray:
    """Per-landmark weight: max over active zones containing the index, else 0."""
    weights = np.zeros((num_landmarks,), dtype=np.float64)
    for zone in zones:
        if not zone.active:
            continue
        idx = np.fromiter((i for i in zone.indices if 0 <= i < num_landmarks), dtype=np.int64)
        if idx.size == 0:
            continue
        weights[idx] = np.maximum(weights[idx], zone.weight)
    return weights


def zone_weight_vector(zones: Iterable[FacialZone], num_landmarks: int) -> np.ndarray:
    """Per-dimension weights for an interleaved x/y feature vector of length 2*N."""
    return np.repeat(landmark_weights(zones, num_landmarks), 2)


def configure_zones(
    zones: Iterable[FacialZone],
    overrides: Optional[Mapping[str, Mapping]] = None,
) -> List[FacialZone]:
    """Apply ``{name: {"active": bool, "weight": float}}`` overrides to a copy of ``zones``."""
    configured: Dict[str, FacialZone] = {zone.name: replace(zone) for zone in zones}
    for name, settings in (overrides or {}).items():
        if name not in configured:
            raise KeyError(f"Unknown facial zone: {name}")
        zone = configured[name]
        settings = settings or {}
        configured[name] = replace(
            zone,
            active=bool(settings.get("active", zone.active)),
            weight=float(settings.get("weight", zone.weight)),
        )
        LOGGER.debug(
            "Zone %s configured: active=%s weight=%.3f",
            name,
            configured[name].active,
            configured[name].weight,
        )
    return list(configured.values())


def active_zone_names(zones: Iterable[FacialZone]) -> List[str]:
    return [zone.name for zone in zones if zone.active]
