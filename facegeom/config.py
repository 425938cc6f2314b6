"""Session configuration loaded from YAML."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from facegeom.io_utils import load_yaml
from facegeom.recognition.classifier import DistanceMetric
from facegeom.zones import FacialZone, configure_zones, default_zones

LOGGER = logging.getLogger("facegeom.config")

DEFAULT_CONFIG_PATH = Path("configs/session.yaml")


@dataclass
class SessionConfig:
    capture_duration_s: float = 3.0
    target_fps: float = 15.0
    k: int = 3
    metric: str = DistanceMetric.EUCLIDEAN.value
    threshold: float = 2.0
    left_eye_index: int = 33
    right_eye_index: int = 263
    zone_weighting: bool = True
    # {zone_name: {"active": bool, "weight": float}}
    zones: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.capture_duration_s = float(self.capture_duration_s)
        self.target_fps = float(self.target_fps)
        self.k = int(self.k)
        self.threshold = float(self.threshold)
        self.metric = DistanceMetric.parse(self.metric).value
        if self.capture_duration_s <= 0:
            raise ValueError("capture_duration_s must be > 0")
        if self.target_fps <= 0:
            raise ValueError("target_fps must be > 0")
        if self.k < 1:
            raise ValueError("k must be >= 1")
        if self.threshold < 0:
            raise ValueError("threshold must be >= 0")
        if self.left_eye_index == self.right_eye_index:
            raise ValueError("left_eye_index and right_eye_index must differ")
        # Fail early on unknown zone names or non-positive weights.
        self.build_zones()

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "SessionConfig":
        known = {f.name for f in fields(cls)}
        data = dict(data or {})
        unknown = sorted(set(data) - known)
        if unknown:
            LOGGER.warning("Ignoring unknown config keys: %s", unknown)
        return cls(**{key: value for key, value in data.items() if key in known})

    def with_overrides(self, **overrides: Any) -> "SessionConfig":
        """Return a copy with non-None overrides applied (CLI > config > default)."""
        values = {f.name: getattr(self, f.name) for f in fields(self)}
        values.update({key: value for key, value in overrides.items() if value is not None})
        return SessionConfig(**values)

    def build_zones(self) -> List[FacialZone]:
        return configure_zones(default_zones(), self.zones)


def load_config(path: Optional[Path] = None) -> SessionConfig:
    """Load ``path`` (or the default file when present) into a SessionConfig."""
    if path is None:
        if not DEFAULT_CONFIG_PATH.exists():
            return SessionConfig()
        path = DEFAULT_CONFIG_PATH
    data = load_yaml(path)
    return SessionConfig.from_dict(data.get("session", data))
