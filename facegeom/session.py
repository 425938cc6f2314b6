"""Session orchestrator tying detector frames to capture and classification."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np

from facegeom.capture import CaptureController, CaptureResult
from facegeom.config import SessionConfig
from facegeom.errors import DimensionMismatchError, EmptyCaptureError, NoPrototypesError
from facegeom.exchange import export_prototypes, import_prototypes
from facegeom.normalize import inference_features, normalize_landmarks
from facegeom.recognition.classifier import classify
from facegeom.recognition.prototypes import PrototypeStore
from facegeom.types import Landmarks, LandmarkFrame, Prediction
from facegeom.zones import active_zone_names

LOGGER = logging.getLogger("facegeom.session")

STATUS_IDLE = "idle"
STATUS_CAPTURING = "capturing"
STATUS_NO_FACE = "no_face"
STATUS_NO_REFERENCE = "no_reference"
STATUS_PREDICTED = "predicted"
STATUS_INVALID_DIMENSION = "invalid_dimension"


class FrameThrottle:
    """Drop frames arriving faster than ``target_fps``; nothing is queued."""

    def __init__(self, target_fps: float) -> None:
        if target_fps <= 0:
            raise ValueError(f"target_fps must be > 0, got {target_fps}")
        self.interval_s = 1.0 / float(target_fps)
        self._last: Optional[float] = None

    def accept(self, now: float) -> bool:
        if self._last is not None and (now - self._last) < self.interval_s:
            return False
        self._last = now
        return True

    def reset(self) -> None:
        self._last = None


@dataclass
class FrameResult:
    timestamp: float
    status: str
    faces: int
    prediction: Optional[Prediction] = None
    capture: Optional[CaptureResult] = None
    capture_error: Optional[str] = None
    prediction_error: Optional[str] = None
    elapsed_ms: float = 0.0


class RecognitionSession:
    """Explicit session context: prototype store, zones, mode flags and timers."""

    def __init__(
        self,
        config: Optional[SessionConfig] = None,
        store: Optional[PrototypeStore] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config or SessionConfig()
        self.store = store if store is not None else PrototypeStore()
        self.zones = self.config.build_zones()
        self.clock = clock
        self.throttle = FrameThrottle(self.config.target_fps)
        self.capture = CaptureController(
            self.store,
            duration_s=self.config.capture_duration_s,
            clock=clock,
            left_eye_index=self.config.left_eye_index,
            right_eye_index=self.config.right_eye_index,
        )
        self.predicting = False
        LOGGER.debug(
            "Session ready: k=%d metric=%s threshold=%.3f zones=%s",
            self.config.k,
            self.config.metric,
            self.config.threshold,
            active_zone_names(self.zones) if self.config.zone_weighting else "off",
        )

    def _now(self, now: Optional[float]) -> float:
        return self.clock() if now is None else float(now)

    # Capture -----------------------------------------------------------

    def start_capture(self, identifier: str, now: Optional[float] = None) -> None:
        self.capture.start(identifier, now=self._now(now))

    def tick(self, now: Optional[float] = None) -> Optional[CaptureResult]:
        """Timer-driven poll of the capture window, independent of frames."""
        return self.capture.poll(self._now(now))

    # Prediction ----------------------------------------------------------

    def start_prediction(self) -> None:
        if len(self.store) == 0:
            raise NoPrototypesError("Register at least one person before predicting")
        if not self.predicting:
            self.predicting = True
            LOGGER.info("Live prediction enabled")

    def stop_prediction(self) -> None:
        if self.predicting:
            self.predicting = False
            LOGGER.info("Live prediction stopped")

    def toggle_prediction(self) -> bool:
        if self.predicting:
            self.stop_prediction()
        else:
            self.start_prediction()
        return self.predicting

    def query_features(self, landmarks: Landmarks) -> Tuple[np.ndarray, Optional[np.ndarray]]:
        """Inference-mode (vector, weights); weights are None when zone weighting is off."""
        if not self.config.zone_weighting:
            vector = normalize_landmarks(
                landmarks, self.config.left_eye_index, self.config.right_eye_index
            )
            return vector, None
        return inference_features(
            landmarks, self.zones, self.config.left_eye_index, self.config.right_eye_index
        )

    def predict(self, landmarks: Landmarks) -> Optional[Prediction]:
        vector, weights = self.query_features(landmarks)
        return classify(
            self.store,
            vector,
            weights,
            k=self.config.k,
            metric=self.config.metric,
            threshold=self.config.threshold,
        )

    # Frame loop ------------------------------------------------------------

    def process_frame(
        self,
        frame: Union[LandmarkFrame, Sequence[Landmarks]],
        now: Optional[float] = None,
    ) -> Optional[FrameResult]:
        """Handle one detector callback; returns None when the frame is throttled."""
        if isinstance(frame, LandmarkFrame):
            faces: Sequence[Landmarks] = frame.faces
        else:
            faces = frame
        now = self._now(now)
        if not self.throttle.accept(now):
            return None
        started = time.perf_counter()

        result = FrameResult(timestamp=now, status=STATUS_IDLE, faces=len(faces))
        try:
            result.capture = self.tick(now)
        except EmptyCaptureError as exc:
            result.capture_error = str(exc)

        if self.capture.is_capturing:
            self.capture.add_frame(faces, now=now)
            result.status = STATUS_CAPTURING
        elif self.predicting:
            if len(faces) == 0:
                result.status = STATUS_NO_FACE
            else:
                try:
                    result.prediction = self.predict(faces[0])
                except DimensionMismatchError as exc:
                    LOGGER.debug("Classification skipped: %s", exc)
                    result.prediction_error = str(exc)
                    result.status = STATUS_INVALID_DIMENSION
                else:
                    result.status = (
                        STATUS_NO_REFERENCE if result.prediction is None else STATUS_PREDICTED
                    )

        result.elapsed_ms = (time.perf_counter() - started) * 1000.0
        return result

    # Store management --------------------------------------------------------

    def remove_person(self, label: str) -> bool:
        removed = self.store.remove(label)
        if not removed:
            LOGGER.warning("No prototype named %s", label)
        return removed

    def clear(self) -> int:
        cleared = self.store.clear()
        self.stop_prediction()
        return cleared

    def export_payload(self, with_counts: bool = True) -> Dict[str, Any]:
        return export_prototypes(self.store, with_counts=with_counts)

    def import_payload(self, payload: Any) -> List[str]:
        return import_prototypes(self.store, payload)

    def labels(self) -> List[str]:
        return self.store.labels()
