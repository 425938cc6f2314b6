"""Timed capture window that aggregates normalized frames into a prototype."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Sequence

import numpy as np

from facegeom.errors import CaptureBusyError, EmptyCaptureError
from facegeom.normalize import LEFT_EYE_INDEX, RIGHT_EYE_INDEX, normalize_landmarks
from facegeom.recognition.prototypes import PrototypeStore
from facegeom.types import Landmarks, PrototypeRecord, mean_vector

LOGGER = logging.getLogger("facegeom.capture")

DEFAULT_CAPTURE_DURATION_S = 3.0


class CaptureState(str, Enum):
    IDLE = "idle"
    CAPTURING = "capturing"


@dataclass
class CaptureResult:
    """Outcome of a completed capture window."""

    identifier: str
    frames: int
    created: bool
    record: PrototypeRecord


class CaptureController:
    """Idle -> Capturing -> Idle state machine feeding a PrototypeStore.

    Frames are buffered only while capturing and before the deadline. The
    window is closed by ``poll`` (timer) or ``finish``; the mean of the
    buffered vectors is merged with ``sample_count = len(buffer)``.
    """

    def __init__(
        self,
        store: PrototypeStore,
        duration_s: float = DEFAULT_CAPTURE_DURATION_S,
        clock: Callable[[], float] = time.monotonic,
        left_eye_index: int = LEFT_EYE_INDEX,
        right_eye_index: int = RIGHT_EYE_INDEX,
    ) -> None:
        if duration_s <= 0:
            raise ValueError(f"Capture duration must be > 0, got {duration_s}")
        self.store = store
        self.duration_s = float(duration_s)
        self.clock = clock
        self.left_eye_index = left_eye_index
        self.right_eye_index = right_eye_index
        self._state = CaptureState.IDLE
        self._identifier: Optional[str] = None
        self._deadline: Optional[float] = None
        self._buffer: List[np.ndarray] = []

    @property
    def state(self) -> CaptureState:
        return self._state

    @property
    def is_capturing(self) -> bool:
        return self._state is CaptureState.CAPTURING

    @property
    def identifier(self) -> Optional[str]:
        return self._identifier

    @property
    def frame_count(self) -> int:
        return len(self._buffer)

    def _now(self, now: Optional[float]) -> float:
        return self.clock() if now is None else float(now)

    def remaining(self, now: Optional[float] = None) -> float:
        if not self.is_capturing or self._deadline is None:
            return 0.0
        return max(0.0, self._deadline - self._now(now))

    def start(self, identifier: str, now: Optional[float] = None) -> None:
        identifier = (identifier or "").strip()
        if not identifier:
            raise ValueError("A non-empty name is required to start a capture")
        if self.is_capturing:
            raise CaptureBusyError(f"Capture for {self._identifier!r} already in progress")
        self._buffer = []
        self._identifier = identifier
        self._deadline = self._now(now) + self.duration_s
        self._state = CaptureState.CAPTURING
        LOGGER.info("Capture started for %s (%.1fs)", identifier, self.duration_s)

    def add_frame(self, faces: Sequence[Landmarks], now: Optional[float] = None) -> bool:
        """Buffer the first face of a detector frame; returns True when buffered."""
        if not self.is_capturing:
            return False
        if self._deadline is not None and self._now(now) >= self._deadline:
            return False
        if len(faces) == 0:
            return False
        vector = normalize_landmarks(faces[0], self.left_eye_index, self.right_eye_index)
        self._buffer.append(vector)
        LOGGER.debug("Capture %s: %d frames", self._identifier, len(self._buffer))
        return True

    def poll(self, now: Optional[float] = None) -> Optional[CaptureResult]:
        """Close the window if its deadline has passed."""
        if not self.is_capturing or self._deadline is None:
            return None
        if self._now(now) < self._deadline:
            return None
        return self.finish()

    def finish(self) -> CaptureResult:
        """Close the window and merge the buffered mean into the store."""
        if not self.is_capturing:
            raise RuntimeError("No capture in progress")
        identifier = self._identifier
        frames = self._buffer
        self._reset()
        if not frames:
            LOGGER.warning("Capture for %s observed no face; nothing stored", identifier)
            raise EmptyCaptureError(f"No face detected during capture for {identifier!r}")
        created = identifier not in self.store
        record = self.store.merge(identifier, mean_vector(frames), len(frames))
        return CaptureResult(identifier=identifier, frames=len(frames), created=created, record=record)

    def abort(self) -> None:
        if self.is_capturing:
            LOGGER.info("Capture for %s aborted (%d frames dropped)", self._identifier, len(self._buffer))
        self._reset()

    def _reset(self) -> None:
        self._state = CaptureState.IDLE
        self._identifier = None
        self._deadline = None
        self._buffer = []
