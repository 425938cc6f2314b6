import numpy as np
import pytest


def _synthetic_face(seed: int = 0, num_landmarks: int = 468, with_z: bool = True) -> np.ndarray:
    rng = np.random.default_rng(seed)
    face = rng.uniform(0.25, 0.75, size=(num_landmarks, 3 if with_z else 2))
    face[33, :2] = (0.40, 0.42)
    face[263, :2] = (0.60, 0.44)
    return face


@pytest.fixture
def face_factory():
    return _synthetic_face


class FakeClock:
    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


@pytest.fixture
def clock():
    return FakeClock()
