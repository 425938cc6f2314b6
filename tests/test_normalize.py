import logging

import numpy as np
import pytest

from facegeom.normalize import (
    LEFT_EYE_INDEX,
    RIGHT_EYE_INDEX,
    capture_features,
    inference_features,
    interpupillary_distance,
    normalize,
    normalize_landmarks,
)
from facegeom.zones import FacialZone


def test_reference_points_are_centered_and_unit_spaced(face_factory):
    face = face_factory(1)
    vec = normalize_landmarks(face)
    points = vec.reshape(-1, 2)
    left = points[LEFT_EYE_INDEX]
    right = points[RIGHT_EYE_INDEX]

    np.testing.assert_allclose((left + right) / 2.0, [0.0, 0.0], atol=1e-12)
    assert np.linalg.norm(left) == pytest.approx(0.5)
    assert np.linalg.norm(right) == pytest.approx(0.5)
    assert np.linalg.norm(right - left) == pytest.approx(1.0)


def test_output_is_interleaved_xy_of_length_2n(face_factory):
    face = face_factory(2)
    vec = normalize_landmarks(face)
    assert vec.shape == (2 * 468,)

    ipd = interpupillary_distance(face)
    center = (face[LEFT_EYE_INDEX, :2] + face[RIGHT_EYE_INDEX, :2]) / 2.0
    assert vec[0] == pytest.approx((face[0, 0] - center[0]) / ipd)
    assert vec[1] == pytest.approx((face[0, 1] - center[1]) / ipd)


def test_normalization_is_scale_and_translation_invariant(face_factory):
    face = face_factory(3, with_z=False)
    base = normalize_landmarks(face)

    np.testing.assert_allclose(normalize_landmarks(face * 2.0), base, atol=1e-9)
    np.testing.assert_allclose(normalize_landmarks(face + np.array([0.1, -0.05])), base, atol=1e-9)


def test_z_coordinate_is_ignored(face_factory):
    face = face_factory(4)
    flat = face.copy()
    flat[:, 2] = 0.0
    np.testing.assert_allclose(normalize_landmarks(face), normalize_landmarks(flat))


def test_degenerate_ipd_returns_raw_coordinates(face_factory, caplog):
    face = face_factory(5, with_z=False)
    face[RIGHT_EYE_INDEX] = face[LEFT_EYE_INDEX]

    with caplog.at_level(logging.WARNING, logger="facegeom.normalize"):
        vec = normalize_landmarks(face)

    np.testing.assert_array_equal(vec, face.reshape(-1))
    assert "IPD" in caplog.text


def test_capture_features_have_unit_weights(face_factory):
    vec, weights = capture_features(face_factory(6))
    assert weights.shape == vec.shape
    assert np.all(weights == 1.0)


def test_inference_weights_take_max_of_active_zones(face_factory):
    zones = [
        FacialZone("a", {0, 1}, active=True, weight=2.0),
        FacialZone("b", {1, 2}, active=True, weight=3.0),
        FacialZone("c", {3}, active=False, weight=5.0),
    ]
    _, weights = inference_features(face_factory(7), zones)

    assert weights.shape == (2 * 468,)
    assert list(weights[0:2]) == [2.0, 2.0]
    assert list(weights[2:4]) == [3.0, 3.0]
    assert list(weights[4:6]) == [3.0, 3.0]
    assert list(weights[6:8]) == [0.0, 0.0]
    assert np.count_nonzero(weights) == 6


def test_normalize_dispatches_on_mode(face_factory):
    face = face_factory(8)
    vec = normalize(face, "capture")
    assert isinstance(vec, np.ndarray)

    pair = normalize(face, "inference")
    assert isinstance(pair, tuple)
    np.testing.assert_allclose(pair[0], vec)

    with pytest.raises(ValueError):
        normalize(face, "training")


def test_rejects_landmarks_without_reference_indices():
    with pytest.raises(ValueError):
        normalize_landmarks(np.zeros((10, 2)))
    with pytest.raises(ValueError):
        normalize_landmarks(np.zeros(468))


def test_custom_reference_indices():
    landmarks = [[0.0, 0.0], [2.0, 0.0], [1.0, 1.0]]
    vec = normalize_landmarks(landmarks, left_eye_index=0, right_eye_index=1)
    np.testing.assert_allclose(vec, [-0.5, 0.0, 0.5, 0.0, 0.0, 0.5])
