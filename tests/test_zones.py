import numpy as np
import pytest

from facegeom.zones import (
    DEFAULT_ZONES,
    FacialZone,
    active_zone_names,
    configure_zones,
    landmark_weights,
    zone_weight_vector,
)


def test_default_zones_cover_reference_eyes():
    names = [zone.name for zone in DEFAULT_ZONES]
    assert names == ["eyes", "eyebrows", "nose", "mouth", "contour"]
    eyes = DEFAULT_ZONES[0]
    assert {33, 263} <= eyes.indices


def test_uncovered_landmarks_get_zero_weight():
    zones = [FacialZone("only", {2}, weight=1.5)]
    weights = landmark_weights(zones, 4)
    assert list(weights) == [0.0, 0.0, 1.5, 0.0]


def test_out_of_range_indices_are_ignored():
    zones = [FacialZone("wide", {1, 500})]
    assert list(landmark_weights(zones, 3)) == [0.0, 1.0, 0.0]


def test_weight_vector_broadcasts_to_x_and_y():
    zones = [FacialZone("z", {0}, weight=2.0)]
    assert list(zone_weight_vector(zones, 2)) == [2.0, 2.0, 0.0, 0.0]


def test_configure_zones_applies_overrides_without_mutating_input():
    zones = [FacialZone("eyes", {0}), FacialZone("mouth", {1})]
    configured = configure_zones(zones, {"mouth": {"active": False}, "eyes": {"weight": 3.0}})

    assert active_zone_names(configured) == ["eyes"]
    assert configured[0].weight == 3.0
    assert zones[0].weight == 1.0
    assert zones[1].active is True
    assert list(landmark_weights(configured, 2)) == [3.0, 0.0]


def test_configure_zones_rejects_unknown_zone():
    with pytest.raises(KeyError):
        configure_zones(DEFAULT_ZONES, {"ears": {"active": True}})


@pytest.mark.parametrize("weight", [0.0, -1.0])
def test_zone_weight_must_be_positive(weight):
    with pytest.raises(ValueError):
        FacialZone("bad", {0}, weight=weight)


def test_all_zones_inactive_gives_zero_vector():
    zones = configure_zones(DEFAULT_ZONES, {z.name: {"active": False} for z in DEFAULT_ZONES})
    assert not np.any(zone_weight_vector(zones, 468))
