import math

import numpy as np
import pytest

from sightspotter.core.geo import GeoPoint, bearing_literal, distance_m
from sightspotter.placement.transform import (
    X_AXIS,
    Y_AXIS,
    placement_transform,
    rotation_matrix,
    translation_matrix,
    translation_z,
    vertical_tilt,
)


def test_rotation_matrix_about_x_is_right_handed():
    m = rotation_matrix(math.pi / 2, X_AXIS)
    # +Y rotates onto +Z.
    np.testing.assert_allclose(m @ np.array([0, 1, 0, 1]), [0, 0, 1, 1], atol=1e-12)
    np.testing.assert_allclose(m[:3, :3] @ m[:3, :3].T, np.identity(3), atol=1e-12)


def test_rotation_matrix_normalizes_axis_and_rejects_zero():
    np.testing.assert_allclose(rotation_matrix(0.3, (0, 5, 0)), rotation_matrix(0.3, Y_AXIS))
    with pytest.raises(ValueError):
        rotation_matrix(0.3, (0, 0, 0))


def test_translation_matrix_sets_only_z():
    m = translation_matrix(-4.0)
    expected = np.identity(4)
    expected[2, 3] = -4.0
    np.testing.assert_array_equal(m, expected)


def test_placement_matches_step_by_step_composition():
    camera = rotation_matrix(0.4, (0, 0, 1))
    camera[:3, 3] = [1.0, 2.0, 3.0]
    distance, azimuth, heading = 300.0, 75.0, 30.0

    horizontal = rotation_matrix(math.radians(azimuth - heading), X_AXIS)
    vertical = rotation_matrix(-0.2 + distance / 600, Y_AXIS)
    expected = camera @ (horizontal @ vertical) @ translation_matrix(-(distance / 50))

    np.testing.assert_allclose(placement_transform(distance, azimuth, heading, camera), expected)


def test_placement_is_deterministic_and_does_not_mutate_camera():
    camera = np.identity(4)
    before = camera.copy()
    a = placement_transform(500.0, 120.0, 15.0, camera)
    b = placement_transform(500.0, 120.0, 15.0, camera)
    np.testing.assert_array_equal(a, b)
    np.testing.assert_array_equal(camera, before)


def test_placement_is_rigid_and_depth_scales_with_distance():
    for distance in (10.0, 100.0, 1000.0, 5000.0):
        m = placement_transform(distance, 45.0, 0.0, np.identity(4))
        np.testing.assert_allclose(m[:3, :3] @ m[:3, :3].T, np.identity(3), atol=1e-12)
        np.testing.assert_allclose(m[3], [0, 0, 0, 1])
        # Rotation keeps the length of the pushed-back offset: |t| == distance / 50.
        assert np.linalg.norm(m[:3, 3]) == pytest.approx(distance / 50)


def test_straight_ahead_with_zero_tilt_is_pure_depth():
    # azimuth == heading and distance == 120 makes both rotations vanish.
    m = placement_transform(120.0, 42.0, 42.0, np.identity(4))
    assert translation_z(m) == pytest.approx(-120.0 / 50)
    np.testing.assert_allclose(m[:3, :3], np.identity(3), atol=1e-12)


def test_vertical_tilt_grows_without_bound():
    assert vertical_tilt(0.0) == pytest.approx(-0.2)
    assert vertical_tilt(120.0) == pytest.approx(0.0)
    assert vertical_tilt(600_000.0) == pytest.approx(999.8)
    m = placement_transform(600_000.0, 10.0, 0.0, np.identity(4))
    assert np.isfinite(m).all()


def test_placement_rejects_bad_inputs():
    with pytest.raises(ValueError):
        placement_transform(100.0, 10.0, 0.0, np.identity(3))
    with pytest.raises(ValueError):
        placement_transform(float("nan"), 10.0, 0.0, np.identity(4))
    camera = np.identity(4)
    camera[0, 3] = float("inf")
    with pytest.raises(ValueError):
        placement_transform(100.0, 10.0, 0.0, camera)


def test_due_east_sight_from_origin():
    user = GeoPoint(0, 0)
    sight = GeoPoint(0, 0.01)
    azimuth = bearing_literal(user, sight)
    distance = distance_m(user, sight)

    assert azimuth == pytest.approx(90.0)
    assert distance == pytest.approx(1113.19, abs=0.05)

    m = placement_transform(distance, azimuth, 0.0, np.identity(4))
    assert -(distance / 50) == pytest.approx(-22.26, abs=0.01)
    assert np.linalg.norm(m[:3, 3]) == pytest.approx(22.26, abs=0.01)

    horizontal = rotation_matrix(math.pi / 2, X_AXIS)
    vertical = rotation_matrix(-0.2 + distance / 600, Y_AXIS)
    np.testing.assert_allclose(m[:3, 3], (horizontal @ vertical)[:3, 2] * -(distance / 50))
