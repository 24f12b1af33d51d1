"""
Anchor placement.

Turns (distance, azimuth, user heading, camera pose) into a 4x4 transform that puts
a virtual anchor at the right angular offset and depth in front of the viewer.

Conventions:
- Column vectors; translation lives in the last column (`m[:3, 3]`).
- Composition is right-to-left, so `camera @ rotation @ translation` first pushes
  the anchor down the viewing axis, then rotates it, then moves it into world space.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np

from sightspotter.core.geo import deg2rad

X_AXIS = (1.0, 0.0, 0.0)
Y_AXIS = (0.0, 1.0, 0.0)

DEFAULT_TILT_BASE_RAD = -0.2
DEFAULT_TILT_DISTANCE_DIVISOR = 600.0
DEFAULT_DEPTH_DIVISOR = 50.0


def rotation_matrix(angle_rad: float, axis: Sequence[float]) -> np.ndarray:
    """4x4 rotation of `angle_rad` about `axis` (Rodrigues' formula)."""
    v = np.asarray(axis, dtype=float)
    norm = float(np.linalg.norm(v))
    if norm == 0.0:
        raise ValueError("rotation axis must be non-zero")
    x, y, z = v / norm

    c = np.cos(angle_rad)
    s = np.sin(angle_rad)
    t = 1.0 - c

    m = np.identity(4)
    m[:3, :3] = [
        [t * x * x + c, t * x * y - s * z, t * x * z + s * y],
        [t * x * y + s * z, t * y * y + c, t * y * z - s * x],
        [t * x * z - s * y, t * y * z + s * x, t * z * z + c],
    ]
    return m


def translation_matrix(z: float) -> np.ndarray:
    """Identity transform with the Z translation set."""
    m = np.identity(4)
    m[2, 3] = z
    return m


def vertical_tilt(
    distance: float,
    *,
    base_rad: float = DEFAULT_TILT_BASE_RAD,
    distance_divisor: float = DEFAULT_TILT_DISTANCE_DIVISOR,
) -> float:
    """Tilt angle in radians; starts slightly downward and grows without bound with distance."""
    return base_rad + distance / distance_divisor


def placement_transform(
    distance: float,
    azimuth: float,
    user_heading: float,
    camera_transform: np.ndarray,
    *,
    tilt_base_rad: float = DEFAULT_TILT_BASE_RAD,
    tilt_distance_divisor: float = DEFAULT_TILT_DISTANCE_DIVISOR,
    depth_divisor: float = DEFAULT_DEPTH_DIVISOR,
) -> np.ndarray:
    """Build the anchor transform for a sight `distance` meters away at `azimuth` degrees.

    Args:
        distance: Distance from the user to the sight in meters.
        azimuth: Bearing from the user to the sight in degrees.
        user_heading: Device compass heading in degrees.
        camera_transform: Current 4x4 camera pose.

    Raises:
        ValueError: If the camera transform is not 4x4 or any input is non-finite.
    """
    camera = np.asarray(camera_transform, dtype=float)
    if camera.shape != (4, 4):
        raise ValueError(f"camera_transform must be 4x4, got shape {camera.shape}")
    if not (np.isfinite([distance, azimuth, user_heading]).all() and np.isfinite(camera).all()):
        raise ValueError("placement inputs must be finite")

    angle = deg2rad(azimuth - user_heading)
    horizontal = rotation_matrix(angle, X_AXIS)
    vertical = rotation_matrix(
        vertical_tilt(distance, base_rad=tilt_base_rad, distance_divisor=tilt_distance_divisor),
        Y_AXIS,
    )

    rotation = horizontal @ vertical
    world_rotation = camera @ rotation
    translation = translation_matrix(-(distance / depth_divisor))
    return world_rotation @ translation


def translation_z(transform: np.ndarray) -> float:
    return float(transform[2, 3])
