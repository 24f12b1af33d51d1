"""
Host collaborator interfaces.

The pipeline never talks to an OS location service or AR framework directly; the
host application adapts its platform objects to these protocols and forwards the
platform callbacks to `SightIngestionPipeline`.
"""

from __future__ import annotations

from typing import Protocol

import numpy as np

from sightspotter.domain.models import Anchor


class LocationService(Protocol):
    def request_authorization(self) -> None:
        """Ask the user for when-in-use location access."""

    def request_location(self) -> None:
        """Request a single location fix (not continuous updates)."""

    def start_updating_heading(self) -> None:
        """Begin delivering compass heading samples."""


class ARSession(Protocol):
    def current_camera_transform(self) -> np.ndarray | None:
        """4x4 camera pose of the current frame, or None before the first frame."""

    def add_anchor(self, anchor: Anchor) -> None:
        """Register an anchor so the renderer can attach a node to it."""
