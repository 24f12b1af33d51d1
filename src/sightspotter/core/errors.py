"""Exceptions surfaced by the sight ingestion pipeline.

None of these is fatal: each one stalls the current cycle and is reported to the
host through `SightIngestionPipeline.errors` / `on_error`.
"""


class SightSpotterError(Exception):
    """Base SightSpotter exception."""


class PermissionDeniedError(SightSpotterError):
    """Raised when the user declines location authorization."""


class LocationUnavailableError(SightSpotterError):
    """Raised when the location service fails to deliver a fix."""


class GeosearchError(SightSpotterError):
    """Raised when the geosearch request fails or returns an unusable payload."""


class CameraUnavailableError(SightSpotterError):
    """Raised when no camera frame is available at placement time."""
