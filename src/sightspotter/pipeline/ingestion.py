"""
Sight ingestion pipeline.

One ingestion cycle:
1) location authorization granted -> request a single fix
2) fix received -> fetch nearby sights on a background worker
3) fetch done -> start compass heading updates
4) first heading sample discarded (sensor warm-up), second one latched
5) one anchor per sight, placed relative to the current camera pose

Threading model:
- Host callbacks (`on_location`, `on_heading`, ...) only enqueue events, so they are
  safe to call from any thread.
- The fetch runs on a single worker thread and reports back through the same queue.
- `process_pending()` is the only consumer; the host calls it from its primary
  (rendering) thread, which is where all state is read and written.

Failures never raise out of the pipeline. They are appended to `errors`, passed to
`on_error`, and the cycle stalls until a new location fix arrives.
"""

from __future__ import annotations

import logging
import queue
import time
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, Protocol
from uuid import UUID

from sightspotter.config.settings import Settings, get_settings
from sightspotter.core.errors import (
    CameraUnavailableError,
    GeosearchError,
    LocationUnavailableError,
    PermissionDeniedError,
    SightSpotterError,
)
from sightspotter.core.geo import GeoPoint, bearing, distance_m
from sightspotter.domain.models import Anchor, SightPlacement, SightRecord
from sightspotter.ingestion.geosearch_client import GeosearchClient
from sightspotter.pipeline.host import ARSession, LocationService
from sightspotter.placement.transform import placement_transform

logger = logging.getLogger(__name__)


class PipelineState(str, Enum):
    IDLE = "idle"
    AWAITING_AUTHORIZATION = "awaiting_authorization"
    AWAITING_FIX = "awaiting_fix"
    FETCHING = "fetching"
    AWAITING_HEADING = "awaiting_heading"
    PLACING = "placing"
    READY = "ready"


# States in which a cycle is underway and a new fix must not start another one.
_BUSY_STATES = {PipelineState.FETCHING, PipelineState.AWAITING_HEADING, PipelineState.PLACING}


@dataclass
class UserState:
    location: GeoPoint | None = None
    heading: float | None = None
    heading_sample_count: int = 0


class SightsFetcher(Protocol):
    def fetch_sights(self, location: GeoPoint) -> list[SightRecord]: ...


class SightIngestionPipeline:
    """Drives one fetch-and-place cycle per location fix."""

    def __init__(
        self,
        location_service: LocationService,
        session: ARSession,
        *,
        settings: Settings | None = None,
        client: SightsFetcher | None = None,
        executor: Executor | None = None,
        on_error: Callable[[SightSpotterError], None] | None = None,
    ):
        self._settings = settings or get_settings()
        self._location_service = location_service
        self._session = session
        self._client = client or GeosearchClient(self._settings)
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(max_workers=1, thread_name_prefix="sightspotter-fetch")
        self._on_error = on_error

        self._events: queue.Queue[tuple[str, Any]] = queue.Queue()
        self._state = PipelineState.IDLE
        self._user = UserState()
        self._sights: list[SightRecord] = []
        self._placements: list[SightPlacement] = []
        self._labels: dict[UUID, str] = {}
        self._errors: list[SightSpotterError] = []
        self._cycle = 0
        self._fetch_in_flight = False
        self._stalled = False

        self._handlers: dict[str, Callable[[Any], None]] = {
            "authorization": self._handle_authorization,
            "location": self._handle_location,
            "location_error": self._handle_location_error,
            "fetch_done": self._handle_fetch_done,
            "heading": self._handle_heading,
        }

    # ---- read-only views -------------------------------------------------

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def user_state(self) -> UserState:
        return replace(self._user)

    @property
    def sights(self) -> list[SightRecord]:
        return list(self._sights)

    @property
    def placements(self) -> list[SightPlacement]:
        """Placements from the most recent completed cycle."""
        return list(self._placements)

    @property
    def anchor_labels(self) -> dict[UUID, str]:
        return dict(self._labels)

    @property
    def errors(self) -> list[SightSpotterError]:
        return list(self._errors)

    @property
    def last_error(self) -> SightSpotterError | None:
        return self._errors[-1] if self._errors else None

    @property
    def stalled(self) -> bool:
        return self._stalled

    @property
    def fetch_in_flight(self) -> bool:
        return self._fetch_in_flight

    def label_for(self, anchor_id: UUID) -> str | None:
        """Text for the label node the renderer attaches to `anchor_id`."""
        return self._labels.get(anchor_id)

    # ---- host callbacks (any thread) -------------------------------------

    def start(self) -> None:
        """Ask for location authorization; the cycle proceeds from `on_authorization_changed`."""
        if self._state != PipelineState.IDLE:
            logger.debug("start() ignored in state %s", self._state.value)
            return
        self._state = PipelineState.AWAITING_AUTHORIZATION
        self._location_service.request_authorization()

    def on_authorization_changed(self, granted: bool) -> None:
        self._events.put(("authorization", bool(granted)))

    def on_location(self, fix: GeoPoint) -> None:
        self._events.put(("location", fix))

    def on_location_error(self, error: BaseException | str) -> None:
        self._events.put(("location_error", error))

    def on_heading(self, magnetic_heading: float) -> None:
        self._events.put(("heading", float(magnetic_heading)))

    # ---- primary-thread consumer -----------------------------------------

    def process_pending(self, timeout: float | None = None) -> int:
        """Handle queued events on the calling thread; returns how many were handled.

        With `timeout`, also waits up to `timeout` seconds for an in-flight fetch to
        report back before returning.
        """
        handled = 0
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            try:
                kind, payload = self._events.get_nowait()
            except queue.Empty:
                if deadline is None or not self._fetch_in_flight:
                    return handled
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return handled
                try:
                    kind, payload = self._events.get(timeout=remaining)
                except queue.Empty:
                    return handled
            self._handlers[kind](payload)
            handled += 1

    # ---- event handlers --------------------------------------------------

    def _surface(self, error: SightSpotterError, *, stalls: bool = True) -> None:
        if stalls:
            self._stalled = True
        self._errors.append(error)
        logger.warning("Sight ingestion error in %s (stalled=%s): %s", self._state.value, self._stalled, error)
        if self._on_error is not None:
            self._on_error(error)

    def _handle_authorization(self, granted: bool) -> None:
        if not granted:
            self._state = PipelineState.IDLE
            self._surface(PermissionDeniedError("Location access was not granted"))
            return
        self._state = PipelineState.AWAITING_FIX
        self._location_service.request_location()

    def _handle_location_error(self, error: BaseException | str) -> None:
        exc = LocationUnavailableError(f"Location fix failed: {error}")
        if isinstance(error, BaseException):
            exc.__cause__ = error
        # A cycle that already has its fix keeps going.
        self._surface(exc, stalls=self._state not in _BUSY_STATES)

    def _handle_location(self, fix: GeoPoint) -> None:
        if self._state in _BUSY_STATES and not self._stalled:
            logger.info("Ignoring location fix while a cycle is %s", self._state.value)
            return

        self._cycle += 1
        self._stalled = False
        self._user = UserState(location=fix)
        self._sights = []
        self._state = PipelineState.FETCHING
        self._fetch_in_flight = True

        cycle = self._cycle
        future = self._executor.submit(self._client.fetch_sights, fix)
        future.add_done_callback(lambda f: self._events.put(("fetch_done", (cycle, f))))

    def _handle_fetch_done(self, payload: tuple[int, Future]) -> None:
        cycle, future = payload
        if cycle != self._cycle:
            logger.debug("Dropping fetch result from superseded cycle %d", cycle)
            return
        self._fetch_in_flight = False

        exc = future.exception()
        if exc is not None:
            if isinstance(exc, SightSpotterError):
                self._surface(exc)
            else:
                wrapped = GeosearchError(f"Geosearch failed: {exc}")
                wrapped.__cause__ = exc
                self._surface(wrapped)
            return

        self._sights = list(future.result())
        self._state = PipelineState.AWAITING_HEADING
        self._location_service.start_updating_heading()

    def _handle_heading(self, heading: float) -> None:
        if self._state != PipelineState.AWAITING_HEADING:
            return

        self._user.heading_sample_count += 1
        if self._user.heading_sample_count <= self._settings.pipeline.heading_samples_to_discard:
            return

        self._user.heading = heading
        self._place()

    def _ordered(self, rows: list[tuple[SightRecord, float, float]]) -> list[tuple[SightRecord, float, float]]:
        order = self._settings.placement.order
        if order == "distance":
            return sorted(rows, key=lambda r: (r[2], r[0].title))
        if order == "title":
            return sorted(rows, key=lambda r: (r[0].title, r[2]))
        return rows

    def _place(self) -> None:
        self._state = PipelineState.PLACING
        camera = self._session.current_camera_transform()
        if camera is None:
            self._surface(CameraUnavailableError("No camera frame available for placement"))
            return

        origin = self._user.location
        heading = self._user.heading
        geo = self._settings.geo
        cfg = self._settings.placement

        rows = [
            (
                sight,
                bearing(origin, sight.location, formula=geo.bearing_formula),
                distance_m(origin, sight.location, model=geo.distance_model),
            )
            for sight in self._sights
        ]

        # Build every transform before registering anything so a bad pose adds no anchors.
        try:
            transforms = [
                (
                    sight,
                    azimuth,
                    distance,
                    placement_transform(
                        distance,
                        azimuth,
                        heading,
                        camera,
                        tilt_base_rad=cfg.tilt_base_rad,
                        tilt_distance_divisor=cfg.tilt_distance_divisor,
                        depth_divisor=cfg.depth_divisor,
                    ),
                )
                for sight, azimuth, distance in self._ordered(rows)
            ]
        except ValueError as exc:
            error = CameraUnavailableError(f"Unusable camera pose for placement: {exc}")
            error.__cause__ = exc
            self._surface(error)
            return

        placements: list[SightPlacement] = []
        for sight, azimuth, distance, transform in transforms:
            anchor = Anchor(transform=transform)
            self._session.add_anchor(anchor)
            self._labels[anchor.identifier] = sight.title
            placements.append(SightPlacement(sight=sight, bearing_deg=azimuth, distance_m=distance, anchor=anchor))

        self._placements = placements
        self._stalled = False
        self._state = PipelineState.READY
        logger.info("Placed %d sights (heading=%.1f)", len(placements), heading)

    # ---- lifecycle -------------------------------------------------------

    def close(self) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=True)

    def __enter__(self) -> "SightIngestionPipeline":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
