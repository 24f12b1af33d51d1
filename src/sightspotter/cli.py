"""
SightSpotter CLI entrypoint.

This CLI is intended for quick local demos and debugging without an AR device.
`sights` drives one real ingestion cycle with a fixed location/heading and an
identity camera pose; all placement logic lives in `sightspotter.pipeline`.
"""

from __future__ import annotations

import argparse
import json
from typing import Any

import numpy as np

from sightspotter.config.settings import get_settings
from sightspotter.core.geo import GeoPoint, bearing, distance_m
from sightspotter.core.logging import configure_logging
from sightspotter.domain.models import Anchor
from sightspotter.pipeline.ingestion import SightIngestionPipeline


class FixedLocationService:
    """Replays a fixed fix and heading into the pipeline as a device would."""

    def __init__(self, fix: GeoPoint, heading: float):
        self.fix = fix
        self.heading = heading
        self.pipeline: SightIngestionPipeline | None = None

    def request_authorization(self) -> None:
        self.pipeline.on_authorization_changed(True)

    def request_location(self) -> None:
        self.pipeline.on_location(self.fix)

    def start_updating_heading(self) -> None:
        # The first sample is a warm-up reading and gets discarded.
        self.pipeline.on_heading(self.heading)
        self.pipeline.on_heading(self.heading)


class StaticSession:
    """AR session stand-in with a fixed camera pose."""

    def __init__(self, camera: np.ndarray | None = None):
        self.camera = np.identity(4) if camera is None else camera
        self.anchors: list[Anchor] = []

    def current_camera_transform(self) -> np.ndarray | None:
        return self.camera

    def add_anchor(self, anchor: Anchor) -> None:
        self.anchors.append(anchor)


def _cmd_sights(args: argparse.Namespace) -> int:
    """Handle the `sights` subcommand."""
    settings = get_settings()
    if args.formula:
        geo = settings.geo.model_copy(update={"bearing_formula": args.formula})
        settings = settings.model_copy(update={"geo": geo})

    location = FixedLocationService(GeoPoint(lat=float(args.lat), lon=float(args.lon)), float(args.heading))
    session = StaticSession()

    with SightIngestionPipeline(location, session, settings=settings) as pipeline:
        location.pipeline = pipeline
        pipeline.start()
        while pipeline.process_pending(timeout=float(args.timeout)):
            pass
        timed_out = pipeline.fetch_in_flight

    if timed_out:
        print(f"error: geosearch fetch timed out after {float(args.timeout):g}s")
        return 1
    if pipeline.last_error is not None:
        print(f"error: {pipeline.last_error}")
        return 1

    rows: list[dict[str, Any]] = []
    for p in pipeline.placements:
        rows.append(
            {
                "title": p.sight.title,
                "lat": p.sight.lat,
                "lon": p.sight.lon,
                "bearing_deg": p.bearing_deg,
                "distance_m": p.distance_m,
                "anchor_id": str(p.anchor.identifier),
                "translation": [float(v) for v in p.anchor.transform[:3, 3]],
            }
        )

    if args.json:
        print(json.dumps(rows, ensure_ascii=False, indent=2))
        return 0

    print(f"{len(rows)} sights (state={pipeline.state.value})")
    for i, row in enumerate(rows, start=1):
        x, y, z = row["translation"]
        print(
            f"{i:>2}. {row['title']}  bearing={row['bearing_deg']:.2f} "
            f"distance={row['distance_m']:.0f}m  t=({x:.2f}, {y:.2f}, {z:.2f})"
        )
    return 0


def _cmd_bearing(args: argparse.Namespace) -> int:
    settings = get_settings()
    a = GeoPoint(lat=float(args.from_lat), lon=float(args.from_lon))
    b = GeoPoint(lat=float(args.to_lat), lon=float(args.to_lon))
    formula = args.formula or settings.geo.bearing_formula
    print(f"bearing={bearing(a, b, formula=formula):.6f} ({formula})")
    print(f"distance={distance_m(a, b, model=settings.geo.distance_model):.2f}m")
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the SightSpotter CLI."""
    parser = argparse.ArgumentParser(prog="sightspotter")
    sub = parser.add_subparsers(dest="command", required=True)

    s = sub.add_parser("sights", help="Fetch nearby sights and print their anchor placements.")
    s.add_argument("--lat", required=True, type=float)
    s.add_argument("--lon", required=True, type=float)
    s.add_argument("--heading", type=float, default=0.0, help="Magnetic heading in degrees")
    s.add_argument("--formula", choices=["literal", "corrected"], default=None)
    s.add_argument("--timeout", type=float, default=20.0, help="Seconds to wait for the geosearch fetch")
    s.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    s.set_defaults(func=_cmd_sights)

    b = sub.add_parser("bearing", help="Bearing and distance between two coordinates.")
    b.add_argument("--from-lat", required=True, type=float)
    b.add_argument("--from-lon", required=True, type=float)
    b.add_argument("--to-lat", required=True, type=float)
    b.add_argument("--to-lon", required=True, type=float)
    b.add_argument("--formula", choices=["literal", "corrected"], default=None)
    b.set_defaults(func=_cmd_bearing)
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint callable used by `python -m sightspotter.cli`."""
    configure_logging()
    parser = build_parser()
    args = parser.parse_args(argv)
    func: Any = getattr(args, "func")
    return int(func(args))


if __name__ == "__main__":
    raise SystemExit(main())
