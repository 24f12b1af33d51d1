from __future__ import annotations
from dataclasses import dataclass
from math import asin, atan2, cos, pi, radians, sin, sqrt
from typing import Literal

from geopy.distance import geodesic

"""
Geospatial helpers.

Bearing and distance between two coordinates, used to place each sight relative
to the viewer. Two bearing formulas are available:

- `bearing_literal` applies sin/cos directly to degree values. This is the formula
  the original app shipped with; it is not a true spherical bearing but anchors
  were tuned against it, so it stays the default.
- `bearing_corrected` is the standard initial great-circle bearing (radians in,
  degrees out, normalized to [0, 360)).
"""

BearingFormula = Literal["literal", "corrected"]
DistanceModel = Literal["geodesic", "haversine"]

EARTH_RADIUS_M = 6_371_000


@dataclass(frozen=True)
class GeoPoint:
    """A latitude/longitude pair in decimal degrees."""

    lat: float
    lon: float


def deg2rad(degrees: float) -> float:
    return degrees * pi / 180


def rad2deg(rads: float) -> float:
    return rads * 180 / pi


def bearing_literal(a: GeoPoint, b: GeoPoint) -> float:
    """Azimuth from `a` to `b` in degrees, trig applied to raw degrees (not normalized)."""
    lon_delta = b.lon - a.lon
    y = sin(lon_delta) * cos(a.lon)
    x = cos(a.lat) * sin(b.lat) - sin(a.lat) * cos(b.lat) * cos(lon_delta)
    return rad2deg(atan2(y, x))


def bearing_corrected(a: GeoPoint, b: GeoPoint) -> float:
    """Initial great-circle bearing from `a` to `b` in degrees, in [0, 360)."""
    lat1 = radians(a.lat)
    lat2 = radians(b.lat)
    dlon = radians(b.lon - a.lon)

    y = sin(dlon) * cos(lat2)
    x = cos(lat1) * sin(lat2) - sin(lat1) * cos(lat2) * cos(dlon)
    return rad2deg(atan2(y, x)) % 360


def bearing(a: GeoPoint, b: GeoPoint, *, formula: BearingFormula = "literal") -> float:
    """Dispatch to the configured bearing formula."""
    if formula == "literal":
        return bearing_literal(a, b)
    if formula == "corrected":
        return bearing_corrected(a, b)
    raise ValueError(f"Unknown bearing formula: {formula!r}")


def haversine_m(a: GeoPoint, b: GeoPoint) -> float:
    """Compute great-circle distance in meters between two points (spherical Earth)."""
    lat1 = radians(a.lat)
    lon1 = radians(a.lon)
    lat2 = radians(b.lat)
    lon2 = radians(b.lon)

    dlat = lat2 - lat1
    dlon = lon2 - lon1

    h = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    return 2 * EARTH_RADIUS_M * asin(sqrt(h))


def geodesic_m(a: GeoPoint, b: GeoPoint) -> float:
    """WGS-84 ellipsoidal distance in meters."""
    return float(geodesic((a.lat, a.lon), (b.lat, b.lon)).meters)


def distance_m(a: GeoPoint, b: GeoPoint, *, model: DistanceModel = "geodesic") -> float:
    if model == "geodesic":
        return geodesic_m(a, b)
    if model == "haversine":
        return haversine_m(a, b)
    raise ValueError(f"Unknown distance model: {model!r}")
