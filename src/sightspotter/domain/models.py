"""
Domain models.

These types represent the stable "contract" between layers:
- parsed geosearch results (`SightRecord`)
- anchors handed to the AR session (`Anchor`)
- per-sight placement output (`SightPlacement`)

`SightRecord` is a Pydantic model because it is built from untrusted API payloads;
anchors carry numpy matrices and stay plain dataclasses.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, field_validator

from sightspotter.core.geo import GeoPoint

UNKNOWN_TITLE = "Unknown"


class SightRecord(BaseModel):
    """A point of interest returned by the geosearch API."""

    model_config = ConfigDict(frozen=True)

    title: str = UNKNOWN_TITLE
    lat: float = Field(..., ge=-90, le=90)
    lon: float = Field(..., ge=-180, le=180)

    page_id: str | None = None
    description: str | None = None
    thumbnail_url: str | None = None

    @field_validator("title", mode="before")
    @classmethod
    def _default_title(cls, title: object) -> object:
        if not isinstance(title, str):
            return UNKNOWN_TITLE
        return title

    @property
    def location(self) -> GeoPoint:
        return GeoPoint(lat=self.lat, lon=self.lon)


@dataclass(frozen=True, eq=False)
class Anchor:
    """A tracked point in camera space that the host can attach a label node to."""

    transform: np.ndarray
    identifier: uuid.UUID = field(default_factory=uuid.uuid4)


@dataclass(frozen=True)
class SightPlacement:
    """Where one sight ended up after a placement cycle."""

    sight: SightRecord
    bearing_deg: float
    distance_m: float
    anchor: Anchor
