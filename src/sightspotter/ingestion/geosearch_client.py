"""
Geosearch ingestion client (Wikipedia / MediaWiki API).

This module fetches the pages near a coordinate using the `generator=geosearch`
query and parses them into `SightRecord`s:
- first coordinate pair of each page
- page title (defaults to "Unknown")
- optional short description and thumbnail URL

Response shape:
    {"query": {"pages": {"<pageid>": {"coordinates": [{"lat": .., "lon": ..}], "title": ..}}}}

A response without `query` means "nothing nearby" and yields an empty list.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from sightspotter.config.settings import Settings
from sightspotter.core.errors import GeosearchError
from sightspotter.core.geo import GeoPoint
from sightspotter.core.http import get_json
from sightspotter.domain.models import SightRecord

logger = logging.getLogger(__name__)


def build_geosearch_params(location: GeoPoint, settings: Settings) -> dict[str, Any]:
    """Query parameters for a geosearch around `location`."""
    cfg = settings.geosearch
    return {
        "action": "query",
        "format": "json",
        "generator": "geosearch",
        "ggscoord": f"{location.lat}|{location.lon}",
        "ggsradius": cfg.radius_m,
        "ggslimit": cfg.limit,
        "prop": "coordinates|pageimages|pageterms",
        "colimit": cfg.limit,
        "piprop": "thumbnail",
        "pithumbsize": cfg.thumbnail_size,
        "pilimit": cfg.limit,
        "wbptterms": "description",
    }


def _parse_page(page_id: str, page: Any) -> SightRecord | None:
    if not isinstance(page, dict):
        return None
    coords = page.get("coordinates") or []
    if not isinstance(coords, list) or not coords or not isinstance(coords[0], dict):
        logger.debug("Skipping page %s without coordinates", page_id)
        return None

    first = coords[0]
    terms = page.get("terms")
    descriptions = (terms.get("description") if isinstance(terms, dict) else None) or []
    thumbnail = page.get("thumbnail") or {}
    try:
        return SightRecord(
            title=page.get("title"),
            lat=float(first["lat"]),
            lon=float(first["lon"]),
            page_id=str(page.get("pageid", page_id)),
            description=str(descriptions[0]) if descriptions else None,
            thumbnail_url=thumbnail.get("source") if isinstance(thumbnail, dict) else None,
        )
    except (KeyError, TypeError, ValueError):
        logger.debug("Skipping page %s with malformed coordinates", page_id)
        return None


def parse_sights(payload: Any) -> list[SightRecord]:
    """Parse a geosearch response into sights, in response order.

    Raises:
        GeosearchError: If the payload is not a JSON object or `query.pages` has the wrong shape.
    """
    if not isinstance(payload, dict):
        raise GeosearchError(f"Unexpected geosearch payload type: {type(payload).__name__}")
    if "error" in payload:
        info = payload["error"].get("info") if isinstance(payload["error"], dict) else payload["error"]
        raise GeosearchError(f"Geosearch API error: {info}")

    query = payload.get("query")
    if query is None:
        return []
    pages = query.get("pages") if isinstance(query, dict) else None
    if pages is None:
        return []
    if not isinstance(pages, dict):
        raise GeosearchError("Unexpected geosearch payload: query.pages is not a mapping")

    sights: list[SightRecord] = []
    for page_id, page in pages.items():
        sight = _parse_page(str(page_id), page)
        if sight is not None:
            sights.append(sight)
    return sights


class GeosearchClient:
    """Fetches nearby sights for a coordinate."""

    def __init__(self, settings: Settings):
        self._settings = settings

    def _fetch(self, location: GeoPoint) -> Any:
        headers = {}
        if self._settings.geosearch.user_agent:
            headers["User-Agent"] = self._settings.geosearch.user_agent
        return get_json(
            self._settings.geosearch.base_url,
            params=build_geosearch_params(location, self._settings),
            headers=headers or None,
            timeout_seconds=self._settings.app.http_timeout_seconds,
        )

    def fetch_sights(self, location: GeoPoint) -> list[SightRecord]:
        """Return the sights near `location`.

        Raises:
            GeosearchError: On transport errors, non-2xx responses, invalid JSON or bad shapes.
        """
        logger.info("Fetching sights near lat=%.4f lon=%.4f", location.lat, location.lon)
        try:
            payload = self._fetch(location)
        except httpx.HTTPError as exc:
            raise GeosearchError(f"Geosearch request failed: {exc}") from exc
        except ValueError as exc:
            raise GeosearchError(f"Geosearch response is not valid JSON: {exc}") from exc

        sights = parse_sights(payload)
        logger.info("Geosearch returned %d sights", len(sights))
        return sights
