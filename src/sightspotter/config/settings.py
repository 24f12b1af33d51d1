# src/sightspotter/config/settings.py
"""
Application settings (Pydantic).

Settings are loaded from `src/sightspotter/config/defaults.yaml`, then optionally overridden by:
- an external YAML file via `SIGHTSPOTTER_CONFIG_PATH`
- environment variables (e.g., `SIGHTSPOTTER_LOG_LEVEL`, `SIGHTSPOTTER_BEARING_FORMULA`)

Design rule:
- Placement constants and API parameters live in YAML, not hard-coded in business logic.
"""

from __future__ import annotations

import os
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any, Literal
from sightspotter.core.env import load_dotenv_if_present

import yaml
from pydantic import BaseModel, Field


def _read_package_yaml(filename: str) -> dict[str, Any]:
    """Read a YAML file packaged inside `sightspotter.config`."""
    text = resources.files("sightspotter.config").joinpath(filename).read_text(encoding="utf-8")
    data = yaml.safe_load(text) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {filename}; expected a mapping.")
    return data


def _read_yaml_file(path: str | Path) -> dict[str, Any]:
    """Read a YAML file from disk and return its mapping root."""
    data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {path}; expected a mapping.")
    return data


class AppSettings(BaseModel):
    name: str = "SightSpotter"
    http_timeout_seconds: float = 15
    log_level: str = "INFO"


class GeosearchSettings(BaseModel):
    base_url: str = "https://en.wikipedia.org/w/api.php"
    radius_m: int = Field(10_000, ge=10, le=10_000)
    limit: int = Field(50, ge=1, le=500)
    thumbnail_size: int = Field(500, ge=1)
    user_agent: str | None = None


class GeoSettings(BaseModel):
    # "literal" reproduces the degree-valued trig of the original app; "corrected"
    # converts to radians first and normalizes to [0, 360).
    bearing_formula: Literal["literal", "corrected"] = "literal"
    distance_model: Literal["geodesic", "haversine"] = "geodesic"


class PlacementSettings(BaseModel):
    tilt_base_rad: float = -0.2
    tilt_distance_divisor: float = Field(600.0, gt=0)
    depth_divisor: float = Field(50.0, gt=0)
    order: Literal["distance", "title", "response"] = "distance"


class PipelineSettings(BaseModel):
    heading_samples_to_discard: int = Field(1, ge=0)


class Settings(BaseModel):
    app: AppSettings = Field(default_factory=AppSettings)
    geosearch: GeosearchSettings = Field(default_factory=GeosearchSettings)
    geo: GeoSettings = Field(default_factory=GeoSettings)
    placement: PlacementSettings = Field(default_factory=PlacementSettings)
    pipeline: PipelineSettings = Field(default_factory=PipelineSettings)


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Overlay selected environment variables onto raw settings payload.

    Note: We intentionally keep this whitelist small to avoid exposing unsafe overrides.
    """
    load_dotenv_if_present()
    data = dict(data)

    log_level = os.getenv("SIGHTSPOTTER_LOG_LEVEL")
    if log_level:
        data.setdefault("app", {})["log_level"] = log_level

    base_url = os.getenv("SIGHTSPOTTER_GEOSEARCH_URL")
    if base_url:
        data.setdefault("geosearch", {})["base_url"] = base_url

    formula = os.getenv("SIGHTSPOTTER_BEARING_FORMULA")
    if formula:
        data.setdefault("geo", {})["bearing_formula"] = formula.strip().lower()

    return data


@lru_cache
def get_settings() -> Settings:
    """Load and validate settings (cached)."""
    load_dotenv_if_present()
    config_path = os.getenv("SIGHTSPOTTER_CONFIG_PATH")
    raw = _read_yaml_file(config_path) if config_path else _read_package_yaml("defaults.yaml")
    raw = _apply_env_overrides(raw)
    return Settings.model_validate(raw)


@lru_cache
def get_logging_config() -> dict[str, Any]:
    """Load logging configuration (cached)."""
    return _read_package_yaml("logging.yaml")
