import pytest
from pydantic import ValidationError

from sightspotter.config.settings import Settings, get_logging_config, get_settings


@pytest.fixture
def fresh_settings():
    get_settings.cache_clear()
    yield get_settings
    get_settings.cache_clear()


def test_packaged_defaults_match_placement_constants():
    settings = get_settings()
    assert settings.geo.bearing_formula == "literal"
    assert settings.geo.distance_model == "geodesic"
    assert settings.placement.tilt_base_rad == -0.2
    assert settings.placement.tilt_distance_divisor == 600
    assert settings.placement.depth_divisor == 50
    assert settings.pipeline.heading_samples_to_discard == 1
    assert settings.geosearch.radius_m == 10000


def test_env_overrides_are_applied(monkeypatch, fresh_settings):
    monkeypatch.setenv("SIGHTSPOTTER_LOG_LEVEL", "debug")
    monkeypatch.setenv("SIGHTSPOTTER_BEARING_FORMULA", "Corrected")
    monkeypatch.setenv("SIGHTSPOTTER_GEOSEARCH_URL", "https://wiki.example/w/api.php")

    settings = fresh_settings()
    assert settings.app.log_level == "debug"
    assert settings.geo.bearing_formula == "corrected"
    assert settings.geosearch.base_url == "https://wiki.example/w/api.php"


def test_external_config_file(monkeypatch, tmp_path, fresh_settings):
    path = tmp_path / "sightspotter.yaml"
    path.write_text("placement:\n  order: title\n", encoding="utf-8")
    monkeypatch.setenv("SIGHTSPOTTER_CONFIG_PATH", str(path))

    settings = fresh_settings()
    assert settings.placement.order == "title"
    assert settings.placement.depth_divisor == 50


def test_invalid_values_are_rejected():
    with pytest.raises(ValidationError):
        Settings.model_validate({"geo": {"bearing_formula": "flat"}})
    with pytest.raises(ValidationError):
        Settings.model_validate({"placement": {"depth_divisor": 0}})


def test_logging_config_has_root_handler():
    config = get_logging_config()
    assert config["version"] == 1
    assert "console" in config["root"]["handlers"]
