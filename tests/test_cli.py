import json
import time

import pytest

from sightspotter.cli import main


def _fake_get_json(url, *, params=None, headers=None, timeout_seconds=15):
    return {
        "query": {
            "pages": {
                "7": {"pageid": 7, "title": "Harbour Light", "coordinates": [{"lat": 0.0, "lon": 0.01}]},
                "8": {"pageid": 8, "coordinates": [{"lat": 0.0, "lon": 0.002}]},
            }
        }
    }


def test_sights_command_prints_json(monkeypatch, capsys):
    monkeypatch.setattr("sightspotter.ingestion.geosearch_client.get_json", _fake_get_json)

    assert main(["sights", "--lat", "0", "--lon", "0", "--heading", "0", "--json"]) == 0
    rows = json.loads(capsys.readouterr().out)

    assert [r["title"] for r in rows] == ["Unknown", "Harbour Light"]
    light = rows[1]
    assert light["bearing_deg"] == pytest.approx(90.0)
    assert light["distance_m"] == pytest.approx(1113.19, abs=0.05)


def test_sights_command_reports_fetch_error(monkeypatch, capsys):
    def failing_get_json(url, **_kwargs):
        raise ValueError("not json")

    monkeypatch.setattr("sightspotter.ingestion.geosearch_client.get_json", failing_get_json)

    assert main(["sights", "--lat", "0", "--lon", "0"]) == 1
    assert "error:" in capsys.readouterr().out


def test_bearing_command(capsys):
    assert main(["bearing", "--from-lat", "0", "--from-lon", "0", "--to-lat", "0", "--to-lon", "0.01"]) == 0
    out = capsys.readouterr().out
    assert "bearing=90.000000 (literal)" in out
    assert "distance=1113.19m" in out


def test_sights_command_reports_fetch_timeout(monkeypatch, capsys):
    def slow_get_json(url, **_kwargs):
        time.sleep(0.5)
        return {}

    monkeypatch.setattr("sightspotter.ingestion.geosearch_client.get_json", slow_get_json)

    assert main(["sights", "--lat", "0", "--lon", "0", "--timeout", "0.05"]) == 1
    assert "timed out" in capsys.readouterr().out
