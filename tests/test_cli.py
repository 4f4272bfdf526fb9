import json
from pathlib import Path

import httpx
import pytest

from peru_map import main as app_main

FIXTURE = Path("tests/fixtures/nominatim_lima.json")


def _settings(tmp_path: Path, points: str = "data/points.json") -> dict:
    return {
        "app": {
            "points_path": points,
            "metrics_dir": str(tmp_path / "metrics"),
        },
        "search": {"debounce_ms": 0},
    }


@pytest.fixture()
def geocoder_stub(monkeypatch):
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if request.url.params["q"] == "Lima":
            return httpx.Response(200, content=FIXTURE.read_bytes())
        return httpx.Response(200, json=[])

    monkeypatch.setattr(app_main, "GEOCODER_TRANSPORT", httpx.MockTransport(handler))
    return requests


def test_search_lists_rows(tmp_path, monkeypatch, capsys, geocoder_stub):
    monkeypatch.setattr(app_main, "load_settings", lambda _path: _settings(tmp_path))
    app_main.main(["search", "Lima"])
    output = json.loads(capsys.readouterr().out)
    assert output["state"] == "presenting"
    assert output["rows"][0].startswith("Lima")
    assert len(output["results"]) == 2
    assert output["results"][0]["bounding_box"]["lat_min"] == -12.1
    assert len(geocoder_stub) == 1
    assert list((tmp_path / "metrics").glob("search_*.json"))


def test_search_and_select_fits_extent(tmp_path, monkeypatch, capsys, geocoder_stub):
    monkeypatch.setattr(app_main, "load_settings", lambda _path: _settings(tmp_path))
    app_main.main(["search", "Lima", "--select", "0"])
    output = json.loads(capsys.readouterr().out)
    navigation = output["navigation"]
    assert navigation["kind"] == "fit_extent"
    assert navigation["padding"] == [40, 40, 40, 40]
    assert navigation["max_zoom"] == 18
    assert navigation["duration_ms"] == 500
    lon, lat = output["view"]["center"]
    assert -77.1 < lon < -76.9
    assert -12.1 < lat < -11.9


def test_search_and_select_point_recenters(tmp_path, monkeypatch, capsys, geocoder_stub):
    monkeypatch.setattr(app_main, "load_settings", lambda _path: _settings(tmp_path))
    app_main.main(["search", "Lima", "--select", "1"])
    output = json.loads(capsys.readouterr().out)
    assert output["navigation"]["kind"] == "recenter"
    assert output["navigation"]["zoom"] == 17
    assert output["view"] == {"center": [-75.02, -9.19], "zoom": 17.0}


def test_search_without_results_shows_placeholder(tmp_path, monkeypatch, capsys, geocoder_stub):
    monkeypatch.setattr(app_main, "load_settings", lambda _path: _settings(tmp_path))
    app_main.main(["search", "Atlantis"])
    output = json.loads(capsys.readouterr().out)
    assert output["rows"] == ["Sin resultados"]
    assert output["results"] == []

    with pytest.raises(SystemExit):
        app_main.main(["search", "Atlantis", "--select", "0"])


def test_short_search_skips_the_geocoder(tmp_path, monkeypatch, capsys, geocoder_stub):
    monkeypatch.setattr(app_main, "load_settings", lambda _path: _settings(tmp_path))
    app_main.main(["search", "Li"])
    output = json.loads(capsys.readouterr().out)
    assert output["state"] == "idle"
    assert output["rows"] == []
    assert geocoder_stub == []


def test_markers_command(tmp_path, monkeypatch, capsys):
    monkeypatch.setattr(app_main, "load_settings", lambda _path: _settings(tmp_path))
    app_main.main(["markers"])
    output = json.loads(capsys.readouterr().out)
    assert len(output) == 7
    assert output[1]["name"] == "Machu Picchu"


def test_click_command_opens_popup(tmp_path, monkeypatch, capsys):
    monkeypatch.setattr(app_main, "load_settings", lambda _path: _settings(tmp_path))
    app_main.main(["click", "--lon", "-72.545", "--lat", "-13.1631", "--zoom", "9"])
    output = json.loads(capsys.readouterr().out)
    assert output["hit"] is True
    assert output["cursor"] == "pointer"
    assert output["popup"]["title"] == "Machu Picchu"
    assert output["popup"]["badge"] == "Arqueológico"

    app_main.main(["click", "--lon", "-81.0", "--lat", "-1.0"])
    output = json.loads(capsys.readouterr().out)
    assert output["hit"] is False
    assert output["popup"] is None


def test_seed_then_validate_points(tmp_path, monkeypatch, capsys):
    target = tmp_path / "seeded.json"
    monkeypatch.setattr(app_main, "load_settings", lambda _path: _settings(tmp_path, str(target)))
    app_main.main(["seed-points"])
    assert json.loads(capsys.readouterr().out)["path"] == str(target)

    app_main.main(["validate-points"])
    report = json.loads(capsys.readouterr().out)
    assert len(report) == 7
    assert {row["status"] for row in report} == {"OK"}


def test_validate_points_fails_on_bad_feature(tmp_path, monkeypatch, capsys):
    path = tmp_path / "points.json"
    path.write_text(
        json.dumps({
            "type": "FeatureCollection",
            "features": [{"type": "Feature", "geometry": {"type": "Point", "coordinates": [500, 0]}}],
        }),
        encoding="utf-8",
    )
    monkeypatch.setattr(app_main, "load_settings", lambda _path: _settings(tmp_path, str(path)))
    with pytest.raises(SystemExit) as info:
        app_main.main(["validate-points"])
    assert info.value.code == 1
    report = json.loads(capsys.readouterr().out)
    assert report[0]["status"] == "FAIL"


def test_invalid_settings_exit(monkeypatch):
    monkeypatch.setattr(app_main, "load_settings", lambda _path: {"geocoder": {"limit": -3}})
    with pytest.raises(SystemExit):
        app_main.main(["markers"])


def test_search_runs_on_default_loop_without_uvloop(tmp_path, monkeypatch, capsys, geocoder_stub):
    monkeypatch.setattr(app_main, "load_settings", lambda _path: _settings(tmp_path))
    monkeypatch.setattr(app_main, "uvloop", None)
    app_main.main(["search", "Lima"])
    output = json.loads(capsys.readouterr().out)
    assert output["state"] == "presenting"
    assert len(geocoder_stub) == 1


def test_search_metrics_file_carries_run_labels(tmp_path, monkeypatch, capsys, geocoder_stub):
    monkeypatch.setattr(app_main, "load_settings", lambda _path: _settings(tmp_path))
    app_main.main(["search", "Lima", "--select", "0"])
    capsys.readouterr()
    (exported,) = (tmp_path / "metrics").glob("search_*.json")
    payload = json.loads(exported.read_text(encoding="utf-8"))
    assert payload["labels"] == {"command": "search", "query": "Lima", "selected": 0}
    assert payload["counters"]["searches_dispatched"] == 1
    assert payload["counters"]["navigations"] == 1
    assert payload["timings"]["lookup_duration_ms"]["count"] == 1
    assert payload["timings"]["search_duration_ms"]["count"] == 1
