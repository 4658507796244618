from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

from fastapi.testclient import TestClient

from velovmap.api.app import create_app
from velovmap.config.models import (
    AppConfig,
    AppSettings,
    BackendSettings,
    LoggingSettings,
    MapSettings,
    TemporalSettings,
)
from velovmap.schemas.core import Prediction, Station, StationDetails, WeatherForecast


NOW = datetime(2026, 10, 19, 9, 30, tzinfo=timezone.utc)


def _test_config() -> AppConfig:
    return AppConfig(
        app=AppSettings(name="Test"),
        backend=BackendSettings(base_url="http://example.invalid/"),
        temporal=TemporalSettings(timezone="UTC"),
        map=MapSettings(center_lat=45.76, center_lon=4.83, zoom=13),
        logging=LoggingSettings(level="INFO", format="%(message)s"),
    )


def _fake(fake_client_cls, **kwargs):
    return fake_client_cls(
        stations=[Station(1, 45.75, 4.85), Station(2, 45.77, 4.86)],
        details={
            1: StationDetails(1, "Part-Dieu", "Bd Vivier Merle", "Lyon 3", 10),
            2: StationDetails(2, "", "Quai", "Lyon 1", 20),
        },
        predictions={1: Prediction(1, 3, 7), 2: Prediction(2, 20, 0)},
        **kwargs,
    )


def _app(client) -> TestClient:
    return TestClient(create_app(_test_config(), client=client, now_fn=lambda: NOW))


def test_markers_are_loaded_lazily_and_neutral_for_now(fake_client_cls) -> None:
    http = _app(_fake(fake_client_cls))
    resp = http.get("/markers")
    assert resp.status_code == 200
    payload = resp.json()
    assert [m["id"] for m in payload["items"]] == [1, 2]
    assert {m["color"] for m in payload["items"]} == {"rgb(0, 0, 0)"}
    assert payload["meta"]["forecast_instant"] is None


def test_selecting_future_instant_recolors_markers(fake_client_cls) -> None:
    http = _app(_fake(fake_client_cls))
    resp = http.put("/selected_instant", json={"instant": "2026-10-19T14:20:00+00:00"})
    assert resp.status_code == 200
    payload = resp.json()
    colors = {m["id"]: m["color"] for m in payload["items"]}
    assert colors == {1: "rgb(179, 77, 0)", 2: "rgb(0, 255, 0)"}
    assert payload["meta"]["forecast_instant"] == "2026-10-19T15:00:00"


def test_failed_predictions_keep_markers_neutral(fake_client_cls) -> None:
    http = _app(_fake(fake_client_cls, fail_predictions=True))
    payload = http.put("/selected_instant", json={"instant": "2026-10-20T08:00:00+00:00"}).json()
    assert {m["color"] for m in payload["items"]} == {"rgb(0, 0, 0)"}


def test_click_and_hover(fake_client_cls) -> None:
    http = _app(_fake(fake_client_cls))
    http.put("/selected_instant", json={"instant": "2026-10-19T14:20:00+00:00"})

    popup = http.post("/markers/1/click").json()
    assert popup["name"] == "Part-Dieu"
    assert popup["available_bikes"] == "3"
    assert popup["free_stands"] == "7"
    assert "<h3>Part-Dieu</h3>" in popup["html"]

    tooltip = http.post("/markers/2/hover").json()
    assert tooltip["tooltip"] == "no available data"


def test_unknown_marker_is_404(fake_client_cls) -> None:
    http = _app(_fake(fake_client_cls))
    http.get("/markers")
    assert http.post("/markers/404/click").status_code == 404


def test_reload_with_search(fake_client_cls) -> None:
    client = _fake(fake_client_cls)
    http = _app(client)
    resp = http.post("/markers/reload", json={"search": "dieu"})
    assert resp.status_code == 200
    assert ("search_stations", "dieu") in client.calls
    assert resp.json()["meta"]["search"] == "dieu"


def test_index_renders_map_html(fake_client_cls) -> None:
    http = _app(_fake(fake_client_cls))
    resp = http.get("/")
    assert resp.status_code == 200
    assert "leaflet" in resp.text.lower()
    assert "rgb(0, 0, 0)" in resp.text


def test_weather_endpoint(fake_client_cls) -> None:
    weather = {"1": WeatherForecast(11.0, 0.2, 9.5, 40.0, 61)}
    http = _app(_fake(fake_client_cls, weather=weather))
    payload = http.get("/weather").json()
    assert payload["1"]["weather_code"] == 61

    http_down = _app(_fake(fake_client_cls))
    assert http_down.get("/weather").json() == {}
