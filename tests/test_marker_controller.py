from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import folium
import pytest

from velovmap.forecast.colors import NEUTRAL_COLOR, Color
from velovmap.markers.controller import (
    BIKES_PLACEHOLDER,
    NAME_PLACEHOLDER,
    STANDS_PLACEHOLDER,
    NameState,
    PredictionState,
    StationMarker,
)
from velovmap.schemas.core import Prediction, Station, StationDetails
from velovmap.state import AppState


NOW = datetime(2026, 10, 19, 9, 30, tzinfo=timezone.utc)
FUTURE = NOW + timedelta(hours=3)


def _state(selected: datetime = FUTURE) -> AppState:
    return AppState(tz=timezone.utc, selected_instant=selected, now_fn=lambda: NOW)


def _details(station_id: int, name: str, capacity: int = 10) -> StationDetails:
    return StationDetails(station_id=station_id, name=name, address="", area="", capacity=capacity)


def _marker(client, state: AppState, station_id: int = 1) -> StationMarker:
    return StationMarker(Station(station_id, 45.76, 4.84), client=client, state=state)


def test_new_marker_is_neutral_and_idle(fake_client_cls) -> None:
    marker = _marker(fake_client_cls(), _state())
    assert marker.color == NEUTRAL_COLOR
    assert isinstance(marker.icon, folium.DivIcon)
    assert marker.name_state is NameState.IDLE
    assert marker.prediction_state is PredictionState.STALE


def test_click_renders_name_and_prediction(fake_client_cls) -> None:
    client = fake_client_cls(
        details={1: _details(1, "Part-Dieu")},
        predictions={1: Prediction(1, available_bikes=4, free_stands=11)},
    )
    marker = _marker(client, _state())

    html = asyncio.run(marker.on_click())

    assert "<h3>Part-Dieu</h3>" in html
    assert "Velo'v disponibles : 4" in html
    assert "Bornes disponibles : 11" in html
    assert marker.prediction_state is PredictionState.LOADED
    # Click always bypasses the details cache.
    assert ("get_station_details", 1, False) in client.calls


def test_click_with_empty_name_uses_placeholder(fake_client_cls) -> None:
    client = fake_client_cls(details={1: _details(1, "")})
    marker = _marker(client, _state())
    asyncio.run(marker.on_click())
    assert marker.name == NAME_PLACEHOLDER


def test_click_when_details_fetch_fails_uses_placeholder(fake_client_cls) -> None:
    marker = _marker(fake_client_cls(), _state())
    html = asyncio.run(marker.on_click())
    assert marker.name == "no available data"
    assert f"Velo'v disponibles : {BIKES_PLACEHOLDER}" in html
    assert f"Bornes disponibles : {STANDS_PLACEHOLDER}" in html


def test_click_for_past_instant_shows_unavailable(fake_client_cls) -> None:
    client = fake_client_cls(
        details={1: _details(1, "Bellecour")},
        predictions={1: Prediction(1, available_bikes=4, free_stands=11)},
    )
    marker = _marker(client, _state(selected=NOW - timedelta(hours=1)))
    asyncio.run(marker.on_click())
    assert marker.displayed_prediction() == ("indisponible", "insdisponible")
    assert ("get_prediction", 1, None) in client.calls


def test_click_when_prediction_missing_shows_unavailable(fake_client_cls) -> None:
    client = fake_client_cls(details={1: _details(1, "Bellecour")}, fail_predictions=True)
    marker = _marker(client, _state())
    asyncio.run(marker.on_click())
    assert marker.prediction_available_bikes == BIKES_PLACEHOLDER
    assert marker.prediction_free_stands == STANDS_PLACEHOLDER


def test_hover_loads_name_once_from_cache(fake_client_cls) -> None:
    client = fake_client_cls(details={1: _details(1, "Perrache")})
    marker = _marker(client, _state())

    assert asyncio.run(marker.on_hover()) == "Perrache"
    assert asyncio.run(marker.on_hover()) == "Perrache"

    detail_calls = [c for c in client.calls if c[0] == "get_station_details"]
    assert detail_calls == [("get_station_details", 1, True)]
    assert marker.tooltip == "Perrache"


def test_hover_without_name_shows_placeholder_tooltip(fake_client_cls) -> None:
    marker = _marker(fake_client_cls(), _state())
    assert asyncio.run(marker.on_hover()) == NAME_PLACEHOLDER


def test_selection_change_mid_flight_discards_prediction(fake_client_cls) -> None:
    client = fake_client_cls(predictions={1: Prediction(1, available_bikes=4, free_stands=11)})
    state = _state()
    marker = _marker(client, state)
    client.before_return = lambda: state.select_instant(FUTURE + timedelta(days=1))

    applied = asyncio.run(marker.refresh_prediction())

    assert applied is False
    assert marker.prediction_available_bikes == ""
    assert marker.prediction_state is PredictionState.STALE


def test_cached_prediction_goes_stale_when_selection_moves(fake_client_cls) -> None:
    client = fake_client_cls(predictions={1: Prediction(1, available_bikes=4, free_stands=11)})
    state = _state()
    marker = _marker(client, state)
    asyncio.run(marker.refresh_prediction())
    assert marker.displayed_prediction() == ("4", "11")

    state.select_instant(FUTURE + timedelta(hours=5))
    assert marker.prediction_state is PredictionState.STALE
    assert marker.displayed_prediction() == (BIKES_PLACEHOLDER, STANDS_PLACEHOLDER)


def test_recolor_replaces_icon_without_network(fake_client_cls) -> None:
    client = fake_client_cls()
    marker = _marker(client, _state())
    old_icon = marker.icon
    marker.recolor(Color(255, 0, 0))
    assert marker.color == Color(255, 0, 0)
    assert marker.icon is not old_icon
    assert client.calls == []


def test_popup_escapes_station_name(fake_client_cls) -> None:
    client = fake_client_cls(details={1: _details(1, "Gare <Jean Macé>")})
    marker = _marker(client, _state())
    html = asyncio.run(marker.on_click())
    assert "Gare &lt;Jean Macé&gt;" in html


def test_state_rejects_duplicate_markers(fake_client_cls) -> None:
    state = _state()
    client = fake_client_cls()
    state.add_marker(_marker(client, state, 1))
    with pytest.raises(ValueError):
        state.add_marker(_marker(client, state, 1))
    with pytest.raises(ValueError):
        state.replace_markers([_marker(client, state, 2), _marker(client, state, 2)])
    assert [m.station_id for m in state.markers_snapshot()] == [1]
