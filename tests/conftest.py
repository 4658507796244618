from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

import pytest


def pytest_configure() -> None:
    """
    Keep a `src/` layout while allowing `pytest` to run without requiring an editable install.
    """

    project_root = Path(__file__).resolve().parents[1]
    src_path = project_root / "src"
    sys.path.insert(0, str(src_path))


class FakeForecastClient:
    """In-memory stand-in for `ForecastClient` that records every call."""

    def __init__(
        self,
        *,
        stations=None,
        details=None,
        predictions=None,
        weather=None,
        fail_predictions: bool = False,
    ) -> None:
        self.stations = list(stations or [])
        self.details = dict(details or {})
        self.predictions = dict(predictions or {})
        self.weather = weather
        self.fail_predictions = fail_predictions
        self.calls: list[tuple] = []
        # Runs right before a fetch returns; tests use it to move the selection mid-flight.
        self.before_return = None

    def _hook(self) -> None:
        if self.before_return is not None:
            self.before_return()

    async def get_stations(self):
        self.calls.append(("get_stations",))
        return list(self.stations)

    async def search_stations(self, query: str):
        self.calls.append(("search_stations", query))
        return list(self.stations)

    async def get_station_details(self, station_id: int, *, use_cache: bool = True):
        self.calls.append(("get_station_details", station_id, use_cache))
        self._hook()
        return self.details.get(station_id)

    async def get_all_station_details(self):
        self.calls.append(("get_all_station_details",))
        self._hook()
        return dict(self.details)

    async def get_prediction(self, station_id: int, instant) -> Optional[object]:
        self.calls.append(("get_prediction", station_id, instant))
        self._hook()
        if instant is None or self.fail_predictions:
            return None
        return self.predictions.get(station_id)

    async def get_all_predictions(self, instant):
        self.calls.append(("get_all_predictions", instant))
        self._hook()
        if instant is None or self.fail_predictions:
            return None
        return dict(self.predictions)

    async def get_weather_forecast(self):
        self.calls.append(("get_weather_forecast",))
        return self.weather


@pytest.fixture
def fake_client_cls():
    return FakeForecastClient
