from __future__ import annotations

import enum
from datetime import datetime
import logging
from typing import Optional

import folium

from velovmap.forecast.colors import NEUTRAL_COLOR, Color
from velovmap.ingestion.forecast_client import ForecastClient
from velovmap.markers.render import render_icon, render_popup
from velovmap.schemas.core import Prediction, Station
from velovmap.state import AppState


logger = logging.getLogger(__name__)


NAME_PLACEHOLDER = "no available data"
BIKES_PLACEHOLDER = "indisponible"
STANDS_PLACEHOLDER = "insdisponible"


class NameState(enum.Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"


class PredictionState(enum.Enum):
    STALE = "stale"
    LOADING = "loading"
    LOADED = "loaded"


class StationMarker:
    """
    One map marker: station identity plus the display state shown in tooltips and popups.

    Name and prediction load independently. Cached prediction strings belong to the
    selected instant that produced them and are shown as placeholders once the
    selection moves on.
    """

    def __init__(self, station: Station, *, client: ForecastClient, state: AppState) -> None:
        self.station = station
        self._client = client
        self._state = state

        self.name = ""
        self.name_state = NameState.IDLE

        self.prediction_available_bikes = ""
        self.prediction_free_stands = ""
        self.prediction_for: Optional[datetime] = None
        self._prediction_state = PredictionState.STALE

        self.color: Color = NEUTRAL_COLOR
        self.icon: folium.DivIcon = render_icon(NEUTRAL_COLOR)
        self.tooltip = ""
        self.popup_html = ""

    @property
    def station_id(self) -> int:
        return self.station.station_id

    @property
    def prediction_state(self) -> PredictionState:
        if self._prediction_state is PredictionState.LOADED and not self.prediction_is_current():
            return PredictionState.STALE
        return self._prediction_state

    def prediction_is_current(self) -> bool:
        return self.prediction_for is not None and self.prediction_for == self._state.selected_instant

    def displayed_prediction(self) -> tuple[str, str]:
        if not self.prediction_is_current():
            return BIKES_PLACEHOLDER, STANDS_PLACEHOLDER
        return self.prediction_available_bikes, self.prediction_free_stands

    async def refresh_name(self, *, use_cache: bool = False) -> str:
        self.name_state = NameState.LOADING
        details = await self._client.get_station_details(self.station_id, use_cache=use_cache)
        if details is not None and details.name:
            self.name = details.name
        else:
            self.name = NAME_PLACEHOLDER
        self.name_state = NameState.LOADED
        return self.name

    async def refresh_prediction(self) -> bool:
        """
        Fetch the forecast for the current selection.

        Returns False when the selection changed while the request was in flight; the
        response is then dropped and the cached strings are left untouched.
        """

        tag = self._state.selected_instant
        normalized = self._state.normalized_selection()
        self._prediction_state = PredictionState.LOADING
        if normalized is None:
            logger.debug("Station %s: selected instant %s is not in the future", self.station_id, tag)
        prediction = await self._client.get_prediction(self.station_id, normalized)

        if self._state.selected_instant != tag:
            logger.debug("Station %s: discarding prediction for superseded instant %s", self.station_id, tag)
            self._prediction_state = PredictionState.STALE
            return False

        self._apply_prediction(prediction)
        self.prediction_for = tag
        self._prediction_state = PredictionState.LOADED
        return True

    def _apply_prediction(self, prediction: Optional[Prediction]) -> None:
        if prediction is None:
            self.prediction_available_bikes = BIKES_PLACEHOLDER
            self.prediction_free_stands = STANDS_PLACEHOLDER
        else:
            self.prediction_available_bikes = str(prediction.available_bikes)
            self.prediction_free_stands = str(prediction.free_stands)

    async def on_hover(self) -> str:
        if self.name_state is not NameState.LOADED:
            await self.refresh_name(use_cache=True)
        self.tooltip = self.name or NAME_PLACEHOLDER
        return self.tooltip

    async def on_click(self) -> str:
        await self.refresh_name()
        await self.refresh_prediction()
        bikes, stands = self.displayed_prediction()
        self.popup_html = render_popup(self.name, bikes, stands)
        return self.popup_html

    def recolor(self, color: Color) -> None:
        self.color = color
        self.icon = render_icon(color)

    def __repr__(self) -> str:
        return f"StationMarker(station_id={self.station_id}, color={self.color.to_css()})"
