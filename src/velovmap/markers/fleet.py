from __future__ import annotations

from datetime import datetime
import logging

from velovmap.forecast.colors import NEUTRAL_COLOR, color_for
from velovmap.forecast.ratio import compute_ratio
from velovmap.ingestion.forecast_client import ForecastClient
from velovmap.markers.controller import StationMarker
from velovmap.state import AppState


logger = logging.getLogger(__name__)


class FleetColorSync:
    """Recolor every marker from one bulk prediction pass for the selected instant."""

    def __init__(self, *, state: AppState, client: ForecastClient) -> None:
        self._state = state
        self._client = client

    async def run(self) -> list[StationMarker]:
        tag = self._state.selected_instant
        markers = self._state.markers_snapshot()

        normalized = self._state.normalized_selection()
        if normalized is None:
            _paint_neutral(markers)
            logger.info("Selected instant %s is not in the future; %s markers set neutral", tag, len(markers))
            return markers

        predictions = await self._client.get_all_predictions(normalized)
        if predictions is None:
            if self._is_superseded(tag):
                return markers
            _paint_neutral(markers)
            logger.info("No predictions for %s; %s markers set neutral", normalized.wire, len(markers))
            return markers

        details = await self._client.get_all_station_details()
        if self._is_superseded(tag):
            return markers

        colored = 0
        for marker in markers:
            ratio = compute_ratio(marker.station_id, predictions, details)
            color = color_for(ratio, True)
            if color != NEUTRAL_COLOR:
                colored += 1
            marker.recolor(color)
        logger.info("Recolored %s/%s markers for %s", colored, len(markers), normalized.wire)
        return markers

    def _is_superseded(self, tag: datetime) -> bool:
        if self._state.selected_instant != tag:
            logger.debug("Discarding color pass for superseded instant %s", tag)
            return True
        return False


def _paint_neutral(markers: list[StationMarker]) -> None:
    for marker in markers:
        marker.recolor(NEUTRAL_COLOR)


async def load_markers(state: AppState, client: ForecastClient) -> list[StationMarker]:
    """Rebuild the marker registry from the station listing (or the search results)."""

    stations = await client.search_stations(state.search_text)
    markers: list[StationMarker] = []
    seen: set[int] = set()
    for station in stations:
        if station.station_id in seen:
            logger.warning("Duplicate station %s in listing; keeping the first entry", station.station_id)
            continue
        seen.add(station.station_id)
        markers.append(StationMarker(station, client=client, state=state))
    state.replace_markers(markers)
    logger.info("Loaded %s station markers", len(markers))
    return markers
