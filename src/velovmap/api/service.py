from __future__ import annotations

from dataclasses import asdict
from datetime import datetime
from typing import Any, Callable, Optional
from zoneinfo import ZoneInfo

from velovmap.config.models import AppConfig
from velovmap.ingestion.backend_base import BackendClient
from velovmap.ingestion.forecast_client import ForecastClient
from velovmap.markers.controller import StationMarker
from velovmap.markers.fleet import FleetColorSync, load_markers
from velovmap.markers.render import build_map
from velovmap.state import AppState


# `MapService` is the application layer between HTTP routes and the marker subsystem.
# It owns the single `AppState` and wires the forecast client into markers and the fleet sync.
class MapService:
    def __init__(
        self,
        config: AppConfig,
        *,
        client: Optional[ForecastClient] = None,
        now_fn: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._config = config
        self._owns_backend = client is None
        self._backend: Optional[BackendClient] = None
        if client is None:
            self._backend = BackendClient.from_settings(config.backend)
            client = ForecastClient(backend=self._backend)
        self._client = client
        self._state = AppState(tz=ZoneInfo(config.temporal.timezone), now_fn=now_fn)
        self._fleet = FleetColorSync(state=self._state, client=self._client)
        self._loaded = False

    @property
    def config(self) -> AppConfig:
        return self._config

    @property
    def state(self) -> AppState:
        return self._state

    async def ensure_loaded(self) -> None:
        # Stations are listed once per process unless a reload is requested.
        if not self._loaded:
            await self.reload()

    async def reload(self, search: Optional[str] = None) -> list[StationMarker]:
        if search is not None:
            self._state.set_search_text(search)
        await load_markers(self._state, self._client)
        self._loaded = True
        return await self._fleet.run()

    async def select_instant(self, instant: datetime) -> list[StationMarker]:
        await self.ensure_loaded()
        self._state.select_instant(instant)
        return await self._fleet.run()

    def markers(self) -> list[StationMarker]:
        return self._state.markers_snapshot()

    def marker(self, station_id: int) -> Optional[StationMarker]:
        return self._state.get_marker(station_id)

    async def weather(self) -> dict[str, dict[str, Any]]:
        forecast = await self._client.get_weather_forecast()
        if forecast is None:
            return {}
        return {key: asdict(value) for key, value in forecast.items()}

    def render_map_html(self) -> str:
        return build_map(self._state.markers_snapshot(), self._config.map).get_root().render()

    def meta(self) -> dict[str, object]:
        normalized = self._state.normalized_selection()
        return {
            "selected_instant": self._state.selected_instant.isoformat(),
            "forecast_instant": None if normalized is None else normalized.wire,
            "search": self._state.search_text,
        }

    def close(self) -> None:
        if self._owns_backend and self._backend is not None:
            self._backend.close()
