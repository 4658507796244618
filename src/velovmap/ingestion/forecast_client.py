from __future__ import annotations

# `asyncio.to_thread` lets blocking `requests` calls suspend only the awaiting coroutine.
import asyncio
import logging
from typing import Any, Iterable, Mapping, Optional
from urllib.parse import quote

import requests

from velovmap.forecast.time_normalizer import NormalizedInstant
from velovmap.ingestion.backend_base import BackendClient, BackendRequestError
from velovmap.schemas.core import Prediction, Station, StationDetails, WeatherForecast


logger = logging.getLogger(__name__)


# Errors a single backend round trip may produce, network or payload shape alike.
_FETCH_ERRORS = (
    BackendRequestError,
    requests.RequestException,
    ValueError,
    KeyError,
    TypeError,
    AttributeError,
)


# `ForecastClient` wraps `BackendClient` with station/forecast routes and normalization rules.
# It is the recovery boundary: every method returns a typed value, `None` or an empty
# container, and never lets a network error reach the marker layer.
class ForecastClient:
    def __init__(self, *, backend: BackendClient) -> None:
        self._backend = backend
        # Read-through cache of station details; filled lazily, never invalidated.
        self._details_cache: dict[int, StationDetails] = {}

    async def _get(self, path: str) -> Any:
        # Runs on a worker thread; `BackendClient` keeps one session per thread.
        return await asyncio.to_thread(self._backend.get_json, path)

    async def get_stations(self) -> list[Station]:
        try:
            data = await self._get("stations")
            return [self.parse_station(item) for item in _as_list(data)]
        except _FETCH_ERRORS as exc:
            logger.warning("Could not fetch stations: %s", exc)
            return []

    async def search_stations(self, query: str) -> list[Station]:
        query = query.strip()
        if not query:
            return await self.get_stations()
        try:
            data = await self._get(f"search/{quote(query, safe='')}")
            return [self.parse_station(item) for item in _as_list(data)]
        except _FETCH_ERRORS as exc:
            logger.warning("Could not search stations for %r: %s", query, exc)
            return []

    async def get_station_details(self, station_id: int, *, use_cache: bool = True) -> Optional[StationDetails]:
        if use_cache:
            cached = self._details_cache.get(station_id)
            if cached is not None:
                return cached
        try:
            data = await self._get(f"station/{station_id}")
            details = self.parse_details(data)
        except _FETCH_ERRORS as exc:
            logger.warning("Could not fetch details for station %s: %s", station_id, exc)
            return None
        self._details_cache[details.station_id] = details
        return details

    async def get_all_station_details(self) -> dict[int, StationDetails]:
        try:
            data = await self._get("detailed_stations")
            out = {}
            for key, item in _keyed_records(data):
                details = self.parse_details(item, fallback_id=key)
                out[details.station_id] = details
        except _FETCH_ERRORS as exc:
            logger.warning("Could not fetch detailed stations: %s", exc)
            return {}
        self._details_cache.update(out)
        return out

    async def get_prediction(
        self, station_id: int, instant: Optional[NormalizedInstant]
    ) -> Optional[Prediction]:
        """
        Forecast for one station, or None.

        None covers both a past/present instant (no normalized form) and a backend
        without a forecast for this station and hour; callers render both the same way.
        """

        if instant is None:
            return None
        try:
            data = await self._get(f"predict?id={station_id}&date={instant.query_value}")
            return self.parse_prediction(data, at=instant)
        except _FETCH_ERRORS as exc:
            logger.warning("Could not fetch prediction for station %s at %s: %s", station_id, instant.wire, exc)
            return None

    async def get_all_predictions(self, instant: Optional[NormalizedInstant]) -> Optional[dict[int, Prediction]]:
        if instant is None:
            return None
        try:
            data = await self._get(f"predictions?date={instant.query_value}")
            out = {}
            for key, item in _keyed_records(data):
                prediction = self.parse_prediction(item, at=instant, fallback_id=key)
                out[prediction.station_id] = prediction
            return out
        except _FETCH_ERRORS as exc:
            logger.warning("Could not fetch predictions at %s: %s", instant.wire, exc)
            return None

    async def get_weather_forecast(self) -> Optional[dict[str, WeatherForecast]]:
        try:
            data = await self._get("weather_forecast")
            if not isinstance(data, Mapping):
                raise ValueError(f"Unexpected weather payload type: {type(data).__name__}")
            return {str(key): self.parse_weather(item) for key, item in data.items()}
        except _FETCH_ERRORS as exc:
            logger.warning("Could not fetch weather forecast: %s", exc)
            return None

    def cached_details(self, station_id: int) -> Optional[StationDetails]:
        return self._details_cache.get(station_id)

    @staticmethod
    def parse_station(item: Mapping[str, Any]) -> Station:
        return Station(
            station_id=int(item["id"]),
            lat=float(item["latitude"]),
            lon=float(item["longitude"]),
        )

    @staticmethod
    def parse_details(item: Mapping[str, Any], *, fallback_id: Optional[int] = None) -> StationDetails:
        station_id = item.get("id", fallback_id)
        if station_id is None:
            raise ValueError(f"Missing station id in details record: {item}")
        raw_capacity = item.get("capacity")
        # Keep None when absent to avoid fake zeros; a zero capacity paints the marker "empty".
        capacity = None if raw_capacity is None else int(raw_capacity)
        if capacity is not None and capacity < 0:
            raise ValueError(f"Negative capacity for station {station_id}: {capacity}")
        lat = item.get("latitude")
        lon = item.get("longitude")
        return StationDetails(
            station_id=int(station_id),
            name=str(item.get("name") or ""),
            # The backend schema spells it `adress`.
            address=str(item.get("address") or item.get("adress") or ""),
            area=str(item.get("area") or ""),
            capacity=capacity,
            lat=None if lat is None else float(lat),
            lon=None if lon is None else float(lon),
        )

    @staticmethod
    def parse_prediction(
        item: Mapping[str, Any],
        *,
        at: Optional[NormalizedInstant] = None,
        fallback_id: Optional[int] = None,
    ) -> Prediction:
        station_id = item.get("id", fallback_id)
        if station_id is None:
            raise ValueError(f"Missing station id in prediction record: {item}")
        available_bikes = int(item["available_bikes"])
        free_stands = int(item["free_stands"])
        if available_bikes < 0 or free_stands < 0:
            raise ValueError(f"Negative counts in prediction record: {item}")
        return Prediction(
            station_id=int(station_id),
            available_bikes=available_bikes,
            free_stands=free_stands,
            at=None if at is None else at.at,
        )

    @staticmethod
    def parse_weather(item: Mapping[str, Any]) -> WeatherForecast:
        def _num(key: str) -> Optional[float]:
            value = item.get(key)
            return None if value is None else float(value)

        code = item.get("weather_code")
        return WeatherForecast(
            temperature_2m=_num("temperature_2m"),
            precipitation=_num("precipitation"),
            wind_speed_10m=_num("wind_speed_10m"),
            precipitation_probability=_num("precipitation_probability"),
            weather_code=None if code is None else int(code),
        )


def _as_list(data: Any) -> list[Any]:
    if not isinstance(data, list):
        raise ValueError(f"Expected a JSON list, got {type(data).__name__}")
    return data


def _keyed_records(data: Any) -> Iterable[tuple[Optional[int], Mapping[str, Any]]]:
    # Bulk routes answer either {"<id>": {...}} or [{"id": ...}, ...].
    if isinstance(data, Mapping):
        return [(int(key), item) for key, item in data.items()]
    if isinstance(data, list):
        return [(None, item) for item in data]
    raise ValueError(f"Unexpected bulk payload type: {type(data).__name__}")
