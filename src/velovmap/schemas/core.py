from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class Station:
    station_id: int
    lat: float
    lon: float


@dataclass(frozen=True)
class StationDetails:
    station_id: int
    name: str
    address: str
    area: str
    # None when the backend did not report one; distinct from a real 0.
    capacity: Optional[int]
    lat: Optional[float] = None
    lon: Optional[float] = None


@dataclass(frozen=True)
class Prediction:
    station_id: int
    available_bikes: int
    free_stands: int
    # Normalized instant the forecast was requested for (None when the payload did not say).
    at: Optional[datetime] = None


@dataclass(frozen=True)
class WeatherForecast:
    temperature_2m: Optional[float]
    precipitation: Optional[float]
    wind_speed_10m: Optional[float]
    precipitation_probability: Optional[float]
    weather_code: Optional[int]
