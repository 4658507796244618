from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class MarkerOut(BaseModel):
    id: int
    lat: float
    lon: float
    name: Optional[str] = None
    color: str = Field(..., examples=["rgb(179, 77, 0)", "rgb(0, 0, 0)"])
    available_bikes: Optional[str] = None
    free_stands: Optional[str] = None
    prediction_current: bool = False


class MarkersResponseOut(BaseModel):
    items: list[MarkerOut] = Field(default_factory=list)
    meta: dict[str, object] = Field(default_factory=dict)


class SelectedInstantIn(BaseModel):
    instant: datetime


class ReloadIn(BaseModel):
    search: Optional[str] = None


class TooltipOut(BaseModel):
    id: int
    tooltip: str


class PopupOut(BaseModel):
    id: int
    name: str
    available_bikes: str
    free_stands: str
    html: str


class WeatherForecastOut(BaseModel):
    temperature_2m: Optional[float] = None
    precipitation: Optional[float] = None
    wind_speed_10m: Optional[float] = None
    precipitation_probability: Optional[float] = None
    weather_code: Optional[int] = None
