from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional


@dataclass(frozen=True)
class AppSettings:
    name: str = "VelovMap"


@dataclass(frozen=True)
class BackendSettings:
    base_url: str
    timeout_s: float = 10.0
    max_retries: int = 2
    backoff_factor: float = 0.3
    user_agent: str = "velovmap/0.1.0"


@dataclass(frozen=True)
class TemporalSettings:
    timezone: str


@dataclass(frozen=True)
class MapSettings:
    center_lat: float
    center_lon: float
    zoom: int
    tiles: str = "OpenStreetMap"


@dataclass(frozen=True)
class LoggingSettings:
    level: str
    format: str
    file: Optional[Path] = None


@dataclass(frozen=True)
class AppConfig:
    app: AppSettings
    backend: BackendSettings
    temporal: TemporalSettings
    map: MapSettings
    logging: LoggingSettings
