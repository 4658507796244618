from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Mapping, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from velovmap.config.models import (
    AppConfig,
    AppSettings,
    BackendSettings,
    LoggingSettings,
    MapSettings,
    TemporalSettings,
)


DEFAULT_BACKEND_URL = "http://localhost:8000/"


def load_dotenv_if_available(path: str = ".env") -> None:
    try:
        from dotenv import load_dotenv  # type: ignore
    except ModuleNotFoundError:
        return
    load_dotenv(path)


def _as_path(value: str, *, base_dir: Path) -> Path:
    candidate = Path(value)
    return candidate if candidate.is_absolute() else (base_dir / candidate)


def load_config(path: Optional[str | Path] = None, *, base_dir: Optional[Path] = None) -> AppConfig:
    """
    Load typed application config from JSON.

    - Path resolution is relative to `base_dir` (defaults to current working directory).
    - `.env` is loaded when python-dotenv is installed (dev convenience).
    - `VELOVMAP_BACKEND_URL`, `VELOVMAP_TIMEZONE` and `VELOVMAP_LOG_LEVEL` override the file.
    """

    load_dotenv_if_available()

    config_path = Path(
        path
        or os.getenv("VELOVMAP_CONFIG_PATH", "config/default.json")
    ).resolve()
    base_dir = (base_dir or Path.cwd()).resolve()

    raw = json.loads(config_path.read_text(encoding="utf-8"))

    app_raw: Mapping[str, Any] = raw.get("app", {})
    app = AppSettings(name=str(app_raw.get("name", "VelovMap")))

    backend_raw: Mapping[str, Any] = raw.get("backend", {})
    base_url = os.getenv("VELOVMAP_BACKEND_URL") or backend_raw.get("base_url", DEFAULT_BACKEND_URL)
    if not base_url:
        raise ValueError("Config missing required field: backend.base_url")
    backend = BackendSettings(
        base_url=str(base_url),
        timeout_s=float(backend_raw.get("timeout_s", 10.0)),
        max_retries=int(backend_raw.get("max_retries", 2)),
        backoff_factor=float(backend_raw.get("backoff_factor", 0.3)),
        user_agent=str(backend_raw.get("user_agent", "velovmap/0.1.0")),
    )
    if backend.timeout_s <= 0:
        raise ValueError(f"backend.timeout_s must be positive, got {backend.timeout_s}")
    if backend.max_retries < 0:
        raise ValueError(f"backend.max_retries must be >= 0, got {backend.max_retries}")

    temporal_raw: Mapping[str, Any] = raw.get("temporal", {})
    temporal = TemporalSettings(
        timezone=os.getenv("VELOVMAP_TIMEZONE") or str(temporal_raw.get("timezone", "Europe/Paris")),
    )
    try:
        ZoneInfo(temporal.timezone)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Unsupported timezone: {temporal.timezone}") from exc

    map_raw: Mapping[str, Any] = raw.get("map", {})
    map_settings = MapSettings(
        center_lat=float(map_raw.get("center_lat", 45.7640)),
        center_lon=float(map_raw.get("center_lon", 4.8357)),
        zoom=int(map_raw.get("zoom", 13)),
        tiles=str(map_raw.get("tiles", "OpenStreetMap")),
    )

    logging_raw: Mapping[str, Any] = raw.get("logging", {})
    file_value = logging_raw.get("file")
    log_file = None if not file_value else _as_path(str(file_value), base_dir=base_dir)
    logging_settings = LoggingSettings(
        level=os.getenv("VELOVMAP_LOG_LEVEL") or str(logging_raw.get("level", "INFO")),
        format=str(logging_raw.get("format", "%(asctime)s %(levelname)s %(name)s - %(message)s")),
        file=log_file,
    )

    return AppConfig(
        app=app,
        backend=backend,
        temporal=temporal,
        map=map_settings,
        logging=logging_settings,
    )
