from __future__ import annotations

# FastAPI primitives:
# - `APIRouter` groups endpoints so the app factory can include them cleanly.
# - `Depends` performs dependency injection per request (no global variables needed).
# - `HTTPException` converts lookups of unknown markers into a 404 JSON payload.
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import HTMLResponse

from velovmap.api.schemas import (
    MarkerOut,
    MarkersResponseOut,
    PopupOut,
    ReloadIn,
    SelectedInstantIn,
    TooltipOut,
    WeatherForecastOut,
)
from velovmap.api.service import MapService
from velovmap.markers.controller import StationMarker


router = APIRouter()


def get_service(request: Request) -> MapService:
    return request.app.state.map_service  # type: ignore[attr-defined]


def _marker_out(marker: StationMarker) -> MarkerOut:
    current = marker.prediction_is_current()
    return MarkerOut(
        id=marker.station_id,
        lat=marker.station.lat,
        lon=marker.station.lon,
        name=marker.name or None,
        color=marker.color.to_css(),
        available_bikes=marker.prediction_available_bikes if current else None,
        free_stands=marker.prediction_free_stands if current else None,
        prediction_current=current,
    )


def _markers_response(service: MapService, markers: list[StationMarker]) -> MarkersResponseOut:
    return MarkersResponseOut(items=[_marker_out(m) for m in markers], meta=service.meta())


def _require_marker(service: MapService, station_id: int) -> StationMarker:
    marker = service.marker(station_id)
    if marker is None:
        raise HTTPException(status_code=404, detail=f"Unknown station marker: {station_id}")
    return marker


@router.get("/", response_class=HTMLResponse, include_in_schema=False)
async def index(service: MapService = Depends(get_service)) -> HTMLResponse:
    await service.ensure_loaded()
    return HTMLResponse(service.render_map_html())


@router.get("/markers", response_model=MarkersResponseOut)
async def list_markers(service: MapService = Depends(get_service)) -> MarkersResponseOut:
    await service.ensure_loaded()
    return _markers_response(service, service.markers())


@router.post("/markers/reload", response_model=MarkersResponseOut)
async def reload_markers(body: ReloadIn, service: MapService = Depends(get_service)) -> MarkersResponseOut:
    markers = await service.reload(search=body.search)
    return _markers_response(service, markers)


@router.put("/selected_instant", response_model=MarkersResponseOut)
async def select_instant(body: SelectedInstantIn, service: MapService = Depends(get_service)) -> MarkersResponseOut:
    markers = await service.select_instant(body.instant)
    return _markers_response(service, markers)


@router.post("/markers/{station_id}/hover", response_model=TooltipOut)
async def hover_marker(station_id: int, service: MapService = Depends(get_service)) -> TooltipOut:
    marker = _require_marker(service, station_id)
    tooltip = await marker.on_hover()
    return TooltipOut(id=station_id, tooltip=tooltip)


@router.post("/markers/{station_id}/click", response_model=PopupOut)
async def click_marker(station_id: int, service: MapService = Depends(get_service)) -> PopupOut:
    marker = _require_marker(service, station_id)
    html = await marker.on_click()
    bikes, stands = marker.displayed_prediction()
    return PopupOut(id=station_id, name=marker.name, available_bikes=bikes, free_stands=stands, html=html)


@router.get("/weather", response_model=dict[str, WeatherForecastOut])
async def weather(service: MapService = Depends(get_service)) -> dict[str, WeatherForecastOut]:
    return {key: WeatherForecastOut(**value) for key, value in (await service.weather()).items()}
