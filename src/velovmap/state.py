from __future__ import annotations

from datetime import datetime, tzinfo
import logging
from typing import TYPE_CHECKING, Callable, Iterable, Optional

from velovmap.forecast.time_normalizer import NormalizedInstant, normalize_instant

if TYPE_CHECKING:
    from velovmap.markers.controller import StationMarker


logger = logging.getLogger(__name__)


class AppState:
    """
    Process-wide view state: the selected instant, the marker registry and the search text.

    Readers take snapshots (`selected_instant`, `markers_snapshot()`) at the start of an
    operation; only the methods below mutate it.
    """

    def __init__(
        self,
        *,
        tz: tzinfo,
        selected_instant: Optional[datetime] = None,
        now_fn: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._tz = tz
        self._now_fn = now_fn or (lambda: datetime.now(tz))
        self._selected_instant = self._localize(selected_instant or self._now_fn())
        self._markers: dict[int, StationMarker] = {}
        self._search_text = ""

    def _localize(self, instant: datetime) -> datetime:
        return instant.replace(tzinfo=self._tz) if instant.tzinfo is None else instant

    @property
    def tz(self) -> tzinfo:
        return self._tz

    def now(self) -> datetime:
        return self._now_fn()

    @property
    def selected_instant(self) -> datetime:
        return self._selected_instant

    def select_instant(self, instant: datetime) -> None:
        self._selected_instant = self._localize(instant)
        logger.debug("Selected instant is now %s", self._selected_instant.isoformat())

    def normalized_selection(self) -> Optional[NormalizedInstant]:
        return normalize_instant(self._selected_instant, now=self.now(), tz=self._tz)

    @property
    def search_text(self) -> str:
        return self._search_text

    def set_search_text(self, text: str) -> None:
        self._search_text = text

    def markers_snapshot(self) -> list[StationMarker]:
        return list(self._markers.values())

    def get_marker(self, station_id: int) -> Optional[StationMarker]:
        return self._markers.get(station_id)

    def add_marker(self, marker: StationMarker) -> None:
        if marker.station_id in self._markers:
            raise ValueError(f"A marker already exists for station {marker.station_id}")
        self._markers[marker.station_id] = marker

    def replace_markers(self, markers: Iterable[StationMarker]) -> None:
        registry: dict[int, StationMarker] = {}
        for marker in markers:
            if marker.station_id in registry:
                raise ValueError(f"A marker already exists for station {marker.station_id}")
            registry[marker.station_id] = marker
        self._markers = registry

    def clear_markers(self) -> None:
        self._markers = {}
