from __future__ import annotations

import enum
from typing import Mapping, Union

from velovmap.schemas.core import Prediction, StationDetails


class NoData(enum.Enum):
    NO_DATA = "no_data"

    def __repr__(self) -> str:
        return "NO_DATA"


NO_DATA = NoData.NO_DATA

Ratio = Union[float, NoData]


def compute_ratio(
    station_id: int,
    predictions: Mapping[int, Prediction],
    details: Mapping[int, StationDetails],
) -> Ratio:
    """
    Predicted occupancy of one station: available bikes over capacity.

    - Missing prediction, missing details or unknown capacity -> `NO_DATA`.
    - Capacity 0 -> 0.0 (renders as "empty" rather than unknown).
    - Result is clamped to [0, 1]; the backend may report more bikes than docks
      while a station is being rebalanced.
    """

    prediction = predictions.get(station_id)
    if prediction is None:
        return NO_DATA
    station = details.get(station_id)
    if station is None or station.capacity is None:
        return NO_DATA
    if station.capacity == 0:
        return 0.0
    ratio = prediction.available_bikes / station.capacity
    return min(max(ratio, 0.0), 1.0)
