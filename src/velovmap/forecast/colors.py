from __future__ import annotations

from dataclasses import dataclass
import math

from velovmap.forecast.ratio import NO_DATA, Ratio


@dataclass(frozen=True)
class Color:
    red: int
    green: int
    blue: int

    def to_css(self) -> str:
        return f"rgb({self.red}, {self.green}, {self.blue})"


NEUTRAL_COLOR = Color(0, 0, 0)


def _round_half_up(value: float) -> int:
    # `round()` rounds halves to even, which would turn 127.5 into 128 but 76.5 into 76.
    return int(math.floor(value + 0.5))


def color_for(ratio: Ratio, is_future_and_valid: bool) -> Color:
    """Red (empty) to green (full) gradient; neutral when there is nothing to forecast."""

    if not is_future_and_valid or ratio is NO_DATA:
        return NEUTRAL_COLOR
    return Color(
        red=_round_half_up(255 * (1 - ratio)),
        green=_round_half_up(255 * ratio),
        blue=0,
    )
