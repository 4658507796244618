__all__ = [
    "NO_DATA",
    "Color",
    "NEUTRAL_COLOR",
    "NormalizedInstant",
    "color_for",
    "compute_ratio",
    "normalize_instant",
]

from velovmap.forecast.colors import NEUTRAL_COLOR, Color, color_for
from velovmap.forecast.ratio import NO_DATA, compute_ratio
from velovmap.forecast.time_normalizer import NormalizedInstant, normalize_instant
