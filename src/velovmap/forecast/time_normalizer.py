"""
Canonical forecast-query instants.

The backend stores one forecast per station per hour, keyed by local wall-clock
time. A user-selected instant is only worth querying when it lies strictly in
the future; it is then advanced to the start of the next full hour and rendered
as `YYYY-MM-DDTHH:MM:SS` (no offset, no `Z`).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Optional


WIRE_FORMAT = "%Y-%m-%dT%H:%M:%S"


@dataclass(frozen=True)
class NormalizedInstant:
    # Timezone-aware, whole hour, expressed in the backend's local zone.
    at: datetime

    @property
    def wire(self) -> str:
        return format_wire_instant(self.at)

    @property
    def query_value(self) -> str:
        return encode_date_param(self.wire)


def _as_aware(instant: datetime, tz: tzinfo) -> datetime:
    # Naive values are wall-clock times in the configured zone.
    if instant.tzinfo is None:
        return instant.replace(tzinfo=tz)
    return instant


def is_future(instant: datetime, now: datetime, *, tz: tzinfo = timezone.utc) -> bool:
    """An instant equal to `now` is not in the future."""

    return _as_aware(instant, tz) > _as_aware(now, tz)


def normalize_instant(
    instant: datetime,
    *,
    now: Optional[datetime] = None,
    tz: tzinfo = timezone.utc,
) -> Optional[NormalizedInstant]:
    """Return the forecast-query instant for `instant`, or None when it is not in the future."""

    current = now if now is not None else datetime.now(tz)
    if not is_future(instant, current, tz=tz):
        return None

    # Elapsed-time arithmetic: wall-clock addition would skip or invent hours across DST changes.
    utc = _as_aware(instant, tz).astimezone(timezone.utc)
    next_hour = utc.replace(minute=0, second=0, microsecond=0) + timedelta(hours=1)
    return NormalizedInstant(at=next_hour.astimezone(tz))


def format_wire_instant(instant: datetime) -> str:
    return instant.strftime(WIRE_FORMAT)


def encode_date_param(value: str) -> str:
    # Query strings are built by hand: the backend expects `%3A` and rejects a trailing UTC marker.
    return value.removesuffix("Z").replace(":", "%3A")
