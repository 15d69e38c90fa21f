from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from typing import Callable, Tuple

from ..core.constants import DEFAULT_UTC_OFFSET_MINUTES


def parse_hhmm(value: str) -> time:
    """Parse an ``HH:mm`` (or ``HH:mm:ss``) string into a time of day."""
    parts = value.strip().split(":")
    if len(parts) < 2:
        raise ValueError(f"Invalid time string: {value!r}")
    seconds = int(parts[2]) if len(parts) >= 3 and parts[2] else 0
    return time(hour=int(parts[0]), minute=int(parts[1]), second=seconds)


def now_utc() -> datetime:
    """Current UTC time.

    Note: Wrapped so tests can patch/inject a fixed instant.
    """
    return datetime.now(timezone.utc)


def split_minutes(delta: timedelta) -> Tuple[int, int]:
    """Whole minutes and residual seconds of a non-negative duration."""
    total = int(delta.total_seconds())
    return total // 60, total % 60


def split_hours(delta: timedelta) -> Tuple[int, int]:
    """Whole hours and residual whole minutes of a non-negative duration."""
    total = int(delta.total_seconds())
    return total // 3600, (total % 3600) // 60


@dataclass(frozen=True)
class OrgClock:
    """Converts server instants into the organization's local civil time.

    The organization locale is a fixed UTC offset (no DST). ``now_fn`` is the
    only place the wall clock is sampled, so tests can pin "now".
    """

    utc_offset_minutes: int = DEFAULT_UTC_OFFSET_MINUTES
    now_fn: Callable[[], datetime] = field(default=now_utc, compare=False)

    @property
    def tz(self) -> timezone:
        return timezone(timedelta(minutes=self.utc_offset_minutes))

    def now_utc(self) -> datetime:
        return self._as_utc(self.now_fn())

    def to_local(self, instant: datetime) -> datetime:
        return self._as_utc(instant).astimezone(self.tz)

    def today(self, instant: datetime | None = None) -> date:
        return self.to_local(instant if instant is not None else self.now_utc()).date()

    def combine(self, day: date, time_of_day: time | str) -> datetime:
        if isinstance(time_of_day, str):
            time_of_day = parse_hhmm(time_of_day)
        return datetime.combine(day, time_of_day, tzinfo=self.tz)

    def local_day_bounds_utc(self, day: date) -> Tuple[datetime, datetime]:
        """Half-open ``[start, end)`` UTC window covering one local calendar day."""
        start = datetime.combine(day, time.min, tzinfo=self.tz)
        end = start + timedelta(days=1)
        return start.astimezone(timezone.utc), end.astimezone(timezone.utc)

    @staticmethod
    def format_clock(instant: datetime) -> str:
        """``9:05 AM`` style, in the instant's own offset."""
        hour = instant.hour % 12 or 12
        suffix = "AM" if instant.hour < 12 else "PM"
        return f"{hour}:{instant.minute:02d} {suffix}"

    @staticmethod
    def _as_utc(instant: datetime) -> datetime:
        # Naive datetimes coming from the DB driver are UTC.
        if instant.tzinfo is None:
            return instant.replace(tzinfo=timezone.utc)
        return instant.astimezone(timezone.utc)
