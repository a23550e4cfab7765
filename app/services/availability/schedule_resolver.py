# app/services/availability/schedule_resolver.py
"""
Schedule Resolver

Merges a shop's recurring weekly blocks with date-specific exceptions into the
effective open windows of each calendar date. Windows are absolute, timezone
aware ranges so slot math never compares bare "HH:MM" strings.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from typing import Dict, Iterable, List, Optional, Sequence
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OpenWindow:
    """One contiguous open range. ``end`` may fall on the following calendar day."""
    start: datetime
    end: datetime

    def __post_init__(self):
        if self.start >= self.end:
            raise ValueError(f"Window start {self.start} must be before end {self.end}")


@dataclass(frozen=True)
class EffectiveDay:
    """Resolved open/closed state of one calendar date in the shop's timezone."""
    date: date
    is_open: bool
    windows: List[OpenWindow] = field(default_factory=list)
    source: str = "weekly"  # "weekly" | "exception"
    reason: Optional[str] = None

    @property
    def open_time(self) -> Optional[time]:
        if not self.windows:
            return None
        return self.windows[0].start.timetz().replace(tzinfo=None)

    @property
    def close_time(self) -> Optional[time]:
        if not self.windows:
            return None
        return self.windows[-1].end.timetz().replace(tzinfo=None)

    def to_dict(self) -> Dict:
        return {
            "date": self.date.isoformat(),
            "is_open": self.is_open,
            "source": self.source,
            "reason": self.reason,
            "windows": [
                {"open": w.start.strftime("%H:%M"), "close": w.end.strftime("%H:%M")}
                for w in self.windows
            ],
        }


def get_zone(tz_name: Optional[str]) -> ZoneInfo:
    """Resolve an IANA timezone name, falling back to UTC for unknown names."""
    try:
        return ZoneInfo(tz_name or "UTC")
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown timezone '{tz_name}', using UTC")
        return ZoneInfo("UTC")


def localize(day: date, wall_time: time, tz: ZoneInfo) -> datetime:
    """
    Attach the shop timezone to a wall-clock time.

    The result is normalized through UTC so a wall time that does not exist
    (DST spring-forward gap) lands on the real instant just after the gap.
    """
    naive = datetime.combine(day, wall_time.replace(tzinfo=None))
    return naive.replace(tzinfo=tz).astimezone(timezone.utc).astimezone(tz)


def build_window(day: date, open_time: time, close_time: time, tz: ZoneInfo) -> OpenWindow:
    """Build the absolute window of a block; close <= open closes the next day."""
    start = localize(day, open_time, tz)
    close_day = day + timedelta(days=1) if close_time <= open_time else day
    end = localize(close_day, close_time, tz)
    return OpenWindow(start=start, end=end)


class ScheduleResolver:
    """
    Resolves effective days from ScheduleBlock / ScheduleException rows.

    Rules:
    1. An exception for the date overrides every recurring block of that date.
       Closed exception => closed. Open exception => exactly its own hours.
    2. Otherwise the weekday's blocks apply, each as an independent window.
    3. No blocks => closed.
    """

    def __init__(self, timezone_name: Optional[str] = None):
        self.tz = get_zone(timezone_name)

    def resolve_day(
            self,
            day: date,
            blocks: Sequence,
            exception=None
    ) -> EffectiveDay:
        """Resolve one calendar date."""
        if exception is not None:
            return self._resolve_exception(day, exception)

        day_blocks = sorted(
            (b for b in blocks if b.day_of_week == day.weekday()),
            key=lambda b: (b.block_order, b.open_time),
        )
        if not day_blocks:
            return EffectiveDay(date=day, is_open=False)

        windows = [build_window(day, b.open_time, b.close_time, self.tz) for b in day_blocks]
        windows.sort(key=lambda w: w.start)
        return EffectiveDay(date=day, is_open=True, windows=windows)

    def resolve_range(
            self,
            start_date: date,
            end_date: date,
            blocks: Sequence,
            exceptions: Iterable
    ) -> List[EffectiveDay]:
        """Resolve every date in [start_date, end_date]."""
        if end_date < start_date:
            return []

        by_date = {e.exception_date: e for e in exceptions}
        days = []
        current = start_date
        while current <= end_date:
            days.append(self.resolve_day(current, blocks, by_date.get(current)))
            current += timedelta(days=1)
        return days

    def _resolve_exception(self, day: date, exception) -> EffectiveDay:
        if exception.is_closed:
            return EffectiveDay(date=day, is_open=False, source="exception", reason=exception.reason)

        if exception.open_time is None or exception.close_time is None:
            logger.warning(
                f"Open exception on {day} for shop {exception.shop_id} has no hours, treating as closed"
            )
            return EffectiveDay(date=day, is_open=False, source="exception", reason=exception.reason)

        window = build_window(day, exception.open_time, exception.close_time, self.tz)
        return EffectiveDay(
            date=day,
            is_open=True,
            windows=[window],
            source="exception",
            reason=exception.reason,
        )
