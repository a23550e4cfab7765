# app/services/availability/slot_generator.py
"""
Slot Generator

Discretizes a day's open windows into fixed-granularity start times and marks
each one available or not for a requested duration.

Algorithm:
1. Emit candidate starts every ``granularity`` minutes from each window's open
   up to (not including) its close, stepping in absolute time.
2. De-duplicate candidates that several windows produce.
3. Sort by instant.
4. A candidate ``t`` is available iff ceil(duration / granularity) consecutive
   candidates exist from ``t`` with no gap between them, ``t + duration`` does
   not pass the close of the window holding the last needed candidate, and the
   reserved span overlaps no active booking.
"""
import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional, Sequence

from app.services.availability.schedule_resolver import OpenWindow


@dataclass(frozen=True)
class BusyInterval:
    """Time already taken by a non-cancelled booking."""
    start: datetime
    end: datetime

    def overlaps(self, start: datetime, end: datetime) -> bool:
        return self.start < end and self.end > start


@dataclass(frozen=True)
class Slot:
    start: datetime  # aware, in the shop's timezone
    available: bool

    @property
    def time(self) -> str:
        return self.start.strftime("%H:%M")

    def to_dict(self) -> Dict:
        return {"time": self.time, "available": self.available}


@dataclass(frozen=True)
class _Candidate:
    start: datetime     # UTC
    boundary: datetime  # UTC close of the window that produced it
    tz: object


class SlotGenerator:
    """Generates the ordered slot list of one effective day."""

    def __init__(self, granularity_minutes: int = 30):
        if granularity_minutes <= 0:
            raise ValueError("granularity_minutes must be positive")
        self.granularity_minutes = granularity_minutes
        self.step = timedelta(minutes=granularity_minutes)

    def slots_needed(self, duration_minutes: int) -> int:
        return math.ceil(duration_minutes / self.granularity_minutes)

    def generate(
            self,
            windows: Sequence[OpenWindow],
            busy: Iterable[BusyInterval],
            duration_minutes: int
    ) -> List[Slot]:
        """
        Build the ordered list of slots for one day.

        Args:
            windows: Non-overlapping open windows of the day
            busy: Intervals held by existing non-cancelled bookings
            duration_minutes: Total duration the booking needs

        Returns:
            Slots ordered by start, each flagged available or not.
            No windows yields an empty list.
        """
        if duration_minutes <= 0:
            raise ValueError("duration_minutes must be positive")

        candidates = self._candidates(windows)
        busy = list(busy)

        slots = []
        labels = set()
        for index, candidate in enumerate(candidates):
            start = candidate.start.astimezone(candidate.tz)
            label = start.strftime("%H:%M")
            # Bookings are keyed by local wall time, so a label repeated on a
            # fall-back day is only bookable at its first occurrence
            available = label not in labels and self._fits(candidates, index, busy, duration_minutes)
            labels.add(label)
            slots.append(Slot(start=start, available=available))
        return slots

    def find_slot(self, slots: Sequence[Slot], wall_time: str) -> Optional[Slot]:
        """Look up a slot by its "HH:MM" label, taking the earliest when a label repeats."""
        return next((s for s in slots if s.time == wall_time), None)

    def _candidates(self, windows: Sequence[OpenWindow]) -> List[_Candidate]:
        by_instant: Dict[datetime, _Candidate] = {}

        for window in windows:
            tz = window.start.tzinfo
            current = window.start.astimezone(timezone.utc)
            window_end = window.end.astimezone(timezone.utc)

            while current < window_end:
                existing = by_instant.get(current)
                if existing is None or existing.boundary < window_end:
                    by_instant[current] = _Candidate(start=current, boundary=window_end, tz=tz)
                current += self.step

        return [by_instant[instant] for instant in sorted(by_instant)]

    def _fits(
            self,
            candidates: List[_Candidate],
            index: int,
            busy: List[BusyInterval],
            duration_minutes: int
    ) -> bool:
        needed = self.slots_needed(duration_minutes)
        if index + needed > len(candidates):
            return False

        run = candidates[index:index + needed]

        # Consecutive candidates must be exactly one step apart (no closed gap)
        for previous, current in zip(run, run[1:]):
            if current.start - previous.start != self.step:
                return False

        start = run[0].start
        if start + timedelta(minutes=duration_minutes) > run[-1].boundary:
            return False

        reserved_end = start + self.step * needed
        return not any(interval.overlaps(start, reserved_end) for interval in busy)
