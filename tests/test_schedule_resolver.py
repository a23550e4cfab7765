"""Tests for merging weekly blocks with date exceptions"""
from datetime import date, time, timedelta
from types import SimpleNamespace
from zoneinfo import ZoneInfo

import pytest

from app.services.availability.schedule_resolver import (
    OpenWindow,
    ScheduleResolver,
    build_window,
    get_zone,
    localize,
)

MONDAY = date(2024, 11, 25)
FRIDAY = date(2024, 11, 29)
SATURDAY = date(2024, 11, 30)


def _block(day_of_week, open_time, close_time, block_order=0):
    return SimpleNamespace(
        day_of_week=day_of_week,
        open_time=time.fromisoformat(open_time),
        close_time=time.fromisoformat(close_time),
        block_order=block_order,
    )


def _exception(day, is_closed=True, open_time=None, close_time=None, reason=None):
    return SimpleNamespace(
        shop_id="shop-1",
        exception_date=day,
        is_closed=is_closed,
        open_time=time.fromisoformat(open_time) if open_time else None,
        close_time=time.fromisoformat(close_time) if close_time else None,
        reason=reason,
    )


WEEK = [_block(d, "09:00", "18:00") for d in range(5)]


class TestScheduleResolver:

    def test_weekday_uses_weekly_block(self):
        day = ScheduleResolver("UTC").resolve_day(MONDAY, WEEK)

        assert day.is_open
        assert day.source == "weekly"
        assert day.open_time == time(9, 0)
        assert day.close_time == time(18, 0)

    def test_day_without_blocks_is_closed(self):
        day = ScheduleResolver("UTC").resolve_day(SATURDAY, WEEK)

        assert not day.is_open
        assert day.windows == []

    def test_closed_exception_overrides_blocks(self):
        """A closed exception wins even when the weekday has blocks"""
        day = ScheduleResolver("UTC").resolve_day(
            MONDAY, WEEK, _exception(MONDAY, reason="Holiday")
        )

        assert not day.is_open
        assert day.source == "exception"
        assert day.reason == "Holiday"

    def test_open_exception_replaces_every_block(self):
        blocks = [_block(0, "09:00", "12:00", 0), _block(0, "13:00", "18:00", 1)]

        day = ScheduleResolver("UTC").resolve_day(
            MONDAY, blocks, _exception(MONDAY, is_closed=False, open_time="10:00", close_time="14:00")
        )

        assert day.is_open
        assert len(day.windows) == 1
        assert day.open_time == time(10, 0)
        assert day.close_time == time(14, 0)

    def test_open_exception_on_closed_weekday(self):
        day = ScheduleResolver("UTC").resolve_day(
            SATURDAY, WEEK, _exception(SATURDAY, is_closed=False, open_time="10:00", close_time="13:00")
        )

        assert day.is_open
        assert day.windows[0].end - day.windows[0].start == timedelta(minutes=180)

    def test_open_exception_without_hours_is_closed(self):
        day = ScheduleResolver("UTC").resolve_day(MONDAY, WEEK, _exception(MONDAY, is_closed=False))

        assert not day.is_open

    def test_resolution_is_idempotent(self):
        resolver = ScheduleResolver("Europe/Madrid")
        exception = _exception(MONDAY, is_closed=False, open_time="10:00", close_time="14:00")

        assert resolver.resolve_day(MONDAY, WEEK, exception) == resolver.resolve_day(MONDAY, WEEK, exception)

    def test_split_blocks_are_separate_windows(self):
        blocks = [_block(0, "13:00", "18:00", 1), _block(0, "09:00", "12:00", 0)]

        day = ScheduleResolver("UTC").resolve_day(MONDAY, blocks)

        assert [(w.start.hour, w.end.hour) for w in day.windows] == [(9, 12), (13, 18)]

    def test_cross_midnight_block_ends_next_day(self):
        """Close before open means the window closes on the following date"""
        blocks = [_block(4, "22:00", "02:00")]

        day = ScheduleResolver("UTC").resolve_day(FRIDAY, blocks)

        window = day.windows[0]
        assert window.start.date() == FRIDAY
        assert window.end.date() == FRIDAY + timedelta(days=1)
        assert window.end - window.start == timedelta(minutes=240)

    def test_resolve_range_covers_each_date(self):
        exceptions = [_exception(MONDAY + timedelta(days=1))]

        days = ScheduleResolver("UTC").resolve_range(MONDAY, MONDAY + timedelta(days=6), WEEK, exceptions)

        assert len(days) == 7
        assert [d.is_open for d in days] == [True, False, True, True, True, False, False]

    def test_resolve_range_with_inverted_dates_is_empty(self):
        assert ScheduleResolver("UTC").resolve_range(MONDAY, MONDAY - timedelta(days=1), WEEK, []) == []

    def test_windows_carry_shop_timezone(self):
        day = ScheduleResolver("America/New_York").resolve_day(MONDAY, WEEK)

        assert day.windows[0].start.utcoffset() == timedelta(hours=-5)

    def test_to_dict_lists_windows(self):
        data = ScheduleResolver("UTC").resolve_day(MONDAY, WEEK).to_dict()

        assert data["date"] == "2024-11-25"
        assert data["windows"] == [{"open": "09:00", "close": "18:00"}]


class TestTimezoneHelpers:

    def test_unknown_timezone_falls_back_to_utc(self):
        assert get_zone("Mars/Olympus") == ZoneInfo("UTC")
        assert get_zone(None) == ZoneInfo("UTC")

    def test_localize_skips_spring_forward_gap(self):
        tz = ZoneInfo("Europe/Berlin")

        instant = localize(date(2024, 3, 31), time(2, 30), tz)

        assert instant.hour == 3
        assert instant.minute == 30

    def test_build_window_across_spring_forward_is_shorter(self):
        window = build_window(date(2024, 3, 31), time(1, 0), time(4, 0), ZoneInfo("Europe/Berlin"))

        assert window.end - window.start == timedelta(minutes=120)

    def test_window_must_have_positive_length(self):
        start = localize(MONDAY, time(9, 0), ZoneInfo("UTC"))

        with pytest.raises(ValueError):
            OpenWindow(start=start, end=start)
