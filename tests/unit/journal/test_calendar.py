"""Tests for the calendar view and its month window."""

from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from trading_journal.core.errors import InvalidQueryError
from trading_journal.journal.calendar import build_calendar, in_window, resolve_month_window

from tests.factories import BASE_TIME, make_trade


class TestMonthWindow:
    def test_month_is_half_open(self):
        start, end = resolve_month_window("2024-02")
        assert start == datetime(2024, 2, 1, tzinfo=ZoneInfo("UTC"))
        assert end == datetime(2024, 3, 1, tzinfo=ZoneInfo("UTC"))

    def test_december_rolls_into_next_year(self):
        _, end = resolve_month_window("2023-12")
        assert (end.year, end.month) == (2024, 1)

    def test_last_instant_of_month_is_included(self):
        start, end = resolve_month_window("2024-01")
        late = make_trade(timestamp_entry=datetime(2024, 1, 31, 23, 59, 59, tzinfo=timezone.utc))
        next_month = make_trade(timestamp_entry=datetime(2024, 2, 1, tzinfo=timezone.utc))
        assert in_window(late, start, end)
        assert not in_window(next_month, start, end)

    def test_default_lookback(self):
        now = datetime(2024, 5, 31, 10, 0, tzinfo=timezone.utc)
        start, end = resolve_month_window(None, lookback_months=3, now=now)
        assert end is None
        # 31 Feb does not exist; clamps to the last day
        assert (start.year, start.month, start.day) == (2024, 2, 29)

    @pytest.mark.parametrize("month", ["2024", "2024-13", "Jan 2024", "2024-00"])
    def test_malformed_month(self, month):
        with pytest.raises(InvalidQueryError):
            resolve_month_window(month)

    def test_zone_shifts_the_window(self):
        start, _ = resolve_month_window("2024-01", zone=ZoneInfo("America/New_York"))
        assert start.astimezone(timezone.utc).hour == 5


class TestBuildCalendar:
    def test_groups_by_entry_day(self):
        trades = [
            make_trade(id="a"),
            make_trade(id="b", timestamp_entry=BASE_TIME + timedelta(hours=2)),
            make_trade(id="c", timestamp_entry=BASE_TIME + timedelta(days=1)),
        ]
        days = build_calendar(trades)
        assert [(str(d.date), d.trades, d.pnl) for d in days] == [
            ("2024-01-01", 2, 190.0),
            ("2024-01-02", 1, 95.0),
        ]

    def test_open_trades_count_with_zero_pnl(self):
        days = build_calendar([make_trade(id="a"), make_trade(id="b", exit_price=None)])
        assert days[0].trades == 2
        assert days[0].pnl == 95.0

    def test_first_emotion_wins(self):
        trades = [
            make_trade(id="a", emotion="calm"),
            make_trade(id="b", emotion="fearful"),
            make_trade(id="c", emotion="fearful"),
            make_trade(id="d", emotion="calm"),
        ]
        day = build_calendar(trades)[0]
        assert day.emotion == "calm"
        assert day.emotions == ["calm", "fearful"]

    def test_day_without_emotions(self):
        assert build_calendar([make_trade()])[0].emotion is None

    def test_degraded_trade_keeps_the_day(self):
        trades = [make_trade(id="a"), make_trade(id="b", quantity=0, pnl=12.5)]
        day = build_calendar(trades)[0]
        assert day.trades == 2
        assert day.pnl == 107.5

    def test_zone_buckets(self):
        late = make_trade(timestamp_entry=BASE_TIME.replace(hour=23))
        days = build_calendar([late], zone="Asia/Tokyo")
        assert str(days[0].date) == "2024-01-02"
