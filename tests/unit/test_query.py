"""Tests for filter translation into store queries."""

from datetime import datetime, time, timezone

import pytest

from trading_journal.core.enums import StatusFilter
from trading_journal.core.errors import InvalidQueryError
from trading_journal.core.query import TradeQuery, build_trade_query

from tests.factories import BASE_TIME, make_trade


class TestBuildTradeQuery:
    def test_defaults(self):
        q = build_trade_query("u1", {})
        assert q.user_id == "u1"
        assert q.in_backtest is False
        assert q.sort == "timestamp_entry"
        assert q.descending is True
        assert q.limit is None

    def test_backtest_type(self):
        assert build_trade_query("u1", {"type": "backtest"}).in_backtest is True
        assert build_trade_query("u1", {"type": "live"}).in_backtest is False
        assert build_trade_query("u1", {"type": "anything"}).in_backtest is False

    def test_all_and_empty_ids_are_ignored(self):
        q = build_trade_query("u1", {"portfolio_id": "all", "strategy_id": "", "asset_type": "all"})
        assert q.portfolio_id is None
        assert q.strategy_id is None
        assert q.asset_type is None

    def test_status(self):
        assert build_trade_query("u1", {"status": "win"}).status is StatusFilter.WIN
        with pytest.raises(InvalidQueryError):
            build_trade_query("u1", {"status": "maybe"})

    def test_bare_end_date_covers_the_day(self):
        q = build_trade_query("u1", {"start_date": "2024-01-01", "end_date": "2024-01-31"})
        assert q.start == datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert q.end == datetime.combine(datetime(2024, 1, 31).date(), time.max, tzinfo=timezone.utc)

    def test_naive_datetimes_are_utc(self):
        q = build_trade_query("u1", {"start_date": "2024-01-01T10:00:00"})
        assert q.start.tzinfo is timezone.utc

    @pytest.mark.parametrize("params", [
        {"start_date": "yesterday"},
        {"start_date": "2024-02-01", "end_date": "2024-01-01"},
        {"sort": "password"},
        {"page": "0"},
        {"limit": "abc"},
        {"limit": "-5"},
    ])
    def test_invalid_params(self, params):
        with pytest.raises(InvalidQueryError):
            build_trade_query("u1", params)

    def test_paging(self):
        q = build_trade_query("u1", {"page": "3", "limit": "10"})
        assert q.offset == 20
        assert q.unpaged().limit is None

    def test_limit_is_capped(self):
        assert build_trade_query("u1", {"limit": "10000"}, max_limit=500).limit == 500

    def test_default_limit(self):
        assert build_trade_query("u1", {}, default_limit=20).limit == 20


class TestMatches:
    def test_user_scope(self):
        assert not TradeQuery(user_id="other").matches(make_trade())

    def test_symbol_is_case_insensitive_substring(self):
        assert TradeQuery(user_id="user-1", symbol="usd").matches(make_trade())
        assert not TradeQuery(user_id="user-1", symbol="GBP").matches(make_trade())

    def test_status_uses_stored_pnl(self):
        # Recomputed P&L is positive, but the stored value decides
        trade = make_trade(pnl=-5.0)
        assert TradeQuery(user_id="user-1", status=StatusFilter.LOSS).matches(trade)
        assert not TradeQuery(user_id="user-1", status=StatusFilter.WIN).matches(trade)
        assert not TradeQuery(user_id="user-1", status=StatusFilter.WIN).matches(make_trade())

    def test_date_bounds_are_inclusive(self):
        q = TradeQuery(user_id="user-1", start=BASE_TIME, end=BASE_TIME)
        assert q.matches(make_trade())

    def test_backtest_scope(self):
        assert not TradeQuery(user_id="user-1").matches(make_trade(in_backtest=True))
        assert TradeQuery(user_id="user-1", in_backtest=True).matches(make_trade(in_backtest=True))
