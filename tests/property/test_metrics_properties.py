"""Property tests for the metrics engine.

Covers the identities every report relies on: long/short P&L symmetry,
drawdown independence from record order, and breakdown counts adding up
to the trade total.
"""

from datetime import datetime, timedelta, timezone

from hypothesis import given, settings, strategies as st

from trading_journal.core.models import TradeRecord
from trading_journal.journal.aggregation import compute_aggregate_statistics, max_drawdown
from trading_journal.journal.calculations import compute_trade_metrics

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)

prices = st.decimals(min_value="0.0001", max_value="100000", places=4).map(float)
quantities = st.decimals(min_value="0.01", max_value="100000", places=2).map(float)
fees = st.decimals(min_value="0", max_value="1000", places=2).map(float)
pnls = st.integers(min_value=-50_000, max_value=50_000).map(lambda c: c / 100)


def _trade(direction, entry, exit_, qty, fee):
    return TradeRecord(
        symbol="TEST", direction=direction, entry_price=entry, exit_price=exit_,
        quantity=qty, fees=fee, timestamp_entry=BASE_TIME,
    )


@given(entry=prices, exit_=prices, qty=quantities, fee=fees)
@settings(max_examples=200)
def test_long_net_pnl_identity(entry, exit_, qty, fee):
    m = compute_trade_metrics(_trade("long", entry, exit_, qty, fee))
    expected = round((exit_ - entry) * qty - fee, 2)
    assert abs(m.net_pnl - expected) <= 0.011


@given(entry=prices, exit_=prices, qty=quantities)
@settings(max_examples=200)
def test_short_mirrors_long(entry, exit_, qty):
    long_m = compute_trade_metrics(_trade("long", entry, exit_, qty, 0.0))
    short_m = compute_trade_metrics(_trade("short", entry, exit_, qty, 0.0))
    assert short_m.gross_pnl == -long_m.gross_pnl


@given(entry=prices, qty=quantities)
def test_zero_risk_means_undefined_r(entry, qty):
    trade = _trade("long", entry, entry, qty, 0.0)
    assert compute_trade_metrics(trade).r_multiple is None
    assert compute_aggregate_statistics([trade]).average_r == 0.0


@given(values=st.lists(pnls, max_size=40), data=st.data())
@settings(max_examples=100)
def test_max_drawdown_is_order_independent_over_records(values, data):
    trades = [
        TradeRecord(
            id=f"t{i:03d}", symbol="TEST", entry_price=1000.0, exit_price=1000.0 + v,
            quantity=1, timestamp_entry=BASE_TIME + timedelta(minutes=i),
        )
        for i, v in enumerate(values)
    ]
    shuffled = data.draw(st.permutations(trades))
    assert (
        compute_aggregate_statistics(trades).max_drawdown
        == compute_aggregate_statistics(shuffled).max_drawdown
    )


@given(values=st.lists(pnls, max_size=40))
def test_drawdown_is_never_negative(values):
    dd, pct = max_drawdown(values, initial_balance=10_000.0)
    assert dd >= 0.0
    assert pct >= 0.0


@given(offsets=st.lists(st.integers(min_value=0, max_value=60 * 24 * 90), min_size=1, max_size=50))
@settings(max_examples=100)
def test_day_of_week_counts_sum_to_total(offsets):
    trades = [
        TradeRecord(
            id=f"t{i:03d}", symbol="TEST", entry_price=100.0, exit_price=101.0,
            quantity=1, timestamp_entry=BASE_TIME + timedelta(minutes=m),
        )
        for i, m in enumerate(offsets)
    ]
    stats = compute_aggregate_statistics(trades, zone="America/New_York")
    assert sum(b.count for b in stats.breakdowns.day_of_week.values()) == stats.total_trades
