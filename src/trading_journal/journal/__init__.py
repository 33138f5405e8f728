"""Metrics engine: per-trade metrics and the analytics built on them.

Key components
--------------
compute_trade_metrics         Signed P&L, risk, R-multiple for one trade
evaluate_trade                Same, degrading to stored values on bad input
compute_aggregate_statistics  Win rate, profit factor, drawdown, streaks,
                              equity curve and breakdowns for a trade set
build_calendar                Per-day trade count, P&L and emotions
"""

from .aggregation import compute_aggregate_statistics, compute_streaks, max_drawdown, profit_factor
from .calculations import compute_trade_metrics
from .calendar import build_calendar, resolve_month_window
from .resilience import derived_fields, evaluate_trade, evaluate_trades

__all__ = [
    "compute_trade_metrics",
    "evaluate_trade",
    "evaluate_trades",
    "derived_fields",
    "compute_aggregate_statistics",
    "compute_streaks",
    "max_drawdown",
    "profit_factor",
    "build_calendar",
    "resolve_month_window",
]
