"""Aggregate statistics over a set of trade records.

Every reporting endpoint (dashboard summary, widgets, CLI) derives its
numbers here, from the same per-trade evaluations, so the calendar's P&L
and the dashboard's P&L cannot drift apart.

P&L based figures only use closed trades.  Open trades are reported as an
exposure count (``open_trades``) and nothing else.  All time-ordered
computations (equity curve, drawdown, streaks) walk closed trades by entry
timestamp, ties broken by record id.
"""

from __future__ import annotations

import logging
import statistics
import time
from collections import OrderedDict
from datetime import tzinfo
from typing import Iterable, Sequence

from trading_journal.core.config import resolve_zone
from trading_journal.core.enums import EquityBucket, StreakType
from trading_journal.core.models import (
    AggregateStatistics,
    DaySummary,
    EquityPoint,
    MonthlyPnl,
    StreakStats,
    TradeEvaluation,
    TradeRecord,
)
from trading_journal.observability.metrics import ANALYTICS_LATENCY

from .breakdowns import BreakdownBuilder, local_time
from .resilience import evaluate_trades

logger = logging.getLogger(__name__)

INFINITE_PROFIT_FACTOR = float("inf")


# ---------------------------------------------------------------------------
# Building blocks
# ---------------------------------------------------------------------------

def chronological(evaluations: Iterable[TradeEvaluation]) -> list[TradeEvaluation]:
    """Order by entry timestamp, then id."""
    return sorted(evaluations, key=lambda ev: (ev.trade.timestamp_entry, ev.trade.id))


def profit_factor(pnls: Sequence[float]) -> float:
    """Gross profit over gross loss.

    ``inf`` when there are profits and no losses, 0 when there are no
    profits at all.
    """
    gross_profit = sum(p for p in pnls if p > 0)
    gross_loss = abs(sum(p for p in pnls if p < 0))
    if gross_loss > 0:
        return gross_profit / gross_loss
    if gross_profit > 0:
        return INFINITE_PROFIT_FACTOR
    return 0.0


def max_drawdown(
    pnls: Sequence[float], initial_balance: float | None = None,
) -> tuple[float, float]:
    """Largest peak-to-trough decline of cumulative P&L.

    The running peak starts at zero (the account before the first trade).
    Returns ``(amount, percent)``; percent is relative to
    ``initial_balance + peak`` and 0 without a positive balance.
    """
    cumulative = 0.0
    peak = 0.0
    max_dd = 0.0
    max_dd_pct = 0.0
    for p in pnls:
        cumulative += p
        if cumulative > peak:
            peak = cumulative
        dd = peak - cumulative
        if dd > max_dd:
            max_dd = dd
        if initial_balance and initial_balance > 0 and dd > 0:
            equity_peak = initial_balance + peak
            if equity_peak > 0:
                max_dd_pct = max(max_dd_pct, dd / equity_peak * 100)
    return max_dd, max_dd_pct


def compute_streaks(pnls: Sequence[float]) -> StreakStats:
    """Single left-to-right scan for win/loss runs.

    A breakeven (exactly 0) ends the current run without starting one.
    """
    current = 0
    current_type = StreakType.NEUTRAL
    best_win = 0
    worst_loss = 0
    for p in pnls:
        if p > 0:
            kind = StreakType.WIN
        elif p < 0:
            kind = StreakType.LOSS
        else:
            current = 0
            current_type = StreakType.NEUTRAL
            continue

        if kind is current_type:
            current += 1
        else:
            current = 1
            current_type = kind

        if kind is StreakType.WIN:
            best_win = max(best_win, current)
        else:
            worst_loss = max(worst_loss, current)

    return StreakStats(
        current_streak=current,
        current_streak_type=current_type,
        best_win_streak=best_win,
        worst_loss_streak=worst_loss,
    )


def _bucket_label(ev: TradeEvaluation, bucket: EquityBucket, zone: tzinfo) -> str:
    local = local_time(ev.trade.timestamp_entry, zone)
    if bucket is EquityBucket.DAY:
        return local.date().isoformat()
    if bucket is EquityBucket.WEEK:
        year, week, _ = local.isocalendar()
        return f"{year}-W{week:02d}"
    return local.isoformat()


def equity_curve(
    ordered: Sequence[TradeEvaluation],
    bucket: EquityBucket = EquityBucket.TRADE,
    zone: tzinfo | None = None,
) -> list[EquityPoint]:
    """Cumulative P&L points, one per trade or per day/week bucket.

    ``ordered`` must already be chronological.
    """
    zone = zone or resolve_zone("UTC")
    points: list[EquityPoint] = []
    cumulative = 0.0
    for ev in ordered:
        cumulative += ev.net_pnl
        label = _bucket_label(ev, bucket, zone)
        if bucket is not EquityBucket.TRADE and points and points[-1].label == label:
            last = points[-1]
            last.pnl = round(last.pnl + ev.net_pnl, 2)
            last.cumulative_pnl = round(cumulative, 2)
            continue
        points.append(EquityPoint(
            label=label,
            timestamp=ev.trade.timestamp_entry,
            pnl=round(ev.net_pnl, 2),
            cumulative_pnl=round(cumulative, 2),
        ))
    return points


def _daily_and_monthly(
    ordered: Sequence[TradeEvaluation], zone: tzinfo,
) -> tuple[DaySummary | None, DaySummary | None, list[MonthlyPnl]]:
    days: OrderedDict = OrderedDict()
    months: OrderedDict = OrderedDict()
    for ev in ordered:
        local = local_time(ev.trade.timestamp_entry, zone)
        day = days.setdefault(local.date(), [0, 0.0])
        day[0] += 1
        day[1] += ev.net_pnl
        month = months.setdefault(local.strftime("%Y-%m"), [0, 0.0])
        month[0] += 1
        month[1] += ev.net_pnl

    monthly = [MonthlyPnl(month=m, count=c, pnl=round(p, 2)) for m, (c, p) in months.items()]
    if not days:
        return None, None, monthly

    summaries = [DaySummary(date=d, count=c, pnl=round(p, 2)) for d, (c, p) in days.items()]
    best = max(summaries, key=lambda s: s.pnl)
    worst = min(summaries, key=lambda s: s.pnl)
    return best, worst, monthly


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def compute_aggregate_statistics(
    trades: Iterable[TradeRecord],
    *,
    strategy_names: dict[str, str] | None = None,
    zone: tzinfo | str | None = None,
    initial_balance: float | None = None,
    equity_bucket: EquityBucket = EquityBucket.TRADE,
    default_balance: float | None = None,
) -> AggregateStatistics:
    """Compute dashboard statistics for a set of trades.

    Parameters
    ----------
    trades : Iterable[TradeRecord]
        Raw records, open and closed, in any order.
    strategy_names : dict[str, str] | None
        Strategy id to display name, for the strategy breakdown.
    zone : tzinfo | str | None
        Zone for day-of-week, daily and monthly bucketing.  Default UTC.
    initial_balance : float | None
        Account size before the first trade; enables
        ``max_drawdown_percent`` and ``current_balance``.
    equity_bucket : EquityBucket
        Granularity of the equity curve.
    default_balance : float | None
        Balance used for account risk when a trade carries none.

    Returns
    -------
    AggregateStatistics
        Fully populated; an empty input yields zeros, never NaN.
    """
    started = time.perf_counter()
    if zone is None or isinstance(zone, str):
        zone = resolve_zone(zone or "UTC")

    evaluations = evaluate_trades(
        trades, strategy_names=strategy_names, default_balance=default_balance,
    )
    closed = chronological(ev for ev in evaluations if ev.trade.is_closed)
    open_count = len(evaluations) - len(closed)
    degraded = sum(1 for ev in evaluations if ev.degraded)

    stats = AggregateStatistics(
        open_trades=open_count,
        degraded_trades=degraded,
        initial_balance=initial_balance,
        current_balance=initial_balance,
    )
    if not closed:
        ANALYTICS_LATENCY.labels(report="stats").observe(time.perf_counter() - started)
        return stats

    pnls = [ev.net_pnl for ev in closed]
    winners = [p for p in pnls if p > 0]
    losers = [p for p in pnls if p < 0]
    total = sum(pnls)
    n = len(pnls)
    decided = len(winners) + len(losers)

    r_values = [
        ev.metrics.r_multiple
        for ev in closed
        if ev.metrics is not None and ev.metrics.r_multiple is not None
    ]
    risked = [ev.metrics for ev in closed if ev.metrics is not None and ev.metrics.risk_amount > 0]
    account_risks = [
        m.account_risk_percent for m in risked if m.account_risk_percent is not None
    ]

    dd, dd_pct = max_drawdown(pnls, initial_balance)

    builder = BreakdownBuilder(zone)
    for ev in closed:
        builder.add(ev)

    best_day, worst_day, monthly = _daily_and_monthly(closed, zone)
    pf = profit_factor(pnls)

    stats.total_pnl = round(total, 2)
    stats.total_trades = n
    stats.wins = len(winners)
    stats.losses = len(losers)
    stats.breakevens = n - decided
    stats.win_rate = round(len(winners) / decided * 100, 2) if decided else 0.0
    stats.profit_factor = pf if pf == INFINITE_PROFIT_FACTOR else round(pf, 4)
    stats.expectancy = round(total / n, 2)
    stats.average_r = round(statistics.mean(r_values), 4) if r_values else 0.0
    stats.gross_profit = round(sum(winners), 2)
    stats.gross_loss = round(abs(sum(losers)), 2)
    stats.average_win = round(statistics.mean(winners), 2) if winners else 0.0
    stats.average_loss = round(statistics.mean(losers), 2) if losers else 0.0
    stats.largest_win = round(max(winners), 2) if winners else 0.0
    stats.largest_loss = round(min(losers), 2) if losers else 0.0
    stats.max_drawdown = round(dd, 2)
    stats.max_drawdown_percent = round(dd_pct, 2)
    stats.average_risk_amount = (
        round(statistics.mean(m.risk_amount for m in risked), 2) if risked else 0.0
    )
    stats.average_account_risk = (
        round(statistics.mean(account_risks), 4) if account_risks else 0.0
    )
    stats.max_account_risk = round(max(account_risks), 4) if account_risks else 0.0
    if initial_balance is not None:
        stats.current_balance = round(initial_balance + total, 2)

    stats.equity_curve = equity_curve(closed, equity_bucket, zone)
    stats.streaks = compute_streaks(pnls)
    stats.breakdowns = builder.build()
    stats.best_day = best_day
    stats.worst_day = worst_day
    stats.monthly = monthly

    ANALYTICS_LATENCY.labels(report="stats").observe(time.perf_counter() - started)
    logger.debug(
        "Aggregated %d closed / %d open trades (degraded=%d)", n, open_count, degraded,
    )
    return stats
