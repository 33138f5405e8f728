"""Grouping of closed-trade performance by a key.

Breaks performance down by day of week, asset type, strategy, symbol,
emotion and setup grade.  A bucket only exists once a trade has
contributed to it, so every reported bucket has ``count >= 1``.

Usage::

    grouper = BreakdownBuilder(zone=ZoneInfo("UTC"))
    for ev in closed_evaluations:
        grouper.add(ev)
    grouper.build().day_of_week["Monday"].avg_pnl
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import Callable

from trading_journal.core.models import Breakdowns, BucketStats, TradeEvaluation

DAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]

UNASSIGNED_STRATEGY = "Unassigned"

# Display order for setup grades
GRADE_ORDER = {"D": 1, "C": 2, "B": 3, "A": 4, "A+": 5}


@dataclass
class _Bucket:
    """Accumulator for one breakdown key."""

    count: int = 0
    wins: int = 0
    losses: int = 0
    pnl: float = 0.0

    def record(self, net_pnl: float) -> None:
        self.count += 1
        self.pnl += net_pnl
        if net_pnl > 0:
            self.wins += 1
        elif net_pnl < 0:
            self.losses += 1

    def to_stats(self) -> BucketStats:
        decided = self.wins + self.losses
        return BucketStats(
            count=self.count,
            wins=self.wins,
            losses=self.losses,
            pnl=round(self.pnl, 2),
            avg_pnl=round(self.pnl / self.count, 2),
            win_rate=round(self.wins / decided * 100, 2) if decided else 0.0,
        )


def local_time(ts: datetime, zone: tzinfo) -> datetime:
    """Entry timestamp in the reporting zone."""
    return ts.astimezone(zone)


def day_of_week(ts: datetime, zone: tzinfo) -> str:
    return DAY_NAMES[local_time(ts, zone).weekday()]


def strategy_label(ev: TradeEvaluation) -> str:
    if ev.strategy_name:
        return ev.strategy_name
    return ev.trade.strategy_id or UNASSIGNED_STRATEGY


class BreakdownBuilder:
    """Accumulates closed-trade evaluations into per-dimension buckets."""

    def __init__(self, zone: tzinfo) -> None:
        self._zone = zone
        self._dimensions: dict[str, Callable[[TradeEvaluation], str | None]] = {
            "day_of_week": lambda ev: day_of_week(ev.trade.timestamp_entry, self._zone),
            "asset_type": lambda ev: ev.trade.asset_type or None,
            "strategy": strategy_label,
            "symbol": lambda ev: ev.trade.symbol.upper() or None,
            "emotion": lambda ev: ev.trade.emotion or None,
            "setup_grade": lambda ev: ev.trade.grade_letter,
        }
        self._buckets: dict[str, dict[str, _Bucket]] = {
            name: defaultdict(_Bucket) for name in self._dimensions
        }

    def add(self, ev: TradeEvaluation) -> None:
        for name, key_fn in self._dimensions.items():
            key = key_fn(ev)
            if key is None:
                continue
            self._buckets[name][key].record(ev.net_pnl)

    def build(self) -> Breakdowns:
        out = {
            name: {key: b.to_stats() for key, b in buckets.items()}
            for name, buckets in self._buckets.items()
        }
        out["day_of_week"] = {
            d: out["day_of_week"][d] for d in DAY_NAMES if d in out["day_of_week"]
        }
        out["setup_grade"] = dict(
            sorted(out["setup_grade"].items(), key=lambda kv: GRADE_ORDER.get(kv[0], 0))
        )
        return Breakdowns(**out)
