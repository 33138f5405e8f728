"""Core domain models for the trading journal.

``TradeRecord`` is the unit the store persists.  Everything else in this
module is derived from trade records on read and never persisted.
"""

from __future__ import annotations

import math
import uuid
from datetime import date, datetime, timezone
from typing import Any

from pydantic import BaseModel, Field, field_serializer, field_validator

from .enums import SETUP_GRADES, Direction, StreakType


def _utc(value: datetime | None) -> datetime | None:
    """Treat naive datetimes as UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# ---------------------------------------------------------------------------
# Trade record
# ---------------------------------------------------------------------------

class TradeRecord(BaseModel):
    """A single journal entry as stored.

    ``direction`` is kept as a plain string: stored records may carry values
    the metrics engine rejects, and the engine decides how to handle them.
    """

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    user_id: str = ""

    # Classification
    symbol: str
    direction: str = Direction.LONG.value
    asset_type: str = "forex"

    # Pricing
    entry_price: float
    exit_price: float | None = None
    stop_loss: float | None = None
    take_profit: float | None = None
    quantity: float
    fees: float = 0.0

    # Context
    timestamp_entry: datetime
    timestamp_exit: datetime | None = None
    portfolio_balance: float | None = None
    strategy_id: str | None = None
    portfolio_id: str | None = None
    emotion: str | None = None
    setup_grade: int | str | None = None
    tags: list[str] = Field(default_factory=list)
    in_backtest: bool = False
    created_at: datetime | None = None  # set by the store on insert

    # Last stored derived values (fallback + filter source)
    pnl: float | None = None
    gross_pnl: float | None = None
    r_multiple: float | None = None
    risk_amount: float | None = None
    account_risk: float | None = None

    @field_validator("timestamp_entry", "timestamp_exit", "created_at")
    @classmethod
    def _naive_is_utc(cls, v: datetime | None) -> datetime | None:
        return _utc(v)

    @property
    def is_closed(self) -> bool:
        return self.exit_price is not None

    @property
    def grade_letter(self) -> str | None:
        """Setup grade as a display letter (``D`` .. ``A+``)."""
        return grade_letter(self.setup_grade)


def grade_letter(grade: int | str | None) -> str | None:
    if grade is None or grade == "":
        return None
    if isinstance(grade, str):
        stripped = grade.strip().upper()
        if stripped in SETUP_GRADES.values():
            return stripped
        try:
            grade = int(float(stripped))
        except ValueError:
            return stripped or None
    return SETUP_GRADES.get(int(grade), str(grade))


# ---------------------------------------------------------------------------
# Per-trade metrics
# ---------------------------------------------------------------------------

class DerivedTradeMetrics(BaseModel):
    """Metrics derived from one trade.  Recomputed on every read."""

    is_closed: bool
    gross_pnl: float = 0.0
    net_pnl: float = 0.0
    risk_per_unit: float = 0.0
    risk_amount: float = 0.0
    r_multiple: float | None = None  # None when risk per unit is zero
    account_risk_percent: float | None = None
    target_rr: float | None = None
    unrealized_pnl: float | None = None
    position_value: float = 0.0


# ---------------------------------------------------------------------------
# Aggregates
# ---------------------------------------------------------------------------

class BucketStats(BaseModel):
    """Performance of one breakdown bucket."""

    count: int = 0
    wins: int = 0
    losses: int = 0
    pnl: float = 0.0
    avg_pnl: float = 0.0
    win_rate: float = 0.0


class Breakdowns(BaseModel):
    day_of_week: dict[str, BucketStats] = Field(default_factory=dict)
    asset_type: dict[str, BucketStats] = Field(default_factory=dict)
    strategy: dict[str, BucketStats] = Field(default_factory=dict)
    symbol: dict[str, BucketStats] = Field(default_factory=dict)
    emotion: dict[str, BucketStats] = Field(default_factory=dict)
    setup_grade: dict[str, BucketStats] = Field(default_factory=dict)


class EquityPoint(BaseModel):
    label: str
    timestamp: datetime
    pnl: float
    cumulative_pnl: float


class StreakStats(BaseModel):
    current_streak: int = 0
    current_streak_type: StreakType = StreakType.NEUTRAL
    best_win_streak: int = 0
    worst_loss_streak: int = 0


class DaySummary(BaseModel):
    date: date
    count: int
    pnl: float


class MonthlyPnl(BaseModel):
    month: str  # YYYY-MM
    count: int
    pnl: float


class AggregateStatistics(BaseModel):
    """Statistics over the closed trades of a reporting window.

    ``profit_factor`` is ``inf`` when there are wins and no losses; the
    JSON form renders that sentinel as ``null``.
    """

    total_pnl: float = 0.0
    total_trades: int = 0
    open_trades: int = 0
    wins: int = 0
    losses: int = 0
    breakevens: int = 0
    win_rate: float = 0.0
    profit_factor: float = 0.0
    expectancy: float = 0.0
    average_r: float = 0.0
    gross_profit: float = 0.0
    gross_loss: float = 0.0
    average_win: float = 0.0
    average_loss: float = 0.0
    largest_win: float = 0.0
    largest_loss: float = 0.0
    max_drawdown: float = 0.0
    max_drawdown_percent: float = 0.0
    average_risk_amount: float = 0.0
    average_account_risk: float = 0.0
    max_account_risk: float = 0.0
    degraded_trades: int = 0
    initial_balance: float | None = None
    current_balance: float | None = None

    equity_curve: list[EquityPoint] = Field(default_factory=list)
    streaks: StreakStats = Field(default_factory=StreakStats)
    breakdowns: Breakdowns = Field(default_factory=Breakdowns)
    best_day: DaySummary | None = None
    worst_day: DaySummary | None = None
    monthly: list[MonthlyPnl] = Field(default_factory=list)

    @field_serializer("profit_factor", when_used="json")
    def _finite_profit_factor(self, v: float) -> float | None:
        return None if math.isinf(v) else v


class CalendarDay(BaseModel):
    date: date
    trades: int
    pnl: float
    emotions: list[str] = Field(default_factory=list)
    emotion: str | None = None  # first emotion seen that day


class Pagination(BaseModel):
    total: int
    page: int
    limit: int
    pages: int


class TradeEvaluation(BaseModel):
    """A stored trade together with its recomputed metrics."""

    trade: TradeRecord
    metrics: DerivedTradeMetrics | None = None
    net_pnl: float
    degraded: bool = False
    strategy_name: str | None = None

    def to_response(self) -> dict[str, Any]:
        data = self.trade.model_dump(mode="json")
        data["metrics"] = self.metrics.model_dump(mode="json") if self.metrics else None
        data["net_pnl"] = self.net_pnl
        data["metrics_degraded"] = self.degraded
        data["strategy_name"] = self.strategy_name
        return data
