"""Per-record evaluation that never fails a whole report.

A malformed stored trade (unknown direction, zero quantity, NaN price)
must not stop a trade list, calendar or dashboard from rendering.  Such a
record degrades to its last stored ``pnl`` and an undefined R-multiple;
every other record is unaffected.

Reads and writes resolve the account balance the same way (the trade's
own balance, else ``default_balance``), so the stored ``account_risk`` and
the displayed ``account_risk_percent`` agree.
"""

from __future__ import annotations

import logging
from typing import Iterable

from trading_journal.core.errors import InvalidTradeInputError
from trading_journal.core.models import TradeEvaluation, TradeRecord
from trading_journal.observability.metrics import record_evaluation, record_fallback

from .calculations import compute_trade_metrics

logger = logging.getLogger(__name__)


def effective_balance(trade: TradeRecord, default_balance: float | None = None) -> float | None:
    """The trade's portfolio balance, or ``default_balance`` when it has none."""
    return trade.portfolio_balance or default_balance


def evaluate_trade(
    trade: TradeRecord,
    *,
    current_price: float | None = None,
    strategy_names: dict[str, str] | None = None,
    default_balance: float | None = None,
) -> TradeEvaluation:
    """Recompute metrics for one trade, falling back to stored values."""
    record_evaluation()
    strategy_name = None
    if trade.strategy_id and strategy_names:
        strategy_name = strategy_names.get(trade.strategy_id)

    try:
        metrics = compute_trade_metrics(
            trade,
            portfolio_balance=effective_balance(trade, default_balance),
            current_price=current_price,
        )
    except InvalidTradeInputError as exc:
        logger.warning(
            "Metric recomputation failed for trade %s (%s); using stored pnl",
            trade.id, exc,
        )
        record_fallback(exc.field)
        return TradeEvaluation(
            trade=trade,
            metrics=None,
            net_pnl=stored_net_pnl(trade),
            degraded=True,
            strategy_name=strategy_name,
        )

    return TradeEvaluation(
        trade=trade,
        metrics=metrics,
        net_pnl=metrics.net_pnl,
        strategy_name=strategy_name,
    )


def evaluate_trades(
    trades: Iterable[TradeRecord],
    *,
    strategy_names: dict[str, str] | None = None,
    default_balance: float | None = None,
) -> list[TradeEvaluation]:
    return [
        evaluate_trade(t, strategy_names=strategy_names, default_balance=default_balance)
        for t in trades
    ]


def stored_net_pnl(trade: TradeRecord) -> float:
    """Last persisted net P&L; open trades and missing values count as 0."""
    if not trade.is_closed or trade.pnl is None:
        return 0.0
    return trade.pnl


def derived_fields(
    trade: TradeRecord, *, default_balance: float | None = None,
) -> dict[str, float | None]:
    """Fields to persist alongside a trade after (re)computing its metrics.

    Raises:
        InvalidTradeInputError: Propagated so the write path can decide
            whether to keep caller-supplied values.
    """
    metrics = compute_trade_metrics(
        trade, portfolio_balance=effective_balance(trade, default_balance),
    )
    return {
        "pnl": metrics.net_pnl if metrics.is_closed else None,
        "gross_pnl": metrics.gross_pnl if metrics.is_closed else None,
        "r_multiple": metrics.r_multiple,
        "risk_amount": metrics.risk_amount,
        "account_risk": metrics.account_risk_percent,
    }
