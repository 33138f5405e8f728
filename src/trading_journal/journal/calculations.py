"""Per-trade metric computation.

Turns one trade record into its derived metrics: signed P&L, risk amount,
R-multiple, account risk and the planned reward/risk ratio.  This is the
single place those numbers are computed; the calendar, the trade list and
the dashboard statistics all go through it.

Arithmetic is done in :class:`~decimal.Decimal` built from the string form
of each float, so that ``1.0950 - 1.0850`` is exactly ``0.0100``.  Results
are rounded (money to cents, ratios to four places) and returned as floats.

Usage::

    metrics = compute_trade_metrics(trade)
    metrics.net_pnl        # 95.0
    metrics.r_multiple     # 2.0, or None when the trade has no stop
"""

from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal

from trading_journal.core.enums import Direction, TradeOutcome
from trading_journal.core.errors import InvalidTradeInputError
from trading_journal.core.models import DerivedTradeMetrics, TradeRecord

_CENTS = Decimal("0.01")
_RATIO = Decimal("0.0001")
_ZERO = Decimal("0")
_HUNDRED = Decimal("100")


def _money(value: Decimal) -> float:
    return float(value.quantize(_CENTS, rounding=ROUND_HALF_UP))


def _ratio(value: Decimal) -> float:
    return float(value.quantize(_RATIO, rounding=ROUND_HALF_UP))


def _dec(name: str, value: float | int, *, positive: bool = False) -> Decimal:
    """Convert a float input, rejecting NaN/inf (and non-positive if asked)."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidTradeInputError(name, f"expected a number, got {value!r}")
    if not math.isfinite(value):
        raise InvalidTradeInputError(name, f"must be finite, got {value!r}")
    if positive and value <= 0:
        raise InvalidTradeInputError(name, f"must be > 0, got {value!r}")
    return Decimal(str(value))


def parse_direction(value: str | Direction | None) -> Direction:
    """Resolve a direction literal.

    Raises:
        InvalidTradeInputError: For anything but ``long`` / ``short``.
            Unknown values are not coerced to ``long``.
    """
    try:
        return Direction(value)
    except ValueError:
        raise InvalidTradeInputError(
            "direction", f"must be 'long' or 'short', got {value!r}"
        ) from None


def signed_move(direction: Direction, entry: Decimal, price: Decimal) -> Decimal:
    """Per-unit price move in the trade's favour."""
    if direction is Direction.LONG:
        return price - entry
    return entry - price


def classify(net_pnl: float) -> TradeOutcome:
    if net_pnl > 0:
        return TradeOutcome.WIN
    if net_pnl < 0:
        return TradeOutcome.LOSS
    return TradeOutcome.BREAKEVEN


def compute_trade_metrics(
    trade: TradeRecord,
    stop_loss: float | None = None,
    take_profit: float | None = None,
    portfolio_balance: float | None = None,
    fees: float | None = None,
    *,
    current_price: float | None = None,
) -> DerivedTradeMetrics:
    """Compute derived metrics for a single trade.

    Explicit ``stop_loss`` / ``take_profit`` / ``portfolio_balance`` /
    ``fees`` arguments override the values stored on the record.

    Open trades (no exit price) realise nothing: gross and net P&L are 0
    and the R-multiple is undefined.  When ``current_price`` is given an
    open trade also gets an ``unrealized_pnl``.

    Raises:
        InvalidTradeInputError: Invalid direction, non-finite or
            non-positive price, non-positive quantity, non-finite fees.
    """
    direction = parse_direction(trade.direction)
    entry = _dec("entry_price", trade.entry_price, positive=True)
    qty = _dec("quantity", trade.quantity, positive=True)

    exit_raw = trade.exit_price
    exit_px = _dec("exit_price", exit_raw, positive=True) if exit_raw is not None else None

    stop_raw = stop_loss if stop_loss is not None else trade.stop_loss
    target_raw = take_profit if take_profit is not None else trade.take_profit
    balance_raw = portfolio_balance if portfolio_balance is not None else trade.portfolio_balance
    fees_raw = fees if fees is not None else (trade.fees or 0.0)

    fee_amt = _dec("fees", fees_raw)
    # A zero stop/target means "not set"
    stop = _dec("stop_loss", stop_raw) if stop_raw else None
    target = _dec("take_profit", target_raw) if target_raw else None

    risk_per_unit = abs(entry - stop) if stop is not None else _ZERO
    risk_amount = risk_per_unit * qty

    gross = _ZERO
    net = _ZERO
    r_multiple: float | None = None
    if exit_px is not None:
        reward = signed_move(direction, entry, exit_px)
        gross = reward * qty
        net = gross - fee_amt
        if risk_per_unit > 0:
            r_multiple = _ratio(reward / risk_per_unit)

    account_risk: float | None = None
    if balance_raw is not None:
        balance = _dec("portfolio_balance", balance_raw)
        if balance > 0:
            account_risk = _ratio(risk_amount / balance * _HUNDRED)

    target_rr: float | None = None
    if target is not None and risk_per_unit > 0:
        target_rr = _ratio(signed_move(direction, entry, target) / risk_per_unit)

    unrealized: float | None = None
    if exit_px is None and current_price is not None:
        mark = _dec("current_price", current_price, positive=True)
        unrealized = _money(signed_move(direction, entry, mark) * qty)

    return DerivedTradeMetrics(
        is_closed=exit_px is not None,
        gross_pnl=_money(gross),
        net_pnl=_money(net),
        risk_per_unit=float(risk_per_unit),
        risk_amount=_money(risk_amount),
        r_multiple=r_multiple,
        account_risk_percent=account_risk,
        target_rr=target_rr,
        unrealized_pnl=unrealized,
        position_value=_money(entry * qty),
    )
