"""Translation of user-supplied trade filters into a store query.

A ``TradeQuery`` is backend neutral: the in-memory store evaluates it with
:meth:`TradeQuery.matches`, the SQL store compiles it into WHERE clauses.
Status filters look at the *stored* ``pnl`` field, not a recomputed one;
recomputation happens afterwards, for display.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime, time, timezone
from typing import Any, Mapping

from .enums import StatusFilter
from .errors import InvalidQueryError
from .models import TradeRecord

SORTABLE_FIELDS = (
    "timestamp_entry",
    "timestamp_exit",
    "symbol",
    "pnl",
    "entry_price",
    "quantity",
    "asset_type",
    "created_at",
)

_ALL = "all"


@dataclass(frozen=True)
class TradeQuery:
    """Filter, sort and page parameters for one store lookup."""

    user_id: str
    in_backtest: bool = False
    symbol: str | None = None
    status: StatusFilter | None = None
    portfolio_id: str | None = None
    strategy_id: str | None = None
    asset_type: str | None = None
    start: datetime | None = None
    end: datetime | None = None
    sort: str = "timestamp_entry"
    descending: bool = True
    page: int = 1
    limit: int | None = None  # None = unpaged

    @property
    def offset(self) -> int:
        if self.limit is None:
            return 0
        return (self.page - 1) * self.limit

    def unpaged(self) -> TradeQuery:
        """Same filters without pagination (for counts and analytics)."""
        return replace(self, page=1, limit=None)

    def matches(self, trade: TradeRecord) -> bool:
        if trade.user_id != self.user_id:
            return False
        if bool(trade.in_backtest) != self.in_backtest:
            return False
        if self.symbol and self.symbol.lower() not in trade.symbol.lower():
            return False
        if self.status is StatusFilter.WIN and not (trade.pnl is not None and trade.pnl > 0):
            return False
        if self.status is StatusFilter.LOSS and not (trade.pnl is not None and trade.pnl < 0):
            return False
        if self.portfolio_id and trade.portfolio_id != self.portfolio_id:
            return False
        if self.strategy_id and trade.strategy_id != self.strategy_id:
            return False
        if self.asset_type and trade.asset_type != self.asset_type:
            return False
        if self.start and trade.timestamp_entry < self.start:
            return False
        if self.end and trade.timestamp_entry > self.end:
            return False
        return True

    def sort_key(self, trade: TradeRecord) -> tuple:
        value = getattr(trade, self.sort)
        # None sorts first ascending, last descending
        return (value is not None, value if value is not None else 0, trade.id)


def _optional_id(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    if not value or value == _ALL:
        return None
    return value


def _parse_bound(value: str | None, *, end: bool) -> datetime | None:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError as exc:
        raise InvalidQueryError(f"Invalid date: {value!r}") from exc
    if end and len(value) == 10:
        # Bare date as an end bound covers the whole day
        parsed = datetime.combine(date.fromisoformat(value), time.max)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def build_trade_query(
    user_id: str,
    params: Mapping[str, Any],
    *,
    default_limit: int | None = None,
    max_limit: int = 500,
) -> TradeQuery:
    """Build a :class:`TradeQuery` from raw request parameters.

    Recognised keys: ``type`` (``backtest`` selects backtest trades,
    anything else live trades), ``symbol``, ``status`` (``win``/``loss``),
    ``portfolio_id``, ``strategy_id``, ``asset_type``, ``start_date``,
    ``end_date``, ``sort``, ``order`` (``asc``/``desc``), ``page``,
    ``limit``.

    Raises:
        InvalidQueryError: On malformed dates, sort fields, status or
            paging values.
    """
    status_raw = params.get("status")
    status: StatusFilter | None = None
    if status_raw:
        try:
            status = StatusFilter(status_raw)
        except ValueError as exc:
            raise InvalidQueryError(f"Invalid status filter: {status_raw!r}") from exc

    sort = params.get("sort") or "timestamp_entry"
    if sort not in SORTABLE_FIELDS:
        raise InvalidQueryError(f"Cannot sort by {sort!r}")

    try:
        page = int(params.get("page") or 1)
        limit_raw = params.get("limit")
        limit = int(limit_raw) if limit_raw else default_limit
    except ValueError as exc:
        raise InvalidQueryError("page and limit must be integers") from exc
    if page < 1:
        raise InvalidQueryError("page must be >= 1")
    if limit is not None:
        if limit < 1:
            raise InvalidQueryError("limit must be >= 1")
        limit = min(limit, max_limit)

    start = _parse_bound(params.get("start_date"), end=False)
    end = _parse_bound(params.get("end_date"), end=True)
    if start and end and start > end:
        raise InvalidQueryError("start_date is after end_date")

    symbol = (params.get("symbol") or "").strip() or None

    return TradeQuery(
        user_id=user_id,
        in_backtest=params.get("type") == "backtest",
        symbol=symbol,
        status=status,
        portfolio_id=_optional_id(params.get("portfolio_id")),
        strategy_id=_optional_id(params.get("strategy_id")),
        asset_type=_optional_id(params.get("asset_type")),
        start=start,
        end=end,
        sort=sort,
        descending=params.get("order", "desc") != "asc",
        page=page,
        limit=limit,
    )
