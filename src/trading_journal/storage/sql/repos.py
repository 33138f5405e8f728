"""SQL implementation of the trade store.

Compiles :class:`TradeQuery` filters into SQLAlchemy statements and
converts between ORM rows and :class:`TradeRecord`.  Driver and connection
failures surface as :class:`StoreUnavailableError`.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator

from sqlalchemy import Select, delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from trading_journal.core.enums import StatusFilter
from trading_journal.core.errors import StoreUnavailableError
from trading_journal.core.models import TradeRecord
from trading_journal.core.query import TradeQuery
from trading_journal.observability.metrics import record_store_failure

from .connection import session_scope
from .models import StrategyRow, TradeRow

logger = logging.getLogger(__name__)

_COLUMNS = [c.key for c in TradeRow.__table__.columns if c.key != "updated_at"]
_TIMESTAMPS = ("timestamp_entry", "timestamp_exit", "created_at")


# ---------------------------------------------------------------------------
# Conversion helpers
# ---------------------------------------------------------------------------

def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _row_values(trade: TradeRecord) -> dict[str, Any]:
    data = trade.model_dump(include=set(_COLUMNS))
    if data.get("setup_grade") is not None:
        data["setup_grade"] = str(data["setup_grade"])
    # SQLite drops the offset, so store UTC wall-clock time
    for key in _TIMESTAMPS:
        if data.get(key) is not None:
            data[key] = _as_utc(data[key])
    if data.get("created_at") is None:
        data.pop("created_at", None)
    return data


def _trade_to_row(trade: TradeRecord) -> TradeRow:
    return TradeRow(**_row_values(trade))


def _row_to_trade(row: TradeRow) -> TradeRecord:
    data = {key: getattr(row, key) for key in _COLUMNS}
    data["tags"] = data.get("tags") or []
    return TradeRecord.model_validate(data)


def _apply_filters(stmt: Select, query: TradeQuery) -> Select:
    stmt = stmt.where(TradeRow.user_id == query.user_id)
    if query.in_backtest:
        stmt = stmt.where(TradeRow.in_backtest.is_(True))
    else:
        stmt = stmt.where(TradeRow.in_backtest.is_not(True))
    if query.symbol:
        stmt = stmt.where(TradeRow.symbol.icontains(query.symbol, autoescape=True))
    if query.status is StatusFilter.WIN:
        stmt = stmt.where(TradeRow.pnl > 0)
    elif query.status is StatusFilter.LOSS:
        stmt = stmt.where(TradeRow.pnl < 0)
    if query.portfolio_id:
        stmt = stmt.where(TradeRow.portfolio_id == query.portfolio_id)
    if query.strategy_id:
        stmt = stmt.where(TradeRow.strategy_id == query.strategy_id)
    if query.asset_type:
        stmt = stmt.where(TradeRow.asset_type == query.asset_type)
    if query.start:
        stmt = stmt.where(TradeRow.timestamp_entry >= _as_utc(query.start))
    if query.end:
        stmt = stmt.where(TradeRow.timestamp_entry <= _as_utc(query.end))
    return stmt


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------

class SqlTradeStore:
    """:class:`ITradeStore` backed by an async SQLAlchemy session factory."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @asynccontextmanager
    async def _session(self, operation: str) -> AsyncIterator[AsyncSession]:
        try:
            async with session_scope(self._session_factory) as session:
                yield session
        except (SQLAlchemyError, OSError) as exc:
            record_store_failure(operation)
            logger.error("Trade store %s failed: %s", operation, exc)
            raise StoreUnavailableError(f"Trade store {operation} failed") from exc

    async def find(self, query: TradeQuery) -> list[TradeRecord]:
        column = getattr(TradeRow, query.sort)
        order = column.desc() if query.descending else column.asc()
        stmt = _apply_filters(select(TradeRow), query).order_by(order, TradeRow.id)
        if query.limit is not None:
            stmt = stmt.offset(query.offset).limit(query.limit)
        async with self._session("find") as session:
            result = await session.execute(stmt)
            return [_row_to_trade(row) for row in result.scalars().all()]

    async def count(self, query: TradeQuery) -> int:
        stmt = _apply_filters(select(func.count()).select_from(TradeRow), query)
        async with self._session("count") as session:
            result = await session.execute(stmt)
            return int(result.scalar_one())

    async def get(self, trade_id: str) -> TradeRecord | None:
        async with self._session("get") as session:
            row = await session.get(TradeRow, trade_id)
            return _row_to_trade(row) if row is not None else None

    async def insert(self, trade: TradeRecord) -> TradeRecord:
        async with self._session("insert") as session:
            row = _trade_to_row(trade)
            session.add(row)
            await session.flush()
            await session.refresh(row)
            stored = _row_to_trade(row)
        logger.info("Inserted trade %s for user %s", stored.id, stored.user_id)
        return stored

    async def update(
        self, trade_id: str, user_id: str, changes: dict[str, Any],
    ) -> TradeRecord | None:
        async with self._session("update") as session:
            row = await session.get(TradeRow, trade_id)
            if row is None or row.user_id != user_id:
                return None
            merged = {**_row_to_trade(row).model_dump(), **changes}
            # Re-validate so bad types never reach the row
            validated = TradeRecord.model_validate(merged)
            for key, value in _row_values(validated).items():
                if key not in ("id", "user_id", "created_at"):
                    setattr(row, key, value)
            await session.flush()
            await session.refresh(row)
            return _row_to_trade(row)

    async def delete(self, trade_id: str, user_id: str) -> bool:
        stmt = delete(TradeRow).where(TradeRow.id == trade_id, TradeRow.user_id == user_id)
        async with self._session("delete") as session:
            result = await session.execute(stmt)
            return (result.rowcount or 0) > 0

    async def strategy_names(self, user_id: str) -> dict[str, str]:
        stmt = select(StrategyRow.id, StrategyRow.name).where(StrategyRow.user_id == user_id)
        async with self._session("strategy_names") as session:
            result = await session.execute(stmt)
            return {sid: name for sid, name in result.all()}

    async def add_strategy(self, user_id: str, strategy_id: str, name: str) -> None:
        async with self._session("add_strategy") as session:
            session.add(StrategyRow(id=strategy_id, user_id=user_id, name=name))
