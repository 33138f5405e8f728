"""In-memory trade store.

An explicit, injectable instance; nothing is kept at module level, so two
stores (or two test cases) never share records.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Iterable

from trading_journal.core.models import TradeRecord
from trading_journal.core.query import TradeQuery

logger = logging.getLogger(__name__)


class InMemoryTradeStore:
    """Dict-backed implementation of :class:`ITradeStore`."""

    def __init__(self, trades: Iterable[TradeRecord] = ()) -> None:
        self._trades: dict[str, TradeRecord] = {}
        self._strategies: dict[str, dict[str, str]] = {}
        for trade in trades:
            self._store(trade)

    def _store(self, trade: TradeRecord) -> TradeRecord:
        if trade.created_at is None:
            trade = trade.model_copy(update={"created_at": datetime.now(timezone.utc)})
        self._trades[trade.id] = trade
        return trade

    def add_strategy(self, user_id: str, strategy_id: str, name: str) -> None:
        self._strategies.setdefault(user_id, {})[strategy_id] = name

    async def find(self, query: TradeQuery) -> list[TradeRecord]:
        matched = [t for t in self._trades.values() if query.matches(t)]
        matched.sort(key=query.sort_key, reverse=query.descending)
        if query.limit is None:
            return matched
        return matched[query.offset:query.offset + query.limit]

    async def count(self, query: TradeQuery) -> int:
        return sum(1 for t in self._trades.values() if query.matches(t))

    async def get(self, trade_id: str) -> TradeRecord | None:
        return self._trades.get(trade_id)

    async def insert(self, trade: TradeRecord) -> TradeRecord:
        stored = self._store(trade)
        logger.info("Inserted trade %s for user %s", stored.id, stored.user_id)
        return stored

    async def update(
        self, trade_id: str, user_id: str, changes: dict[str, Any],
    ) -> TradeRecord | None:
        current = self._trades.get(trade_id)
        if current is None or current.user_id != user_id:
            return None
        merged = {**current.model_dump(), **changes, "id": trade_id, "user_id": user_id}
        updated = TradeRecord.model_validate(merged)
        self._trades[trade_id] = updated
        return updated

    async def delete(self, trade_id: str, user_id: str) -> bool:
        current = self._trades.get(trade_id)
        if current is None or current.user_id != user_id:
            return False
        del self._trades[trade_id]
        return True

    async def strategy_names(self, user_id: str) -> dict[str, str]:
        return dict(self._strategies.get(user_id, {}))

    def __len__(self) -> int:
        return len(self._trades)
