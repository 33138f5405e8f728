"""Protocol interfaces for the trading journal.

The trade store is injected into the API; implementations (in-memory,
SQL) can be swapped without changing callers.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from .models import TradeRecord
from .query import TradeQuery


@runtime_checkable
class ITradeStore(Protocol):
    """Find/insert/update/delete access to raw trade records.

    Implementations raise :class:`~trading_journal.core.errors.StoreUnavailableError`
    when the backing store cannot serve a request.
    """

    async def find(self, query: TradeQuery) -> list[TradeRecord]: ...

    async def count(self, query: TradeQuery) -> int: ...

    async def get(self, trade_id: str) -> TradeRecord | None: ...

    async def insert(self, trade: TradeRecord) -> TradeRecord: ...

    async def update(
        self, trade_id: str, user_id: str, changes: dict[str, Any],
    ) -> TradeRecord | None: ...

    async def delete(self, trade_id: str, user_id: str) -> bool: ...

    async def strategy_names(self, user_id: str) -> dict[str, str]: ...
