"""Trade record stores.

``InMemoryTradeStore`` backs tests and the development server; the SQL
store in :mod:`trading_journal.storage.sql` backs production.
"""

from .memory import InMemoryTradeStore

__all__ = ["InMemoryTradeStore"]
