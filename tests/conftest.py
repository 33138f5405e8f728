"""Shared fixtures for the trading-journal test suite."""

from __future__ import annotations

import pytest

from trading_journal.storage.memory import InMemoryTradeStore


@pytest.fixture
def store() -> InMemoryTradeStore:
    return InMemoryTradeStore()
