"""Enumerations used across the trading journal."""

from enum import Enum


class Direction(str, Enum):
    LONG = "long"
    SHORT = "short"


class AssetType(str, Enum):
    FOREX = "forex"
    CRYPTO = "crypto"
    STOCK = "stock"
    CFD = "cfd"
    FUTURES = "futures"
    INDICES = "indices"


class TradeOutcome(str, Enum):
    """Win / loss / break-even classification of a closed trade."""

    WIN = "win"
    LOSS = "loss"
    BREAKEVEN = "breakeven"


class StreakType(str, Enum):
    WIN = "win"
    LOSS = "loss"
    NEUTRAL = "neutral"


class StatusFilter(str, Enum):
    """Trade list filter on the stored P&L sign."""

    WIN = "win"
    LOSS = "loss"


class EquityBucket(str, Enum):
    """Granularity of equity curve points."""

    TRADE = "trade"
    DAY = "day"
    WEEK = "week"


class StorageBackend(str, Enum):
    MEMORY = "memory"
    SQL = "sql"


# Setup grade ordinal -> display letter
SETUP_GRADES = {1: "D", 2: "C", 3: "B", 4: "A", 5: "A+"}
