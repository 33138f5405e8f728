"""Custom exception hierarchy for the trading journal."""


class JournalError(Exception):
    """Base exception for all trading journal errors."""


# --- Configuration ---
class ConfigError(JournalError):
    """Invalid or missing configuration."""


# --- Input ---
class InvalidTradeInputError(JournalError):
    """Malformed single-trade input (direction, price, quantity)."""

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid trade input [{field}]: {reason}")


class InvalidQueryError(JournalError):
    """Malformed query parameter (month, date range, sort field)."""


# --- Store ---
class StoreError(JournalError):
    """Trade store error."""


class StoreUnavailableError(StoreError):
    """The trade store could not be reached or failed mid-request."""


class TradeNotFoundError(StoreError):
    """No trade with the given id for this user."""

    def __init__(self, trade_id: str):
        self.trade_id = trade_id
        super().__init__(f"Trade not found: {trade_id}")
