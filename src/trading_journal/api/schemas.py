"""Request bodies for the trade write routes.

Normalisation happens here, before a record reaches the store: unknown
asset types fall back to forex, comma separated tag strings are split, and
empty or ``"all"`` strategy / portfolio ids are dropped.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from trading_journal.core.enums import AssetType, Direction

_VALID_ASSET_TYPES = {a.value for a in AssetType}


def _asset_type(value: Any) -> Any:
    if value is None:
        return value
    value = str(value).strip().lower()
    return value if value in _VALID_ASSET_TYPES else AssetType.FOREX.value


def _tags(value: Any) -> Any:
    if isinstance(value, str):
        return [t.strip() for t in value.split(",") if t.strip()]
    return value


def _optional_id(value: Any) -> Any:
    if isinstance(value, str) and value.strip() in ("", "all"):
        return None
    return value


class TradeCreate(BaseModel):
    """Body of ``POST /trades``."""

    model_config = ConfigDict(use_enum_values=True, extra="ignore")

    symbol: str = Field(min_length=1)
    direction: Direction = Direction.LONG
    asset_type: str = AssetType.FOREX.value

    entry_price: float = Field(gt=0)
    exit_price: float | None = None
    stop_loss: float | None = None
    take_profit: float | None = None
    quantity: float = Field(gt=0)
    fees: float = 0.0

    timestamp_entry: datetime
    timestamp_exit: datetime | None = None
    portfolio_balance: float | None = None
    strategy_id: str | None = None
    portfolio_id: str | None = None
    emotion: str | None = None
    setup_grade: int | str | None = None
    tags: list[str] = Field(default_factory=list)
    in_backtest: bool = False

    # Kept when the metrics cannot be recomputed
    pnl: float | None = None
    gross_pnl: float | None = None
    r_multiple: float | None = None
    risk_amount: float | None = None
    account_risk: float | None = None

    @field_validator("symbol")
    @classmethod
    def _strip_symbol(cls, v: str) -> str:
        return v.strip()

    @field_validator("asset_type", mode="before")
    @classmethod
    def _normalise_asset_type(cls, v: Any) -> Any:
        return _asset_type(v)

    @field_validator("tags", mode="before")
    @classmethod
    def _split_tags(cls, v: Any) -> Any:
        return _tags(v)

    @field_validator("strategy_id", "portfolio_id", mode="before")
    @classmethod
    def _drop_ids(cls, v: Any) -> Any:
        return _optional_id(v)


class TradeUpdate(BaseModel):
    """Body of ``PUT /trades/{id}``.  Only fields that were sent are applied."""

    model_config = ConfigDict(use_enum_values=True, extra="ignore")

    symbol: str | None = Field(default=None, min_length=1)
    direction: Direction | None = None
    asset_type: str | None = None

    entry_price: float | None = Field(default=None, gt=0)
    exit_price: float | None = None
    stop_loss: float | None = None
    take_profit: float | None = None
    quantity: float | None = Field(default=None, gt=0)
    fees: float | None = None

    timestamp_entry: datetime | None = None
    timestamp_exit: datetime | None = None
    portfolio_balance: float | None = None
    strategy_id: str | None = None
    portfolio_id: str | None = None
    emotion: str | None = None
    setup_grade: int | str | None = None
    tags: list[str] | None = None
    in_backtest: bool | None = None

    pnl: float | None = None
    gross_pnl: float | None = None
    r_multiple: float | None = None
    risk_amount: float | None = None
    account_risk: float | None = None

    @field_validator("asset_type", mode="before")
    @classmethod
    def _normalise_asset_type(cls, v: Any) -> Any:
        return _asset_type(v)

    @field_validator("tags", mode="before")
    @classmethod
    def _split_tags(cls, v: Any) -> Any:
        return _tags(v)

    @field_validator("strategy_id", "portfolio_id", mode="before")
    @classmethod
    def _drop_ids(cls, v: Any) -> Any:
        return _optional_id(v)

    def changes(self) -> dict[str, Any]:
        """Fields the client actually sent, minus explicit nulls on required ones."""
        data = self.model_dump(exclude_unset=True)
        for key in ("symbol", "direction", "asset_type", "entry_price", "quantity",
                    "fees", "timestamp_entry", "tags", "in_backtest"):
            if key in data and data[key] is None:
                del data[key]
        return data
