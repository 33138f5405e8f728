"""SQLAlchemy ORM models for the journal database.

Only the fields the metrics engine and the trade list consume are
modelled.  Derived metric columns hold the last stored values; they are a
fallback and a filter source, never the source of truth.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, DateTime, Float, Index, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Shared declarative base for all ORM models."""

    pass


class TradeRow(Base):
    """Persisted journal trade."""

    __tablename__ = "trades"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False)
    symbol: Mapped[str] = mapped_column(String(64), nullable=False)
    direction: Mapped[str] = mapped_column(String(16), nullable=False, default="long")
    asset_type: Mapped[str] = mapped_column(String(16), nullable=False, default="forex")

    entry_price: Mapped[float] = mapped_column(Float, nullable=False)
    exit_price: Mapped[float | None] = mapped_column(Float, nullable=True)
    stop_loss: Mapped[float | None] = mapped_column(Float, nullable=True)
    take_profit: Mapped[float | None] = mapped_column(Float, nullable=True)
    quantity: Mapped[float] = mapped_column(Float, nullable=False)
    fees: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    timestamp_entry: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    timestamp_exit: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    portfolio_balance: Mapped[float | None] = mapped_column(Float, nullable=True)
    strategy_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    portfolio_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    emotion: Mapped[str | None] = mapped_column(String(64), nullable=True)
    setup_grade: Mapped[str | None] = mapped_column(String(8), nullable=True)
    tags: Mapped[list | None] = mapped_column(JSON, nullable=True)
    in_backtest: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    pnl: Mapped[float | None] = mapped_column(Float, nullable=True)
    gross_pnl: Mapped[float | None] = mapped_column(Float, nullable=True)
    r_multiple: Mapped[float | None] = mapped_column(Float, nullable=True)
    risk_amount: Mapped[float | None] = mapped_column(Float, nullable=True)
    account_risk: Mapped[float | None] = mapped_column(Float, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, server_default=func.now(),
    )

    __table_args__ = (
        Index("ix_trades_user_entry", "user_id", "timestamp_entry"),
        Index("ix_trades_user_portfolio", "user_id", "portfolio_id"),
        Index("ix_trades_user_strategy", "user_id", "strategy_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<TradeRow(id={self.id!r}, symbol={self.symbol!r}, "
            f"direction={self.direction!r}, pnl={self.pnl!r})>"
        )


class StrategyRow(Base):
    """Strategy display names used by the strategy breakdown."""

    __tablename__ = "strategies"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    is_template: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
