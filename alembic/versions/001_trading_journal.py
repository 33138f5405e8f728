"""Trading journal schema: trades, strategies.

Revision ID: 001_trading_journal
Revises: None
Create Date: 2026-10-19 00:00:00.000000
"""
from __future__ import annotations

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "001_trading_journal"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Trades table
    op.create_table(
        "trades",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("user_id", sa.String(128), nullable=False),
        sa.Column("symbol", sa.String(64), nullable=False),
        sa.Column("direction", sa.String(16), nullable=False, server_default="long"),
        sa.Column("asset_type", sa.String(16), nullable=False, server_default="forex"),
        sa.Column("entry_price", sa.Float(), nullable=False),
        sa.Column("exit_price", sa.Float(), nullable=True),
        sa.Column("stop_loss", sa.Float(), nullable=True),
        sa.Column("take_profit", sa.Float(), nullable=True),
        sa.Column("quantity", sa.Float(), nullable=False),
        sa.Column("fees", sa.Float(), nullable=False, server_default="0"),
        sa.Column("timestamp_entry", sa.DateTime(timezone=True), nullable=False),
        sa.Column("timestamp_exit", sa.DateTime(timezone=True), nullable=True),
        sa.Column("portfolio_balance", sa.Float(), nullable=True),
        sa.Column("strategy_id", sa.String(64), nullable=True),
        sa.Column("portfolio_id", sa.String(64), nullable=True),
        sa.Column("emotion", sa.String(64), nullable=True),
        sa.Column("setup_grade", sa.String(8), nullable=True),
        sa.Column("tags", sa.JSON(), nullable=True),
        sa.Column("in_backtest", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("pnl", sa.Float(), nullable=True),
        sa.Column("gross_pnl", sa.Float(), nullable=True),
        sa.Column("r_multiple", sa.Float(), nullable=True),
        sa.Column("risk_amount", sa.Float(), nullable=True),
        sa.Column("account_risk", sa.Float(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_trades_user_entry", "trades", ["user_id", "timestamp_entry"])
    op.create_index("ix_trades_user_portfolio", "trades", ["user_id", "portfolio_id"])
    op.create_index("ix_trades_user_strategy", "trades", ["user_id", "strategy_id"])

    # Strategies table
    op.create_table(
        "strategies",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("user_id", sa.String(128), nullable=False),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("is_template", sa.Boolean(), nullable=False, server_default=sa.false()),
    )
    op.create_index("ix_strategies_user_id", "strategies", ["user_id"])


def downgrade() -> None:
    op.drop_table("strategies")
    op.drop_table("trades")
