"""
Relational schema of the trading store.

Declared with SQLAlchemy Core so the same tables serve PostgreSQL in
production and SQLite in tests. Money columns use NUMERIC(18, 4).
"""

import logging

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    Text,
)
from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)

MONEY = Numeric(18, 4, asdecimal=True)

metadata = MetaData()

agents = Table(
    "agents",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("name", String(100), nullable=False),
    Column("strategy", String(200), nullable=False, default=""),
    Column("starting_cash", MONEY, nullable=False),
    Column("cash", MONEY, nullable=False),
    Column("current_value", MONEY, nullable=False),
    Column("total_trades", Integer, nullable=False, default=0),
    Column("closed_trades", Integer, nullable=False, default=0),
    Column("winning_trades", Integer, nullable=False, default=0),
    Column("is_active", Boolean, nullable=False, default=True),
    Column("created_at", DateTime(timezone=True)),
    Column("updated_at", DateTime(timezone=True)),
)

positions = Table(
    "positions",
    metadata,
    Column("agent_id", String(36), ForeignKey("agents.id"), primary_key=True),
    Column("symbol", String(16), primary_key=True),
    Column("quantity", Integer, nullable=False),
    Column("average_cost", MONEY, nullable=False),
    Column("last_price", MONEY, nullable=False),
    Column("opened_at", Date, nullable=False),
    Column("last_bought_at", Date, nullable=False),
)

trades = Table(
    "trades",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("agent_id", String(36), ForeignKey("agents.id"), nullable=False),
    Column("symbol", String(16), nullable=False),
    Column("action", String(4), nullable=False),
    Column("quantity", Integer, nullable=False),
    Column("price", MONEY, nullable=False),
    Column("total_value", MONEY, nullable=False),
    Column("reasoning", Text, nullable=False, default=""),
    Column("confidence", Float, nullable=False),
    Column("sentiment_score", Float, nullable=False),
    Column("realized_pnl", MONEY),
    Column("executed_at", DateTime(timezone=True), nullable=False),
    Index("ix_trades_agent_executed", "agent_id", "executed_at"),
)

daily_performance = Table(
    "daily_performance",
    metadata,
    Column("agent_id", String(36), ForeignKey("agents.id"), primary_key=True),
    Column("snapshot_date", Date, primary_key=True),
    Column("portfolio_value", MONEY, nullable=False),
    Column("cash", MONEY, nullable=False),
    Column("daily_return", Float, nullable=False),
    Column("positions", JSON, nullable=False),
)


def create_tables(engine: Engine) -> None:
    """Create any missing table. Existing tables are left untouched."""
    metadata.create_all(engine)
    logger.info("Trading tables ensured on %s", engine.dialect.name)
