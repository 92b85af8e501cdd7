"""
Adapter: SQL trading store.

Implements every persistence port (TradingStore) against the tables in
``schema``. The outcome of a cycle is written in a single transaction.
Driver errors are translated into PersistenceError.
"""

import logging
from datetime import date
from decimal import Decimal
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import delete, func, insert, select, text, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from ascendancy.domain.trading.entities import (
    AgentRecord,
    DailyPerformanceSnapshot,
    ExecutedTrade,
    Portfolio,
    Position,
    TradeAction,
)
from ascendancy.domain.trading.errors import PersistenceError
from ascendancy.domain.trading.ports import TradingStore
from ascendancy.infrastructure.trading import schema

logger = logging.getLogger(__name__)

_UPSERT_DIALECTS = {"postgresql": postgresql, "sqlite": sqlite}


def _decimal(value: Any) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


def _row_to_agent(row) -> AgentRecord:
    return AgentRecord(
        id=row.id,
        name=row.name,
        strategy=row.strategy,
        starting_cash=_decimal(row.starting_cash),
        cash=_decimal(row.cash),
        current_value=_decimal(row.current_value),
        total_trades=row.total_trades,
        closed_trades=row.closed_trades,
        winning_trades=row.winning_trades,
        is_active=bool(row.is_active),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _row_to_trade(row) -> ExecutedTrade:
    return ExecutedTrade(
        id=UUID(row.id),
        agent_id=row.agent_id,
        symbol=row.symbol,
        action=TradeAction(row.action),
        quantity=row.quantity,
        price=_decimal(row.price),
        total_value=_decimal(row.total_value),
        reasoning=row.reasoning,
        confidence=row.confidence,
        sentiment_score=row.sentiment_score,
        realized_pnl=_decimal(row.realized_pnl) if row.realized_pnl is not None else None,
        executed_at=row.executed_at,
    )


def _row_to_snapshot(row) -> DailyPerformanceSnapshot:
    return DailyPerformanceSnapshot(
        agent_id=row.agent_id,
        date=row.snapshot_date,
        portfolio_value=_decimal(row.portfolio_value),
        cash=_decimal(row.cash),
        daily_return=row.daily_return,
        positions=dict(row.positions or {}),
    )


def _agent_values(agent: AgentRecord) -> dict[str, Any]:
    return {
        "id": agent.id,
        "name": agent.name,
        "strategy": agent.strategy,
        "starting_cash": agent.starting_cash,
        "cash": agent.cash,
        "current_value": agent.current_value,
        "total_trades": agent.total_trades,
        "closed_trades": agent.closed_trades,
        "winning_trades": agent.winning_trades,
        "is_active": agent.is_active,
        "created_at": agent.created_at,
        "updated_at": agent.updated_at,
    }


def _trade_values(trade: ExecutedTrade) -> dict[str, Any]:
    return {
        "id": str(trade.id),
        "agent_id": trade.agent_id,
        "symbol": trade.symbol,
        "action": trade.action.value,
        "quantity": trade.quantity,
        "price": trade.price,
        "total_value": trade.total_value,
        "reasoning": trade.reasoning,
        "confidence": trade.confidence,
        "sentiment_score": trade.sentiment_score,
        "realized_pnl": trade.realized_pnl,
        "executed_at": trade.executed_at,
    }


class SqlTradingStore(TradingStore):
    """SQLAlchemy implementation of the trading store."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    # ------------------------------------------------------------------
    # Agents
    # ------------------------------------------------------------------

    def get_agent(self, agent_id: str) -> Optional[AgentRecord]:
        query = select(schema.agents).where(schema.agents.c.id == agent_id)
        try:
            with self._engine.connect() as conn:
                row = conn.execute(query).fetchone()
        except SQLAlchemyError as exc:
            raise PersistenceError("get_agent", str(exc)) from exc
        return _row_to_agent(row) if row else None

    def create_agent(self, agent: AgentRecord) -> None:
        try:
            with self._engine.begin() as conn:
                conn.execute(insert(schema.agents).values(**_agent_values(agent)))
        except SQLAlchemyError as exc:
            raise PersistenceError("create_agent", str(exc)) from exc
        logger.debug("Inserted agent %s", agent.id)

    def list_agents(self, active_only: bool = True) -> list[AgentRecord]:
        query = select(schema.agents).order_by(schema.agents.c.current_value.desc())
        if active_only:
            query = query.where(schema.agents.c.is_active.is_(True))
        try:
            with self._engine.connect() as conn:
                rows = conn.execute(query).fetchall()
        except SQLAlchemyError as exc:
            raise PersistenceError("list_agents", str(exc)) from exc
        return [_row_to_agent(r) for r in rows]

    # ------------------------------------------------------------------
    # Portfolio
    # ------------------------------------------------------------------

    def get_portfolio(self, agent_id: str) -> Optional[Portfolio]:
        agent_query = select(schema.agents.c.cash).where(schema.agents.c.id == agent_id)
        positions_query = select(schema.positions).where(
            schema.positions.c.agent_id == agent_id
        )
        try:
            with self._engine.connect() as conn:
                cash = conn.execute(agent_query).scalar_one_or_none()
                if cash is None:
                    return None
                rows = conn.execute(positions_query).fetchall()
        except SQLAlchemyError as exc:
            raise PersistenceError("get_portfolio", str(exc)) from exc

        positions = {
            r.symbol: Position(
                symbol=r.symbol,
                quantity=r.quantity,
                average_cost=_decimal(r.average_cost),
                last_price=_decimal(r.last_price),
                opened_at=r.opened_at,
                last_bought_at=r.last_bought_at,
            )
            for r in rows
        }
        return Portfolio(agent_id=agent_id, cash=_decimal(cash), positions=positions)

    # ------------------------------------------------------------------
    # Trades
    # ------------------------------------------------------------------

    def list_trades(
        self,
        agent_id: Optional[str] = None,
        action: Optional[TradeAction] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[ExecutedTrade]:
        query = select(schema.trades)
        if agent_id:
            query = query.where(schema.trades.c.agent_id == agent_id)
        if action:
            query = query.where(schema.trades.c.action == action.value)
        query = (
            query.order_by(schema.trades.c.executed_at.desc(), schema.trades.c.id)
            .limit(limit)
            .offset(offset)
        )
        try:
            with self._engine.connect() as conn:
                rows = conn.execute(query).fetchall()
        except SQLAlchemyError as exc:
            raise PersistenceError("list_trades", str(exc)) from exc
        return [_row_to_trade(r) for r in rows]

    def count_trades(self, agent_id: Optional[str] = None) -> int:
        query = select(func.count()).select_from(schema.trades)
        if agent_id:
            query = query.where(schema.trades.c.agent_id == agent_id)
        try:
            with self._engine.connect() as conn:
                return int(conn.execute(query).scalar_one())
        except SQLAlchemyError as exc:
            raise PersistenceError("count_trades", str(exc)) from exc

    def traded_volume(self, agent_id: Optional[str] = None) -> Decimal:
        query = select(func.coalesce(func.sum(schema.trades.c.total_value), 0))
        if agent_id:
            query = query.where(schema.trades.c.agent_id == agent_id)
        try:
            with self._engine.connect() as conn:
                return _decimal(conn.execute(query).scalar_one())
        except SQLAlchemyError as exc:
            raise PersistenceError("traded_volume", str(exc)) from exc

    # ------------------------------------------------------------------
    # Performance
    # ------------------------------------------------------------------

    def _upsert_snapshot(self, conn: Connection, snapshot: DailyPerformanceSnapshot) -> None:
        name = self._engine.dialect.name
        dialect = _UPSERT_DIALECTS.get(name)
        if dialect is None:
            raise PersistenceError(
                "upsert_snapshot", f"snapshot upsert not supported on {name}"
            )
        values = {
            "agent_id": snapshot.agent_id,
            "snapshot_date": snapshot.date,
            "portfolio_value": snapshot.portfolio_value,
            "cash": snapshot.cash,
            "daily_return": snapshot.daily_return,
            "positions": dict(snapshot.positions),
        }
        stmt = dialect.insert(schema.daily_performance).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=["agent_id", "snapshot_date"],
            set_={
                "portfolio_value": stmt.excluded.portfolio_value,
                "cash": stmt.excluded.cash,
                "daily_return": stmt.excluded.daily_return,
                "positions": stmt.excluded.positions,
            },
        )
        conn.execute(stmt)

    def upsert_snapshot(self, snapshot: DailyPerformanceSnapshot) -> None:
        try:
            with self._engine.begin() as conn:
                self._upsert_snapshot(conn, snapshot)
        except SQLAlchemyError as exc:
            raise PersistenceError("upsert_snapshot", str(exc)) from exc

    def list_snapshots(
        self, agent_id: Optional[str] = None, since: Optional[date] = None
    ) -> list[DailyPerformanceSnapshot]:
        table = schema.daily_performance
        query = select(table)
        if agent_id:
            query = query.where(table.c.agent_id == agent_id)
        if since:
            query = query.where(table.c.snapshot_date >= since)
        query = query.order_by(table.c.snapshot_date.asc(), table.c.agent_id)
        try:
            with self._engine.connect() as conn:
                rows = conn.execute(query).fetchall()
        except SQLAlchemyError as exc:
            raise PersistenceError("list_snapshots", str(exc)) from exc
        return [_row_to_snapshot(r) for r in rows]

    def latest_snapshot(
        self, agent_id: str, before: Optional[date] = None
    ) -> Optional[DailyPerformanceSnapshot]:
        table = schema.daily_performance
        query = select(table).where(table.c.agent_id == agent_id)
        if before:
            query = query.where(table.c.snapshot_date < before)
        query = query.order_by(table.c.snapshot_date.desc()).limit(1)
        try:
            with self._engine.connect() as conn:
                row = conn.execute(query).fetchone()
        except SQLAlchemyError as exc:
            raise PersistenceError("latest_snapshot", str(exc)) from exc
        return _row_to_snapshot(row) if row else None

    # ------------------------------------------------------------------
    # Cycle commit
    # ------------------------------------------------------------------

    def commit_cycle(
        self,
        agent: AgentRecord,
        portfolio: Portfolio,
        trades: list[ExecutedTrade],
        snapshot: DailyPerformanceSnapshot,
    ) -> None:
        agent_values = _agent_values(agent)
        agent_values.pop("id")
        agent_values.pop("created_at")
        position_rows = [
            {
                "agent_id": agent.id,
                "symbol": p.symbol,
                "quantity": p.quantity,
                "average_cost": p.average_cost,
                "last_price": p.last_price,
                "opened_at": p.opened_at,
                "last_bought_at": p.last_bought_at,
            }
            for p in portfolio.positions.values()
        ]

        try:
            with self._engine.begin() as conn:
                result = conn.execute(
                    update(schema.agents)
                    .where(schema.agents.c.id == agent.id)
                    .values(**agent_values)
                )
                if result.rowcount == 0:
                    conn.execute(insert(schema.agents).values(**_agent_values(agent)))
                conn.execute(
                    delete(schema.positions).where(schema.positions.c.agent_id == agent.id)
                )
                if position_rows:
                    conn.execute(insert(schema.positions), position_rows)
                if trades:
                    conn.execute(insert(schema.trades), [_trade_values(t) for t in trades])
                self._upsert_snapshot(conn, snapshot)
        except SQLAlchemyError as exc:
            raise PersistenceError("commit_cycle", str(exc)) from exc

        logger.debug(
            "Committed cycle for %s: %d trades, %d positions, snapshot %s",
            agent.id,
            len(trades),
            len(position_rows),
            snapshot.date,
        )

    def ping(self) -> bool:
        try:
            with self._engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            logger.warning("Store unreachable: %s", exc)
            return False
        return True
