"""
Adapter: In-memory trading store.

Process-local TradingStore used when no database is configured and in
tests. A single lock serializes access so a cycle commit is atomic with
respect to readers.
"""

import threading
from datetime import date
from decimal import Decimal
from typing import Optional

from ascendancy.domain.trading.entities import (
    ZERO,
    AgentRecord,
    DailyPerformanceSnapshot,
    ExecutedTrade,
    Portfolio,
    TradeAction,
)
from ascendancy.domain.trading.ports import TradingStore


class InMemoryTradingStore(TradingStore):
    """Dict-backed store. Nothing survives a restart."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._agents: dict[str, AgentRecord] = {}
        self._portfolios: dict[str, Portfolio] = {}
        self._trades: list[ExecutedTrade] = []
        self._snapshots: dict[tuple[str, date], DailyPerformanceSnapshot] = {}

    def get_agent(self, agent_id: str) -> Optional[AgentRecord]:
        with self._lock:
            return self._agents.get(agent_id)

    def create_agent(self, agent: AgentRecord) -> None:
        with self._lock:
            self._agents[agent.id] = agent

    def list_agents(self, active_only: bool = True) -> list[AgentRecord]:
        with self._lock:
            agents = [a for a in self._agents.values() if a.is_active or not active_only]
        return sorted(agents, key=lambda a: a.current_value, reverse=True)

    def get_portfolio(self, agent_id: str) -> Optional[Portfolio]:
        with self._lock:
            if agent_id not in self._agents:
                return None
            return self._portfolios.get(agent_id) or Portfolio(
                agent_id=agent_id, cash=self._agents[agent_id].cash
            )

    def _filtered_trades(self, agent_id: Optional[str]) -> list[ExecutedTrade]:
        return [t for t in self._trades if not agent_id or t.agent_id == agent_id]

    def list_trades(
        self,
        agent_id: Optional[str] = None,
        action: Optional[TradeAction] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[ExecutedTrade]:
        with self._lock:
            trades = [
                t
                for t in self._filtered_trades(agent_id)
                if action is None or t.action is action
            ]
        trades.sort(key=lambda t: t.executed_at, reverse=True)
        return trades[offset : offset + limit]

    def count_trades(self, agent_id: Optional[str] = None) -> int:
        with self._lock:
            return len(self._filtered_trades(agent_id))

    def traded_volume(self, agent_id: Optional[str] = None) -> Decimal:
        with self._lock:
            return sum((t.total_value for t in self._filtered_trades(agent_id)), ZERO)

    def upsert_snapshot(self, snapshot: DailyPerformanceSnapshot) -> None:
        with self._lock:
            self._snapshots[(snapshot.agent_id, snapshot.date)] = snapshot

    def list_snapshots(
        self, agent_id: Optional[str] = None, since: Optional[date] = None
    ) -> list[DailyPerformanceSnapshot]:
        with self._lock:
            snapshots = [
                s
                for s in self._snapshots.values()
                if (not agent_id or s.agent_id == agent_id)
                and (since is None or s.date >= since)
            ]
        return sorted(snapshots, key=lambda s: (s.date, s.agent_id))

    def latest_snapshot(
        self, agent_id: str, before: Optional[date] = None
    ) -> Optional[DailyPerformanceSnapshot]:
        with self._lock:
            candidates = [
                s
                for (owner, day), s in self._snapshots.items()
                if owner == agent_id and (before is None or day < before)
            ]
        return max(candidates, key=lambda s: s.date, default=None)

    def commit_cycle(
        self,
        agent: AgentRecord,
        portfolio: Portfolio,
        trades: list[ExecutedTrade],
        snapshot: DailyPerformanceSnapshot,
    ) -> None:
        with self._lock:
            self._agents[agent.id] = agent
            self._portfolios[agent.id] = portfolio
            self._trades.extend(trades)
            self._snapshots[(snapshot.agent_id, snapshot.date)] = snapshot

    def ping(self) -> bool:
        return True
