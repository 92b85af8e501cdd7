"""
Use case: Agent leaderboard.

Lists agents with their positions (valued at the last known price),
cash, win rate and most recent trade, best current value first.

Output: list[AgentOverview]
"""

from ascendancy.application.trading.dtos import AgentOverview, PositionView
from ascendancy.application.trading.list_recent_trades import to_trade_view
from ascendancy.domain.trading.entities import AgentRecord
from ascendancy.domain.trading.ports import TradingStore


class GetLeaderboardUseCase:
    """Builds one overview row per active agent."""

    def __init__(self, store: TradingStore) -> None:
        self._store = store

    def execute(self) -> list[AgentOverview]:
        rows = [self._overview(agent) for agent in self._store.list_agents()]
        rows.sort(key=lambda r: r.current_value, reverse=True)
        return rows

    def _overview(self, agent: AgentRecord) -> AgentOverview:
        portfolio = self._store.get_portfolio(agent.id)
        positions = []
        if portfolio is not None:
            positions = [
                PositionView(
                    symbol=p.symbol,
                    quantity=p.quantity,
                    average_cost=p.average_cost,
                    last_price=p.last_price,
                    market_value=p.market_value(),
                    unrealized_pnl=p.unrealized_pnl(),
                    opened_at=p.opened_at,
                )
                for p in sorted(portfolio.positions.values(), key=lambda p: p.symbol)
            ]

        last = self._store.list_trades(agent_id=agent.id, limit=1)
        return AgentOverview(
            agent_id=agent.id,
            name=agent.name,
            strategy=agent.strategy,
            cash=agent.cash,
            current_value=agent.current_value,
            total_return=agent.total_return,
            win_rate=agent.win_rate,
            total_trades=agent.total_trades,
            positions=positions,
            last_trade=to_trade_view(last[0]) if last else None,
        )
