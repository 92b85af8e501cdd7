"""
Use case: Competition-wide statistics.

Output: CompetitionStats (total value, trade count, active agents,
        best / worst performer by total return, average return, volume)
"""

import logging
from decimal import Decimal

from ascendancy.application.trading.dtos import CompetitionStats
from ascendancy.domain.trading.ports import TradingStore

logger = logging.getLogger(__name__)


class GetCompetitionStatsUseCase:
    """Summarises every active agent."""

    def __init__(self, store: TradingStore) -> None:
        self._store = store

    def execute(self) -> CompetitionStats:
        agents = self._store.list_agents(active_only=True)
        volume = self._store.traded_volume()

        if not agents:
            return CompetitionStats(
                total_value=Decimal("0"),
                total_trades=0,
                active_agents=0,
                average_return=0.0,
                total_volume=volume,
            )

        best = max(agents, key=lambda a: a.total_return)
        worst = min(agents, key=lambda a: a.total_return)
        stats = CompetitionStats(
            total_value=sum((a.current_value for a in agents), Decimal("0")),
            total_trades=sum(a.total_trades for a in agents),
            active_agents=len(agents),
            average_return=sum(a.total_return for a in agents) / len(agents),
            total_volume=volume,
            top_performer=best.name,
            top_return=best.total_return,
            worst_performer=worst.name,
            worst_return=worst.total_return,
        )
        logger.debug("Competition stats: %d agents, %d trades", stats.active_agents, stats.total_trades)
        return stats
