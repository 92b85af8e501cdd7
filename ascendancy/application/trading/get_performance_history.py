"""
Use case: Performance time series.

Input:  PerformanceQuery (days, agent_id?)
Output: list[PerformancePoint], oldest first
"""

from datetime import date, timedelta
from typing import Callable, Optional

from ascendancy.application.trading.dtos import PerformancePoint, PerformanceQuery
from ascendancy.domain.trading.ports import PerformanceRepository


class GetPerformanceHistoryUseCase:
    """Returns daily snapshots inside a look-back window."""

    def __init__(
        self,
        performance_repo: PerformanceRepository,
        today: Optional[Callable[[], date]] = None,
    ) -> None:
        self._performance_repo = performance_repo
        self._today = today or date.today

    def execute(self, query: PerformanceQuery) -> list[PerformancePoint]:
        since = self._today() - timedelta(days=query.days)
        snapshots = self._performance_repo.list_snapshots(
            agent_id=query.agent_id, since=since
        )
        return [
            PerformancePoint(
                agent_id=s.agent_id,
                date=s.date,
                portfolio_value=s.portfolio_value,
                cash=s.cash,
                daily_return=s.daily_return,
                positions=dict(s.positions),
            )
            for s in snapshots
        ]
