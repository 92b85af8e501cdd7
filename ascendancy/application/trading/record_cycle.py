"""
Use case: Persist the outcome of a cycle.

Builds the daily performance snapshot and commits agent totals,
portfolio, new trades and the snapshot in a single transaction.

Input:  CycleState after trade execution, the agent record
Output: CycleState (SNAPSHOT_SAVED, or SNAPSHOT_FAILED when the store
        could not be written; nothing is persisted in that case)
"""

import logging
from datetime import datetime

from ascendancy.domain.trading.entities import AgentRecord, CycleState, CycleStatus
from ascendancy.domain.trading.errors import PersistenceError
from ascendancy.domain.trading.ledger import build_snapshot, update_agent_totals
from ascendancy.domain.trading.ports import TradingStore

logger = logging.getLogger(__name__)


class RecordCycleUseCase:
    """Writes one cycle's results to the store atomically."""

    def __init__(self, store: TradingStore) -> None:
        self._store = store

    def execute(
        self, state: CycleState, agent: AgentRecord, recorded_at: datetime
    ) -> CycleState:
        try:
            previous = self._store.latest_snapshot(state.agent_id, before=state.as_of)
            baseline = previous.portfolio_value if previous else agent.starting_cash
            snapshot = build_snapshot(state.portfolio, state.as_of, baseline)
            updated_agent = update_agent_totals(
                agent, state.portfolio, state.trades, recorded_at
            )
            self._store.commit_cycle(
                updated_agent, state.portfolio, list(state.trades), snapshot
            )
        except PersistenceError as exc:
            logger.error("Could not record cycle for %s: %s", state.agent_id, exc.message)
            return state.fail(CycleStatus.SNAPSHOT_FAILED, exc.message)

        logger.info(
            "Recorded cycle for %s on %s: value %s, daily return %.4f",
            state.agent_id,
            state.as_of,
            snapshot.portfolio_value,
            snapshot.daily_return,
        )
        return state.advance(CycleStatus.SNAPSHOT_SAVED, snapshot=snapshot)
