"""
Use case: Run one daily trading cycle for an agent.

Drives the cycle state machine:

    INITIALIZED → DATA_COLLECTED → SENTIMENT_ANALYZED → DECISIONS_MADE
                → TRADES_EXECUTED → SNAPSHOT_SAVED

Each stage receives the immutable CycleState and returns a new one. A
failed stage moves to its ``*_FAILED`` status and later stages continue
with safe defaults. The cycle only aborts when no market data could be
collected at all or when the store cannot be read or written; the result
then reports status "error" and zero executed trades.

Input:  RunTradingCycleCommand
Output: CycleResult
Side effects: One transaction writing agent, portfolio, trades and snapshot.
"""

import logging
import threading
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Callable, Optional, Sequence

from ascendancy.application.trading.analyze_sentiment import AnalyzeSentimentUseCase
from ascendancy.application.trading.collect_signals import CollectSignalsUseCase
from ascendancy.application.trading.dtos import CycleResult, RunTradingCycleCommand
from ascendancy.application.trading.execute_trades import ExecuteTradesUseCase
from ascendancy.application.trading.make_decisions import MakeDecisionsUseCase
from ascendancy.application.trading.record_cycle import RecordCycleUseCase
from ascendancy.domain.trading.decision_engine import DecisionRules
from ascendancy.domain.trading.entities import (
    AgentRecord,
    CycleState,
    CycleStatus,
    Instrument,
    Portfolio,
)
from ascendancy.domain.trading.errors import (
    AgentNotFoundError,
    CycleAlreadyRunningError,
    PersistenceError,
)
from ascendancy.domain.trading.ports import TradingStore

logger = logging.getLogger(__name__)

_agent_locks: dict[str, threading.Lock] = {}
_agent_locks_guard = threading.Lock()


def _agent_lock(agent_id: str) -> threading.Lock:
    with _agent_locks_guard:
        return _agent_locks.setdefault(agent_id, threading.Lock())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class AgentProfile:
    """A configured competitor.

    Used to bootstrap the agent on its first cycle. ``rules`` replaces the
    shared decision rules for this agent only.
    """

    id: str
    name: str
    strategy: str
    starting_cash: Decimal
    rules: Optional[DecisionRules] = None


class RunTradingCycleUseCase:
    """Orchestrates the stages of one cycle for one agent at a time."""

    def __init__(
        self,
        store: TradingStore,
        collect: CollectSignalsUseCase,
        analyze: AnalyzeSentimentUseCase,
        decide: MakeDecisionsUseCase,
        execute_trades: ExecuteTradesUseCase,
        record: RecordCycleUseCase,
        watch_list: Sequence[Instrument],
        default_agent: AgentProfile,
        clock: Optional[Callable[[], datetime]] = None,
        agents: Sequence[AgentProfile] = (),
    ) -> None:
        self._store = store
        self._collect = collect
        self._analyze = analyze
        self._decide = decide
        self._execute_trades = execute_trades
        self._record = record
        self._watch_list = tuple(watch_list)
        self._default_agent = default_agent
        self._profiles = {p.id: p for p in (default_agent, *agents)}
        self._clock = clock or _utcnow

    def execute(self, command: RunTradingCycleCommand) -> CycleResult:
        """Run the cycle.

        Raises:
            CycleAlreadyRunningError: Another cycle holds this agent's lock.
            AgentNotFoundError: The agent is neither stored nor configured.
        """
        agent_id = command.agent_id or self._default_agent.id
        lock = _agent_lock(agent_id)
        if not lock.acquire(blocking=False):
            raise CycleAlreadyRunningError(agent_id)
        try:
            return self._run(agent_id, command.as_of)
        finally:
            lock.release()

    def execute_all(self, as_of: Optional[date] = None) -> list[CycleResult]:
        """Run one cycle for every competitor, one after another.

        Competitors are the configured profiles plus any other active agent
        in the store. Agents deactivated in the store are skipped. An agent
        whose cycle is already running gets an error result.

        Raises:
            PersistenceError: The agent list cannot be read.
        """
        stored = self._store.list_agents(active_only=False)
        inactive = {a.id for a in stored if not a.is_active}
        agent_ids = [i for i in self._profiles if i not in inactive]
        agent_ids += [a.id for a in stored if a.is_active and a.id not in self._profiles]
        logger.info("Running cycles for %d agents", len(agent_ids))

        results = []
        for agent_id in agent_ids:
            try:
                result = self.execute(RunTradingCycleCommand(agent_id=agent_id, as_of=as_of))
            except CycleAlreadyRunningError as exc:
                logger.warning("Skipping agent %s: %s", agent_id, exc.message)
                result = self._failure(
                    agent_id,
                    as_of or self._clock().date(),
                    [CycleStatus.INITIALIZED],
                    exc.message,
                )
            results.append(result)
        return results

    def _run(self, agent_id: str, as_of: Optional[date]) -> CycleResult:
        now = self._clock()
        as_of = as_of or now.date()
        logger.info("Starting trading cycle for %s on %s", agent_id, as_of)

        try:
            agent = self._load_agent(agent_id, now)
            portfolio = self._store.get_portfolio(agent_id) or Portfolio(
                agent_id=agent_id, cash=agent.cash
            )
        except PersistenceError as exc:
            logger.error("Store unavailable, aborting cycle: %s", exc.message)
            return self._failure(agent_id, as_of, [CycleStatus.INITIALIZED], exc.message)

        state = CycleState(
            agent_id=agent_id,
            as_of=as_of,
            watch_list=self._watch_list,
            portfolio=portfolio,
        )

        state = self._collect.execute(state)
        if state.status is CycleStatus.DATA_COLLECTION_FAILED:
            logger.error("Aborting cycle for %s: %s", agent_id, state.errors[-1])
            return self._failure(agent_id, as_of, state.history, state.errors[-1])

        state = self._analyze.execute(state)
        profile = self._profiles.get(agent_id)
        state = self._decide.execute(state, rules=profile.rules if profile else None)
        state = self._execute_trades.execute(state, now)
        state = self._record.execute(state, agent, now)
        if state.status is CycleStatus.SNAPSHOT_FAILED:
            return self._failure(agent_id, as_of, state.history, state.errors[-1])

        result = self._success(state)
        logger.info("Cycle complete for %s: %s", agent_id, result.summary)
        return result

    def _load_agent(self, agent_id: str, now: datetime) -> AgentRecord:
        agent = self._store.get_agent(agent_id)
        if agent is not None:
            return agent
        profile = self._profiles.get(agent_id)
        if profile is None:
            raise AgentNotFoundError(agent_id)

        agent = AgentRecord(
            id=profile.id,
            name=profile.name,
            strategy=profile.strategy,
            starting_cash=profile.starting_cash,
            cash=profile.starting_cash,
            current_value=profile.starting_cash,
            created_at=now,
            updated_at=now,
        )
        self._store.create_agent(agent)
        logger.info("Created agent %s with starting cash %s", agent.id, agent.starting_cash)
        return agent

    @staticmethod
    def _failure(
        agent_id: str,
        as_of: date,
        history: Sequence[CycleStatus],
        error: str,
    ) -> CycleResult:
        return CycleResult(
            agent_id=agent_id,
            as_of=as_of,
            status="error",
            cycle_status=history[-1].value,
            stages=[s.value for s in history],
            trades_executed=0,
            summary=f"Cycle aborted: {error}",
            error=error,
        )

    @staticmethod
    def _success(state: CycleState) -> CycleResult:
        trades = ", ".join(
            f"{t.action.value} {t.symbol} x{t.quantity}" for t in state.trades
        )
        value = state.portfolio.total_value()
        summary = (
            f"Executed {len(state.trades)} trades"
            + (f" ({trades})" if trades else "")
            + f", rejected {len(state.rejections)}; portfolio value ${value:.2f}"
        )
        return CycleResult(
            agent_id=state.agent_id,
            as_of=state.as_of,
            status="success",
            cycle_status=state.status.value,
            stages=[s.value for s in state.history],
            decisions_made=sum(1 for d in state.decisions if d.is_actionable),
            trades_executed=len(state.trades),
            trades_rejected=len(state.rejections),
            portfolio_value=value,
            cash=state.portfolio.cash,
            summary=summary,
            warnings=list(state.errors),
        )
