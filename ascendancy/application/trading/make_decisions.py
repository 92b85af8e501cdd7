"""
Use case: Turn the cycle's sentiment into trade decisions.

Uses the deterministic rule policy, or, when enabled, asks the reasoning
service for proposals first and falls back to the rules when the reply
is unusable.

Input:  CycleState with prices and sentiments
Output: CycleState (DECISIONS_MADE, or DECISION_MAKING_FAILED with no decisions)
"""

import logging
from typing import Optional

from ascendancy.domain.trading.decision_engine import DecisionEngine, DecisionRules
from ascendancy.domain.trading.entities import CycleState, CycleStatus
from ascendancy.domain.trading.errors import TradingDomainError
from ascendancy.domain.trading.ports import ReasoningPort, TradeRepository
from ascendancy.domain.trading.reasoning_parser import (
    TradeProposal,
    parse_trade_proposals,
)

logger = logging.getLogger(__name__)

RECENT_TRADES_IN_PROMPT = 10


class MakeDecisionsUseCase:
    """Produces one decision per tracked instrument."""

    def __init__(
        self,
        engine: DecisionEngine,
        reasoning: Optional[ReasoningPort] = None,
        trade_repo: Optional[TradeRepository] = None,
        use_delegated_policy: bool = False,
    ) -> None:
        """
        Args:
            engine: Rule policy, risk exits and the activity floor.
            reasoning: Reasoning service for the delegated policy.
            trade_repo: Source of recent trades quoted to the reasoning service.
            use_delegated_policy: Ask the reasoning service for proposals.
        """
        self._engine = engine
        self._reasoning = reasoning
        self._trade_repo = trade_repo
        self._use_delegated = use_delegated_policy and reasoning is not None

    def execute(
        self, state: CycleState, rules: Optional[DecisionRules] = None
    ) -> CycleState:
        """Decide for one agent.

        Args:
            state: Cycle state with prices and sentiments.
            rules: The agent's own policy rules, replacing the engine's.
        """
        engine = DecisionEngine(rules) if rules is not None else self._engine
        watch_list = [i.symbol for i in state.watch_list]
        try:
            proposals = self._proposals(state) if self._use_delegated else None
            decisions = engine.decide(
                portfolio=state.portfolio,
                sentiments=state.sentiments,
                prices=state.prices,
                watch_list=watch_list,
                as_of=state.as_of,
                proposals=proposals,
            )
        except Exception as exc:
            logger.exception("Decision making failed, no trades this cycle")
            return state.fail(
                CycleStatus.DECISION_MAKING_FAILED,
                f"Decision making failed: {exc}",
                decisions=(),
            )

        for decision in decisions:
            if decision.is_actionable:
                logger.info(
                    "Decision %s %d %s @ %s [%s]: %s",
                    decision.action.value,
                    decision.quantity,
                    decision.symbol,
                    decision.price,
                    decision.origin.value,
                    decision.reasoning,
                )
        return state.advance(CycleStatus.DECISIONS_MADE, decisions=tuple(decisions))

    def _proposals(self, state: CycleState) -> Optional[list[TradeProposal]]:
        """Ask the reasoning service; None means "use the rule policy"."""
        try:
            reply = self._reasoning.propose_trades(
                self._portfolio_summary(state), self._sentiment_summary(state)
            )
        except TradingDomainError as exc:
            logger.warning("Delegated policy unavailable: %s", exc.message)
            return None
        return parse_trade_proposals(reply)

    def _portfolio_summary(self, state: CycleState) -> str:
        portfolio = state.portfolio
        lines = [
            f"Cash: ${portfolio.cash:.2f}",
            f"Total value: ${portfolio.total_value(state.prices):.2f}",
            "Positions:",
        ]
        if not portfolio.positions:
            lines.append("  (none)")
        for symbol, position in sorted(portfolio.positions.items()):
            price = state.prices.get(symbol, position.last_price)
            lines.append(
                f"  {symbol}: {position.quantity} shares, avg cost ${position.average_cost:.2f}, "
                f"price ${price:.2f}, held {position.holding_days(state.as_of)} days"
            )

        if self._trade_repo is not None:
            try:
                recent = self._trade_repo.list_trades(
                    agent_id=state.agent_id, limit=RECENT_TRADES_IN_PROMPT
                )
            except TradingDomainError as exc:
                logger.warning("Recent trades unavailable for prompt: %s", exc.message)
                recent = []
            if recent:
                lines.append("Recent trades:")
                lines.extend(
                    f"  {t.executed_at:%Y-%m-%d} {t.action.value} {t.quantity} {t.symbol} @ ${t.price:.2f}"
                    for t in recent
                )
        return "\n".join(lines)

    @staticmethod
    def _sentiment_summary(state: CycleState) -> str:
        lines = []
        for instrument in state.watch_list:
            symbol = instrument.symbol
            sentiment = state.sentiments.get(symbol)
            price = state.prices.get(symbol)
            if sentiment is None or price is None:
                continue
            lines.append(
                f"{symbol}: price ${price:.2f}, sentiment {sentiment.score:.3f}, "
                f"confidence {sentiment.confidence:.2f} ({sentiment.rationale})"
            )
        return "\n".join(lines)
