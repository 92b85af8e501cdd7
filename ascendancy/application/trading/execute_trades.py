"""
Use case: Apply the cycle's decisions to the portfolio.

SELLs run before BUYs so that freed cash is available. At most
``max_trades`` decisions are accepted per cycle; the rest are recorded as
rejected. The portfolio is revalued at current prices afterwards.

Input:  CycleState with decisions
Output: CycleState (TRADES_EXECUTED, or TRADE_EXECUTION_FAILED with the
        portfolio unchanged and no trades)
"""

import logging
from datetime import datetime

from ascendancy.domain.trading.entities import (
    CycleState,
    CycleStatus,
    ExecutedTrade,
    RejectedDecision,
    TradeAction,
)
from ascendancy.domain.trading.ledger import PortfolioLedger

logger = logging.getLogger(__name__)


class ExecuteTradesUseCase:
    """Validates and applies decisions through the ledger."""

    def __init__(self, ledger: PortfolioLedger, max_trades: int = 5) -> None:
        self._ledger = ledger
        self._max_trades = max_trades

    def execute(self, state: CycleState, executed_at: datetime) -> CycleState:
        """Apply actionable decisions in SELL-then-BUY order.

        Args:
            state: Cycle state carrying decisions and prices.
            executed_at: Timestamp recorded on every trade.
        """
        actionable = [d for d in state.decisions if d.is_actionable]
        ordered = [d for d in actionable if d.action is TradeAction.SELL] + [
            d for d in actionable if d.action is TradeAction.BUY
        ]

        try:
            portfolio = state.portfolio
            trades: list[ExecutedTrade] = []
            rejections: list[RejectedDecision] = []

            for decision in ordered:
                if len(trades) >= self._max_trades:
                    rejections.append(RejectedDecision(decision, "trade cap reached"))
                    continue
                result = self._ledger.execute(
                    decision, portfolio, executed_at, prices=state.prices
                )
                if result.accepted:
                    portfolio = result.portfolio
                    trades.append(result.trade)
                else:
                    rejections.append(RejectedDecision(decision, result.reason))

            portfolio = self._ledger.revalue(portfolio, state.prices)
        except Exception as exc:
            logger.exception("Trade execution failed, portfolio left unchanged")
            return state.fail(
                CycleStatus.TRADE_EXECUTION_FAILED,
                f"Trade execution failed: {exc}",
                portfolio=self._ledger.revalue(state.portfolio, state.prices),
                trades=(),
            )

        logger.info(
            "Executed %d trades, rejected %d; cash %s, value %s",
            len(trades),
            len(rejections),
            portfolio.cash,
            portfolio.total_value(),
        )
        return state.advance(
            CycleStatus.TRADES_EXECUTED,
            portfolio=portfolio,
            trades=tuple(trades),
            rejections=tuple(rejections),
        )
