"""
Domain service: Simulated portfolio ledger.

Validates trade decisions against cash, holdings and concentration
limits, applies accepted ones and revalues the portfolio.
No framework imports. No IO. Portfolios are never mutated: every
operation returns a new one.

Invariants:
    - cash never goes negative
    - a position's quantity and average cost change together
    - a position is removed when its quantity reaches zero
    - a rejected decision leaves the portfolio untouched
"""

import logging
from dataclasses import dataclass, replace
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Mapping, Optional, Sequence

from ascendancy.domain.trading.entities import (
    AgentRecord,
    DailyPerformanceSnapshot,
    ExecutedTrade,
    Portfolio,
    Position,
    TradeAction,
    TradeDecision,
)
from ascendancy.domain.trading.errors import (
    ConcentrationLimitError,
    InsufficientFundsError,
    InsufficientSharesError,
    TradeRejectedError,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_POSITION_FRACTION = Decimal("0.20")
COST_PRECISION = Decimal("0.0001")


@dataclass(frozen=True)
class LedgerResult:
    """Outcome of applying one decision."""

    accepted: bool
    portfolio: Portfolio
    trade: Optional[ExecutedTrade] = None
    reason: str = ""


class PortfolioLedger:
    """Applies validated decisions to a portfolio."""

    def __init__(
        self, max_position_fraction: Decimal = DEFAULT_MAX_POSITION_FRACTION
    ) -> None:
        """
        Args:
            max_position_fraction: Largest share of total portfolio value a
                single position may reach through a BUY.
        """
        self._max_position_fraction = Decimal(str(max_position_fraction))

    def validate(
        self,
        decision: TradeDecision,
        portfolio: Portfolio,
        prices: Optional[Mapping[str, Decimal]] = None,
    ) -> None:
        """Check a decision against the portfolio.

        Raises:
            InsufficientFundsError: BUY cost exceeds cash.
            ConcentrationLimitError: BUY would push the position past the cap.
            InsufficientSharesError: SELL exceeds the held quantity.
            TradeRejectedError: HOLD or zero quantity.
        """
        if not decision.is_actionable:
            raise TradeRejectedError(decision.symbol, "not actionable")

        held = portfolio.position(decision.symbol)
        held_quantity = held.quantity if held else 0

        if decision.action is TradeAction.SELL:
            if held_quantity < decision.quantity:
                raise InsufficientSharesError(
                    decision.symbol, decision.quantity, held_quantity
                )
            return

        cost = decision.value
        if cost > portfolio.cash:
            raise InsufficientFundsError(
                decision.symbol, str(cost), str(portfolio.cash)
            )

        marks = dict(prices or {})
        marks[decision.symbol] = decision.price
        limit = portfolio.total_value(marks) * self._max_position_fraction
        resulting = (held_quantity + decision.quantity) * decision.price
        if resulting > limit:
            raise ConcentrationLimitError(
                decision.symbol,
                str(resulting),
                str(limit.quantize(COST_PRECISION)),
            )

    def execute(
        self,
        decision: TradeDecision,
        portfolio: Portfolio,
        executed_at: datetime,
        prices: Optional[Mapping[str, Decimal]] = None,
    ) -> LedgerResult:
        """Validate and apply one decision.

        Rejections are logged and returned, never raised.

        Args:
            decision: The decision to apply.
            portfolio: Portfolio before the trade.
            executed_at: Timestamp recorded on the trade.
            prices: Current prices, used for the concentration check.

        Returns:
            LedgerResult with the new portfolio and trade when accepted,
            or the unchanged portfolio and the reason when rejected.
        """
        try:
            self.validate(decision, portfolio, prices)
        except TradeRejectedError as exc:
            logger.warning(
                "Rejected %s %d %s: %s",
                decision.action.value,
                decision.quantity,
                decision.symbol,
                exc.reason,
            )
            return LedgerResult(accepted=False, portfolio=portfolio, reason=exc.reason)

        realized: Optional[Decimal] = None
        if decision.action is TradeAction.BUY:
            new_portfolio = self._apply_buy(decision, portfolio, executed_at.date())
        else:
            new_portfolio, realized = self._apply_sell(decision, portfolio)

        trade = ExecutedTrade(
            agent_id=portfolio.agent_id,
            symbol=decision.symbol,
            action=decision.action,
            quantity=decision.quantity,
            price=decision.price,
            total_value=decision.value,
            reasoning=decision.reasoning,
            confidence=decision.confidence,
            sentiment_score=decision.sentiment_score,
            executed_at=executed_at,
            realized_pnl=realized,
        )
        logger.info(
            "Executed %s %d %s @ %s (cash %s -> %s)",
            trade.action.value,
            trade.quantity,
            trade.symbol,
            trade.price,
            portfolio.cash,
            new_portfolio.cash,
        )
        return LedgerResult(accepted=True, portfolio=new_portfolio, trade=trade)

    @staticmethod
    def _apply_buy(
        decision: TradeDecision, portfolio: Portfolio, trade_date: date
    ) -> Portfolio:
        positions = dict(portfolio.positions)
        held = positions.get(decision.symbol)

        if held is None:
            positions[decision.symbol] = Position(
                symbol=decision.symbol,
                quantity=decision.quantity,
                average_cost=decision.price,
                last_price=decision.price,
                opened_at=trade_date,
                last_bought_at=trade_date,
            )
        else:
            quantity = held.quantity + decision.quantity
            average = (
                held.average_cost * held.quantity + decision.value
            ) / quantity
            positions[decision.symbol] = replace(
                held,
                quantity=quantity,
                average_cost=average.quantize(COST_PRECISION, rounding=ROUND_HALF_UP),
                last_price=decision.price,
                last_bought_at=trade_date,
            )

        return replace(
            portfolio, cash=portfolio.cash - decision.value, positions=positions
        )

    @staticmethod
    def _apply_sell(
        decision: TradeDecision, portfolio: Portfolio
    ) -> tuple[Portfolio, Decimal]:
        positions = dict(portfolio.positions)
        held = positions[decision.symbol]
        realized = (decision.price - held.average_cost) * decision.quantity

        remaining = held.quantity - decision.quantity
        if remaining == 0:
            del positions[decision.symbol]
        else:
            positions[decision.symbol] = replace(
                held, quantity=remaining, last_price=decision.price
            )

        new_portfolio = replace(
            portfolio, cash=portfolio.cash + decision.value, positions=positions
        )
        return new_portfolio, realized

    def revalue(
        self, portfolio: Portfolio, prices: Mapping[str, Decimal]
    ) -> Portfolio:
        """Mark every position to the current price when one is known.

        A held instrument without a current price keeps its last known
        price; this degraded valuation is logged, never fatal.
        """
        positions: dict[str, Position] = {}
        for symbol, position in portfolio.positions.items():
            price = prices.get(symbol)
            if price is None:
                logger.warning(
                    "Degraded valuation for %s: no current price, using last known %s",
                    symbol,
                    position.last_price,
                )
                positions[symbol] = position
            else:
                positions[symbol] = replace(position, last_price=price)
        return replace(portfolio, positions=positions)


def build_snapshot(
    portfolio: Portfolio,
    as_of: date,
    previous_value: Decimal,
) -> DailyPerformanceSnapshot:
    """End-of-day snapshot from a revalued portfolio.

    Args:
        portfolio: Portfolio already marked to current prices.
        as_of: Snapshot date.
        previous_value: Prior snapshot's value, or starting cash.
    """
    value = portfolio.total_value()
    daily_return = float((value - previous_value) / previous_value) if previous_value > 0 else 0.0
    return DailyPerformanceSnapshot(
        agent_id=portfolio.agent_id,
        date=as_of,
        portfolio_value=value,
        cash=portfolio.cash,
        daily_return=daily_return,
        positions={s: p.quantity for s, p in portfolio.positions.items()},
    )


def update_agent_totals(
    agent: AgentRecord,
    portfolio: Portfolio,
    trades: Sequence[ExecutedTrade],
    updated_at: datetime,
) -> AgentRecord:
    """Fold one cycle's trades and valuation into the agent record."""
    sells = [t for t in trades if t.action is TradeAction.SELL]
    winners = [t for t in sells if t.realized_pnl is not None and t.realized_pnl > 0]
    return replace(
        agent,
        cash=portfolio.cash,
        current_value=portfolio.total_value(),
        total_trades=agent.total_trades + len(trades),
        closed_trades=agent.closed_trades + len(sells),
        winning_trades=agent.winning_trades + len(winners),
        updated_at=updated_at,
    )
