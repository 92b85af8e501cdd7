"""
Domain service: Trade decisions.

Turns aggregated sentiment, current prices and the portfolio into trade
decisions. Pure business logic: no IO, no frameworks.

Pipeline:
    1. Risk exits on held instruments (off the watch-list, or without
       sentiment data for too long).
    2. Either the delegated proposals (when any survive filtering) or the
       deterministic rule policy.
    3. Minimum-activity guarantee: fallback BUY / partial-profit SELL
       decisions until at least ``min_actions`` non-HOLD decisions exist.

Cash and share sufficiency are not checked here; the ledger drops
infeasible decisions.
"""

import logging
import math
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Mapping, Optional, Sequence

from ascendancy.domain.trading.entities import (
    AggregatedSentiment,
    DecisionOrigin,
    Portfolio,
    Position,
    TradeAction,
    TradeDecision,
)
from ascendancy.domain.trading.reasoning_parser import TradeProposal

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


@dataclass(frozen=True)
class DecisionRules:
    """Thresholds and sizing of the decision policy.

    Attributes:
        buy_threshold: Sentiment at or above which a BUY is considered.
        sell_threshold: Sentiment at or below which a held position is sold.
        neutral_low: Lower bound of the neutral band.
        neutral_high: Upper bound of the neutral band.
        buy_cash_fraction: Share of cash committed to a rule BUY.
        max_position_fraction_for_buy: No new BUY once the position is worth
            more than this share of total value.
        neutral_exit_days: Holding period after which a neutral position is halved.
        stale_data_exit_days: Holding period after which a position without
            sentiment data is liquidated.
        watch_list_exit_days: Minimum holding period before an off-list
            position is liquidated.
        min_actions: Floor on non-HOLD decisions per cycle.
        fallback_buy_cash_fraction: Share of cash committed to a fallback BUY.
        fallback_sell_fraction: Share of a holding sold by a fallback SELL.
    """

    buy_threshold: float = 0.70
    sell_threshold: float = 0.30
    neutral_low: float = 0.40
    neutral_high: float = 0.60
    buy_cash_fraction: Decimal = Decimal("0.15")
    max_position_fraction_for_buy: Decimal = Decimal("0.15")
    neutral_exit_days: int = 7
    stale_data_exit_days: int = 3
    watch_list_exit_days: int = 1
    min_actions: int = 2
    fallback_buy_cash_fraction: Decimal = Decimal("0.10")
    fallback_sell_fraction: Decimal = Decimal("0.30")


def _conviction(score: float) -> float:
    """Distance from neutral, scaled to [0, 1]."""
    return min(1.0, abs(score - 0.5) * 2)


class DecisionEngine:
    """Produces one decision per instrument for a cycle."""

    def __init__(self, rules: Optional[DecisionRules] = None) -> None:
        self._rules = rules or DecisionRules()

    @property
    def rules(self) -> DecisionRules:
        return self._rules

    def decide(
        self,
        portfolio: Portfolio,
        sentiments: Mapping[str, AggregatedSentiment],
        prices: Mapping[str, Decimal],
        watch_list: Sequence[str],
        as_of: date,
        proposals: Optional[Sequence[TradeProposal]] = None,
    ) -> list[TradeDecision]:
        """Decide what to do with every tracked instrument.

        Args:
            portfolio: Portfolio at the start of the cycle.
            sentiments: Aggregated sentiment per symbol.
            prices: Current prices; symbols without one are not traded
                (held ones may still be exited at their last known price).
            watch_list: Symbols currently tracked.
            as_of: Cycle date, used for holding periods.
            proposals: Parsed delegated proposals, or None for the rule policy.

        Returns:
            Decisions in order: risk exits, policy decisions, fallbacks.
        """
        decisions: dict[str, TradeDecision] = {}

        for decision in self._risk_exits(portfolio, sentiments, prices, watch_list, as_of):
            decisions[decision.symbol] = decision

        delegated: list[TradeDecision] = []
        if proposals is not None:
            delegated = self._from_proposals(
                proposals, portfolio, sentiments, prices, watch_list
            )
            if not delegated:
                logger.info("No usable delegated proposals, using rule policy")

        policy = delegated or self._rule_policy(
            portfolio, sentiments, prices, watch_list, as_of
        )
        for decision in policy:
            decisions.setdefault(decision.symbol, decision)

        self._ensure_minimum_activity(decisions, portfolio, sentiments, prices, watch_list)

        actionable = sum(1 for d in decisions.values() if d.is_actionable)
        logger.info(
            "Decided %d actions out of %d instruments (%s policy)",
            actionable,
            len(decisions),
            "delegated" if delegated else "rule",
        )
        return list(decisions.values())

    def _risk_exits(
        self,
        portfolio: Portfolio,
        sentiments: Mapping[str, AggregatedSentiment],
        prices: Mapping[str, Decimal],
        watch_list: Sequence[str],
        as_of: date,
    ) -> list[TradeDecision]:
        exits: list[TradeDecision] = []
        for symbol, position in portfolio.positions.items():
            held_days = position.holding_days(as_of)
            price = prices.get(symbol, position.last_price)
            sentiment = sentiments.get(symbol)
            score = sentiment.score if sentiment else 0.5

            if symbol not in watch_list and held_days >= self._rules.watch_list_exit_days:
                reasoning = f"{symbol} is no longer on the watch-list"
            elif (sentiment is None or sentiment.is_fallback) and held_days > self._rules.stale_data_exit_days:
                reasoning = f"No sentiment data for {symbol}, held {held_days} days"
            else:
                continue

            exits.append(
                TradeDecision(
                    symbol=symbol,
                    action=TradeAction.SELL,
                    quantity=position.quantity,
                    price=price,
                    reasoning=reasoning,
                    confidence=1.0,
                    sentiment_score=score,
                    origin=DecisionOrigin.RISK_EXIT,
                )
            )
        return exits

    def _rule_policy(
        self,
        portfolio: Portfolio,
        sentiments: Mapping[str, AggregatedSentiment],
        prices: Mapping[str, Decimal],
        watch_list: Sequence[str],
        as_of: date,
    ) -> list[TradeDecision]:
        rules = self._rules
        total_value = portfolio.total_value(prices)
        decisions: list[TradeDecision] = []

        for symbol in watch_list:
            price = prices.get(symbol)
            if price is None or price <= 0:
                continue

            sentiment = sentiments.get(symbol)
            score = sentiment.score if sentiment else 0.5
            position = portfolio.position(symbol)
            action, quantity, reasoning = TradeAction.HOLD, 0, f"Sentiment {score:.2f} inside hold range"

            if score >= rules.buy_threshold:
                held_value = position.market_value(price) if position else ZERO
                if portfolio.cash <= 0:
                    reasoning = f"Bullish sentiment {score:.2f} but no cash available"
                elif held_value > total_value * rules.max_position_fraction_for_buy:
                    reasoning = f"Bullish sentiment {score:.2f} but position already at size limit"
                else:
                    action = TradeAction.BUY
                    quantity = max(1, math.floor(portfolio.cash * rules.buy_cash_fraction / price))
                    reasoning = f"Bullish sentiment {score:.2f}"
            elif score <= rules.sell_threshold and position:
                action, quantity = TradeAction.SELL, position.quantity
                reasoning = f"Bearish sentiment {score:.2f}, closing position"
            elif (
                position
                and rules.neutral_low <= score <= rules.neutral_high
                and position.holding_days(as_of) > rules.neutral_exit_days
            ):
                action = TradeAction.SELL
                quantity = math.ceil(position.quantity / 2)
                reasoning = (
                    f"Neutral sentiment {score:.2f} after {position.holding_days(as_of)} days, "
                    "taking half off"
                )

            decisions.append(
                TradeDecision(
                    symbol=symbol,
                    action=action,
                    quantity=quantity,
                    price=price,
                    reasoning=reasoning,
                    confidence=_conviction(score),
                    sentiment_score=score,
                    origin=DecisionOrigin.RULE,
                )
            )
        return decisions

    @staticmethod
    def _from_proposals(
        proposals: Sequence[TradeProposal],
        portfolio: Portfolio,
        sentiments: Mapping[str, AggregatedSentiment],
        prices: Mapping[str, Decimal],
        watch_list: Sequence[str],
    ) -> list[TradeDecision]:
        tracked = set(watch_list) | set(portfolio.positions)
        decisions: list[TradeDecision] = []
        seen: set[str] = set()

        for proposal in proposals:
            if proposal.symbol not in tracked:
                logger.warning("Discarding proposal for untracked symbol %s", proposal.symbol)
                continue
            price = prices.get(proposal.symbol)
            if price is None:
                logger.warning("Discarding proposal for %s: no current price", proposal.symbol)
                continue
            if proposal.symbol in seen:
                continue
            seen.add(proposal.symbol)

            sentiment = sentiments.get(proposal.symbol)
            decisions.append(
                TradeDecision(
                    symbol=proposal.symbol,
                    action=proposal.action,
                    quantity=proposal.quantity,
                    price=price,
                    reasoning=proposal.reasoning or "Delegated proposal",
                    confidence=proposal.confidence,
                    sentiment_score=sentiment.score if sentiment else 0.5,
                    origin=DecisionOrigin.DELEGATED,
                )
            )
        return decisions

    def _ensure_minimum_activity(
        self,
        decisions: dict[str, TradeDecision],
        portfolio: Portfolio,
        sentiments: Mapping[str, AggregatedSentiment],
        prices: Mapping[str, Decimal],
        watch_list: Sequence[str],
    ) -> None:
        """Top up ``decisions`` in place with fallback trades."""
        rules = self._rules
        want_buy = True

        while sum(1 for d in decisions.values() if d.is_actionable) < rules.min_actions:
            buy = self._fallback_buy(decisions, portfolio, sentiments, prices, watch_list)
            sell = self._fallback_sell(decisions, portfolio, sentiments, prices)
            pick = (buy or sell) if want_buy else (sell or buy)
            if pick is None:
                logger.info("Minimum activity not reachable: cash and holdings exhausted")
                return
            logger.info(
                "Fallback %s %d %s to meet minimum activity",
                pick.action.value,
                pick.quantity,
                pick.symbol,
            )
            decisions[pick.symbol] = pick
            want_buy = pick.action is not TradeAction.BUY

    def _fallback_buy(
        self,
        decisions: Mapping[str, TradeDecision],
        portfolio: Portfolio,
        sentiments: Mapping[str, AggregatedSentiment],
        prices: Mapping[str, Decimal],
        watch_list: Sequence[str],
    ) -> Optional[TradeDecision]:
        # Only BUYs the cash can actually fund reduce what is left.
        cash = portfolio.cash
        for d in decisions.values():
            if d.is_actionable and d.action is TradeAction.BUY and d.value <= cash:
                cash -= d.value
        if cash <= 0:
            return None

        candidates = [
            s for s in watch_list
            if ZERO < prices.get(s, ZERO) <= cash
            and not (s in decisions and decisions[s].is_actionable)
        ]
        if not candidates:
            return None

        def _score(symbol: str) -> float:
            sentiment = sentiments.get(symbol)
            return sentiment.score if sentiment else 0.5

        symbol = max(candidates, key=_score)
        price = prices[symbol]
        score = _score(symbol)
        return TradeDecision(
            symbol=symbol,
            action=TradeAction.BUY,
            quantity=max(1, math.floor(cash * self._rules.fallback_buy_cash_fraction / price)),
            price=price,
            reasoning=f"Fallback buy of best-scoring instrument (sentiment {score:.2f})",
            confidence=0.4,
            sentiment_score=score,
            origin=DecisionOrigin.FALLBACK,
        )

    def _fallback_sell(
        self,
        decisions: Mapping[str, TradeDecision],
        portfolio: Portfolio,
        sentiments: Mapping[str, AggregatedSentiment],
        prices: Mapping[str, Decimal],
    ) -> Optional[TradeDecision]:
        candidates: list[Position] = [
            p for s, p in portfolio.positions.items()
            if p.quantity > 0 and not (s in decisions and decisions[s].is_actionable)
        ]
        if not candidates:
            return None

        def _gain(position: Position) -> Decimal:
            if position.average_cost <= 0:
                return ZERO
            mark = prices.get(position.symbol, position.last_price)
            return (mark - position.average_cost) / position.average_cost

        position = max(candidates, key=_gain)
        gain = _gain(position)
        price = prices.get(position.symbol, position.last_price)
        quantity = min(
            position.quantity,
            max(1, math.ceil(position.quantity * self._rules.fallback_sell_fraction)),
        )
        sentiment = sentiments.get(position.symbol)
        return TradeDecision(
            symbol=position.symbol,
            action=TradeAction.SELL,
            quantity=quantity,
            price=price,
            reasoning=(
                f"Fallback partial profit-taking ({gain:+.1%})"
                if gain > 0
                else f"Fallback partial reduction of a position at {gain:+.1%}"
            ),
            confidence=0.3,
            sentiment_score=sentiment.score if sentiment else 0.5,
            origin=DecisionOrigin.FALLBACK,
        )
