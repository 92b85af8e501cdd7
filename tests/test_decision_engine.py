"""
Tests for the decision engine.

Rule policy thresholds, risk exits, the minimum-activity floor and the
delegated proposal path.
"""

from decimal import Decimal

import pytest

from ascendancy.domain.trading.aggregator import SentimentAggregator
from ascendancy.domain.trading.decision_engine import DecisionEngine, DecisionRules
from ascendancy.domain.trading.entities import DecisionOrigin, TradeAction
from ascendancy.domain.trading.ledger import PortfolioLedger
from ascendancy.domain.trading.reasoning_parser import TradeProposal

from conftest import AS_OF, NOW, make_portfolio, make_position, make_sentiment


def _prices(**prices: str) -> dict[str, Decimal]:
    return {s: Decimal(p) for s, p in prices.items()}


def _by_symbol(decisions):
    return {d.symbol: d for d in decisions}


class TestRulePolicy:
    """Tests for the deterministic threshold policy."""

    def test_bullish_buy_and_bearish_sell(self) -> None:
        """AAPL at 0.8 is bought with 15% of cash; TSLA at 0.2 is sold in full."""
        portfolio = make_portfolio("100000", make_position("TSLA", 50, "200"))
        sentiments = {
            "AAPL": make_sentiment("AAPL", 0.8),
            "TSLA": make_sentiment("TSLA", 0.2),
        }

        decisions = _by_symbol(
            DecisionEngine().decide(
                portfolio, sentiments, _prices(AAPL="150", TSLA="180"), ["AAPL", "TSLA"], AS_OF
            )
        )

        assert decisions["AAPL"].action is TradeAction.BUY
        assert decisions["AAPL"].quantity == 100
        assert decisions["AAPL"].confidence == pytest.approx(0.6)
        assert decisions["TSLA"].action is TradeAction.SELL
        assert decisions["TSLA"].quantity == 50
        assert decisions["TSLA"].origin is DecisionOrigin.RULE

    def test_no_buy_when_position_already_large(self) -> None:
        # 200 x 100 = 20000, above 15% of 100000
        portfolio = make_portfolio("80000", make_position("AAPL", 200, "100"))
        sentiments = {"AAPL": make_sentiment("AAPL", 0.9), "MSFT": make_sentiment("MSFT", 0.5)}

        decisions = _by_symbol(
            DecisionEngine(DecisionRules(min_actions=0)).decide(
                portfolio, sentiments, _prices(AAPL="100", MSFT="300"), ["AAPL", "MSFT"], AS_OF
            )
        )

        assert decisions["AAPL"].action is TradeAction.HOLD
        assert "size limit" in decisions["AAPL"].reasoning

    def test_bearish_without_position_holds(self) -> None:
        decisions = DecisionEngine(DecisionRules(min_actions=0)).decide(
            make_portfolio(), {"AAPL": make_sentiment("AAPL", 0.1)}, _prices(AAPL="150"),
            ["AAPL"], AS_OF,
        )

        assert decisions[0].action is TradeAction.HOLD

    def test_neutral_position_held_too_long_is_halved(self) -> None:
        portfolio = make_portfolio("1000", make_position("AAPL", 11, "100", held_days=8))

        decisions = _by_symbol(
            DecisionEngine(DecisionRules(min_actions=0)).decide(
                portfolio, {"AAPL": make_sentiment("AAPL", 0.5)}, _prices(AAPL="100"),
                ["AAPL"], AS_OF,
            )
        )

        assert decisions["AAPL"].action is TradeAction.SELL
        assert decisions["AAPL"].quantity == 6

    def test_symbol_without_price_is_not_decided(self) -> None:
        decisions = DecisionEngine(DecisionRules(min_actions=0)).decide(
            make_portfolio(), {"AAPL": make_sentiment("AAPL", 0.9)}, {}, ["AAPL"], AS_OF
        )

        assert decisions == []


class TestRiskExits:
    """Tests for watch-list and stale-data exits."""

    def test_off_watch_list_position_is_liquidated(self) -> None:
        portfolio = make_portfolio("1000", make_position("ZM", 20, "70", held_days=2))

        decisions = _by_symbol(
            DecisionEngine().decide(
                portfolio, {}, _prices(ZM="65", AAPL="150"), ["AAPL"], AS_OF
            )
        )

        assert decisions["ZM"].action is TradeAction.SELL
        assert decisions["ZM"].quantity == 20
        assert decisions["ZM"].origin is DecisionOrigin.RISK_EXIT

    def test_stale_data_exit_after_holding_period(self) -> None:
        fallback = SentimentAggregator().aggregate("AAPL", [])
        stale = make_portfolio("1000", make_position("AAPL", 10, "100", held_days=5))
        fresh = make_portfolio("1000", make_position("AAPL", 10, "100", held_days=2))
        engine = DecisionEngine(DecisionRules(min_actions=0))

        stale_decisions = _by_symbol(
            engine.decide(stale, {"AAPL": fallback}, _prices(AAPL="100"), ["AAPL"], AS_OF)
        )
        fresh_decisions = _by_symbol(
            engine.decide(fresh, {"AAPL": fallback}, _prices(AAPL="100"), ["AAPL"], AS_OF)
        )

        assert stale_decisions["AAPL"].origin is DecisionOrigin.RISK_EXIT
        assert stale_decisions["AAPL"].quantity == 10
        assert fresh_decisions["AAPL"].action is TradeAction.HOLD

    def test_exit_uses_last_price_when_quote_missing(self) -> None:
        portfolio = make_portfolio("1000", make_position("ZM", 5, "70", last_price="66"))

        decisions = _by_symbol(
            DecisionEngine().decide(portfolio, {}, _prices(AAPL="150"), ["AAPL"], AS_OF)
        )

        assert decisions["ZM"].price == Decimal("66")


class TestMinimumActivity:
    """Tests for the fallback trades that keep the agent active."""

    def test_all_neutral_triggers_two_fallback_buys(self) -> None:
        sentiments = {"AAPL": make_sentiment("AAPL", 0.5), "MSFT": make_sentiment("MSFT", 0.5)}

        decisions = DecisionEngine().decide(
            make_portfolio("100000"), sentiments, _prices(AAPL="150", MSFT="300"),
            ["AAPL", "MSFT"], AS_OF,
        )
        actions = {d.symbol: d for d in decisions if d.is_actionable}

        assert len(actions) == 2
        assert actions["AAPL"].quantity == 66
        # remaining cash after the first fallback: 100000 - 66 x 150
        assert actions["MSFT"].quantity == 30
        assert all(d.origin is DecisionOrigin.FALLBACK for d in actions.values())

    def test_fallback_alternates_with_partial_sell(self) -> None:
        portfolio = make_portfolio(
            "100000",
            make_position("AAPL", 10, "100"),
            make_position("MSFT", 10, "300"),
        )
        sentiments = {"AAPL": make_sentiment("AAPL", 0.5), "MSFT": make_sentiment("MSFT", 0.5)}

        decisions = DecisionEngine().decide(
            portfolio, sentiments, _prices(AAPL="150", MSFT="290"), ["AAPL", "MSFT"], AS_OF
        )
        actions = {d.symbol: d for d in decisions if d.is_actionable}

        assert actions["AAPL"].action is TradeAction.BUY
        # MSFT is the only holding without an actionable decision
        assert actions["MSFT"].action is TradeAction.SELL
        assert actions["MSFT"].quantity == 3
        assert "reduction" in actions["MSFT"].reasoning

    def test_profitable_holding_is_trimmed_as_profit_taking(self) -> None:
        portfolio = make_portfolio("0", make_position("AAPL", 10, "100"))

        decisions = DecisionEngine().decide(
            portfolio, {"AAPL": make_sentiment("AAPL", 0.5)}, _prices(AAPL="150"),
            ["AAPL"], AS_OF,
        )
        sell = next(d for d in decisions if d.is_actionable)

        assert sell.quantity == 3
        assert sell.reasoning.startswith("Fallback partial profit-taking (+50.0%")

    def test_unaffordable_rule_buy_does_not_block_fallback(self) -> None:
        """One share of A costs more than all the cash; B is still affordable."""
        sentiments = {"A": make_sentiment("A", 0.9), "B": make_sentiment("B", 0.5)}
        portfolio = make_portfolio("100")

        decisions = DecisionEngine().decide(
            portfolio, sentiments, _prices(A="500", B="10"), ["A", "B"], AS_OF
        )
        actions = {d.symbol: d for d in decisions if d.is_actionable}

        assert len(actions) >= 2
        assert actions["A"].quantity == 1
        assert actions["B"].action is TradeAction.BUY
        assert actions["B"].origin is DecisionOrigin.FALLBACK

        ledger = PortfolioLedger()
        accepted = [
            ledger.execute(d, portfolio, NOW).accepted for d in actions.values()
        ]
        assert accepted == [False, True]

    def test_fallback_skips_instruments_costing_more_than_cash(self) -> None:
        decisions = DecisionEngine().decide(
            make_portfolio("100"), {"A": make_sentiment("A", 0.5)},
            _prices(A="500"), ["A"], AS_OF,
        )

        assert not any(d.is_actionable for d in decisions)

    def test_floor_not_reachable_without_cash_or_holdings(self) -> None:
        decisions = DecisionEngine().decide(
            make_portfolio("0"), {"AAPL": make_sentiment("AAPL", 0.5)},
            _prices(AAPL="150"), ["AAPL"], AS_OF,
        )

        assert not any(d.is_actionable for d in decisions)


class TestDelegatedPolicy:
    """Tests for proposals coming from the reasoning service."""

    def test_valid_proposals_replace_rule_policy(self) -> None:
        proposals = [
            TradeProposal("MSFT", TradeAction.BUY, 5, "cloud growth", 0.7),
            TradeProposal("AAPL", TradeAction.BUY, 3, "services", 0.6),
        ]
        sentiments = {"AAPL": make_sentiment("AAPL", 0.9), "MSFT": make_sentiment("MSFT", 0.5)}

        decisions = _by_symbol(
            DecisionEngine().decide(
                make_portfolio(), sentiments, _prices(AAPL="150", MSFT="300"),
                ["AAPL", "MSFT"], AS_OF, proposals=proposals,
            )
        )

        assert decisions["AAPL"].quantity == 3
        assert decisions["MSFT"].quantity == 5
        assert decisions["MSFT"].origin is DecisionOrigin.DELEGATED
        assert decisions["MSFT"].price == Decimal("300")

    def test_untracked_or_unpriced_proposals_fall_back_to_rules(self) -> None:
        proposals = [
            TradeProposal("GME", TradeAction.BUY, 5, "", 0.7),
            TradeProposal("MSFT", TradeAction.BUY, 5, "", 0.7),
        ]

        decisions = _by_symbol(
            DecisionEngine().decide(
                make_portfolio(), {"AAPL": make_sentiment("AAPL", 0.8)}, _prices(AAPL="150"),
                ["AAPL", "MSFT"], AS_OF, proposals=proposals,
            )
        )

        assert "GME" not in decisions
        assert decisions["AAPL"].origin is DecisionOrigin.RULE
        assert decisions["AAPL"].quantity == 100


# ===================================================================
# Decision to ledger
# ===================================================================


class TestBearishExitScenario:
    """A bearish held position is closed and the proceeds land in cash."""

    def test_bearish_position_is_sold_in_full(self) -> None:
        portfolio = make_portfolio("500", make_position("TSLA", 10, "200"))
        prices = _prices(TSLA="180")

        decisions = DecisionEngine().decide(
            portfolio, {"TSLA": make_sentiment("TSLA", 0.25)}, prices, ["TSLA"], AS_OF
        )
        (sell,) = [d for d in decisions if d.is_actionable]

        assert sell.action is TradeAction.SELL
        assert sell.quantity == 10

        result = PortfolioLedger().execute(sell, portfolio, NOW, prices)

        assert result.accepted
        assert result.portfolio.cash == Decimal("500") + 10 * Decimal("180")
        assert result.portfolio.position("TSLA") is None
        assert result.trade.realized_pnl == Decimal("-200")
