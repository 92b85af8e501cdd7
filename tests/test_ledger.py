"""
Tests for the simulated portfolio ledger.

Validation, application and revaluation of trade decisions, plus the
daily snapshot and agent-total helpers.
"""

from decimal import Decimal

import pytest

from ascendancy.domain.trading.entities import (
    AgentRecord,
    ExecutedTrade,
    TradeAction,
    TradeDecision,
)
from ascendancy.domain.trading.errors import (
    ConcentrationLimitError,
    InsufficientFundsError,
    InsufficientSharesError,
    TradeRejectedError,
)
from ascendancy.domain.trading.ledger import (
    PortfolioLedger,
    build_snapshot,
    update_agent_totals,
)

from conftest import AGENT_ID, AS_OF, NOW, make_portfolio, make_position


def _decision(symbol: str, action: TradeAction, quantity: int, price: str) -> TradeDecision:
    return TradeDecision(
        symbol=symbol,
        action=action,
        quantity=quantity,
        price=Decimal(price),
        reasoning="test",
        confidence=0.8,
        sentiment_score=0.7,
    )


class TestLedgerValidation:
    """Tests for PortfolioLedger.validate."""

    def test_buy_beyond_cash_is_rejected(self) -> None:
        with pytest.raises(InsufficientFundsError):
            PortfolioLedger().validate(
                _decision("AAPL", TradeAction.BUY, 10, "100"), make_portfolio("500")
            )

    def test_buy_beyond_concentration_cap_is_rejected(self) -> None:
        with pytest.raises(ConcentrationLimitError):
            PortfolioLedger().validate(
                _decision("AAPL", TradeAction.BUY, 300, "100"), make_portfolio("100000")
            )

    def test_concentration_counts_existing_holding(self) -> None:
        portfolio = make_portfolio("100000", make_position("AAPL", 150, "100"))

        # 150 held + 90 bought at 100 = 24000 > 20% of 115000
        with pytest.raises(ConcentrationLimitError):
            PortfolioLedger().validate(
                _decision("AAPL", TradeAction.BUY, 90, "100"), portfolio
            )

    def test_sell_beyond_holding_is_rejected(self) -> None:
        portfolio = make_portfolio("1000", make_position("AAPL", 5, "100"))

        with pytest.raises(InsufficientSharesError):
            PortfolioLedger().validate(_decision("AAPL", TradeAction.SELL, 6, "100"), portfolio)

    def test_sell_of_unheld_symbol_is_rejected(self) -> None:
        with pytest.raises(InsufficientSharesError):
            PortfolioLedger().validate(
                _decision("AAPL", TradeAction.SELL, 1, "100"), make_portfolio()
            )

    def test_hold_is_not_actionable(self) -> None:
        with pytest.raises(TradeRejectedError):
            PortfolioLedger().validate(
                _decision("AAPL", TradeAction.HOLD, 0, "100"), make_portfolio()
            )


class TestLedgerExecution:
    """Tests for PortfolioLedger.execute."""

    def test_buy_opens_position(self) -> None:
        result = PortfolioLedger().execute(
            _decision("AAPL", TradeAction.BUY, 10, "100"), make_portfolio(), NOW
        )

        assert result.accepted
        assert result.portfolio.cash == Decimal("99000")
        position = result.portfolio.position("AAPL")
        assert position.quantity == 10
        assert position.average_cost == Decimal("100")
        assert position.opened_at == NOW.date()
        assert result.trade.total_value == Decimal("1000")
        assert result.trade.realized_pnl is None

    def test_buy_averages_cost(self) -> None:
        portfolio = make_portfolio("100000", make_position("AAPL", 10, "100", held_days=5))

        result = PortfolioLedger().execute(
            _decision("AAPL", TradeAction.BUY, 10, "120"), portfolio, NOW
        )

        position = result.portfolio.position("AAPL")
        assert position.quantity == 20
        assert position.average_cost == Decimal("110.0000")
        assert position.opened_at == portfolio.position("AAPL").opened_at
        assert position.last_bought_at == NOW.date()
        assert result.portfolio.cash == Decimal("98800")

    def test_partial_sell_realizes_pnl(self) -> None:
        portfolio = make_portfolio("1000", make_position("AAPL", 10, "100"))

        result = PortfolioLedger().execute(
            _decision("AAPL", TradeAction.SELL, 5, "120"), portfolio, NOW
        )

        assert result.trade.realized_pnl == Decimal("100")
        assert result.portfolio.position("AAPL").quantity == 5
        assert result.portfolio.position("AAPL").average_cost == Decimal("100")
        assert result.portfolio.cash == Decimal("1600")

    def test_full_sell_removes_position(self) -> None:
        portfolio = make_portfolio("1000", make_position("AAPL", 10, "100"))

        result = PortfolioLedger().execute(
            _decision("AAPL", TradeAction.SELL, 10, "90"), portfolio, NOW
        )

        assert result.portfolio.position("AAPL") is None
        assert result.trade.realized_pnl == Decimal("-100")

    def test_rejection_leaves_portfolio_untouched(self) -> None:
        portfolio = make_portfolio("500")

        result = PortfolioLedger().execute(
            _decision("AAPL", TradeAction.BUY, 10, "100"), portfolio, NOW
        )

        assert not result.accepted
        assert result.portfolio is portfolio
        assert result.trade is None
        assert "insufficient funds" in result.reason

    def test_revalue_keeps_last_price_when_missing(self) -> None:
        portfolio = make_portfolio(
            "0", make_position("AAPL", 10, "100"), make_position("TSLA", 5, "200")
        )

        revalued = PortfolioLedger().revalue(portfolio, {"AAPL": Decimal("110")})

        assert revalued.position("AAPL").last_price == Decimal("110")
        assert revalued.position("TSLA").last_price == Decimal("200")
        assert revalued.total_value() == Decimal("2100")


class TestSnapshotAndTotals:
    """Tests for the end-of-cycle helpers."""

    def test_snapshot_daily_return_against_previous_value(self) -> None:
        portfolio = make_portfolio("91000", make_position("AAPL", 100, "90", "100"))

        snapshot = build_snapshot(portfolio, AS_OF, Decimal("100000"))

        assert snapshot.portfolio_value == Decimal("101000")
        assert snapshot.daily_return == pytest.approx(0.01)
        assert snapshot.positions == {"AAPL": 100}

    def test_snapshot_without_baseline_has_zero_return(self) -> None:
        snapshot = build_snapshot(make_portfolio("100"), AS_OF, Decimal("0"))

        assert snapshot.daily_return == 0.0

    def test_agent_totals_count_winning_sells(self) -> None:
        agent = AgentRecord(
            id=AGENT_ID,
            name="Sentiment Agent",
            strategy="test",
            starting_cash=Decimal("100000"),
            cash=Decimal("100000"),
            current_value=Decimal("100000"),
            total_trades=3,
            closed_trades=1,
            winning_trades=1,
        )
        trades = [
            ExecutedTrade(AGENT_ID, "AAPL", TradeAction.SELL, 5, Decimal("120"),
                          Decimal("600"), "", 0.5, 0.5, NOW, realized_pnl=Decimal("100")),
            ExecutedTrade(AGENT_ID, "TSLA", TradeAction.SELL, 5, Decimal("90"),
                          Decimal("450"), "", 0.5, 0.5, NOW, realized_pnl=Decimal("-50")),
            ExecutedTrade(AGENT_ID, "MSFT", TradeAction.BUY, 1, Decimal("300"),
                          Decimal("300"), "", 0.5, 0.5, NOW),
        ]
        portfolio = make_portfolio("100750", make_position("MSFT", 1, "300"))

        updated = update_agent_totals(agent, portfolio, trades, NOW)

        assert updated.total_trades == 6
        assert updated.closed_trades == 3
        assert updated.winning_trades == 2
        assert updated.win_rate == pytest.approx(2 / 3)
        assert updated.current_value == Decimal("101050")
        assert updated.total_return == pytest.approx(0.0105)
