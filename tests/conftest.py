"""
Shared fixtures and in-memory fakes for the test suite.

No network, no database server: ports are either MagicMocks or the small
fakes defined here.
"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional

import pytest

from ascendancy.domain.trading.entities import (
    AgentRecord,
    AggregatedSentiment,
    Portfolio,
    Position,
    PricePoint,
    SentimentJudgment,
    SignalReading,
    SignalSource,
)
from ascendancy.domain.trading.ports import MarketDataPort, ReasoningPort

AS_OF = date(2024, 3, 15)
NOW = datetime(2024, 3, 15, 16, 30, tzinfo=timezone.utc)
AGENT_ID = "550e8400-e29b-41d4-a716-446655440001"


def make_sentiment(symbol: str, score: float, confidence: float = 0.8) -> AggregatedSentiment:
    """A non-fallback aggregated sentiment backed by one social reading."""
    return AggregatedSentiment(
        symbol=symbol,
        score=score,
        confidence=confidence,
        readings=(SignalReading(SignalSource.SOCIAL, score, confidence, 10),),
    )


def make_position(
    symbol: str,
    quantity: int,
    average_cost: str,
    last_price: Optional[str] = None,
    held_days: int = 1,
) -> Position:
    bought = AS_OF - timedelta(days=held_days)
    return Position(
        symbol=symbol,
        quantity=quantity,
        average_cost=Decimal(average_cost),
        last_price=Decimal(last_price or average_cost),
        opened_at=bought,
        last_bought_at=bought,
    )


def make_portfolio(cash: str = "100000", *positions: Position) -> Portfolio:
    return Portfolio(
        agent_id=AGENT_ID,
        cash=Decimal(cash),
        positions={p.symbol: p for p in positions},
    )


def make_agent(cash: str = "100000", starting_cash: str = "100000") -> AgentRecord:
    return AgentRecord(
        id=AGENT_ID,
        name="Sentiment Agent",
        strategy="Multi-source sentiment",
        starting_cash=Decimal(starting_cash),
        cash=Decimal(cash),
        current_value=Decimal(cash),
        created_at=NOW,
        updated_at=NOW,
    )


class FakeMarketData(MarketDataPort):
    """Market data served from dicts. Unknown symbols resolve to None / []."""

    def __init__(self, prices: dict[str, str], histories: Optional[dict[str, list[float]]] = None):
        self.prices = {s: Decimal(p) for s, p in prices.items()}
        self.histories = histories or {}

    def get_current_price(self, symbol: str) -> Optional[Decimal]:
        return self.prices.get(symbol)

    def get_historical_prices(self, symbol: str, days: int) -> list[PricePoint]:
        closes = self.histories.get(symbol, [])
        start = AS_OF - timedelta(days=len(closes))
        return [
            PricePoint(date=start + timedelta(days=i), close=Decimal(str(c)))
            for i, c in enumerate(closes)
        ]


class FakeReasoning(ReasoningPort):
    """Reasoning service returning a fixed score per symbol."""

    def __init__(self, scores: Optional[dict[str, float]] = None, reply: str = ""):
        self.scores = scores or {}
        self.reply = reply
        self.calls: list[tuple[str, list[str], SignalSource]] = []

    def judge_sentiment(self, symbol, samples, source) -> SentimentJudgment:
        self.calls.append((symbol, list(samples), source))
        return SentimentJudgment(score=self.scores.get(symbol, 0.5), confidence=0.7)

    def propose_trades(self, portfolio_summary: str, sentiment_summary: str) -> str:
        return self.reply

    def ping(self) -> bool:
        return True


@pytest.fixture
def rising_closes() -> list[float]:
    return [float(100 + i) for i in range(30)]


@pytest.fixture
def empty_portfolio() -> Portfolio:
    return make_portfolio("100000")
