"""
Port interfaces (ABCs) for the trading bounded context.

Ports define the contracts that the domain requires from the outside world.
Infrastructure adapters implement these interfaces.
The domain layer never depends on concrete implementations.
"""

from abc import ABC, abstractmethod
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from ascendancy.domain.trading.entities import (
    AgentRecord,
    DailyPerformanceSnapshot,
    ExecutedTrade,
    Instrument,
    Portfolio,
    PricePoint,
    RawPost,
    SentimentJudgment,
    SignalReading,
    SignalSource,
    TradeAction,
)


class MarketDataPort(ABC):
    """Port for current and historical prices."""

    @abstractmethod
    def get_current_price(self, symbol: str) -> Optional[Decimal]:
        """Return the latest price, or None for an unknown symbol."""
        raise NotImplementedError

    @abstractmethod
    def get_historical_prices(self, symbol: str, days: int) -> list[PricePoint]:
        """Return daily closes for the last ``days`` days.

        Args:
            symbol: Instrument ticker.
            days: Look-back window in calendar days.

        Returns:
            PricePoints ordered oldest first. Empty for an unknown symbol.
        """
        raise NotImplementedError

    def get_current_prices(self, symbols: Iterable[str]) -> dict[str, Decimal]:
        """Return prices for every symbol that resolves, skipping the rest."""
        prices: dict[str, Decimal] = {}
        for symbol in symbols:
            price = self.get_current_price(symbol)
            if price is not None:
                prices[symbol] = price
        return prices


class SocialFeedPort(ABC):
    """Port for a social-media mention feed."""

    name: str = "social"

    @abstractmethod
    def fetch_mentions(self, symbols: list[str], limit: int) -> list[RawPost]:
        """Return recent posts that may mention any of ``symbols``.

        Raises:
            SourceUnavailableError: On network failure or rate limiting.
        """
        raise NotImplementedError


class NewsFeedPort(ABC):
    """Port for a news-headline feed."""

    name: str = "news"

    @abstractmethod
    def fetch_headlines(self, symbol: str, limit: int) -> list[str]:
        """Return recent headline strings about ``symbol``."""
        raise NotImplementedError


class ReasoningPort(ABC):
    """Port for the language-model reasoning service."""

    @abstractmethod
    def judge_sentiment(
        self, symbol: str, samples: list[str], source: SignalSource
    ) -> SentimentJudgment:
        """Return a sentiment verdict for text samples about ``symbol``.

        Raises:
            SourceUnavailableError: When the service cannot be reached.
            ReasoningParseError: When the reply has no sentiment score.
        """
        raise NotImplementedError

    @abstractmethod
    def propose_trades(self, portfolio_summary: str, sentiment_summary: str) -> str:
        """Return the raw free-text reply containing trade proposals."""
        raise NotImplementedError

    @abstractmethod
    def ping(self) -> bool:
        """Return True when the service answers a trivial request."""
        raise NotImplementedError


class SignalCollector(ABC):
    """Port for one independent sentiment source."""

    source: SignalSource

    @abstractmethod
    def collect(self, instrument: Instrument) -> SignalReading:
        """Return a reading for ``instrument``.

        Raises:
            SourceUnavailableError: When the underlying feed failed.
            InsufficientDataError: When there is too little data to score.
        """
        raise NotImplementedError


class AgentRepository(ABC):
    """Port for agent records."""

    @abstractmethod
    def get_agent(self, agent_id: str) -> Optional[AgentRecord]:
        raise NotImplementedError

    @abstractmethod
    def create_agent(self, agent: AgentRecord) -> None:
        raise NotImplementedError

    @abstractmethod
    def list_agents(self, active_only: bool = True) -> list[AgentRecord]:
        raise NotImplementedError


class PortfolioRepository(ABC):
    """Port for reading the current portfolio of an agent."""

    @abstractmethod
    def get_portfolio(self, agent_id: str) -> Optional[Portfolio]:
        """Return cash and positions, or None for an unknown agent."""
        raise NotImplementedError


class TradeRepository(ABC):
    """Port for the append-only trade history."""

    @abstractmethod
    def list_trades(
        self,
        agent_id: Optional[str] = None,
        action: Optional[TradeAction] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[ExecutedTrade]:
        """Return trades ordered by execution time descending.

        Args:
            agent_id: Optional filter by agent.
            action: Optional filter by BUY/SELL.
            limit: Maximum number of trades to return.
            offset: Number of trades to skip.
        """
        raise NotImplementedError

    @abstractmethod
    def count_trades(self, agent_id: Optional[str] = None) -> int:
        raise NotImplementedError

    @abstractmethod
    def traded_volume(self, agent_id: Optional[str] = None) -> Decimal:
        """Return the summed notional value of all trades."""
        raise NotImplementedError


class PerformanceRepository(ABC):
    """Port for daily performance snapshots."""

    @abstractmethod
    def upsert_snapshot(self, snapshot: DailyPerformanceSnapshot) -> None:
        """Insert or replace the snapshot for (agent, date)."""
        raise NotImplementedError

    @abstractmethod
    def list_snapshots(
        self, agent_id: Optional[str] = None, since: Optional[date] = None
    ) -> list[DailyPerformanceSnapshot]:
        """Return snapshots ordered by date ascending."""
        raise NotImplementedError

    @abstractmethod
    def latest_snapshot(
        self, agent_id: str, before: Optional[date] = None
    ) -> Optional[DailyPerformanceSnapshot]:
        """Return the most recent snapshot strictly before ``before``."""
        raise NotImplementedError


class CycleCommitPort(ABC):
    """Port for committing the outcome of one cycle atomically."""

    @abstractmethod
    def commit_cycle(
        self,
        agent: AgentRecord,
        portfolio: Portfolio,
        trades: list[ExecutedTrade],
        snapshot: DailyPerformanceSnapshot,
    ) -> None:
        """Persist agent totals, portfolio, new trades and the snapshot.

        Either everything is written or nothing is.

        Raises:
            PersistenceError: When the store cannot be written.
        """
        raise NotImplementedError

    @abstractmethod
    def ping(self) -> bool:
        """Return True when the store is reachable."""
        raise NotImplementedError


class TradingStore(
    AgentRepository,
    PortfolioRepository,
    TradeRepository,
    PerformanceRepository,
    CycleCommitPort,
):
    """All persistence ports served by one store."""
