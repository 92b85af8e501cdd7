"""
Domain entities for the trading bounded context.

Entities represent core business objects with identity and lifecycle.
They contain no framework imports and no IO operations.

Money is always ``Decimal``; scores and confidences are ``float`` in [0, 1].
"""

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Mapping, Optional
from uuid import UUID, uuid4

ZERO = Decimal("0")


def clamp_unit(value: float) -> float:
    """Clamp a float to the closed interval [0, 1]."""
    return max(0.0, min(1.0, float(value)))


class SignalSource(Enum):
    """Independent origin of a sentiment reading."""

    SOCIAL = "social"
    NEWS = "news"
    TECHNICAL = "technical"
    VOLUME = "volume"
    FALLBACK = "fallback"


class TradeAction(Enum):
    """Trading action."""

    BUY = "BUY"
    SELL = "SELL"
    HOLD = "HOLD"


class DecisionOrigin(Enum):
    """Which policy produced a trade decision."""

    RULE = "rule"
    DELEGATED = "delegated"
    RISK_EXIT = "risk_exit"
    FALLBACK = "fallback"


class CycleStatus(Enum):
    """States of one daily trading cycle."""

    INITIALIZED = "initialized"
    DATA_COLLECTED = "data_collected"
    DATA_COLLECTION_FAILED = "data_collection_failed"
    SENTIMENT_ANALYZED = "sentiment_analyzed"
    SENTIMENT_ANALYSIS_FAILED = "sentiment_analysis_failed"
    DECISIONS_MADE = "decisions_made"
    DECISION_MAKING_FAILED = "decision_making_failed"
    TRADES_EXECUTED = "trades_executed"
    TRADE_EXECUTION_FAILED = "trade_execution_failed"
    SNAPSHOT_SAVED = "snapshot_saved"
    SNAPSHOT_FAILED = "snapshot_failed"

    @property
    def failed(self) -> bool:
        return self.value.endswith("_failed")


@dataclass(frozen=True)
class Instrument:
    """A tradable security identified by its ticker."""

    symbol: str
    sector: Optional[str] = None


@dataclass(frozen=True)
class PricePoint:
    """A single daily closing price."""

    date: date
    close: Decimal


@dataclass(frozen=True)
class RawPost:
    """A social-media post or comment as fetched from a feed.

    ``engagement`` is the feed's popularity measure (upvotes + comments,
    likes). ``label`` carries a native bullish/bearish tag when the feed
    provides one. ``symbol`` is set when the feed itself is per-symbol.
    """

    source: str
    text: str
    engagement: int = 0
    label: Optional[str] = None
    symbol: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class SentimentJudgment:
    """A text-sentiment verdict returned by the reasoning service."""

    score: float
    confidence: float
    reasoning: str = ""


@dataclass(frozen=True)
class SignalReading:
    """One source's opinion about one instrument for one cycle.

    Score and confidence are clamped to [0, 1] on construction.
    Ephemeral: readings are never persisted.
    """

    source: SignalSource
    score: float
    confidence: float
    data_points: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "score", clamp_unit(self.score))
        object.__setattr__(self, "confidence", clamp_unit(self.confidence))


@dataclass(frozen=True)
class AggregatedSentiment:
    """Confidence-weighted sentiment for one instrument."""

    symbol: str
    score: float
    confidence: float
    readings: tuple[SignalReading, ...]
    rationale: str = ""

    @property
    def is_fallback(self) -> bool:
        """True when only the synthetic neutral reading contributed."""
        return all(r.source is SignalSource.FALLBACK for r in self.readings)


@dataclass(frozen=True)
class Position:
    """A holding of one instrument inside a portfolio."""

    symbol: str
    quantity: int
    average_cost: Decimal
    last_price: Decimal
    opened_at: date
    last_bought_at: date

    def market_value(self, price: Optional[Decimal] = None) -> Decimal:
        """Value at ``price``, or at the last known price when omitted."""
        return self.quantity * (price if price is not None else self.last_price)

    def unrealized_pnl(self, price: Optional[Decimal] = None) -> Decimal:
        mark = price if price is not None else self.last_price
        return (mark - self.average_cost) * self.quantity

    def holding_days(self, as_of: date) -> int:
        """Days since the most recent BUY."""
        return (as_of - self.last_bought_at).days


@dataclass(frozen=True)
class Portfolio:
    """Cash plus positions for one agent.

    Immutable for the duration of a cycle: ledger operations always
    return a new Portfolio.
    """

    agent_id: str
    cash: Decimal
    positions: Mapping[str, Position] = field(default_factory=dict)

    def position(self, symbol: str) -> Optional[Position]:
        return self.positions.get(symbol)

    def holdings_value(self, prices: Optional[Mapping[str, Decimal]] = None) -> Decimal:
        """Market value of all positions, falling back to last known prices."""
        prices = prices or {}
        return sum(
            (p.market_value(prices.get(symbol)) for symbol, p in self.positions.items()),
            ZERO,
        )

    def total_value(self, prices: Optional[Mapping[str, Decimal]] = None) -> Decimal:
        return self.cash + self.holdings_value(prices)


@dataclass(frozen=True)
class TradeDecision:
    """A proposed action on one instrument. HOLD is informational."""

    symbol: str
    action: TradeAction
    quantity: int
    price: Decimal
    reasoning: str
    confidence: float
    sentiment_score: float = 0.5
    origin: DecisionOrigin = DecisionOrigin.RULE

    @property
    def is_actionable(self) -> bool:
        return self.action is not TradeAction.HOLD and self.quantity > 0

    @property
    def value(self) -> Decimal:
        return self.price * self.quantity


@dataclass(frozen=True)
class ExecutedTrade:
    """A validated, applied decision. Append-only history."""

    agent_id: str
    symbol: str
    action: TradeAction
    quantity: int
    price: Decimal
    total_value: Decimal
    reasoning: str
    confidence: float
    sentiment_score: float
    executed_at: datetime
    realized_pnl: Optional[Decimal] = None
    id: UUID = field(default_factory=uuid4)


@dataclass(frozen=True)
class RejectedDecision:
    """A decision dropped by ledger validation."""

    decision: TradeDecision
    reason: str


@dataclass(frozen=True)
class DailyPerformanceSnapshot:
    """End-of-day valuation of an agent. Unique per (agent, date)."""

    agent_id: str
    date: date
    portfolio_value: Decimal
    cash: Decimal
    daily_return: float
    positions: Mapping[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class AgentRecord:
    """Persistent identity and running totals of a trading agent."""

    id: str
    name: str
    strategy: str
    starting_cash: Decimal
    cash: Decimal
    current_value: Decimal
    total_trades: int = 0
    closed_trades: int = 0
    winning_trades: int = 0
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def total_return(self) -> float:
        """Fractional return on starting cash."""
        if self.starting_cash <= 0:
            return 0.0
        return float((self.current_value - self.starting_cash) / self.starting_cash)

    @property
    def win_rate(self) -> float:
        """Share of SELL trades closed at a profit."""
        if self.closed_trades == 0:
            return 0.0
        return self.winning_trades / self.closed_trades


@dataclass(frozen=True)
class CycleState:
    """Immutable state threaded through the stages of one cycle.

    Each stage receives a state and returns a new one via ``advance``.
    """

    agent_id: str
    as_of: date
    watch_list: tuple[Instrument, ...]
    portfolio: Portfolio
    status: CycleStatus = CycleStatus.INITIALIZED
    prices: Mapping[str, Decimal] = field(default_factory=dict)
    readings: Mapping[str, tuple[SignalReading, ...]] = field(default_factory=dict)
    sentiments: Mapping[str, AggregatedSentiment] = field(default_factory=dict)
    decisions: tuple[TradeDecision, ...] = ()
    trades: tuple[ExecutedTrade, ...] = ()
    rejections: tuple[RejectedDecision, ...] = ()
    snapshot: Optional[DailyPerformanceSnapshot] = None
    history: tuple[CycleStatus, ...] = (CycleStatus.INITIALIZED,)
    errors: tuple[str, ...] = ()

    def advance(self, status: CycleStatus, **changes) -> "CycleState":
        """Return a copy moved to ``status`` with ``changes`` applied."""
        return replace(
            self, status=status, history=self.history + (status,), **changes
        )

    def fail(self, status: CycleStatus, error: str, **changes) -> "CycleState":
        """Like ``advance`` but also records ``error``."""
        return self.advance(status, errors=self.errors + (error,), **changes)

    @property
    def tracked_symbols(self) -> tuple[str, ...]:
        """Watch-list symbols followed by held symbols not on the list."""
        listed = [i.symbol for i in self.watch_list]
        extra = [s for s in self.portfolio.positions if s not in listed]
        return tuple(listed + sorted(extra))
