"""
Data Transfer Objects for the trading application layer.

DTOs carry data between the interface and application layers.
They are plain dataclasses with no behavior.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Optional


@dataclass(frozen=True)
class RunTradingCycleCommand:
    """Input DTO for running one daily cycle.

    Attributes:
        agent_id: Agent to run. Defaults to the configured agent.
        as_of: Cycle date. Defaults to today (UTC).
    """

    agent_id: Optional[str] = None
    as_of: Optional[date] = None


@dataclass(frozen=True)
class CycleResult:
    """Output DTO summarising one cycle.

    Attributes:
        agent_id: Agent the cycle ran for.
        as_of: Cycle date.
        status: "success" or "error".
        cycle_status: Final state-machine status.
        stages: Every status visited, in order.
        decisions_made: Number of non-HOLD decisions.
        trades_executed: Number of trades applied to the portfolio.
        trades_rejected: Number of decisions dropped by validation.
        portfolio_value: Total value after the cycle (0 on error).
        cash: Cash after the cycle (0 on error).
        summary: Human-readable execution summary.
        error: Failure reason when status is "error".
        warnings: Non-fatal stage failures.
    """

    agent_id: str
    as_of: date
    status: str
    cycle_status: str
    stages: list[str] = field(default_factory=list)
    decisions_made: int = 0
    trades_executed: int = 0
    trades_rejected: int = 0
    portfolio_value: Decimal = Decimal("0")
    cash: Decimal = Decimal("0")
    summary: str = ""
    error: Optional[str] = None
    warnings: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class TradeView:
    """Output DTO for one executed trade."""

    id: str
    agent_id: str
    symbol: str
    action: str
    quantity: int
    price: Decimal
    total_value: Decimal
    reasoning: str
    confidence: float
    sentiment_score: float
    executed_at: datetime
    realized_pnl: Optional[Decimal] = None


@dataclass(frozen=True)
class PositionView:
    """Output DTO for one holding, valued at its last known price."""

    symbol: str
    quantity: int
    average_cost: Decimal
    last_price: Decimal
    market_value: Decimal
    unrealized_pnl: Decimal
    opened_at: date


@dataclass(frozen=True)
class AgentOverview:
    """Output DTO for one leaderboard row."""

    agent_id: str
    name: str
    strategy: str
    cash: Decimal
    current_value: Decimal
    total_return: float
    win_rate: float
    total_trades: int
    positions: list[PositionView]
    last_trade: Optional[TradeView] = None


@dataclass(frozen=True)
class ListTradesQuery:
    """Input DTO for the trade history.

    Attributes:
        agent_id: Optional filter by agent.
        action: Optional filter, "BUY" or "SELL".
        limit: Page size.
        offset: Number of trades to skip.
    """

    agent_id: Optional[str] = None
    action: Optional[str] = None
    limit: int = 50
    offset: int = 0


@dataclass(frozen=True)
class TradePage:
    """Output DTO for one page of trades."""

    items: list[TradeView]
    total: int
    limit: int
    offset: int


@dataclass(frozen=True)
class PerformanceQuery:
    """Input DTO for the performance series.

    Attributes:
        days: Look-back window in days.
        agent_id: Optional filter by agent.
    """

    days: int = 30
    agent_id: Optional[str] = None


@dataclass(frozen=True)
class PerformancePoint:
    """Output DTO for one daily snapshot."""

    agent_id: str
    date: date
    portfolio_value: Decimal
    cash: Decimal
    daily_return: float
    positions: dict[str, int]


@dataclass(frozen=True)
class CompetitionStats:
    """Output DTO for competition-wide statistics."""

    total_value: Decimal
    total_trades: int
    active_agents: int
    average_return: float
    total_volume: Decimal
    top_performer: Optional[str] = None
    top_return: Optional[float] = None
    worst_performer: Optional[str] = None
    worst_return: Optional[float] = None


@dataclass(frozen=True)
class ServiceStatus:
    """Output DTO for one external service check."""

    name: str
    ok: bool
    detail: str = ""
