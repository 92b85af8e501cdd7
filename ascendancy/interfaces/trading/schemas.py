"""
Pydantic schemas for trading API request/response validation.

These schemas enforce input validation and define the API contract.
No business logic belongs here.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, Field

AGENT_ID_MAX_LEN = 36


class HealthResponse(BaseModel):
    """Response schema for the health check endpoint."""

    status: str
    version: str


class ErrorResponse(BaseModel):
    """Standard error response returned by all error handlers."""

    error: str
    detail: str | None = None


# ------------------------------------------------------------------
# Trading cycle
# ------------------------------------------------------------------


class RunCycleRequest(BaseModel):
    """Request schema for the manual cycle trigger.

    Attributes:
        agent_id: Agent to run. Defaults to the configured agent.
        as_of: Cycle date. Defaults to today (UTC).
    """

    agent_id: Optional[str] = Field(
        default=None, max_length=AGENT_ID_MAX_LEN, description="Agent identifier"
    )
    as_of: Optional[date] = Field(default=None, description="Cycle date")


class CycleResultResponse(BaseModel):
    """Outcome of one trading cycle."""

    agent_id: str
    as_of: date
    status: Literal["success", "error"]
    cycle_status: str
    stages: list[str]
    decisions_made: int
    trades_executed: int
    trades_rejected: int
    portfolio_value: Decimal
    cash: Decimal
    summary: str
    error: Optional[str] = None
    warnings: list[str] = Field(default_factory=list)


class RunAllCyclesRequest(BaseModel):
    """Request schema for running every agent."""

    as_of: Optional[date] = Field(default=None, description="Cycle date")


class CycleBatchResponse(BaseModel):
    """Outcomes of one cycle per agent, in run order."""

    results: list[CycleResultResponse]
    succeeded: int


# ------------------------------------------------------------------
# Reporting
# ------------------------------------------------------------------


class TradeItem(BaseModel):
    """A single executed trade."""

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


class TradePageResponse(BaseModel):
    """One page of the trade history, newest first."""

    items: list[TradeItem]
    total: int
    limit: int
    offset: int


class PositionItem(BaseModel):
    """A holding valued at its last known price."""

    symbol: str
    quantity: int
    average_cost: Decimal
    last_price: Decimal
    market_value: Decimal
    unrealized_pnl: Decimal
    opened_at: date


class AgentItem(BaseModel):
    """One leaderboard row."""

    agent_id: str
    name: str
    strategy: str
    cash: Decimal
    current_value: Decimal
    total_return: float = Field(..., description="Fractional return on starting cash")
    win_rate: float = Field(..., ge=0, le=1, description="Profitable SELLs / SELLs")
    total_trades: int
    positions: list[PositionItem]
    last_trade: Optional[TradeItem] = None


class LeaderboardResponse(BaseModel):
    """Agents ordered by current value, highest first."""

    agents: list[AgentItem]


class PerformancePointItem(BaseModel):
    """One daily performance snapshot."""

    agent_id: str
    date: date
    portfolio_value: Decimal
    cash: Decimal
    daily_return: float
    positions: dict[str, int]


class PerformanceResponse(BaseModel):
    """Performance time series, oldest first."""

    days: int
    points: list[PerformancePointItem]


class CompetitionStatsResponse(BaseModel):
    """Competition-wide aggregates."""

    total_value: Decimal
    total_trades: int
    active_agents: int
    average_return: float
    total_volume: Decimal
    top_performer: Optional[str] = None
    top_return: Optional[float] = None
    worst_performer: Optional[str] = None
    worst_return: Optional[float] = None


class ServiceStatusItem(BaseModel):
    """Check result of one external service."""

    name: str
    ok: bool
    detail: str = ""


class ServicesResponse(BaseModel):
    """Check results of every external service."""

    healthy: bool
    services: list[ServiceStatusItem]
