"""
FastAPI router for the trading bounded context.

All routes delegate to use cases. No business logic here.
Input validation is handled by Pydantic schemas and query constraints.
Error mapping is handled by centralized error handlers.
"""

from dataclasses import asdict
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, Request

from ascendancy.application.trading.check_services import CheckServicesUseCase
from ascendancy.application.trading.dtos import (
    ListTradesQuery,
    PerformanceQuery,
    RunTradingCycleCommand,
)
from ascendancy.application.trading.get_competition_stats import (
    GetCompetitionStatsUseCase,
)
from ascendancy.application.trading.get_leaderboard import GetLeaderboardUseCase
from ascendancy.application.trading.get_performance_history import (
    GetPerformanceHistoryUseCase,
)
from ascendancy.application.trading.list_recent_trades import ListRecentTradesUseCase
from ascendancy.application.trading.run_trading_cycle import RunTradingCycleUseCase
from ascendancy.interfaces.trading.dependencies import (
    get_check_services_use_case,
    get_competition_stats_use_case,
    get_leaderboard_use_case,
    get_list_recent_trades_use_case,
    get_performance_history_use_case,
    get_run_trading_cycle_use_case,
)
from ascendancy.interfaces.trading.schemas import (
    AgentItem,
    CompetitionStatsResponse,
    CycleBatchResponse,
    CycleResultResponse,
    ErrorResponse,
    LeaderboardResponse,
    PerformancePointItem,
    PerformanceResponse,
    RunAllCyclesRequest,
    RunCycleRequest,
    ServicesResponse,
    ServiceStatusItem,
    TradeItem,
    TradePageResponse,
)
from ascendancy.shared.security.rate_limiting import (
    DEFAULT_RATE_LIMIT,
    HEAVY_RATE_LIMIT,
    limiter,
)

router = APIRouter(prefix="/trading", tags=["trading"])


@router.post(
    "/cycles",
    response_model=CycleResultResponse,
    responses={
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
    },
    summary="Run a trading cycle",
    description=(
        "Run one daily cycle: collect signals, aggregate sentiment, decide, "
        "execute paper trades and save the performance snapshot."
    ),
)
@limiter.limit(HEAVY_RATE_LIMIT)
def run_cycle(
    request: Request,
    body: Optional[RunCycleRequest] = None,
    use_case: RunTradingCycleUseCase = Depends(get_run_trading_cycle_use_case),
) -> CycleResultResponse:
    """Trigger one cycle manually."""
    body = body or RunCycleRequest()
    result = use_case.execute(
        RunTradingCycleCommand(agent_id=body.agent_id, as_of=body.as_of)
    )
    return CycleResultResponse(**asdict(result))


@router.post(
    "/cycles/all",
    response_model=CycleBatchResponse,
    responses={429: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
    summary="Run a trading cycle for every agent",
    description="Run one cycle for each configured or active agent, one after another.",
)
@limiter.limit(HEAVY_RATE_LIMIT)
def run_all_cycles(
    request: Request,
    body: Optional[RunAllCyclesRequest] = None,
    use_case: RunTradingCycleUseCase = Depends(get_run_trading_cycle_use_case),
) -> CycleBatchResponse:
    body = body or RunAllCyclesRequest()
    results = [CycleResultResponse(**asdict(r)) for r in use_case.execute_all(body.as_of)]
    return CycleBatchResponse(
        results=results, succeeded=sum(1 for r in results if r.status == "success")
    )


@router.get(
    "/agents",
    response_model=LeaderboardResponse,
    summary="Agent leaderboard",
    description="Agents with positions, cash and last trade, ordered by current value.",
)
@limiter.limit(DEFAULT_RATE_LIMIT)
def list_agents(
    request: Request,
    use_case: GetLeaderboardUseCase = Depends(get_leaderboard_use_case),
) -> LeaderboardResponse:
    rows = use_case.execute()
    return LeaderboardResponse(agents=[AgentItem(**asdict(r)) for r in rows])


@router.get(
    "/trades",
    response_model=TradePageResponse,
    summary="Recent trades",
    description="Executed trades, newest first, paginated and filterable by action.",
)
@limiter.limit(DEFAULT_RATE_LIMIT)
def list_trades(
    request: Request,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    action: Optional[Literal["BUY", "SELL"]] = Query(None),
    agent_id: Optional[str] = Query(None, max_length=36),
    use_case: ListRecentTradesUseCase = Depends(get_list_recent_trades_use_case),
) -> TradePageResponse:
    page = use_case.execute(
        ListTradesQuery(agent_id=agent_id, action=action, limit=limit, offset=offset)
    )
    return TradePageResponse(
        items=[TradeItem(**asdict(t)) for t in page.items],
        total=page.total,
        limit=page.limit,
        offset=page.offset,
    )


@router.get(
    "/performance",
    response_model=PerformanceResponse,
    summary="Performance history",
    description="Daily portfolio snapshots over the last N days, oldest first.",
)
@limiter.limit(DEFAULT_RATE_LIMIT)
def performance_history(
    request: Request,
    days: int = Query(30, ge=1, le=365),
    agent_id: Optional[str] = Query(None, max_length=36),
    use_case: GetPerformanceHistoryUseCase = Depends(get_performance_history_use_case),
) -> PerformanceResponse:
    points = use_case.execute(PerformanceQuery(days=days, agent_id=agent_id))
    return PerformanceResponse(
        days=days, points=[PerformancePointItem(**asdict(p)) for p in points]
    )


@router.get(
    "/stats",
    response_model=CompetitionStatsResponse,
    summary="Competition statistics",
)
@limiter.limit(DEFAULT_RATE_LIMIT)
def competition_stats(
    request: Request,
    use_case: GetCompetitionStatsUseCase = Depends(get_competition_stats_use_case),
) -> CompetitionStatsResponse:
    return CompetitionStatsResponse(**asdict(use_case.execute()))


@router.get(
    "/services",
    response_model=ServicesResponse,
    summary="External service status",
    description="Check market data, reasoning, feeds and the store.",
)
@limiter.limit(DEFAULT_RATE_LIMIT)
def check_services(
    request: Request,
    use_case: CheckServicesUseCase = Depends(get_check_services_use_case),
) -> ServicesResponse:
    statuses = use_case.execute()
    return ServicesResponse(
        healthy=all(s.ok for s in statuses),
        services=[ServiceStatusItem(**asdict(s)) for s in statuses],
    )
