"""
Dependency injection for the trading bounded context.

Provides FastAPI dependency functions that wire infrastructure
adapters into use cases via constructor injection.
These are the composition root for the trading context; the CLI
builds its use cases through the same functions.

Adapters holding caches or connection pools (HTTP session, engine,
store, feeds) are built once per process.
"""

import logging
from dataclasses import replace
from functools import lru_cache

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from ascendancy.application.trading.analyze_sentiment import AnalyzeSentimentUseCase
from ascendancy.application.trading.check_services import CheckServicesUseCase
from ascendancy.application.trading.collect_signals import CollectSignalsUseCase
from ascendancy.application.trading.collectors import (
    NewsHeadlineCollector,
    SocialMediaCollector,
    TechnicalCollector,
    VolumeCollector,
)
from ascendancy.application.trading.execute_trades import ExecuteTradesUseCase
from ascendancy.application.trading.get_competition_stats import (
    GetCompetitionStatsUseCase,
)
from ascendancy.application.trading.get_leaderboard import GetLeaderboardUseCase
from ascendancy.application.trading.get_performance_history import (
    GetPerformanceHistoryUseCase,
)
from ascendancy.application.trading.list_recent_trades import ListRecentTradesUseCase
from ascendancy.application.trading.make_decisions import MakeDecisionsUseCase
from ascendancy.application.trading.record_cycle import RecordCycleUseCase
from ascendancy.application.trading.run_trading_cycle import (
    AgentProfile,
    RunTradingCycleUseCase,
)
from ascendancy.core.config import reasoning_settings, settings, trading_settings
from ascendancy.domain.trading.aggregator import SentimentAggregator
from ascendancy.domain.trading.decision_engine import DecisionEngine, DecisionRules
from ascendancy.domain.trading.entities import Instrument
from ascendancy.domain.trading.ledger import PortfolioLedger
from ascendancy.domain.trading.ports import (
    MarketDataPort,
    NewsFeedPort,
    ReasoningPort,
    SocialFeedPort,
    TradingStore,
)
from ascendancy.domain.trading.symbol_matcher import TickerMatcher
from ascendancy.domain.trading.watchlist import build_watch_list
from ascendancy.infrastructure.trading.http_client import HttpClient
from ascendancy.infrastructure.trading.llm_reasoning_adapter import LlmReasoningAdapter
from ascendancy.infrastructure.trading.memory_store import InMemoryTradingStore
from ascendancy.infrastructure.trading.news_feeds import (
    GoogleNewsRssAdapter,
    YahooNewsAdapter,
)
from ascendancy.infrastructure.trading.schema import create_tables
from ascendancy.infrastructure.trading.social_feeds import (
    RedditFeedAdapter,
    StocktwitsFeedAdapter,
)
from ascendancy.infrastructure.trading.sql_store import SqlTradingStore
from ascendancy.infrastructure.trading.yahoo_market_data import YahooMarketDataAdapter

logger = logging.getLogger(__name__)


@lru_cache
def _get_db_engine() -> Engine:
    """Build a SQLAlchemy engine from application settings."""
    return create_engine(settings.get_database_url(), pool_pre_ping=True)


@lru_cache
def get_store() -> TradingStore:
    """Return the process-wide trading store."""
    if settings.store_backend == "memory":
        return InMemoryTradingStore()
    engine = _get_db_engine()
    try:
        create_tables(engine)
    except SQLAlchemyError as exc:
        logger.warning("Could not ensure trading tables: %s", exc)
    return SqlTradingStore(engine)


@lru_cache
def get_http_client() -> HttpClient:
    return HttpClient(
        timeout=settings.http_timeout_seconds,
        retry_delay=settings.http_retry_delay_seconds,
        user_agent=settings.http_user_agent,
    )


@lru_cache
def get_market_data() -> MarketDataPort:
    return YahooMarketDataAdapter(get_http_client())


@lru_cache
def get_reasoning() -> ReasoningPort:
    return LlmReasoningAdapter(
        http=get_http_client(),
        api_key=reasoning_settings.api_key,
        base_url=reasoning_settings.base_url,
        model=reasoning_settings.model,
        temperature=reasoning_settings.temperature,
        max_tokens=reasoning_settings.max_tokens,
        timeout=reasoning_settings.timeout_seconds,
    )


@lru_cache
def get_social_feeds() -> tuple[SocialFeedPort, ...]:
    http = get_http_client()
    return (
        RedditFeedAdapter(http, subreddits=trading_settings.subreddits()),
        StocktwitsFeedAdapter(http),
    )


@lru_cache
def get_news_feeds() -> tuple[NewsFeedPort, ...]:
    http = get_http_client()
    return (YahooNewsAdapter(http), GoogleNewsRssAdapter(http))


def get_watch_list() -> tuple[Instrument, ...]:
    return build_watch_list(trading_settings.watch_list_symbols())


def get_decision_rules() -> DecisionRules:
    """Build DecisionRules from the trading settings."""
    s = trading_settings
    return DecisionRules(
        buy_threshold=s.buy_threshold,
        sell_threshold=s.sell_threshold,
        neutral_low=s.neutral_low,
        neutral_high=s.neutral_high,
        buy_cash_fraction=s.buy_cash_fraction,
        max_position_fraction_for_buy=s.max_position_fraction_for_buy,
        neutral_exit_days=s.neutral_exit_days,
        stale_data_exit_days=s.stale_data_exit_days,
        min_actions=s.min_trades_per_cycle,
        fallback_buy_cash_fraction=s.fallback_buy_cash_fraction,
        fallback_sell_fraction=s.fallback_sell_fraction,
    )


def get_agent_profiles() -> list[AgentProfile]:
    """The default agent followed by every additional configured agent."""
    s = trading_settings
    rules = get_decision_rules()
    profiles = [
        AgentProfile(
            id=s.agent_id,
            name=s.agent_name,
            strategy=s.agent_strategy,
            starting_cash=s.starting_cash,
        )
    ]
    for extra in s.additional_agents:
        profiles.append(
            AgentProfile(
                id=extra.id,
                name=extra.name,
                strategy=extra.strategy,
                starting_cash=extra.starting_cash,
                rules=replace(rules, **extra.rule_overrides()),
            )
        )
    return profiles


def get_run_trading_cycle_use_case() -> RunTradingCycleUseCase:
    """Build RunTradingCycleUseCase with its infrastructure dependencies."""
    s = trading_settings
    store = get_store()
    market_data = get_market_data()
    reasoning = get_reasoning()
    watch_list = get_watch_list()
    default_agent, *other_agents = get_agent_profiles()

    collectors = [
        SocialMediaCollector(
            get_social_feeds(),
            reasoning,
            matcher=TickerMatcher([i.symbol for i in watch_list]),
            fetch_limit=s.social_fetch_limit,
        ),
        NewsHeadlineCollector(
            get_news_feeds(), reasoning, max_headlines=s.news_max_headlines
        ),
        TechnicalCollector(market_data, history_days=s.technical_history_days),
        VolumeCollector(market_data, history_days=s.volume_history_days),
    ]

    return RunTradingCycleUseCase(
        store=store,
        collect=CollectSignalsUseCase(market_data, collectors, max_workers=s.collector_workers),
        analyze=AnalyzeSentimentUseCase(SentimentAggregator()),
        decide=MakeDecisionsUseCase(
            DecisionEngine(get_decision_rules()),
            reasoning=reasoning,
            trade_repo=store,
            use_delegated_policy=s.use_llm_decisions,
        ),
        execute_trades=ExecuteTradesUseCase(
            PortfolioLedger(max_position_fraction=s.max_position_fraction),
            max_trades=s.max_trades_per_cycle,
        ),
        record=RecordCycleUseCase(store),
        watch_list=watch_list,
        default_agent=default_agent,
        agents=other_agents,
    )


def get_leaderboard_use_case() -> GetLeaderboardUseCase:
    return GetLeaderboardUseCase(store=get_store())


def get_list_recent_trades_use_case() -> ListRecentTradesUseCase:
    return ListRecentTradesUseCase(trade_repo=get_store())


def get_performance_history_use_case() -> GetPerformanceHistoryUseCase:
    return GetPerformanceHistoryUseCase(performance_repo=get_store())


def get_competition_stats_use_case() -> GetCompetitionStatsUseCase:
    return GetCompetitionStatsUseCase(store=get_store())


def get_check_services_use_case() -> CheckServicesUseCase:
    return CheckServicesUseCase(
        market_data=get_market_data(),
        reasoning=get_reasoning(),
        social_feeds=get_social_feeds(),
        news_feeds=get_news_feeds(),
        store=get_store(),
    )
