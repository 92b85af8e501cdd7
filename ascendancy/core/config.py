"""
Application configuration.

Loads settings from environment variables and .env file.
All configuration is centralized here; no scattered magic strings.
"""

from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel
from pydantic_settings import BaseSettings, SettingsConfigDict

from ascendancy.domain.trading.watchlist import DEFAULT_WATCH_LIST


class Settings(BaseSettings):
    """Application settings loaded from environment.

    Attributes:
        project_name: Display name for the API.
        version: Current API version string.
        debug: Enable debug mode. Must be False in production.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR).
        rate_limit_default: Default rate limit for all endpoints.
        rate_limit_heavy: Rate limit for the cycle trigger.
        cors_origins: Comma-separated origins allowed by CORS.
        store_backend: "sql" for the SQLAlchemy store, "memory" for a
            process-local store.
        database_url: SQLAlchemy URL of the trading store.
        http_timeout_seconds: Per-call timeout for external HTTP sources.
        http_retry_delay_seconds: Wait before the single retry on HTTP 429.
        http_user_agent: User-Agent sent to public data sources.
    """

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    project_name: str = "Agent Ascendancy"
    version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"
    rate_limit_default: str = "60/minute"
    rate_limit_heavy: str = "2/minute"
    cors_origins: str = "*"

    store_backend: str = "sql"
    database_url: Optional[str] = None
    postgres_user: str = "postgres"
    postgres_password: str = "postgres"
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_db: str = "ascendancy"

    http_timeout_seconds: float = 10.0
    http_retry_delay_seconds: float = 2.0
    http_user_agent: str = "AgentAscendancy/1.0"

    def get_database_url(self) -> str:
        """Return the effective database URL.

        Priority:
        1. Explicit `DATABASE_URL`
        2. Build a PostgreSQL URL from postgres_* values
        """
        if self.database_url:
            return self.database_url
        return (
            f"postgresql+psycopg://{self.postgres_user}:{self.postgres_password}@"
            f"{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    def get_cors_origins(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


class AgentProfileSettings(BaseModel):
    """One additional competitor.

    Unset rule fields inherit the shared ``TRADING_`` values.
    """

    id: str
    name: str
    strategy: str
    starting_cash: Decimal = Decimal("100000")
    buy_threshold: Optional[float] = None
    sell_threshold: Optional[float] = None
    buy_cash_fraction: Optional[Decimal] = None
    fallback_buy_cash_fraction: Optional[Decimal] = None
    fallback_sell_fraction: Optional[Decimal] = None

    def rule_overrides(self) -> dict[str, Any]:
        fields = (
            "buy_threshold",
            "sell_threshold",
            "buy_cash_fraction",
            "fallback_buy_cash_fraction",
            "fallback_sell_fraction",
        )
        return {f: getattr(self, f) for f in fields if getattr(self, f) is not None}


class TradingSettings(BaseSettings):
    """Agent, watch-list and decision-policy settings (``TRADING_`` prefix)."""

    model_config = SettingsConfigDict(
        env_prefix="TRADING_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # --- Agent ---
    agent_id: str = "550e8400-e29b-41d4-a716-446655440001"
    agent_name: str = "Sentiment Agent"
    agent_strategy: str = "Multi-source sentiment"
    starting_cash: Decimal = Decimal("100000")

    # JSON list in TRADING_ADDITIONAL_AGENTS; "[]" runs the default agent alone
    additional_agents: list[AgentProfileSettings] = [
        AgentProfileSettings(
            id="550e8400-e29b-41d4-a716-446655440002",
            name="Momentum Agent",
            strategy="High-conviction sentiment momentum",
            buy_threshold=0.65,
            sell_threshold=0.35,
            buy_cash_fraction=Decimal("0.10"),
        )
    ]

    # --- Universe ---
    watch_list: str = ",".join(DEFAULT_WATCH_LIST)

    # --- Decision thresholds ---
    buy_threshold: float = 0.70
    sell_threshold: float = 0.30
    neutral_low: float = 0.40
    neutral_high: float = 0.60
    neutral_exit_days: int = 7
    stale_data_exit_days: int = 3

    # --- Sizing and risk ---
    buy_cash_fraction: Decimal = Decimal("0.15")
    max_position_fraction_for_buy: Decimal = Decimal("0.15")
    max_position_fraction: Decimal = Decimal("0.20")
    fallback_buy_cash_fraction: Decimal = Decimal("0.10")
    fallback_sell_fraction: Decimal = Decimal("0.30")
    min_trades_per_cycle: int = 2
    max_trades_per_cycle: int = 5

    # --- Collection ---
    collector_workers: int = 8
    social_fetch_limit: int = 25
    news_max_headlines: int = 20
    technical_history_days: int = 30
    volume_history_days: int = 10
    reddit_subreddits: str = "stocks,investing,SecurityAnalysis,ValueInvesting,wallstreetbets"

    # --- Policy ---
    use_llm_decisions: bool = False

    def watch_list_symbols(self) -> list[str]:
        return [s.strip().upper() for s in self.watch_list.split(",") if s.strip()]

    def subreddits(self) -> list[str]:
        return [s.strip() for s in self.reddit_subreddits.split(",") if s.strip()]


class ReasoningSettings(BaseSettings):
    """Language-model settings (``LLM_`` prefix).

    Any OpenAI-compatible chat-completions endpoint works; Groq is the default.
    """

    model_config = SettingsConfigDict(
        env_prefix="LLM_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    api_key: str = ""
    base_url: str = "https://api.groq.com/openai/v1"
    model: str = "llama-3.3-70b-versatile"
    temperature: float = 0.3
    max_tokens: int = 1024
    timeout_seconds: float = 30.0


settings = Settings()
trading_settings = TradingSettings()
reasoning_settings = ReasoningSettings()
