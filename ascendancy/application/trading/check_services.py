"""
Use case: Check every external collaborator.

Output: list[ServiceStatus], one per service, never raising.
"""

import logging
from typing import Sequence

from ascendancy.application.trading.dtos import ServiceStatus
from ascendancy.domain.trading.errors import TradingDomainError
from ascendancy.domain.trading.ports import (
    CycleCommitPort,
    MarketDataPort,
    NewsFeedPort,
    ReasoningPort,
    SocialFeedPort,
)

logger = logging.getLogger(__name__)


class CheckServicesUseCase:
    """Runs one cheap request against each service."""

    def __init__(
        self,
        market_data: MarketDataPort,
        reasoning: ReasoningPort,
        social_feeds: Sequence[SocialFeedPort],
        news_feeds: Sequence[NewsFeedPort],
        store: CycleCommitPort,
        check_symbol: str = "AAPL",
    ) -> None:
        self._market_data = market_data
        self._reasoning = reasoning
        self._social_feeds = list(social_feeds)
        self._news_feeds = list(news_feeds)
        self._store = store
        self._check_symbol = check_symbol

    def execute(self) -> list[ServiceStatus]:
        symbol = self._check_symbol
        checks = [
            ("market_data", lambda: self._market_data.get_current_price(symbol) is not None),
            ("reasoning", self._reasoning.ping),
            ("store", self._store.ping),
        ]
        checks += [
            (f"social:{feed.name}", lambda feed=feed: feed.fetch_mentions([symbol], 5) is not None)
            for feed in self._social_feeds
        ]
        checks += [
            (f"news:{feed.name}", lambda feed=feed: bool(feed.fetch_headlines(symbol, 5)))
            for feed in self._news_feeds
        ]
        return [self._check_service(name, check) for name, check in checks]

    @staticmethod
    def _check_service(name: str, check) -> ServiceStatus:
        try:
            ok = bool(check())
        except TradingDomainError as exc:
            logger.warning("Service %s failed: %s", name, exc.message)
            return ServiceStatus(name=name, ok=False, detail=exc.message)
        except Exception as exc:
            logger.exception("Service %s check raised", name)
            return ServiceStatus(name=name, ok=False, detail=type(exc).__name__)
        return ServiceStatus(name=name, ok=ok, detail="" if ok else "empty response")
