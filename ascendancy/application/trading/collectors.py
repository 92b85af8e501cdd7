"""
Signal collectors.

One collector per independent sentiment source. Each turns raw data
fetched through a port into a single SignalReading, or raises a
SignalCollectionError subclass when it cannot.

Collectors are stateless between calls and safe to run concurrently.
"""

import logging
from typing import Optional, Sequence

from ascendancy.domain.trading.entities import (
    Instrument,
    RawPost,
    SignalReading,
    SignalSource,
)
from ascendancy.domain.trading.errors import (
    InsufficientDataError,
    SourceUnavailableError,
)
from ascendancy.domain.trading.indicators import technical_score, volatility_score
from ascendancy.domain.trading.ports import (
    MarketDataPort,
    NewsFeedPort,
    ReasoningPort,
    SignalCollector,
    SocialFeedPort,
)
from ascendancy.domain.trading.symbol_matcher import TickerMatcher

logger = logging.getLogger(__name__)

SAMPLE_TEXT_LIMIT = 280


def _format_post(post: RawPost) -> str:
    label = f", {post.label}" if post.label else ""
    text = " ".join(post.text.split())[:SAMPLE_TEXT_LIMIT]
    return f"[{post.source}, engagement {post.engagement}{label}] {text}"


class SocialMediaCollector(SignalCollector):
    """Scores social chatter through the reasoning service.

    Mentions come from every configured feed. Samples are ordered by
    engagement so the most-discussed posts dominate the judgment.
    Confidence grows with mention count: min(mentions / 20, 1).
    """

    source = SignalSource.SOCIAL

    def __init__(
        self,
        feeds: Sequence[SocialFeedPort],
        reasoning: ReasoningPort,
        matcher: Optional[TickerMatcher] = None,
        fetch_limit: int = 25,
        sample_size: int = 15,
        full_confidence_mentions: int = 20,
    ) -> None:
        """
        Args:
            feeds: Social feeds to pull mentions from.
            reasoning: Service producing the text judgment.
            matcher: Ticker matcher; built per instrument when omitted.
            fetch_limit: Posts requested from each feed.
            sample_size: Posts sent to the reasoning service.
            full_confidence_mentions: Mention count giving confidence 1.0.
        """
        self._feeds = list(feeds)
        self._reasoning = reasoning
        self._matcher = matcher
        self._fetch_limit = fetch_limit
        self._sample_size = sample_size
        self._full_confidence = full_confidence_mentions

    def collect(self, instrument: Instrument) -> SignalReading:
        symbol = instrument.symbol
        matcher = self._matcher or TickerMatcher([symbol])

        posts: list[RawPost] = []
        failures = 0
        for feed in self._feeds:
            try:
                fetched = feed.fetch_mentions([symbol], self._fetch_limit)
            except SourceUnavailableError as exc:
                failures += 1
                logger.warning("Social feed %s failed for %s: %s", feed.name, symbol, exc.reason)
                continue
            posts.extend(
                p for p in fetched
                if p.symbol == symbol or matcher.mentions(p.text, symbol)
            )

        if failures and failures == len(self._feeds):
            raise SourceUnavailableError(self.source.value, symbol, "all social feeds failed")
        if not posts:
            raise InsufficientDataError(self.source.value, symbol, "no mentions found")

        posts.sort(key=lambda p: p.engagement, reverse=True)
        samples = [_format_post(p) for p in posts[: self._sample_size]]
        judgment = self._reasoning.judge_sentiment(symbol, samples, self.source)

        logger.debug(
            "Social sentiment for %s: %.3f from %d mentions",
            symbol,
            judgment.score,
            len(posts),
        )
        return SignalReading(
            source=self.source,
            score=judgment.score,
            confidence=min(len(posts) / self._full_confidence, 1.0),
            data_points=len(posts),
        )


class NewsHeadlineCollector(SignalCollector):
    """Scores recent headlines through the reasoning service.

    Headlines from every feed are de-duplicated by title and capped.
    Confidence: min(headlines / 15, 1).
    """

    source = SignalSource.NEWS

    def __init__(
        self,
        feeds: Sequence[NewsFeedPort],
        reasoning: ReasoningPort,
        max_headlines: int = 20,
        full_confidence_headlines: int = 15,
    ) -> None:
        self._feeds = list(feeds)
        self._reasoning = reasoning
        self._max_headlines = max_headlines
        self._full_confidence = full_confidence_headlines

    def collect(self, instrument: Instrument) -> SignalReading:
        symbol = instrument.symbol
        headlines: list[str] = []
        seen: set[str] = set()
        failures = 0

        for feed in self._feeds:
            try:
                fetched = feed.fetch_headlines(symbol, self._max_headlines)
            except SourceUnavailableError as exc:
                failures += 1
                logger.warning("News feed %s failed for %s: %s", feed.name, symbol, exc.reason)
                continue
            for title in fetched:
                key = title.strip().lower()
                if key and key not in seen:
                    seen.add(key)
                    headlines.append(title.strip())

        if failures and failures == len(self._feeds):
            raise SourceUnavailableError(self.source.value, symbol, "all news feeds failed")
        if not headlines:
            raise InsufficientDataError(self.source.value, symbol, "no headlines found")

        headlines = headlines[: self._max_headlines]
        judgment = self._reasoning.judge_sentiment(symbol, headlines, self.source)
        return SignalReading(
            source=self.source,
            score=judgment.score,
            confidence=min(len(headlines) / self._full_confidence, 1.0),
            data_points=len(headlines),
        )


class _PriceHistoryCollector(SignalCollector):
    """Shared history loading for the price-based collectors."""

    def __init__(
        self,
        market_data: MarketDataPort,
        history_days: int,
        min_points: int,
        confidence: float,
    ) -> None:
        self._market_data = market_data
        self._history_days = history_days
        self._min_points = min_points
        self._confidence = confidence

    def _closes(self, symbol: str) -> list[float]:
        history = self._market_data.get_historical_prices(symbol, self._history_days)
        closes = [float(p.close) for p in history]
        if len(closes) < self._min_points:
            raise InsufficientDataError(
                self.source.value,
                symbol,
                f"{len(closes)} price points, need {self._min_points}",
            )
        return closes


class TechnicalCollector(_PriceHistoryCollector):
    """Trend, momentum and RSI over 30 days of closes. Confidence 0.7."""

    source = SignalSource.TECHNICAL

    def __init__(
        self,
        market_data: MarketDataPort,
        history_days: int = 30,
        min_points: int = 10,
        confidence: float = 0.7,
    ) -> None:
        super().__init__(market_data, history_days, min_points, confidence)

    def collect(self, instrument: Instrument) -> SignalReading:
        closes = self._closes(instrument.symbol)
        return SignalReading(
            source=self.source,
            score=technical_score(closes),
            confidence=self._confidence,
            data_points=len(closes),
        )


class VolumeCollector(_PriceHistoryCollector):
    """Volatility proxy over 10 days of closes. Confidence 0.5."""

    source = SignalSource.VOLUME

    def __init__(
        self,
        market_data: MarketDataPort,
        history_days: int = 10,
        min_points: int = 5,
        confidence: float = 0.5,
    ) -> None:
        super().__init__(market_data, history_days, min_points, confidence)

    def collect(self, instrument: Instrument) -> SignalReading:
        closes = self._closes(instrument.symbol)
        return SignalReading(
            source=self.source,
            score=volatility_score(closes),
            confidence=self._confidence,
            data_points=len(closes),
        )
