"""
Adapters: Social-media mention feeds.

Implements SocialFeedPort for:
    - Reddit: hot listings of a set of investing subreddits, filtered for
      ticker mentions. Listings are cached so the per-instrument calls of
      one cycle share a single download per subreddit.
    - StockTwits: the public per-symbol message stream, with each
      message's native bullish/bearish label.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional, Sequence

from ascendancy.domain.trading.entities import RawPost
from ascendancy.domain.trading.errors import SourceUnavailableError
from ascendancy.domain.trading.ports import SocialFeedPort
from ascendancy.domain.trading.symbol_matcher import TickerMatcher
from ascendancy.infrastructure.trading.http_client import HttpClient, TTLCache

logger = logging.getLogger(__name__)

REDDIT_LISTING_URL = "https://www.reddit.com/r/{subreddit}/hot.json"
STOCKTWITS_STREAM_URL = "https://api.stocktwits.com/api/2/streams/symbol/{symbol}.json"

DEFAULT_SUBREDDITS = (
    "stocks",
    "investing",
    "SecurityAnalysis",
    "ValueInvesting",
    "wallstreetbets",
)
REMOVED_MARKERS = ("[removed]", "[deleted]")
STOCKTWITS_MAX_LIMIT = 30
MIN_MESSAGE_LENGTH = 10


def _from_epoch(value: Optional[float]) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.fromtimestamp(float(value), tz=timezone.utc)


class RedditFeedAdapter(SocialFeedPort):
    """Mentions from Reddit subreddit hot listings."""

    name = "reddit"

    def __init__(
        self,
        http: HttpClient,
        subreddits: Sequence[str] = DEFAULT_SUBREDDITS,
        listing_size: int = 100,
        cache_ttl_seconds: float = 600,
    ) -> None:
        self._http = http
        self._subreddits = list(subreddits)
        self._listing_size = listing_size
        self._cache = TTLCache(cache_ttl_seconds)

    def _listing(self, subreddit: str) -> list[RawPost]:
        cached = self._cache.get(subreddit)
        if cached is not None:
            return cached

        payload = self._http.get_json(
            REDDIT_LISTING_URL.format(subreddit=subreddit),
            self.name,
            subject=f"r/{subreddit}",
            params={"limit": self._listing_size},
        )
        posts: list[RawPost] = []
        for child in ((payload or {}).get("data") or {}).get("children") or []:
            data: dict[str, Any] = child.get("data") or {}
            body = data.get("selftext") or ""
            if body in REMOVED_MARKERS:
                continue
            posts.append(
                RawPost(
                    source=f"reddit/r/{subreddit}",
                    text=f"{data.get('title', '')}\n{body}".strip(),
                    engagement=int(data.get("score") or 0) + int(data.get("num_comments") or 0),
                    created_at=_from_epoch(data.get("created_utc")),
                )
            )
        self._cache.set(subreddit, posts)
        return posts

    def fetch_mentions(self, symbols: list[str], limit: int) -> list[RawPost]:
        """Return up to ``limit`` posts mentioning any of ``symbols``, most engaged first."""
        matcher = TickerMatcher(symbols)
        mentions: list[RawPost] = []
        failures = 0

        for subreddit in self._subreddits:
            try:
                listing = self._listing(subreddit)
            except SourceUnavailableError as exc:
                failures += 1
                logger.warning("Reddit r/%s unavailable: %s", subreddit, exc.reason)
                continue
            mentions.extend(p for p in listing if matcher.match(p.text))

        if self._subreddits and failures == len(self._subreddits):
            raise SourceUnavailableError(self.name, ",".join(symbols), "all subreddits failed")

        mentions.sort(key=lambda p: p.engagement, reverse=True)
        return mentions[:limit]


class StocktwitsFeedAdapter(SocialFeedPort):
    """Messages from the StockTwits per-symbol stream."""

    name = "stocktwits"

    def __init__(self, http: HttpClient) -> None:
        self._http = http

    def fetch_mentions(self, symbols: list[str], limit: int) -> list[RawPost]:
        posts: list[RawPost] = []
        for symbol in symbols:
            posts.extend(self._stream(symbol, min(limit, STOCKTWITS_MAX_LIMIT)))
        return posts

    def _stream(self, symbol: str, limit: int) -> list[RawPost]:
        payload = self._http.get_json(
            STOCKTWITS_STREAM_URL.format(symbol=symbol),
            self.name,
            subject=symbol,
            not_found_ok=True,
            params={"limit": limit},
        )
        if payload is None:
            return []

        posts: list[RawPost] = []
        for message in (payload.get("messages") or [])[:limit]:
            body = (message.get("body") or "").strip()
            if len(body) <= MIN_MESSAGE_LENGTH:
                continue
            sentiment = ((message.get("entities") or {}).get("sentiment") or {}).get("basic")
            created = message.get("created_at")
            posts.append(
                RawPost(
                    source=self.name,
                    text=body,
                    engagement=int((message.get("likes") or {}).get("total") or 0),
                    label=sentiment.lower() if sentiment else None,
                    symbol=symbol,
                    created_at=(
                        datetime.fromisoformat(created.replace("Z", "+00:00"))
                        if created
                        else None
                    ),
                )
            )
        logger.debug("StockTwits returned %d messages for %s", len(posts), symbol)
        return posts
