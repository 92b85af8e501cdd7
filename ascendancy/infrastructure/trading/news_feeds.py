"""
Adapters: News-headline feeds.

Implements NewsFeedPort for:
    - Yahoo Finance search API (``news`` section of the search response)
    - Google News RSS search, parsed with feedparser
"""

import logging
from urllib.parse import quote_plus

import feedparser

from ascendancy.domain.trading.ports import NewsFeedPort
from ascendancy.infrastructure.trading.http_client import HttpClient

logger = logging.getLogger(__name__)

YAHOO_SEARCH_URL = "https://query1.finance.yahoo.com/v1/finance/search"
GOOGLE_NEWS_RSS_URL = "https://news.google.com/rss/search?q={query}&hl=en-US&gl=US&ceid=US:en"


class YahooNewsAdapter(NewsFeedPort):
    """Headlines from the Yahoo Finance search endpoint."""

    name = "yahoo_news"

    def __init__(self, http: HttpClient) -> None:
        self._http = http

    def fetch_headlines(self, symbol: str, limit: int) -> list[str]:
        payload = self._http.get_json(
            YAHOO_SEARCH_URL,
            self.name,
            subject=symbol,
            params={
                "q": symbol,
                "lang": "en-US",
                "region": "US",
                "quotesCount": 1,
                "newsCount": limit,
            },
        )
        items = (payload or {}).get("news") or []
        return [item["title"].strip() for item in items if item.get("title")][:limit]


class GoogleNewsRssAdapter(NewsFeedPort):
    """Headlines from a Google News RSS search for "<symbol> stock"."""

    name = "google_news"

    def __init__(self, http: HttpClient) -> None:
        self._http = http

    def fetch_headlines(self, symbol: str, limit: int) -> list[str]:
        url = GOOGLE_NEWS_RSS_URL.format(query=quote_plus(f"{symbol} stock"))
        feed = feedparser.parse(self._http.get_text(url, self.name, subject=symbol))
        if getattr(feed, "bozo", False) and not feed.entries:
            logger.warning("Unparseable Google News feed for %s", symbol)
            return []

        headlines: list[str] = []
        for entry in feed.entries:
            title = entry.get("title", "").strip()
            # Google appends " - Publisher" to every title.
            if " - " in title:
                title = title.rsplit(" - ", 1)[0]
            if title:
                headlines.append(title)
        return headlines[:limit]
