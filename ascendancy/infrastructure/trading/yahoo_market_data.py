"""
Adapter: Yahoo Finance market data.

Implements MarketDataPort on top of the public chart API.
History responses are cached for a few minutes so that the technical and
volume collectors share one download per symbol.
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Optional

from ascendancy.domain.trading.entities import PricePoint
from ascendancy.domain.trading.errors import SourceUnavailableError
from ascendancy.domain.trading.ports import MarketDataPort
from ascendancy.infrastructure.trading.http_client import HttpClient, TTLCache

logger = logging.getLogger(__name__)

CHART_URL = "https://query1.finance.yahoo.com/v8/finance/chart/{symbol}"
SOURCE = "yahoo_finance"
DEFAULT_CACHE_TTL_SECONDS = 300


def _to_decimal(value: float) -> Decimal:
    return Decimal(str(round(float(value), 4)))


class YahooMarketDataAdapter(MarketDataPort):
    """Concrete market-data adapter backed by Yahoo Finance."""

    def __init__(
        self, http: HttpClient, cache_ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS
    ) -> None:
        self._http = http
        self._cache = TTLCache(cache_ttl_seconds)

    def _chart(self, symbol: str, days: int) -> Optional[dict[str, Any]]:
        key = f"{symbol}:{days}"
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        payload = self._http.get_json(
            CHART_URL.format(symbol=symbol),
            SOURCE,
            subject=symbol,
            not_found_ok=True,
            params={"interval": "1d", "range": f"{days}d"},
        )
        if payload is None:
            logger.info("Unknown symbol on Yahoo Finance: %s", symbol)
            return None

        results = (payload.get("chart") or {}).get("result") or []
        if not results:
            error = (payload.get("chart") or {}).get("error")
            if error:
                logger.info("Yahoo Finance returned no chart for %s: %s", symbol, error)
                return None
            raise SourceUnavailableError(SOURCE, symbol, "empty chart response")

        chart = results[0]
        self._cache.set(key, chart)
        return chart

    def get_current_price(self, symbol: str) -> Optional[Decimal]:
        """Return the regular-market price, or the latest close as fallback."""
        chart = self._chart(symbol, 5)
        if chart is None:
            return None

        price = (chart.get("meta") or {}).get("regularMarketPrice")
        if price is None:
            closes = [p.close for p in self._points(chart)]
            if not closes:
                return None
            return closes[-1]
        return _to_decimal(price)

    def get_historical_prices(self, symbol: str, days: int) -> list[PricePoint]:
        chart = self._chart(symbol, days)
        if chart is None:
            return []
        return self._points(chart)

    @staticmethod
    def _points(chart: dict[str, Any]) -> list[PricePoint]:
        timestamps = chart.get("timestamp") or []
        quotes = ((chart.get("indicators") or {}).get("quote") or [{}])[0]
        closes = quotes.get("close") or []

        points = [
            PricePoint(
                date=datetime.fromtimestamp(ts, tz=timezone.utc).date(),
                close=_to_decimal(close),
            )
            for ts, close in zip(timestamps, closes)
            if close is not None
        ]
        points.sort(key=lambda p: p.date)
        return points
