"""
Default watch-list of tracked instruments.

Canonical fixed universe of 20 large-cap US equities, with their sectors.
"""

from ascendancy.domain.trading.entities import Instrument

SECTORS: dict[str, str] = {
    "AAPL": "Technology",
    "MSFT": "Technology",
    "GOOGL": "Communication Services",
    "AMZN": "Consumer Discretionary",
    "NVDA": "Technology",
    "META": "Communication Services",
    "TSLA": "Consumer Discretionary",
    "AMD": "Technology",
    "NFLX": "Communication Services",
    "JPM": "Financials",
    "V": "Financials",
    "MA": "Financials",
    "BAC": "Financials",
    "WMT": "Consumer Staples",
    "DIS": "Communication Services",
    "PYPL": "Financials",
    "ADBE": "Technology",
    "CRM": "Technology",
    "ORCL": "Technology",
    "INTC": "Technology",
}

DEFAULT_WATCH_LIST: tuple[str, ...] = tuple(SECTORS)


def build_watch_list(symbols: list[str] | tuple[str, ...]) -> tuple[Instrument, ...]:
    """Turn tickers into Instruments, normalized and de-duplicated in order."""
    seen: list[str] = []
    for raw in symbols:
        symbol = raw.strip().upper()
        if symbol and symbol not in seen:
            seen.append(symbol)
    return tuple(Instrument(symbol=s, sector=SECTORS.get(s)) for s in seen)
