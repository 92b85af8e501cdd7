"""
Use case: Collect prices and signal readings for one cycle.

Fans out one task per (instrument, collector) pair and one price lookup
per tracked symbol on a thread pool. Every task is isolated: a failure
is logged and the source is simply absent from that instrument's readings.

Input:  CycleState (INITIALIZED)
Output: CycleState (DATA_COLLECTED, or DATA_COLLECTION_FAILED when no
        price could be obtained for any tracked instrument)
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from decimal import Decimal
from typing import Optional, Sequence

from ascendancy.domain.trading.entities import (
    CycleState,
    CycleStatus,
    Instrument,
    SignalReading,
)
from ascendancy.domain.trading.errors import TradingDomainError
from ascendancy.domain.trading.ports import MarketDataPort, SignalCollector

logger = logging.getLogger(__name__)


class CollectSignalsUseCase:
    """Gathers current prices and per-source readings concurrently."""

    def __init__(
        self,
        market_data: MarketDataPort,
        collectors: Sequence[SignalCollector],
        max_workers: int = 8,
    ) -> None:
        """
        Args:
            market_data: Source of current prices.
            collectors: One collector per signal source.
            max_workers: Thread pool size for the fan-out.
        """
        self._market_data = market_data
        self._collectors = list(collectors)
        self._max_workers = max_workers

    def _price(self, symbol: str) -> Optional[Decimal]:
        try:
            return self._market_data.get_current_price(symbol)
        except TradingDomainError as exc:
            logger.warning("Price unavailable for %s: %s", symbol, exc.message)
        except Exception:
            logger.exception("Unexpected error fetching price for %s", symbol)
        return None

    def _reading(
        self, collector: SignalCollector, instrument: Instrument
    ) -> Optional[SignalReading]:
        try:
            return collector.collect(instrument)
        except TradingDomainError as exc:
            logger.warning(
                "%s source omitted for %s: %s",
                collector.source.value,
                instrument.symbol,
                exc.message,
            )
        except Exception:
            logger.exception(
                "Unexpected error in %s collector for %s",
                collector.source.value,
                instrument.symbol,
            )
        return None

    def execute(self, state: CycleState) -> CycleState:
        """Collect prices for every tracked symbol and readings for the watch-list."""
        symbols = state.tracked_symbols
        logger.info(
            "Collecting data: %d instruments x %d sources",
            len(state.watch_list),
            len(self._collectors),
        )

        prices: dict[str, Decimal] = {}
        readings: dict[str, list[SignalReading]] = {i.symbol: [] for i in state.watch_list}

        with ThreadPoolExecutor(max_workers=self._max_workers) as executor:
            price_futures = {executor.submit(self._price, s): s for s in symbols}
            reading_futures = {
                executor.submit(self._reading, collector, instrument): instrument.symbol
                for instrument in state.watch_list
                for collector in self._collectors
            }

            for future in as_completed(price_futures):
                price = future.result()
                if price is not None:
                    prices[price_futures[future]] = price

            for future in as_completed(reading_futures):
                reading = future.result()
                if reading is not None:
                    readings[reading_futures[future]].append(reading)

        # as_completed order is arbitrary; keep readings in source order.
        order = {c.source: n for n, c in enumerate(self._collectors)}
        frozen = {
            symbol: tuple(sorted(found, key=lambda r: order.get(r.source, len(order))))
            for symbol, found in readings.items()
        }

        covered = sum(1 for found in frozen.values() if found)
        logger.info(
            "Collected prices for %d/%d symbols, readings for %d/%d instruments",
            len(prices),
            len(symbols),
            covered,
            len(frozen),
        )

        if symbols and not prices:
            return state.fail(
                CycleStatus.DATA_COLLECTION_FAILED,
                "No market data available for any instrument",
            )

        return state.advance(
            CycleStatus.DATA_COLLECTED, prices=prices, readings=frozen
        )
