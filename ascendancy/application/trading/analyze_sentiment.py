"""
Use case: Aggregate readings into one sentiment per instrument.

Input:  CycleState with readings (any status)
Output: CycleState (SENTIMENT_ANALYZED, or SENTIMENT_ANALYSIS_FAILED with
        neutral sentiment for every instrument)
"""

import logging

from ascendancy.domain.trading.aggregator import SentimentAggregator
from ascendancy.domain.trading.entities import CycleState, CycleStatus

logger = logging.getLogger(__name__)


class AnalyzeSentimentUseCase:
    """Runs the aggregator once per tracked instrument."""

    def __init__(self, aggregator: SentimentAggregator) -> None:
        self._aggregator = aggregator

    def execute(self, state: CycleState) -> CycleState:
        try:
            sentiments = {
                symbol: self._aggregator.aggregate(symbol, state.readings.get(symbol, ()))
                for symbol in state.tracked_symbols
            }
        except Exception as exc:
            logger.exception("Sentiment analysis failed, using neutral sentiment")
            neutral = {
                symbol: self._aggregator.aggregate(symbol, ())
                for symbol in state.tracked_symbols
            }
            return state.fail(
                CycleStatus.SENTIMENT_ANALYSIS_FAILED,
                f"Sentiment analysis failed: {exc}",
                sentiments=neutral,
            )

        fallbacks = [s for s, agg in sentiments.items() if agg.is_fallback]
        if fallbacks:
            logger.warning(
                "Neutral fallback sentiment for %d instruments: %s",
                len(fallbacks),
                ", ".join(fallbacks),
            )
        for symbol, agg in sentiments.items():
            logger.debug("%s sentiment %.3f (confidence %.2f)", symbol, agg.score, agg.confidence)

        return state.advance(CycleStatus.SENTIMENT_ANALYZED, sentiments=sentiments)
