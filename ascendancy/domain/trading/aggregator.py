"""
Domain service: Sentiment aggregation.

Combines per-source readings for one instrument into a single
confidence-weighted sentiment. Pure, deterministic and total: it never
raises and never returns a score outside [0, 1].
"""

import logging
from typing import Mapping, Optional, Sequence

from ascendancy.domain.trading.entities import (
    AggregatedSentiment,
    SignalReading,
    SignalSource,
    clamp_unit,
)

logger = logging.getLogger(__name__)

DEFAULT_SOURCE_WEIGHTS: dict[SignalSource, float] = {
    SignalSource.SOCIAL: 0.35,
    SignalSource.NEWS: 0.35,
    SignalSource.TECHNICAL: 0.20,
    SignalSource.VOLUME: 0.10,
}
UNKNOWN_SOURCE_WEIGHT = 0.10

NEUTRAL_SCORE = 0.5
FALLBACK_CONFIDENCE = 0.1


def neutral_reading() -> SignalReading:
    """The synthetic reading used when every source failed."""
    return SignalReading(
        source=SignalSource.FALLBACK,
        score=NEUTRAL_SCORE,
        confidence=FALLBACK_CONFIDENCE,
        data_points=0,
    )


class SentimentAggregator:
    """Weighted average of signal readings.

    Each reading contributes with weight ``prior(source) × confidence``.
    The aggregate confidence is the summed effective weight, capped at 1.
    """

    def __init__(
        self, source_weights: Optional[Mapping[SignalSource, float]] = None
    ) -> None:
        """
        Args:
            source_weights: Prior weight per source. Sources absent from the
                mapping get a weight of 0.1.
        """
        self._weights = dict(source_weights or DEFAULT_SOURCE_WEIGHTS)

    def weight_for(self, source: SignalSource) -> float:
        return self._weights.get(source, UNKNOWN_SOURCE_WEIGHT)

    def aggregate(
        self, symbol: str, readings: Sequence[SignalReading]
    ) -> AggregatedSentiment:
        """Combine readings into one sentiment.

        Args:
            symbol: Instrument ticker.
            readings: Readings from the sources that succeeded this cycle.
                May be empty.

        Returns:
            The weighted sentiment, or the neutral fallback
            (score 0.5, confidence 0.1) when no reading is available.
        """
        if not readings:
            logger.debug("No readings for %s, using neutral fallback", symbol)
            return AggregatedSentiment(
                symbol=symbol,
                score=NEUTRAL_SCORE,
                confidence=FALLBACK_CONFIDENCE,
                readings=(neutral_reading(),),
                rationale="No sources available, neutral fallback",
            )

        weighted_sum = 0.0
        total_weight = 0.0
        for reading in readings:
            weight = self.weight_for(reading.source) * reading.confidence
            weighted_sum += reading.score * weight
            total_weight += weight

        score = weighted_sum / total_weight if total_weight > 0 else NEUTRAL_SCORE

        return AggregatedSentiment(
            symbol=symbol,
            score=clamp_unit(score),
            confidence=clamp_unit(total_weight),
            readings=tuple(readings),
            rationale=self._rationale(readings),
        )

    @staticmethod
    def _rationale(readings: Sequence[SignalReading]) -> str:
        parts = ", ".join(
            f"{r.source.value}: {r.score:.3f} ({r.data_points} pts)" for r in readings
        )
        return f"Weighted average from {len(readings)} sources: {parts}"
