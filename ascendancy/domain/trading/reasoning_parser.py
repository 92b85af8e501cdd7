"""
Domain service: Parsing of free-text reasoning replies.

The reasoning service answers in a line-oriented ``KEY: value`` format.
Parsing is strict: a trade block missing a required field is dropped,
never guessed. No IO.

Trade reply format::

    TRADE_1:
    SYMBOL: AAPL
    ACTION: BUY
    QUANTITY: 10
    REASONING: Strong social momentum
    CONFIDENCE: 0.8

Sentiment reply format::

    SENTIMENT_SCORE: 0.72
    CONFIDENCE: 0.6
    REASONING: Mostly bullish chatter
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from ascendancy.domain.trading.entities import (
    SentimentJudgment,
    TradeAction,
    clamp_unit,
)
from ascendancy.domain.trading.errors import ReasoningParseError

logger = logging.getLogger(__name__)

DEFAULT_CONFIDENCE = 0.5
MIN_PROPOSAL_CONFIDENCE = 0.1

_TRADE_MARKER = re.compile(r"TRADE_\d+\s*:", re.IGNORECASE)
_SYMBOL = re.compile(r"^\s*SYMBOL\s*:\s*\$?([A-Za-z][A-Za-z.\-]{0,9})\b", re.IGNORECASE | re.MULTILINE)
_ACTION = re.compile(r"^\s*ACTION\s*:\s*(BUY|SELL)\s*$", re.IGNORECASE | re.MULTILINE)
_QUANTITY = re.compile(r"^\s*QUANTITY\s*:\s*(\d+)(?:\s+shares?)?\s*$", re.IGNORECASE | re.MULTILINE)
_REASONING = re.compile(r"^\s*REASONING\s*:\s*(.+?)\s*$", re.IGNORECASE | re.MULTILINE)
_CONFIDENCE = re.compile(r"^\s*CONFIDENCE\s*:\s*([0-9]*\.?[0-9]+)", re.IGNORECASE | re.MULTILINE)
_SENTIMENT_SCORE = re.compile(r"^\s*SENTIMENT_SCORE\s*:\s*(-?[0-9]*\.?[0-9]+)", re.IGNORECASE | re.MULTILINE)
_SENTIMENT_REASONING = re.compile(r"^\s*REASONING\s*:\s*(.+)", re.IGNORECASE | re.MULTILINE | re.DOTALL)


@dataclass(frozen=True)
class TradeProposal:
    """One trade suggested by the reasoning service, not yet priced."""

    symbol: str
    action: TradeAction
    quantity: int
    reasoning: str
    confidence: float


def _normalize(reply: str) -> str:
    # Models like to bold their keys.
    return reply.replace("*", "")


def _confidence(text: str, floor: float = 0.0) -> float:
    match = _CONFIDENCE.search(text)
    if not match:
        return DEFAULT_CONFIDENCE
    return max(floor, clamp_unit(float(match.group(1))))


def parse_trade_proposals(reply: str) -> list[TradeProposal]:
    """Extract well-formed trade proposals from a reply.

    Args:
        reply: Raw text returned by the reasoning service.

    Returns:
        Proposals in reply order. Blocks missing SYMBOL, ACTION or an
        integer QUANTITY are discarded; the others are kept.
    """
    if not reply:
        return []

    blocks = _TRADE_MARKER.split(_normalize(reply))[1:]
    proposals: list[TradeProposal] = []

    for index, block in enumerate(blocks, start=1):
        symbol = _SYMBOL.search(block)
        action = _ACTION.search(block)
        quantity = _QUANTITY.search(block)
        if not (symbol and action and quantity):
            logger.debug("Discarding malformed trade block %d", index)
            continue

        reasoning = _REASONING.search(block)
        proposals.append(
            TradeProposal(
                symbol=symbol.group(1).upper(),
                action=TradeAction(action.group(1).upper()),
                quantity=int(quantity.group(1)),
                reasoning=reasoning.group(1) if reasoning else "",
                confidence=_confidence(block, floor=MIN_PROPOSAL_CONFIDENCE),
            )
        )

    if len(proposals) < len(blocks):
        logger.info(
            "Parsed %d of %d trade blocks from reasoning reply",
            len(proposals),
            len(blocks),
        )
    return proposals


def parse_sentiment_judgment(reply: str) -> SentimentJudgment:
    """Extract a sentiment verdict from a reply.

    Raises:
        ReasoningParseError: When the reply carries no SENTIMENT_SCORE.
    """
    text = _normalize(reply or "")
    score = _SENTIMENT_SCORE.search(text)
    if not score:
        raise ReasoningParseError("SENTIMENT_SCORE")

    reasoning = _SENTIMENT_REASONING.search(text)
    return SentimentJudgment(
        score=clamp_unit(float(score.group(1))),
        confidence=_confidence(text),
        reasoning=reasoning.group(1).strip() if reasoning else "",
    )
