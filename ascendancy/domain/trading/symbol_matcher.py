"""
Domain service: Post ↔ ticker matching.

Pure business logic that decides which tickers a social post or headline
mentions. No IO, no frameworks.

A cashtag (``$AAPL``) always counts. A bare ticker only counts when it is
written in capitals and is long enough not to collide with ordinary words;
one- and two-letter tickers (``V``, ``MA``) need a cashtag or an explicit
"stock"/"shares"/"ticker" context.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Optional

_CONTEXT_SUFFIX = r"(?i:stock|shares?|calls?|puts?)"
_CONTEXT_PREFIX = r"(?i:ticker|symbol):?"


def _patterns_for(symbol: str, min_bare_length: int) -> list[re.Pattern[str]]:
    sym = re.escape(symbol.upper())
    patterns = [
        re.compile(rf"\${sym}\b", re.IGNORECASE),
        re.compile(rf"\b{sym}\s+{_CONTEXT_SUFFIX}\b"),
        re.compile(rf"{_CONTEXT_PREFIX}\s*\$?{sym}\b"),
    ]
    if len(symbol) >= min_bare_length:
        patterns.append(re.compile(rf"\b{sym}\b"))
    return patterns


@dataclass(frozen=True)
class TickerMatch:
    """A single text ↔ ticker match result."""

    symbol: str
    match_count: int


class TickerMatcher:
    """Identifies watch-list tickers mentioned in free text.

    Stateless after construction and side-effect free.
    """

    def __init__(
        self,
        symbols: Iterable[str],
        extra_aliases: Optional[dict[str, list[str]]] = None,
        min_bare_length: int = 3,
    ) -> None:
        """Initialize the matcher.

        Args:
            symbols: Tickers to look for.
            extra_aliases: Optional ticker → company-name aliases, matched
                case-insensitively on word boundaries.
            min_bare_length: Shortest ticker allowed to match without a
                cashtag or context word.
        """
        self._patterns: dict[str, list[re.Pattern[str]]] = {}
        for symbol in symbols:
            self._patterns[symbol.upper()] = _patterns_for(symbol, min_bare_length)

        for symbol, aliases in (extra_aliases or {}).items():
            sorted_a = sorted(aliases, key=len, reverse=True)
            combined = "|".join(re.escape(a) for a in sorted_a)
            self._patterns.setdefault(symbol.upper(), []).append(
                re.compile(rf"\b(?:{combined})\b", re.IGNORECASE)
            )

    def match(self, text: str) -> list[TickerMatch]:
        """Return tickers mentioned in ``text``, most-mentioned first."""
        if not text or not text.strip():
            return []

        results: list[TickerMatch] = []
        for symbol, patterns in self._patterns.items():
            count = sum(len(p.findall(text)) for p in patterns)
            if count:
                results.append(TickerMatch(symbol=symbol, match_count=count))

        results.sort(key=lambda m: m.match_count, reverse=True)
        return results

    def mentions(self, text: str, symbol: str) -> bool:
        """Return True when ``text`` mentions ``symbol``."""
        if not text:
            return False
        patterns = self._patterns.get(symbol.upper())
        if patterns is None:
            patterns = _patterns_for(symbol, 3)
        return any(p.search(text) for p in patterns)
