"""
Adapter: Language-model reasoning service.

Implements ReasoningPort on top of any OpenAI-compatible
``/chat/completions`` endpoint (Groq, OpenRouter, OpenAI).
"""

import logging
from typing import Optional

from ascendancy.domain.trading.entities import SentimentJudgment, SignalSource
from ascendancy.domain.trading.errors import SourceUnavailableError
from ascendancy.domain.trading.ports import ReasoningPort
from ascendancy.domain.trading.reasoning_parser import parse_sentiment_judgment
from ascendancy.infrastructure.trading.http_client import HttpClient
from ascendancy.infrastructure.trading.prompt_loader import PromptLoader, get_prompt_loader

logger = logging.getLogger(__name__)

SOURCE = "reasoning"


class LlmReasoningAdapter(ReasoningPort):
    """Chat-completions client used for sentiment judgments and trade proposals."""

    def __init__(
        self,
        http: HttpClient,
        api_key: str,
        base_url: str,
        model: str,
        temperature: float = 0.3,
        max_tokens: int = 1024,
        timeout: float = 30.0,
        prompts: Optional[PromptLoader] = None,
    ) -> None:
        self._http = http
        self._api_key = api_key
        self._url = f"{base_url.rstrip('/')}/chat/completions"
        self._model = model
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._timeout = timeout
        self._prompts = prompts or get_prompt_loader()

    def _complete(
        self,
        system_prompt: str,
        user_prompt: str,
        subject: str = "-",
        max_tokens: Optional[int] = None,
    ) -> str:
        if not self._api_key:
            raise SourceUnavailableError(SOURCE, subject, "no API key configured")

        payload = {
            "model": self._model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": self._temperature,
            "max_tokens": max_tokens or self._max_tokens,
        }
        result = self._http.post_json(
            self._url,
            SOURCE,
            payload,
            subject=subject,
            headers={"Authorization": f"Bearer {self._api_key}"},
            timeout=self._timeout,
        )
        try:
            content = result["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise SourceUnavailableError(SOURCE, subject, "malformed completion") from exc
        return (content or "").strip()

    def judge_sentiment(
        self, symbol: str, samples: list[str], source: SignalSource
    ) -> SentimentJudgment:
        numbered = "\n".join(f"{i}. {text}" for i, text in enumerate(samples, start=1))
        reply = self._complete(
            self._prompts.system_prompt("sentiment_judgment"),
            self._prompts.render(
                "sentiment_judgment",
                source=source.value,
                symbol=symbol,
                samples=numbered,
            ),
            subject=symbol,
            max_tokens=256,
        )
        judgment = parse_sentiment_judgment(reply)
        logger.debug(
            "LLM %s sentiment for %s: %.2f (confidence %.2f)",
            source.value,
            symbol,
            judgment.score,
            judgment.confidence,
        )
        return judgment

    def propose_trades(self, portfolio_summary: str, sentiment_summary: str) -> str:
        return self._complete(
            self._prompts.system_prompt("trade_proposals"),
            self._prompts.render(
                "trade_proposals",
                portfolio=portfolio_summary,
                sentiment=sentiment_summary,
            ),
            subject="trade_proposals",
        )

    def ping(self) -> bool:
        try:
            self._complete("Reply with OK.", "ping", subject="ping", max_tokens=5)
        except SourceUnavailableError as exc:
            logger.warning("Reasoning service unavailable: %s", exc.reason)
            return False
        return True
