"""
Shared HTTP access for the public data sources.

Thin wrapper around a requests Session adding a per-call timeout, a
single retry after HTTP 429 and translation of every transport failure
into SourceUnavailableError. Also provides a small thread-safe TTL cache
for responses reused across instruments within a cycle.
"""

import logging
import threading
import time
from typing import Any, Callable, Optional

import requests

from ascendancy.domain.trading.errors import SourceUnavailableError

logger = logging.getLogger(__name__)

HTTP_NOT_FOUND = 404
HTTP_TOO_MANY_REQUESTS = 429


class TTLCache:
    """In-process cache whose entries expire after ``ttl_seconds``."""

    def __init__(self, ttl_seconds: float):
        self.ttl = ttl_seconds
        self.data: dict[str, tuple[float, Any]] = {}
        self.lock = threading.Lock()

    def get(self, key: str):
        with self.lock:
            entry = self.data.get(key)
            if not entry:
                return None
            ts, payload = entry
            if time.monotonic() - ts > self.ttl:
                self.data.pop(key, None)
                return None
            return payload

    def set(self, key: str, payload: Any) -> None:
        with self.lock:
            self.data[key] = (time.monotonic(), payload)


class HttpClient:
    """GET/POST helper shared by the market-data, feed and LLM adapters."""

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout: float = 10.0,
        retry_delay: float = 2.0,
        user_agent: str = "AgentAscendancy/1.0",
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """
        Args:
            session: Session to reuse; a new one is created when omitted.
            timeout: Per-call timeout in seconds.
            retry_delay: Wait before retrying a rate-limited call.
            user_agent: Default User-Agent header.
            sleep: Injectable sleep, for tests.
        """
        self._session = session or requests.Session()
        self._session.headers.update({"User-Agent": user_agent})
        self._timeout = timeout
        self._retry_delay = retry_delay
        self._sleep = sleep

    def request(
        self,
        method: str,
        url: str,
        source: str,
        subject: str = "-",
        not_found_ok: bool = False,
        **kwargs,
    ) -> Optional[requests.Response]:
        """Send a request, retrying once on HTTP 429.

        Args:
            method: HTTP method.
            url: Target URL.
            source: Source name used in errors and logs.
            subject: Symbol or resource the call is about.
            not_found_ok: Return None on 404 instead of raising.
            **kwargs: Passed through to ``Session.request``.

        Returns:
            The successful response, or None for a tolerated 404.

        Raises:
            SourceUnavailableError: Network failure, timeout, persistent
                rate limiting or any other error status.
        """
        kwargs.setdefault("timeout", self._timeout)
        for attempt in range(2):
            try:
                response = self._session.request(method, url, **kwargs)
            except requests.RequestException as exc:
                raise SourceUnavailableError(source, subject, type(exc).__name__) from exc

            if response.status_code == HTTP_TOO_MANY_REQUESTS and attempt == 0:
                logger.warning(
                    "%s rate limited for %s, retrying in %.1fs",
                    source,
                    subject,
                    self._retry_delay,
                )
                self._sleep(self._retry_delay)
                continue
            break

        if response.status_code == HTTP_NOT_FOUND and not_found_ok:
            return None
        if response.status_code == HTTP_TOO_MANY_REQUESTS:
            raise SourceUnavailableError(source, subject, "rate limited")
        if response.status_code >= 400:
            raise SourceUnavailableError(source, subject, f"HTTP {response.status_code}")
        return response

    def get_json(
        self,
        url: str,
        source: str,
        subject: str = "-",
        not_found_ok: bool = False,
        **kwargs,
    ) -> Optional[Any]:
        """GET ``url`` and decode the JSON body."""
        response = self.request("GET", url, source, subject, not_found_ok, **kwargs)
        if response is None:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise SourceUnavailableError(source, subject, "invalid JSON") from exc

    def get_text(self, url: str, source: str, subject: str = "-", **kwargs) -> str:
        response = self.request("GET", url, source, subject, **kwargs)
        return response.text

    def post_json(
        self, url: str, source: str, payload: dict, subject: str = "-", **kwargs
    ) -> Any:
        response = self.request("POST", url, source, subject, json=payload, **kwargs)
        try:
            return response.json()
        except ValueError as exc:
            raise SourceUnavailableError(source, subject, "invalid JSON") from exc
