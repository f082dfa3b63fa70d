"""
Bounded-timeout HTTP fetcher shared by all HTTP price sources.

Every call carries a hard deadline. urllib3's total timeout bounds connect plus
headers; the body is streamed and the deadline is re-checked per
chunk; on expiry the response is closed and FetchTimeoutError is raised.
Non-2xx responses are returned to the caller, which decides whether the
status is retryable.
"""
from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests
from urllib3.util import Timeout

from ..core.errors import FetchTimeoutError, HttpStatusError, ParseError, TransportError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 8000
RETRYABLE_STATUS_CODES = (429, 500, 502, 503, 504)
_CHUNK_SIZE = 16 * 1024


@dataclass(frozen=True)
class FetchResponse:
    """Raw response of one outbound call."""

    url: str
    status_code: int
    body: bytes
    elapsed_ms: float

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def raise_for_retryable(self, codes: tuple[int, ...] = RETRYABLE_STATUS_CODES) -> None:
        """Raise HttpStatusError for rate limits and server errors so retries apply."""
        if self.status_code in codes:
            raise HttpStatusError(self.status_code, self.url)

    def json(self) -> Any:
        try:
            return json.loads(self.body.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as exc:
            raise ParseError(f"Malformed JSON from {self.url}: {exc}") from exc


class HttpFetcher:
    """Issue single HTTP calls with a hard per-call deadline."""

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        default_timeout_ms: int = DEFAULT_TIMEOUT_MS,
        user_agent: Optional[str] = None,
    ) -> None:
        self._session = session or requests.Session()
        self._default_timeout_ms = default_timeout_ms
        if user_agent:
            self._session.headers.setdefault("User-Agent", user_agent)

    def fetch(
        self,
        method: str,
        url: str,
        timeout_ms: Optional[int] = None,
        *,
        params: Optional[Dict[str, Any]] = None,
        json_body: Any = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> FetchResponse:
        budget_s = (timeout_ms or self._default_timeout_ms) / 1000.0
        started = time.monotonic()
        deadline = started + budget_s

        try:
            resp = self._session.request(
                method,
                url,
                params=params,
                json=json_body,
                headers=headers,
                timeout=Timeout(total=budget_s),
                stream=True,
            )
        except requests.Timeout as exc:
            raise FetchTimeoutError(f"{method} {url} timed out after {budget_s:.1f}s") from exc
        except requests.RequestException as exc:
            raise TransportError(f"{method} {url} failed: {type(exc).__name__}: {exc}") from exc

        try:
            chunks = []
            for chunk in resp.iter_content(chunk_size=_CHUNK_SIZE):
                if time.monotonic() > deadline:
                    raise FetchTimeoutError(f"{method} {url} exceeded {budget_s:.1f}s deadline")
                chunks.append(chunk)
        except requests.Timeout as exc:
            raise FetchTimeoutError(f"{method} {url} timed out reading body") from exc
        except requests.RequestException as exc:
            raise TransportError(f"{method} {url} failed reading body: {exc}") from exc
        finally:
            resp.close()

        elapsed_ms = (time.monotonic() - started) * 1000.0
        logger.debug("%s %s -> %d in %.0fms", method, url, resp.status_code, elapsed_ms)
        return FetchResponse(
            url=url,
            status_code=resp.status_code,
            body=b"".join(chunks),
            elapsed_ms=elapsed_ms,
        )

    def get(self, url: str, timeout_ms: Optional[int] = None, **kwargs: Any) -> FetchResponse:
        return self.fetch("GET", url, timeout_ms, **kwargs)

    def post(self, url: str, timeout_ms: Optional[int] = None, **kwargs: Any) -> FetchResponse:
        return self.fetch("POST", url, timeout_ms, **kwargs)

    def close(self) -> None:
        self._session.close()
