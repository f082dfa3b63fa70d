"""
Price source interface and the shared HTTP source template.

Every source implements PriceSource: given an identifier it returns a
SourceResult and never raises. HttpPriceSource wires the fetcher, the retry
policy and the validator together so that concrete sources only describe
their request and their response mapping.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Protocol, runtime_checkable

from ..core.types import SourceResult
from ..timeutils import now_utc_iso
from .http import DEFAULT_TIMEOUT_MS, FetchResponse, HttpFetcher
from .identifiers import extract_symbol
from .resilience import RetryConfig, retry_call

logger = logging.getLogger(__name__)


@runtime_checkable
class PriceSource(Protocol):
    """Protocol for a single external USD price integration."""

    @property
    def source_name(self) -> str: ...

    def resolve(self, identifier: str) -> SourceResult:
        """Return Valid(price), Invalid(candidate) or Unavailable(reason). Never raises."""
        ...


class GuardedPriceSource:
    """
    Template for sources whose attempts may raise.

    Subclasses implement _attempt(identifier) -> SourceResult. An attempt that
    raises (timeout, transport error, retryable status, malformed JSON) is
    retried according to retry_config; once retries are exhausted the source
    reports Unavailable.
    """

    name = "source"

    def __init__(
        self,
        *,
        retry_config: Optional[RetryConfig] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ) -> None:
        self._retry_config = retry_config or RetryConfig()
        self._sleep = sleep

    @property
    def source_name(self) -> str:
        return self.name

    def resolve(self, identifier: str) -> SourceResult:
        label = f"{self.source_name}:{extract_symbol(identifier)}"
        result = retry_call(
            lambda: self._attempt(identifier),
            self._retry_config,
            sleep=self._sleep,
            label=label,
        )
        if result is None:
            return SourceResult.unavailable(
                f"{self.source_name}: no answer after {self._retry_config.max_attempts} attempt(s)"
            )
        if not result.is_valid():
            logger.debug("[%s] no price: %s", label, result.reason)
        return result

    def _attempt(self, identifier: str) -> SourceResult:
        raise NotImplementedError


class HttpPriceSource(GuardedPriceSource):
    """GuardedPriceSource that talks to an HTTP API through HttpFetcher."""

    name = "http"

    def __init__(
        self,
        fetcher: HttpFetcher,
        *,
        retry_config: Optional[RetryConfig] = None,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        sleep: Optional[Callable[[float], None]] = None,
    ) -> None:
        super().__init__(retry_config=retry_config, sleep=sleep)
        self._fetcher = fetcher
        self._timeout_ms = timeout_ms

    def _get(
        self,
        url: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        timeout_ms: Optional[int] = None,
    ) -> FetchResponse:
        resp = self._fetcher.get(url, timeout_ms or self._timeout_ms, params=params)
        resp.raise_for_retryable()
        return resp

    def _post(
        self,
        url: str,
        json_body: Any,
        *,
        timeout_ms: Optional[int] = None,
    ) -> FetchResponse:
        resp = self._fetcher.post(url, timeout_ms or self._timeout_ms, json_body=json_body)
        resp.raise_for_retryable()
        return resp


def http_unavailable(resp: FetchResponse) -> SourceResult:
    """Unavailable result for a non-retryable, non-2xx response."""
    return SourceResult.unavailable(f"HTTP {resp.status_code}")


def safe_get(d: Any, path: str, default: Any = None) -> Any:
    cur: Any = d
    for key in path.split("."):
        if not isinstance(cur, dict) or key not in cur:
            return default
        cur = cur[key]
    return cur


class HealthStatus(str, enum.Enum):
    OK = "OK"
    DEGRADED = "DEGRADED"
    DOWN = "DOWN"


@dataclass
class SourceHealth:
    """Mutable health state for a single price source."""

    source_name: str
    status: HealthStatus = HealthStatus.OK
    last_ok_at: Optional[str] = None
    fail_count: int = 0
    last_error: Optional[str] = None

    def record_success(self) -> None:
        self.status = HealthStatus.OK
        self.fail_count = 0
        self.last_ok_at = now_utc_iso()
        self.last_error = None

    def record_failure(self, error: str) -> None:
        self.fail_count += 1
        self.last_error = error[:500]
        if self.fail_count >= 5:
            self.status = HealthStatus.DOWN
        elif self.fail_count >= 2:
            self.status = HealthStatus.DEGRADED
