"""
Resilience primitive: bounded retry with linear backoff.

Wraps a single source attempt so transient failures (timeouts, rate limits,
5xx) get another chance without letting an exception escape into the
resolution chain.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS = 2
DEFAULT_BASE_DELAY_S = 0.8


@dataclass(frozen=True)
class RetryConfig:
    """Retry policy: attempt k failing waits base_delay_s * k before attempt k + 1."""

    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    base_delay_s: float = DEFAULT_BASE_DELAY_S

    @classmethod
    def no_retry(cls) -> RetryConfig:
        return cls(max_attempts=1, base_delay_s=0.0)


def with_retry(
    operation: Callable[[], T],
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    base_delay_s: float = DEFAULT_BASE_DELAY_S,
    *,
    sleep: Optional[Callable[[float], None]] = None,
    label: str = "operation",
) -> Optional[T]:
    """
    Run operation up to max_attempts times; an attempt fails when it raises.

    Returns the first value an attempt returns (None included). Returns None
    once every attempt has raised. Never raises.
    """
    attempts = max(1, max_attempts)
    _sleep = sleep or time.sleep
    for attempt in range(1, attempts + 1):
        try:
            return operation()
        except Exception as exc:
            logger.debug(
                "%s attempt %d/%d failed: %s: %s",
                label, attempt, attempts, type(exc).__name__, exc,
            )
            if attempt < attempts:
                _sleep(base_delay_s * attempt)
    return None


def retry_call(
    operation: Callable[[], T],
    retry_config: Optional[RetryConfig] = None,
    *,
    sleep: Optional[Callable[[float], None]] = None,
    label: str = "operation",
) -> Optional[T]:
    """with_retry driven by a RetryConfig."""
    cfg = retry_config or RetryConfig()
    return with_retry(
        operation,
        cfg.max_attempts,
        cfg.base_delay_s,
        sleep=sleep,
        label=label,
    )
