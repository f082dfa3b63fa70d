"""
Data contracts shared by the store, the sources and the resolver.

Results are frozen dataclasses tagged by an enum so every caller has to state
which outcome it handles.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from .validation import is_valid_price


@dataclass(frozen=True)
class PriceRecord:
    """Last-known USD price for one identifier. A price of 0 means "unknown"."""

    identifier: str
    price_usd: float
    last_update_ms: int
    metadata: Dict[str, Any] = field(default_factory=dict)

    def age_ms(self, now_ms: int) -> int:
        return now_ms - self.last_update_ms

    def is_fresh(self, now_ms: int, ttl_ms: int) -> bool:
        return self.price_usd is not None and self.price_usd > 0 and self.age_ms(now_ms) <= ttl_ms


@dataclass(frozen=True)
class PriceQuery:
    """One price request: identifier plus the "now" it is evaluated at."""

    identifier: str
    now_ms: int

    @classmethod
    def at(cls, identifier: str, clock: Callable[[], int]) -> PriceQuery:
        return cls(identifier=identifier, now_ms=clock())


class SourceStatus(enum.Enum):
    """Outcome of asking one price source."""

    VALID = "VALID"
    INVALID = "INVALID"
    UNAVAILABLE = "UNAVAILABLE"


@dataclass(frozen=True)
class SourceResult:
    """Tagged source outcome: Valid(price) | Invalid(candidate) | Unavailable(reason)."""

    status: SourceStatus
    price: Optional[float] = None
    candidate: Any = None
    reason: Optional[str] = None

    @classmethod
    def valid(cls, price: float) -> SourceResult:
        return cls(status=SourceStatus.VALID, price=float(price))

    @classmethod
    def invalid(cls, candidate: Any) -> SourceResult:
        return cls(status=SourceStatus.INVALID, candidate=candidate, reason=f"rejected candidate {candidate!r}")

    @classmethod
    def unavailable(cls, reason: str) -> SourceResult:
        return cls(status=SourceStatus.UNAVAILABLE, reason=reason[:500])

    @classmethod
    def from_candidate(cls, candidate: Any) -> SourceResult:
        if is_valid_price(candidate):
            return cls.valid(candidate)
        return cls.invalid(candidate)

    @classmethod
    def from_parsed(cls, parsed: ParsedPrice) -> SourceResult:
        if parsed.outcome is ParseOutcome.PRICE:
            return cls.from_candidate(parsed.value)
        return cls.unavailable(f"{parsed.outcome.value.lower()}: {parsed.detail or ''}".rstrip(": "))

    def is_valid(self) -> bool:
        return self.status is SourceStatus.VALID


class ParseOutcome(enum.Enum):
    """Shape of an external response after parsing."""

    PRICE = "PRICE"
    NO_PRICE = "NO_PRICE"
    MALFORMED = "MALFORMED"


@dataclass(frozen=True)
class ParsedPrice:
    """Well-formed-with-price | well-formed-without-price | malformed."""

    outcome: ParseOutcome
    value: Optional[float] = None
    detail: Optional[str] = None

    @classmethod
    def price(cls, value: float, detail: Optional[str] = None) -> ParsedPrice:
        return cls(outcome=ParseOutcome.PRICE, value=value, detail=detail)

    @classmethod
    def no_price(cls, detail: str) -> ParsedPrice:
        return cls(outcome=ParseOutcome.NO_PRICE, detail=detail)

    @classmethod
    def malformed(cls, detail: str) -> ParsedPrice:
        return cls(outcome=ParseOutcome.MALFORMED, detail=detail)

    @property
    def has_price(self) -> bool:
        return self.outcome is ParseOutcome.PRICE
