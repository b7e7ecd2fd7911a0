"""Fallback diagnostics for projections.

The projection core never fails on missing data: a missing historical price
becomes the current price, a missing exchange rate becomes 1.0. Callers that
want to know a fallback happened pass a ProjectionDiagnostics and inspect
its events (or register a callback). Results are identical either way.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

HISTORICAL_PRICE_UNAVAILABLE = "historical_price_unavailable"
EXCHANGE_RATE_UNAVAILABLE = "exchange_rate_unavailable"
TRANCHE_COUNT_MISMATCH = "tranche_count_mismatch"
LEGACY_SALARY_FALLBACK = "legacy_salary_fallback"
DEFAULT_BONUS = "default_bonus"


@dataclass(frozen=True)
class FallbackEvent:
    """One degraded lookup."""

    kind: str
    year: Optional[int] = None
    month: Optional[int] = None
    detail: Dict[str, Any] = field(default_factory=dict)

    @property
    def message(self) -> str:
        when = ""
        if self.year is not None:
            when = f" {self.year}" if self.month is None else f" {self.year}-{self.month:02d}"
        extra = ", ".join(f"{k}={v}" for k, v in self.detail.items())
        return f"{self.kind}{when}" + (f" ({extra})" if extra else "")


class ProjectionDiagnostics:
    """Collects fallback events from a projection run."""

    def __init__(self, callback: Optional[Callable[[FallbackEvent], None]] = None):
        self.events: List[FallbackEvent] = []
        self._callback = callback

    def record(self, kind: str, year: Optional[int] = None, month: Optional[int] = None,
               **detail: Any) -> FallbackEvent:
        event = FallbackEvent(kind=kind, year=year, month=month, detail=detail)
        self.events.append(event)
        logger.debug(f"fallback: {event.message}")
        if self._callback is not None:
            self._callback(event)
        return event

    def of_kind(self, kind: str) -> List[FallbackEvent]:
        return [e for e in self.events if e.kind == kind]

    def has(self, kind: str) -> bool:
        return any(e.kind == kind for e in self.events)

    @property
    def warnings(self) -> List[str]:
        """Distinct event messages, in first-seen order."""
        seen = []
        for event in self.events:
            if event.message not in seen:
                seen.append(event.message)
        return seen


def record(diagnostics: Optional[ProjectionDiagnostics], kind: str, **kwargs: Any) -> None:
    """Record an event if a diagnostics collector was supplied."""
    if diagnostics is not None:
        diagnostics.record(kind, **kwargs)
