"""
Core Time - Explicit Clock Protocol
=====================================
Doctrine: NO datetime.now() inside engine logic.
Wall-clock time reaches the engine through an injected Clock.
Tests pin time with FixedClock and step it with advance().
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Protocol


# ══════════════════════════════════════════════════════════════
# CLOCK PROTOCOL
# ══════════════════════════════════════════════════════════════

class Clock(Protocol):
    """Injectable time source."""

    def now_utc(self) -> datetime:
        """Return current UTC time."""
        ...  # pragma: no cover


# ══════════════════════════════════════════════════════════════
# IMPLEMENTATIONS
# ══════════════════════════════════════════════════════════════

class SystemClock:
    """Production clock: real system time."""

    def now_utc(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock:
    """
    Test clock that only moves when told to.

    Usage:
        clock = FixedClock(datetime(2024, 6, 4, 2, 0, tzinfo=timezone.utc))
        clock.advance(seconds=30)
    """

    def __init__(self, fixed_dt: datetime) -> None:
        if fixed_dt.tzinfo is None:
            raise ValueError("FixedClock requires timezone-aware datetime.")
        self._fixed_dt = fixed_dt

    def now_utc(self) -> datetime:
        return self._fixed_dt

    def advance(self, seconds: float = 0, *, days: int = 0) -> None:
        self._fixed_dt = self._fixed_dt + timedelta(days=days, seconds=seconds)

    def set(self, fixed_dt: datetime) -> None:
        if fixed_dt.tzinfo is None:
            raise ValueError("FixedClock requires timezone-aware datetime.")
        self._fixed_dt = fixed_dt
