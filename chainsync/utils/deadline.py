"""
Cooperative execution deadline.

Invocations are stopped by the platform shortly after their budget, so
long-running loops poll a Deadline and stop on their own.
"""

import time
from collections.abc import Callable


class Deadline:
    """Wall-clock budget checked cooperatively."""

    def __init__(
        self,
        budget_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.budget_seconds = budget_seconds
        self._clock = clock
        self._started_at = clock()

    @property
    def elapsed(self) -> float:
        """Seconds since the deadline was created."""
        return self._clock() - self._started_at

    @property
    def elapsed_ms(self) -> int:
        return int(self.elapsed * 1000)

    def expired(self) -> bool:
        """Whether the budget has been used up."""
        return self.elapsed > self.budget_seconds

    @property
    def remaining(self) -> float:
        """Seconds left before expiry, never negative."""
        return max(0.0, self.budget_seconds - self.elapsed)
