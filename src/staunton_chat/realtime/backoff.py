from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class BackoffPolicy:
    """Exponential reconnect delays: base * multiplier ** (attempt - 1), capped."""

    base_delay: float = 1.0
    multiplier: float = 1.5
    max_delay: float = 30.0
    max_retries: int = 10

    def delay(self, attempt: int) -> float:
        if attempt < 1:
            return 0.0
        return min(self.base_delay * self.multiplier ** (attempt - 1), self.max_delay)

    def exhausted(self, attempt: int) -> bool:
        return attempt > self.max_retries
