"""Backoff policy for requeueing failed queue items."""

from datetime import datetime, timedelta, timezone
from typing import Optional
from pydantic import BaseModel, Field


class RetryPolicy(BaseModel):
    """Failed items are retried until attempt_count reaches max_attempts.

    The wait after the n-th attempt is base_delay_seconds * 2 ** (n - 1).
    """
    max_attempts: int = Field(default=3, ge=1)
    base_delay_seconds: float = Field(default=300.0, ge=0)

    def backoff(self, attempt_count: int) -> timedelta:
        return timedelta(seconds=self.base_delay_seconds * 2 ** max(attempt_count - 1, 0))

    def is_due(self, attempt_count: int, completed_at: Optional[str], now: Optional[datetime] = None) -> bool:
        """True when another attempt is allowed and its backoff has elapsed."""
        if attempt_count >= self.max_attempts:
            return False
        if not completed_at:
            return True
        now = now or datetime.now(timezone.utc)
        finished = datetime.fromisoformat(completed_at.replace("Z", "+00:00"))
        if finished.tzinfo is None:
            finished = finished.replace(tzinfo=timezone.utc)
        return now - finished >= self.backoff(attempt_count)
