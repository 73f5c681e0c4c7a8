from dataclasses import dataclass
import random

from offline.domain.queue import QueuedItem


@dataclass
class RetryPolicy:
    """
    Defines when a failed queued operation may be pushed again.

    Retry Strategy:
    - attempts == 0: always due, the item has never failed
    - attempts >= 1: due once `calculate_delay(attempts - 1)` has elapsed
      since `last_attempt_at`

    Giving up is not decided here: the offline service moves an item to FAILED
    once its attempts reach `max_sync_retries`.
    """

    base_delay: float  # seconds
    max_delay: float
    backoff_multiplier: float = 2.0
    jitter: bool = True

    @staticmethod
    def default() -> "RetryPolicy":
        return RetryPolicy(base_delay=1.0, max_delay=300.0)

    @staticmethod
    def immediate() -> "RetryPolicy":
        """Policy without backoff, every failed item is retried on the next pass"""
        return RetryPolicy(base_delay=0.0, max_delay=0.0, jitter=False)

    def calculate_delay(self, attempt: int) -> float:
        # Calculate exponential backoff
        exponential_delay = self.base_delay * (self.backoff_multiplier**attempt)

        # Cap at max_delay
        capped_delay = min(exponential_delay, self.max_delay)

        if not self.jitter:
            return capped_delay

        # Apply equal jitter: 50% base + 50% random
        half_delay = capped_delay / 2
        return half_delay + random.uniform(0, half_delay)

    def is_due(self, item: QueuedItem, now: int) -> bool:
        """Whether the backoff for `item` has elapsed at `now` (ms)"""
        if item.attempts == 0 or item.last_attempt_at is None:
            return True
        delay_ms = self.calculate_delay(attempt=item.attempts - 1) * 1000
        return now - item.last_attempt_at >= delay_ms
