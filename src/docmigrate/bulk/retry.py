"""
Retry policy for partially failed bulk batches.

The store tells the client how long to back off (the retry-after hint of
throttled operations). The policy honours that hint, optionally enforces a
growing minimum delay, caps every wait, and bounds the number of
resubmissions of a single batch.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Any

from docmigrate.operations import OperationStatus


@dataclass(frozen=True)
class RetryPolicy:
    """
    Configuration for resubmitting failed operations of a batch.

    Attributes:
        max_retries: Maximum resubmissions of one batch (0 = never retry).
        base_delay_ms: Minimum delay before the first resubmission. Grows by
            ``exponential_base`` per attempt. 0 waits only for store hints.
        max_delay_ms: Upper bound for any single wait, hints included.
        exponential_base: Growth factor for the minimum delay.
        jitter: Fraction of the minimum delay added as random jitter (0-1).
        retry_all_failures: Treat every non-success status as retryable
            instead of failing fast on permanent errors.

    Example:
        >>> policy = RetryPolicy(max_retries=5, base_delay_ms=100)
        >>> policy.delay_seconds(attempt=0, hint_ms=500)
        0.5
    """

    max_retries: int = 10
    base_delay_ms: float = 0.0
    max_delay_ms: float = 30000.0
    exponential_base: float = 2.0
    jitter: float = 0.0
    retry_all_failures: bool = False

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.max_retries < 0:
            raise ValueError(
                f"max_retries must be >= 0, got {self.max_retries}. Use 0 for no retries."
            )
        if self.base_delay_ms < 0:
            raise ValueError(f"base_delay_ms must be >= 0, got {self.base_delay_ms}")
        if self.max_delay_ms < self.base_delay_ms:
            raise ValueError(
                f"max_delay_ms ({self.max_delay_ms}) must be >= "
                f"base_delay_ms ({self.base_delay_ms})"
            )
        if self.exponential_base < 1.0:
            raise ValueError(f"exponential_base must be >= 1.0, got {self.exponential_base}")
        if not 0.0 <= self.jitter <= 1.0:
            raise ValueError(f"jitter must be between 0.0 and 1.0, got {self.jitter}")

    def should_retry(self, status: OperationStatus) -> bool:
        """
        Check whether a failed operation may be resubmitted.

        Args:
            status: Classification of the failed result.

        Returns:
            True for retryable failures, or for any failure when
            ``retry_all_failures`` is set.
        """
        if status is OperationStatus.SUCCESS:
            return False
        return self.retry_all_failures or status is OperationStatus.RETRYABLE

    def delay_seconds(self, attempt: int, hint_ms: float = 0.0) -> float:
        """
        Calculate the wait before resubmitting.

        Args:
            attempt: Retry attempt number (0-based).
            hint_ms: Largest retry-after hint among the failed operations.

        Returns:
            Delay in seconds, never above ``max_delay_ms``.
        """
        floor = self.base_delay_ms * (self.exponential_base**attempt)
        if self.jitter > 0 and floor > 0:
            floor += floor * self.jitter * random.random()  # nosec B311 - retry jitter, not security
        delay_ms = min(max(hint_ms, floor), self.max_delay_ms)
        return max(0.0, delay_ms) / 1000.0

    def to_dict(self) -> dict[str, Any]:
        """
        Convert to dictionary for serialization.

        Returns:
            Dictionary representation of the policy.
        """
        return {
            "max_retries": self.max_retries,
            "base_delay_ms": self.base_delay_ms,
            "max_delay_ms": self.max_delay_ms,
            "exponential_base": self.exponential_base,
            "jitter": self.jitter,
            "retry_all_failures": self.retry_all_failures,
        }


__all__ = ["RetryPolicy"]
