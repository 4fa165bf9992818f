"""
Retry decision for failed provider calls.

The policy is a pure function of the error kind and the attempt count; the
gateway owns the actual sleep.

Example:
    >>> policy = BackoffPolicy(max_attempts=3, base_delay_ms=1000)
    >>> [policy.decide(ErrorKind.TRANSIENT, a).delay_ms for a in range(3)]
    [2000, 4000, 8000]
"""

from dataclasses import dataclass

from ..models.listing import RetryState
from ..utils.error_handlers import ErrorKind


@dataclass(frozen=True)
class BackoffDecision:
    """Outcome of a retry decision."""

    should_retry: bool
    delay_ms: int = 0


@dataclass(frozen=True)
class BackoffPolicy:
    """
    Exponential backoff limited to transient errors.

    Attributes:
        max_attempts: Number of retries allowed after the first failure.
        base_delay_ms: Base delay; the n-th retry (0-based) waits
            base_delay_ms * 2^(n+1).
    """

    max_attempts: int = 3
    base_delay_ms: int = 1000

    def __post_init__(self):
        if self.max_attempts < 0:
            raise ValueError("max_attempts must be non-negative")
        if self.base_delay_ms < 0:
            raise ValueError("base_delay_ms must be non-negative")

    def decide(self, error_kind: ErrorKind, attempt: int) -> BackoffDecision:
        """
        Decide whether to retry after a failure.

        Args:
            error_kind: Classification of the failure.
            attempt: Number of failures before this one (0-based).

        Returns:
            BackoffDecision with the delay to wait before the next call.
        """
        if error_kind is not ErrorKind.TRANSIENT or attempt >= self.max_attempts:
            return BackoffDecision(should_retry=False)
        return BackoffDecision(should_retry=True, delay_ms=self.delay_for(attempt))

    def delay_for(self, attempt: int) -> int:
        """Delay in milliseconds before the retry following `attempt`."""
        return self.base_delay_ms * 2 ** (attempt + 1)

    def new_state(self) -> RetryState:
        """Fresh retry bookkeeping for one outbound call."""
        return RetryState(max_attempts=self.max_attempts, base_delay_ms=self.base_delay_ms)
