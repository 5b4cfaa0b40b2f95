"""
Retry Logic with Exponential Backoff

Recovery strategy, backoff calculation and the retry context the export
orchestrator drives its render attempts with. Backoff waits go through an
injectable async sleep so concurrent exports are never blocked and tests
can run without real delays.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from sprint_export.errors import ExportError


logger = logging.getLogger(__name__)


SleepFunc = Callable[[float], Awaitable[None]]


@dataclass
class RecoveryStrategy:
    """Retry policy for render attempts.

    Attributes:
        max_retries: Maximum number of render attempts
        base_delay: Delay before the second attempt, in seconds
        backoff_multiplier: Growth factor between consecutive delays
        timeout: Wall-clock budget of a single attempt, in seconds
    """
    max_retries: int = 3
    base_delay: float = 1.0
    backoff_multiplier: float = 2.0
    timeout: float = 30.0

    def validate(self) -> None:
        if self.max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        if self.base_delay < 0:
            raise ValueError("base_delay must not be negative")
        if self.backoff_multiplier < 1:
            raise ValueError("backoff_multiplier must be at least 1")
        if self.timeout <= 0:
            raise ValueError("timeout must be positive")


def calculate_backoff_delay(
    attempt: int,
    base_delay: float = 1.0,
    multiplier: float = 2.0,
) -> float:
    """Calculate exponential backoff delay.

    Uses delay = base_delay * multiplier ** (attempt - 1):
    - After attempt 1: 1s
    - After attempt 2: 2s
    - After attempt 3: 4s

    Args:
        attempt: Attempt that just failed (1-indexed)
        base_delay: Base delay in seconds
        multiplier: Backoff multiplier

    Returns:
        Delay in seconds
    """
    if attempt < 1:
        return 0.0
    return base_delay * (multiplier ** (attempt - 1))


class CancellationToken:
    """Best-effort cancellation signal shared between caller and pipeline.

    The orchestrator checks it between attempts; renderers may poll it
    during long renders.
    """

    def __init__(self):
        self._event = asyncio.Event()
        self.reason: Optional[str] = None

    def cancel(self, reason: str = "cancelled by caller") -> None:
        self.reason = reason
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        await self._event.wait()


class RetryContext:
    """Async retry context with exponential backoff.

    Iterating yields 1-based attempt numbers up to ``max_retries``.

    Example:
        >>> retry_ctx = RetryContext(RecoveryStrategy())
        >>> for attempt in retry_ctx:
        ...     try:
        ...         result = await render()
        ...         break
        ...     except Exception as e:
        ...         error = classifier.classify(e, attempt=attempt)
        ...         if not retry_ctx.should_retry(error):
        ...             raise
        ...         await retry_ctx.wait()
    """

    def __init__(
        self,
        strategy: Optional[RecoveryStrategy] = None,
        sleep: Optional[SleepFunc] = None,
        cancel_token: Optional[CancellationToken] = None,
        log_retries: bool = True,
    ):
        self.strategy = strategy or RecoveryStrategy()
        self.sleep = sleep or asyncio.sleep
        self.cancel_token = cancel_token
        self.log_retries = log_retries
        self.current_attempt = 0

    def __iter__(self):
        """Iterate over retry attempts."""
        self.current_attempt = 0
        return self

    def __next__(self) -> int:
        """Get next retry attempt."""
        if self.current_attempt >= self.strategy.max_retries:
            raise StopIteration
        self.current_attempt += 1
        return self.current_attempt

    @property
    def cancelled(self) -> bool:
        return self.cancel_token is not None and self.cancel_token.cancelled

    @property
    def exhausted(self) -> bool:
        return self.current_attempt >= self.strategy.max_retries

    def should_retry(self, error: ExportError) -> bool:
        """Check if a classified error should trigger another attempt.

        Args:
            error: Classified failure of the current attempt

        Returns:
            True if another attempt should be made, False otherwise
        """
        if not error.recoverable:
            return False
        if self.exhausted:
            return False
        return not self.cancelled

    def next_delay(self) -> float:
        return calculate_backoff_delay(
            self.current_attempt,
            self.strategy.base_delay,
            self.strategy.backoff_multiplier,
        )

    async def wait(self) -> float:
        """Wait with exponential backoff before the next attempt."""
        delay = self.next_delay()
        if self.log_retries:
            logger.info(f"Waiting {delay}s before retry...")
        await self.sleep(delay)
        return delay
