"""Retry driver with exponential backoff and jitter.

Re-runs an asynchronous operation that returns a ``Result`` until it
succeeds, fails fatally, or runs out of attempts.
"""

import asyncio
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from icecream import ic

from kubeseal_client.exceptions import TransientError
from kubeseal_client.result import Err, Ok, Result

T = TypeVar("T")
E = TypeVar("E")

# Random multiplier range applied to the exponential delay
_JITTER_LOW = 0.5
_JITTER_SPAN = 1.0


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Bounds for the retry driver.

    Attributes:
        max_attempts: Total number of attempts, including the first one.
        initial_delay_ms: Delay before the second attempt.
        max_delay_ms: Upper bound for any single delay.

    """

    max_attempts: int = 3
    initial_delay_ms: int = 1000
    max_delay_ms: int = 10000

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.initial_delay_ms < 0 or self.max_delay_ms < 0:
            raise ValueError("Delays cannot be negative")
        if self.initial_delay_ms > self.max_delay_ms:
            raise ValueError("initial_delay_ms cannot exceed max_delay_ms")


def is_transient(error: Any) -> bool:
    """Return True if a failure payload is worth retrying.

    Only ``TransientError`` payloads qualify; malformed input, missing
    resources and every other payload type are fatal.
    """
    return isinstance(error, TransientError)


def compute_delay(attempt: int, policy: RetryPolicy, *, rand: Callable[[], float] = random.random) -> float:
    """Compute the delay in milliseconds after a failed attempt.

    The delay doubles per attempt starting at ``initial_delay_ms``, is capped at
    ``max_delay_ms``, then scaled by a random factor in [0.5, 1.5) and clamped
    back into [0, max_delay_ms].

    Args:
        attempt: 1-based number of the attempt that just failed.
        policy: The retry bounds.
        rand: Source of uniform values in [0, 1).

    Returns:
        The delay in milliseconds.

    """
    base = min(policy.initial_delay_ms * 2 ** (attempt - 1), policy.max_delay_ms)
    jittered = base * (_JITTER_LOW + _JITTER_SPAN * rand())
    return max(0.0, min(jittered, float(policy.max_delay_ms)))


async def retry_with_backoff(
    operation: Callable[[], Awaitable[Result[T, E]]],
    policy: RetryPolicy = RetryPolicy(),
    *,
    should_retry: Callable[[E], bool] = is_transient,
) -> Result[T, E]:
    """Run ``operation`` until it succeeds or the policy gives up.

    Args:
        operation: Zero-argument coroutine factory returning a Result.
        policy: Attempt count and delay bounds.
        should_retry: Predicate deciding whether a failure is transient.
            Failures it rejects are returned immediately.

    Returns:
        The first success, the first fatal failure, or the last failure
        once ``policy.max_attempts`` attempts have been made.

    """
    result: Result[T, E] = Err(None)  # type: ignore[arg-type]
    for attempt in range(1, policy.max_attempts + 1):
        result = await operation()
        if isinstance(result, Ok):
            return result
        if not should_retry(result.error):
            ic("fatal failure, not retrying", attempt, result.error)
            return result
        if attempt < policy.max_attempts:
            delay_ms = compute_delay(attempt, policy)
            ic(attempt, delay_ms, result.error)
            await asyncio.sleep(delay_ms / 1000)
    return result
