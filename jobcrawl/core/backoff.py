"""
Retry/backoff classification.

classify() is a pure decision: given an error and the number of the retry
being considered (1 for the first retry), it returns RetryAfter(delay) or
Fail(error). Delays grow linearly: attempt 1 waits base_delay, attempt 2 waits
2 * base_delay, and so on.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Iterable, TypeVar, Union

from jobcrawl.core.errors import InfrastructureError

logger = logging.getLogger(__name__)

T = TypeVar("T")

RetryPredicate = Callable[[BaseException], bool]


def always_retry(error: BaseException) -> bool:
    return True


@dataclass(frozen=True)
class RetryPolicy:
    """How many retries are allowed, how long to wait, and which errors qualify."""
    max_attempts: int = 3
    base_delay: float = 1.0  # seconds
    retry_predicate: RetryPredicate = always_retry


@dataclass(frozen=True)
class RetryAfter:
    delay: float


@dataclass(frozen=True)
class Fail:
    error: BaseException


Action = Union[RetryAfter, Fail]


def classify(error: BaseException, attempt_number: int, policy: RetryPolicy) -> Action:
    """
    Decide whether to retry after a failure.

    Args:
        error: The exception raised by the last attempt
        attempt_number: 1-based number of the retry being considered
        policy: Retry limits and predicate

    Returns:
        RetryAfter with a linear delay, or Fail carrying the error
    """
    if attempt_number > policy.max_attempts:
        return Fail(error)
    if not policy.retry_predicate(error):
        return Fail(error)
    return RetryAfter(attempt_number * policy.base_delay)


def excluded_status_predicate(excluded_status_codes: Iterable[int]) -> RetryPredicate:
    """Retry anything except errors whose ``status`` is in the exclusion set."""
    excluded = frozenset(excluded_status_codes)

    def predicate(error: BaseException) -> bool:
        return getattr(error, "status", None) not in excluded

    return predicate


def retryable_marker_predicate(error: BaseException) -> bool:
    """Retry only errors that marked themselves ``retryable``."""
    return getattr(error, "retryable", False) is True


def generic_retry_policy(
    max_attempts: int = 3,
    base_delay: float = 1.0,
    excluded_status_codes: Iterable[int] = (),
) -> RetryPolicy:
    return RetryPolicy(
        max_attempts=max_attempts,
        base_delay=base_delay,
        retry_predicate=excluded_status_predicate(excluded_status_codes),
    )


def condition_retry_policy(
    max_attempts: int = 3,
    base_delay: float = 1.0,
    retry_condition: RetryPredicate = retryable_marker_predicate,
) -> RetryPolicy:
    return RetryPolicy(max_attempts=max_attempts, base_delay=base_delay, retry_predicate=retry_condition)


async def call_with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    description: str = "operation",
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """
    Await ``operation`` until it succeeds or ``policy`` says to give up.

    Each failure is passed through classify(); the last error is re-raised on
    Fail. Infrastructure errors are never retried.

    Usage:
        records = await call_with_retry(lambda: fetch(request), policy, description="page 3")
    """
    attempt_number = 0
    while True:
        try:
            return await operation()
        except InfrastructureError:
            raise
        except Exception as error:  # pylint: disable=broad-except
            attempt_number += 1
            action = classify(error, attempt_number, policy)
            if isinstance(action, Fail):
                logger.warning(f"Giving up on {description} after {attempt_number} attempt(s): {error}")
                raise
            logger.info(f"Attempt {attempt_number}: retrying {description} in {action.delay:.1f}s ({error})")
            await sleep(action.delay)
