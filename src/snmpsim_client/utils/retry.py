from __future__ import annotations
import time
from dataclasses import dataclass
from typing import Callable, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    attempts: int = 10
    base_delay_s: float = 0.2
    max_delay_s: float = 2.0


class PollTimeoutError(TimeoutError):
    pass


def with_retries(
    fn: Callable[[], T],
    policy: RetryPolicy,
    retry_on: tuple[type[Exception], ...] = (Exception,),
) -> T:
    last_exc: Exception | None = None
    delay = policy.base_delay_s
    for attempt in range(policy.attempts):
        try:
            return fn()
        except retry_on as e:
            last_exc = e
            if attempt + 1 < policy.attempts:
                time.sleep(delay)
                delay = min(policy.max_delay_s, delay * 2)
    assert last_exc is not None
    raise last_exc


def poll_until(fn: Callable[[], T | None], policy: RetryPolicy, what: str = "condition") -> T:
    """
    Call `fn` until it returns something other than None.
    Exceptions from `fn` are not retried; they propagate.
    """
    delay = policy.base_delay_s
    for attempt in range(policy.attempts):
        result = fn()
        if result is not None:
            return result
        if attempt + 1 < policy.attempts:
            time.sleep(delay)
            delay = min(policy.max_delay_s, delay * 2)
    raise PollTimeoutError(f"gave up waiting for {what} after {policy.attempts} attempts")
