"""Bounded polling for remote state transitions.

Render has no push channel for provisioning or deploy progress, so both
state machines observe the remote side by re-querying it. `poll_until`
suspends cooperatively between attempts, stops at an attempt ceiling and
honours an optional cancellation event.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
import random
from typing import TypeVar

import structlog

from .errors import PollTimeoutError, RebuildCancelled

logger = structlog.get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class PollPolicy:
    """Timing for one polling loop.

    Attributes:
        interval: Delay in seconds before the second attempt.
        max_attempts: Attempt ceiling. None polls until a terminal value.
        backoff: Multiplier applied to the delay after each attempt (1.0 = fixed).
        max_interval: Upper bound for the delay once backoff is applied.
        jitter: Random extra delay as a fraction of the current delay.
    """

    interval: float = 10.0
    max_attempts: int | None = 180
    backoff: float = 1.0
    max_interval: float = 60.0
    jitter: float = 0.0

    def next_delay(self, delay: float) -> float:
        return min(delay * self.backoff, max(self.max_interval, self.interval))

    def with_jitter(self, delay: float) -> float:
        if not self.jitter or not delay:
            return delay
        return delay + random.uniform(0, self.jitter * delay)  # noqa: S311


async def wait_or_cancel(delay: float, cancel_event: asyncio.Event | None = None) -> None:
    """Sleep for `delay` seconds, raising RebuildCancelled as soon as the event is set."""
    if cancel_event is None:
        await asyncio.sleep(delay)
        return
    try:
        await asyncio.wait_for(cancel_event.wait(), timeout=delay)
    except TimeoutError:
        return
    raise RebuildCancelled("Rebuild cancelled while waiting")


async def poll_until(
    fetch: Callable[[], Awaitable[T]],
    is_done: Callable[[T], bool],
    policy: PollPolicy,
    *,
    operation: str,
    cancel_event: asyncio.Event | None = None,
    wait_first: bool = False,
) -> T:
    """Call `fetch` until `is_done` accepts its result.

    Args:
        fetch: Coroutine factory querying the remote state.
        is_done: Predicate marking a terminal value.
        policy: Interval, ceiling, backoff and jitter.
        operation: Name used in logs and in PollTimeoutError.
        cancel_event: Setting this event aborts the loop with RebuildCancelled.
        wait_first: Wait one interval before the first attempt.

    Returns:
        The first value accepted by `is_done`.

    Raises:
        PollTimeoutError: If `policy.max_attempts` fetches returned no terminal value.
        RebuildCancelled: If `cancel_event` was set.
    """
    delay = policy.interval
    attempt = 0

    if wait_first:
        await wait_or_cancel(policy.with_jitter(delay), cancel_event)

    while True:
        if cancel_event is not None and cancel_event.is_set():
            raise RebuildCancelled(f"{operation} cancelled")

        attempt += 1
        value = await fetch()
        if is_done(value):
            logger.debug("poll_finished", operation=operation, attempts=attempt)
            return value

        if policy.max_attempts is not None and attempt >= policy.max_attempts:
            logger.warning("poll_exhausted", operation=operation, attempts=attempt)
            raise PollTimeoutError(operation, attempt)

        wait = policy.with_jitter(delay)
        logger.debug("poll_waiting", operation=operation, attempt=attempt, delay=round(wait, 2))
        await wait_or_cancel(wait, cancel_event)
        delay = policy.next_delay(delay)
