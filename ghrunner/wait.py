"""Clock abstraction and bounded polling.

Every sleep in ghrunner goes through a Clock so that wait loops can be
driven by a fake clock in tests instead of real wall-clock time.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from typing import Protocol, runtime_checkable

from ghrunner.core.exceptions import TimeoutError


@runtime_checkable
class Clock(Protocol):
    def monotonic(self) -> float: ...
    def time(self) -> float: ...
    async def sleep(self, seconds: float) -> None: ...


class SystemClock:
    """Real clock backed by time and asyncio."""

    def monotonic(self) -> float:
        return time.monotonic()

    def time(self) -> float:
        return time.time()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)


async def wait_for_ready[T](
    poll_fn: Callable[[], Awaitable[T | None]],
    ready_check: Callable[[T], bool],
    *,
    failure_check: Callable[[T], BaseException | None] | None = None,
    timeout: float = 300.0,
    interval: float = 5.0,
    description: str = "resource",
    clock: Clock | None = None,
) -> T:
    """Wait until poll_fn returns something that passes ready_check.

    The deadline is computed once, before the first poll. A poll result of
    None means "not visible yet" and simply waits for the next tick.

    Args:
        poll_fn: Async function that polls for the resource state.
        ready_check: Returns True when the resource is ready.
        failure_check: Returns an exception to raise when the resource
            reached a state the wait cannot progress from.
        timeout: Maximum time to wait in seconds.
        interval: Time between polls in seconds.
        description: Description for error messages.
        clock: Clock used for deadlines and sleeps.

    Returns:
        The ready resource.

    Raises:
        TimeoutError: If the deadline passes first.
    """
    clock = clock or SystemClock()
    deadline = clock.monotonic() + timeout

    while True:
        result = await poll_fn()

        if result is not None:
            if ready_check(result):
                return result

            if failure_check is not None and (exc := failure_check(result)) is not None:
                raise exc

        remaining = deadline - clock.monotonic()
        if remaining <= 0:
            raise TimeoutError(description, timeout)

        await clock.sleep(min(interval, remaining))
