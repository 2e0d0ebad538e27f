from __future__ import annotations

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from functools import partial
from typing import TypeVar

T = TypeVar("T")

# Abandoned operations stay referenced until they settle, otherwise the loop may drop them mid-flight.
_ABANDONED: set[asyncio.Future[object]] = set()


class CancellationToken:
    """One-shot cooperative stop signal for a single run.

    The token is observed only at step boundaries. Cancellation is
    non-preemptive: an operation already in flight when the token fires is
    abandoned, not aborted, so its side effects (driver calls, observer
    notifications) may still complete after the run has stopped waiting on it.
    """

    __slots__ = ("_event",)

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def requested(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> bool:
        # Returns True only for the call that actually requested cancellation.
        if self._event.is_set():
            return False
        self._event.set()
        return True

    async def wait(self) -> None:
        await self._event.wait()


async def race_with_cancellation(
    operation: Awaitable[T],
    token: CancellationToken,
    *,
    on_abandoned_error: Callable[[BaseException], None] | None = None,
) -> T | None:
    # Resolves with the operation result, or None when the token fires first.
    # An abandoned operation that later raises is reported through on_abandoned_error.
    if token.requested:
        if inspect.iscoroutine(operation):
            operation.close()
        return None

    task = asyncio.ensure_future(operation)
    waiter = asyncio.ensure_future(token.wait())
    try:
        done, _ = await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        task.cancel()
        raise
    finally:
        if not waiter.done():
            waiter.cancel()

    if task in done:
        return task.result()
    _abandon(task, on_abandoned_error)
    return None


def _abandon(
    task: asyncio.Future[object],
    on_error: Callable[[BaseException], None] | None,
) -> None:
    _ABANDONED.add(task)
    task.add_done_callback(partial(_settle_abandoned, on_error))


def _settle_abandoned(
    on_error: Callable[[BaseException], None] | None,
    task: asyncio.Future[object],
) -> None:
    _ABANDONED.discard(task)
    if task.cancelled():
        return
    # Nobody awaits an abandoned task, so its error is retrieved here and handed on.
    error = task.exception()
    if error is not None and on_error is not None:
        on_error(error)
