"""Cooperative cancellation tokens.

A single token is threaded through a grouping request and every suspendable
call it makes (oracle, embedding service, cache). Components poll
``is_cancellation_requested`` at their checkpoints; external collaborators
may ``await token.wait()`` or call ``raise_if_cancelled()``.
"""

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

from toolscope.lib.errors import CancellationError

T = TypeVar("T")


class CancellationToken:
    """Flag that can be set once and observed by many tasks."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def is_cancellation_requested(self) -> bool:
        return self._event.is_set()

    @property
    def can_be_cancelled(self) -> bool:
        return True

    def cancel(self) -> None:
        self._event.set()

    async def wait(self) -> None:
        """Suspend until the token is cancelled."""
        await self._event.wait()

    def raise_if_cancelled(self) -> None:
        """Raise CancellationError if the token has been cancelled."""
        if self._event.is_set():
            raise CancellationError()


class _NeverCancelledToken(CancellationToken):
    @property
    def can_be_cancelled(self) -> bool:
        return False

    def cancel(self) -> None:
        raise RuntimeError("NONE_TOKEN cannot be cancelled")


NONE_TOKEN: CancellationToken = _NeverCancelledToken()


async def run_cancellable(awaitable: Awaitable[T], token: CancellationToken) -> T:
    """Await ``awaitable`` unless ``token`` is cancelled first.

    Raises:
        CancellationError: If the token was cancelled before the awaitable
            completed. The awaitable is cancelled in that case.
    """
    if token.is_cancellation_requested:
        if asyncio.iscoroutine(awaitable):
            awaitable.close()
        raise CancellationError()
    if not token.can_be_cancelled:
        return await awaitable

    work = asyncio.ensure_future(awaitable)
    cancelled = asyncio.ensure_future(token.wait())
    try:
        await asyncio.wait({work, cancelled}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        work.cancel()
        raise
    finally:
        cancelled.cancel()

    if not work.done():
        work.cancel()
        raise CancellationError()
    return work.result()
