"""Cooperative cancellation for in-flight requests.

A CancellationToken is a single-shot signal. linked() builds the request
scope: it fires when the caller's token fires or when the deadline passes,
whichever happens first, and remembers which one it was.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

from autoreply.domain.errors import CancellationError, RequestTimeoutError

T = TypeVar("T")

USER_CANCELLED = "cancelled"
TIMED_OUT = "timeout"


class CancellationToken:
    """Single-shot cancellation signal bound to the running event loop."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: str | None = None
        self._children: list[CancellationToken] = []
        self._timer: asyncio.TimerHandle | None = None
        self._parent: CancellationToken | None = None

    # ----- state -----

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        return self._reason

    @property
    def timed_out(self) -> bool:
        return self._reason == TIMED_OUT

    def cancel(self, reason: str = USER_CANCELLED) -> None:
        """Fire the token. Later calls are no-ops; the first reason wins."""
        if self._event.is_set():
            return
        self._reason = reason
        self._event.set()
        self._disarm()
        for child in self._children:
            child.cancel(reason)
        self._children.clear()

    def error(self) -> CancellationError:
        if self.timed_out:
            return RequestTimeoutError("request timed out")
        return CancellationError("request cancelled")

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise self.error()

    async def wait(self) -> None:
        await self._event.wait()

    # ----- composition -----

    @classmethod
    def linked(
        cls, parent: CancellationToken | None = None, timeout: float | None = None
    ) -> CancellationToken:
        """Race of the parent token and a deadline; the first to fire wins."""
        token = cls()
        if parent is not None:
            if parent.cancelled:
                token.cancel(parent.reason or USER_CANCELLED)
                return token
            parent._children.append(token)
            token._parent = parent
        if timeout is not None:
            loop = asyncio.get_running_loop()
            token._timer = loop.call_later(timeout, token.cancel, TIMED_OUT)
        return token

    def _disarm(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def dispose(self) -> None:
        """Stop the deadline timer and detach from the parent once the request has finished."""
        self._disarm()
        if self._parent is not None and self in self._parent._children:
            self._parent._children.remove(self)
        self._parent = None

    # ----- racing -----

    async def run(self, awaitable: Awaitable[T]) -> T:
        """Await `awaitable` unless the token fires first.

        On cancellation the pending awaitable is cancelled and the matching
        CancellationError (or RequestTimeoutError) is raised.
        """
        if self.cancelled:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise self.error()
        task = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except BaseException:
            task.cancel()
            raise
        finally:
            waiter.cancel()
        if task.done():
            return task.result()
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        raise self.error()

    async def sleep(self, delay: float) -> None:
        """Backoff wait that is abandoned as soon as the token fires."""
        await self.run(asyncio.sleep(delay))
