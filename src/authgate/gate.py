"""
Shared, re-armable authorization gate.

Every operation that needs a valid token awaits ``AuthGate.wait()``. A fresh
gate is open: callers pass straight through until the first failure closes
it. From then on the gate wraps a single asyncio future:

* ``resolve`` settles it successfully; all current waiters proceed and later
  waiters pass straight through until the gate is closed again.
* ``reject`` settles it with ``GateRejectedError``, wakes every current waiter
  exactly once and hands the failure to the rejection handler. The next
  ``wait`` on a rejected gate starts a fresh cycle.
* ``invalidate`` is what callers use to report a failure: it closes the gate
  but never wakes anyone, so waiters of a recovery already in progress keep
  waiting for its outcome.

A settled future is only ever replaced, never reused, so a fresh gate cannot
release waiters that were parked on the previous one.
"""

import asyncio
from collections.abc import Callable
from typing import Any

from .errors import GateRejectedError, GateState
from .failure import RawFailure

RejectionHandler = Callable[[RawFailure], None]


class AuthGate:
    def __init__(self, *, on_reject: RejectionHandler | None = None) -> None:
        self.on_reject = on_reject
        self._future: asyncio.Future[Any] | None = None
        self.generation = 0

    def _current(self) -> "asyncio.Future[Any]":
        if self._future is None:
            self._future = asyncio.get_running_loop().create_future()
        return self._future

    def _rearm(self) -> "asyncio.Future[Any]":
        future = asyncio.get_running_loop().create_future()
        self._future = future
        self.generation += 1
        return future

    @property
    def state(self) -> GateState:
        future = self._future
        if future is None:
            return GateState.RESOLVED
        if not future.done():
            return GateState.PENDING
        if future.cancelled() or future.exception() is not None:
            return GateState.REJECTED
        return GateState.RESOLVED

    @property
    def value(self) -> Any:
        """Value of the most recent successful resolution, if any."""
        if self._future is not None and self.state is GateState.RESOLVED:
            return self._future.result()
        return None

    async def wait(self) -> Any:
        """
        Block until the current gate settles.

        The shared future is shielded, so cancelling one waiter never cancels
        the gate for the others.
        """
        if self._future is None:
            return None
        if self.state is GateState.REJECTED:
            self._rearm()
        return await asyncio.shield(self._current())

    def close(self) -> None:
        """Make later callers wait. A gate that is already pending is left as is."""
        if self._future is None or self._future.done():
            self._rearm()

    def resolve(self, value: Any = None) -> None:
        future = self._current()
        if future.done():
            future = self._rearm()
        future.set_result(value)

    def reject(self, failure: RawFailure) -> None:
        future = self._current()
        if future.done():
            future = self._rearm()
        future.set_exception(GateRejectedError(failure))
        # Mark retrieved so a rejection nobody awaited is not logged by asyncio.
        future.exception()
        self._handle(failure)

    def invalidate(self, failure: RawFailure) -> None:
        self.close()
        self._handle(failure)

    def _handle(self, failure: RawFailure) -> None:
        if self.on_reject is not None:
            self.on_reject(failure)
