"""
Single-timer backoff scheduler.

The delay table is an ordered sequence walked by a cursor: the first arm
uses the first entry, each following arm the next one, and once the cursor
reaches the last entry it stays there. With the default table this yields
1ms, 500ms, 1s, 2.5s, 5s, 10s, 60s, 60s, ...

Only one timer may be pending at a time. Every concurrently failing request
awaits the same gate, so a second timer would only duplicate the attempt.
"""

import asyncio
import inspect
from collections.abc import Sequence
from dataclasses import dataclass, field

from .config import DEFAULT_DELAYS_MS
from .events import EventName, emit
from .types import BackoffAction, LogHook, MetricHook


@dataclass
class BackoffState:
    delays_ms: tuple[float, ...] = DEFAULT_DELAYS_MS
    cursor: int | None = None
    timer: asyncio.TimerHandle | None = field(default=None, repr=False)

    @property
    def current_delay_ms(self) -> float | None:
        if self.cursor is None:
            return None
        return self.delays_ms[self.cursor]

    def peek(self) -> float:
        return self.delays_ms[self._next_cursor()]

    def advance(self) -> float:
        self.cursor = self._next_cursor()
        return self.delays_ms[self.cursor]

    def reset(self) -> None:
        self.cursor = None

    def _next_cursor(self) -> int:
        if self.cursor is None:
            return 0
        return min(self.cursor + 1, len(self.delays_ms) - 1)


class BackoffScheduler:
    def __init__(
        self,
        delays_ms: Sequence[float] = DEFAULT_DELAYS_MS,
        *,
        name: str = "reauth",
        on_metric: MetricHook | None = None,
        on_log: LogHook | None = None,
    ) -> None:
        if not delays_ms:
            raise ValueError("delays_ms must not be empty.")
        self.state = BackoffState(delays_ms=tuple(delays_ms))
        self.name = name
        self.on_metric = on_metric
        self.on_log = on_log
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def pending(self) -> bool:
        return self.state.timer is not None

    @property
    def current_delay_ms(self) -> float | None:
        return self.state.current_delay_ms

    def next_delay_ms(self) -> float:
        return self.state.peek()

    def arm(self, action: BackoffAction) -> bool:
        """
        Schedule ``action`` after the next delay unless a timer is pending.

        Returns True when a timer was started. Must be called from inside the
        running event loop.
        """
        if self.state.timer is not None:
            emit(
                EventName.BACKOFF_SKIPPED,
                on_metric=self.on_metric,
                on_log=self.on_log,
                scheduler=self.name,
            )
            return False

        loop = asyncio.get_running_loop()
        delay_ms = self.state.advance()
        self.state.timer = loop.call_later(delay_ms / 1000.0, self._fire, action)

        emit(
            EventName.BACKOFF_ARMED,
            on_metric=self.on_metric,
            on_log=self.on_log,
            delay_s=delay_ms / 1000.0,
            scheduler=self.name,
        )
        return True

    def _fire(self, action: BackoffAction) -> None:
        self.state.timer = None
        emit(
            EventName.BACKOFF_FIRED,
            on_metric=self.on_metric,
            on_log=self.on_log,
            delay_s=(self.state.current_delay_ms or 0.0) / 1000.0,
            scheduler=self.name,
        )
        result = action()
        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    def reset(self) -> None:
        self.state.reset()

    def cancel(self) -> None:
        timer = self.state.timer
        self.state.timer = None
        if timer is not None:
            timer.cancel()
        for task in list(self._tasks):
            task.cancel()
