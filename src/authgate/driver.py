"""
Retry-until-success loop gated on authorization.

Each attempt first waits for the shared gate, then invokes the operation.
Failures are handed to an interceptor that answers "retry" (True) or "abort"
(False). The driver keeps no state between ``run`` calls beyond its gate and
interceptor.
"""

import asyncio
import inspect

from .errors import StopReason
from .events import EventName, emit
from .gate import AuthGate
from .types import Interceptor, LogHook, MetricHook, Operation, T


class RetryDriver:
    def __init__(
        self,
        gate: AuthGate,
        interceptor: Interceptor,
        *,
        max_attempts: int | None = None,
        operation: str | None = None,
        on_metric: MetricHook | None = None,
        on_log: LogHook | None = None,
    ) -> None:
        if max_attempts is not None and max_attempts < 1:
            raise ValueError("max_attempts must be >= 1.")
        self.gate = gate
        self.interceptor = interceptor
        self.max_attempts = max_attempts
        self.operation = operation
        self.on_metric = on_metric
        self.on_log = on_log

    async def _intercept(self, exc: BaseException) -> bool:
        decision = self.interceptor(exc)
        if inspect.isawaitable(decision):
            decision = await decision
        return bool(decision)

    async def run(self, func: Operation[T]) -> T:
        """
        Invoke ``func`` until it succeeds or a failure is deemed unrecoverable.

        Raises
        ------
        BaseException
            The original exception, re-raised with its traceback, when the
            interceptor rejects it or ``max_attempts`` is exhausted.
        """
        attempt = 0
        while True:
            attempt += 1
            try:
                await self.gate.wait()
                result = await func()
            except asyncio.CancelledError:
                raise
            except (KeyboardInterrupt, SystemExit):
                raise
            except Exception as exc:
                if not await self._intercept(exc):
                    self._emit(EventName.ABORT, attempt, exc, StopReason.FATAL)
                    raise

                if self.max_attempts is not None and attempt >= self.max_attempts:
                    self._emit(
                        EventName.MAX_ATTEMPTS_EXCEEDED, attempt, exc, StopReason.MAX_ATTEMPTS
                    )
                    raise

                self._emit(EventName.RETRY, attempt, exc)
                continue

            self._emit(EventName.SUCCESS, attempt)
            return result

    def _emit(
        self,
        event: EventName,
        attempt: int,
        exc: BaseException | None = None,
        stop_reason: StopReason | None = None,
    ) -> None:
        emit(
            event,
            on_metric=self.on_metric,
            on_log=self.on_log,
            attempt=attempt,
            exc=exc,
            stop_reason=stop_reason,
            operation=self.operation,
        )
