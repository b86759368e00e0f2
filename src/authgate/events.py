"""
Observability plumbing shared by the coordinator, scheduler and driver.

Hooks are best-effort: a failing metric or log hook is swallowed so that
observability problems never interrupt recovery.
"""

import logging
from enum import Enum
from typing import Any

from .errors import ErrorKind, StopReason
from .types import LogHook, MetricHook


class EventName(str, Enum):
    AUTH_FAILURE = "auth_failure"
    CLASSIFIED = "classified"
    BACKOFF_ARMED = "backoff_armed"
    BACKOFF_SKIPPED = "backoff_skipped"
    BACKOFF_FIRED = "backoff_fired"
    REAUTH_STARTED = "reauth_started"
    REAUTH_SUCCEEDED = "reauth_succeeded"
    REAUTH_FAILED = "reauth_failed"
    REAUTH_TIMEOUT = "reauth_timeout"
    MANUAL_PROMPT = "manual_prompt"
    NETWORK_WAIT = "network_wait"
    CONNECTIVITY_RESTORED = "connectivity_restored"
    SERVER_ERROR_WAIT = "server_error_wait"
    FATAL = "fatal"
    RECOVERY_EXHAUSTED = "recovery_exhausted"
    SUCCESS = "success"
    RETRY = "retry"
    ABORT = "abort"
    MAX_ATTEMPTS_EXCEEDED = "max_attempts_exceeded"


def emit(
    event: EventName | str,
    *,
    on_metric: MetricHook | None,
    on_log: LogHook | None,
    attempt: int = 0,
    delay_s: float = 0.0,
    kind: ErrorKind | None = None,
    exc: BaseException | None = None,
    stop_reason: StopReason | None = None,
    operation: str | None = None,
    **extra: Any,
) -> None:
    name = event.value if isinstance(event, EventName) else event

    tags: dict[str, Any] = {}
    if kind is not None:
        tags["kind"] = kind.name
    if exc is not None:
        tags["err"] = type(exc).__name__
    if stop_reason is not None:
        tags["stop_reason"] = stop_reason.value
    if operation:
        tags["operation"] = operation
    tags.update(extra)

    if on_metric is not None:
        try:
            on_metric(name, attempt, delay_s, tags)
        except Exception:
            pass

    if on_log is not None:
        fields = {"attempt": attempt, "delay_s": delay_s, **tags}
        try:
            on_log(name, fields)
        except Exception:
            pass


_WARNING_EVENTS = {
    EventName.REAUTH_FAILED.value,
    EventName.REAUTH_TIMEOUT.value,
    EventName.NETWORK_WAIT.value,
    EventName.SERVER_ERROR_WAIT.value,
    EventName.MAX_ATTEMPTS_EXCEEDED.value,
}
_ERROR_EVENTS = {EventName.FATAL.value, EventName.RECOVERY_EXHAUSTED.value}


def logging_hook(logger: logging.Logger | None = None) -> LogHook:
    """
    Adapt ``on_log`` events onto a stdlib logger.

    Fatal outcomes log at ERROR, degraded recovery paths at WARNING and
    everything else at DEBUG.
    """
    target = logger or logging.getLogger("authgate")

    def hook(event: str, fields: dict[str, Any]) -> None:
        if event in _ERROR_EVENTS:
            level = logging.ERROR
        elif event in _WARNING_EVENTS:
            level = logging.WARNING
        else:
            level = logging.DEBUG
        target.log(level, "%s %s", event, fields, extra={"authgate_event": event})

    return hook
