import logging
from typing import Any

from authgate.errors import ErrorKind, StopReason
from authgate.events import EventName, emit, logging_hook


def test_emit_builds_tags() -> None:
    metrics: list[tuple[str, int, float, dict[str, Any]]] = []
    logs: list[tuple[str, dict[str, Any]]] = []

    emit(
        EventName.ABORT,
        on_metric=lambda *args: metrics.append(args),
        on_log=lambda event, fields: logs.append((event, fields)),
        attempt=3,
        delay_s=0.5,
        kind=ErrorKind.FATAL,
        exc=ValueError("x"),
        stop_reason=StopReason.FATAL,
        operation="files.get",
        scheduler="reauth",
    )

    assert metrics == [
        (
            "abort",
            3,
            0.5,
            {
                "kind": "FATAL",
                "err": "ValueError",
                "stop_reason": "FATAL",
                "operation": "files.get",
                "scheduler": "reauth",
            },
        )
    ]
    event, fields = logs[0]
    assert event == "abort"
    assert fields["attempt"] == 3
    assert fields["delay_s"] == 0.5
    assert fields["kind"] == "FATAL"


def test_emit_swallows_hook_errors() -> None:
    def broken(*_: Any) -> None:
        raise RuntimeError("hook down")

    emit(EventName.RETRY, on_metric=broken, on_log=broken, attempt=1)


def test_emit_without_hooks_is_noop() -> None:
    emit("custom", on_metric=None, on_log=None)


def test_logging_hook_levels(caplog: Any) -> None:
    logger = logging.getLogger("authgate.test")
    hook = logging_hook(logger)

    with caplog.at_level(logging.DEBUG, logger="authgate.test"):
        hook("fatal", {"attempt": 0})
        hook("reauth_timeout", {"attempt": 1})
        hook("retry", {"attempt": 2})

    levels = [(record.levelno, record.authgate_event) for record in caplog.records]
    assert levels == [
        (logging.ERROR, "fatal"),
        (logging.WARNING, "reauth_timeout"),
        (logging.DEBUG, "retry"),
    ]
