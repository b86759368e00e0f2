"""
Tolerant parsing of raw API failures.

A raw failure arrives in whatever shape the remote client produced: a nested
mapping (``{"status": 403, "result": {"error": {...}}}``), an object exposing
the same names as attributes, an exception, the ``"timeout"`` sentinel, or
nothing at all. ``parse_failure`` flattens all of these into a ``FailureInfo``
where every lookup that fails is simply ``None``.
"""

import asyncio
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from .errors import ApiFailure

RawFailure = Any

TIMEOUT = "timeout"
TOKEN_REFRESH_REQUIRED = "token_refresh_required"
NETWORK_ERROR_CODE = -1


@dataclass(frozen=True)
class FailureInfo:
    raw: RawFailure
    status: int | None = None
    type: str | None = None
    code: int | None = None
    message: str | None = None
    reason: str | None = None
    error: Any | None = None
    is_timeout: bool = False
    is_absent: bool = False


def _field(obj: Any, name: str) -> Any:
    if obj is None:
        return None
    if isinstance(obj, Mapping):
        return obj.get(name)
    try:
        return getattr(obj, name, None)
    except Exception:
        return None


def _coerce_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def _coerce_status(raw: Any) -> int | None:
    for name in ("status", "status_code"):
        status = _coerce_int(_field(raw, name))
        if status is not None:
            return status

    # Exceptions in the wild sometimes stash the HTTP code under ``code``.
    if isinstance(raw, BaseException):
        code = _coerce_int(_field(raw, "code"))
        if code is not None and 100 <= code <= 599:
            return code
    return None


def _first_reason(errors: Any) -> str | None:
    if isinstance(errors, (str, bytes)) or not isinstance(errors, Sequence) or not errors:
        return None
    reason = _field(errors[0], "reason")
    return reason if isinstance(reason, str) else None


def parse_failure(raw: RawFailure) -> FailureInfo:
    """
    Flatten a raw failure into a FailureInfo without ever raising.
    """
    if raw is None:
        return FailureInfo(raw=None, is_absent=True)

    if isinstance(raw, str):
        return FailureInfo(raw=raw, is_timeout=raw == TIMEOUT)

    if isinstance(raw, (TimeoutError, asyncio.TimeoutError)):
        return FailureInfo(raw=raw, is_timeout=True)

    try:
        error = _field(_field(raw, "result"), "error")
        failure_type = _field(raw, "type")
        message = _field(error, "message")
        return FailureInfo(
            raw=raw,
            status=_coerce_status(raw),
            type=failure_type if isinstance(failure_type, str) else None,
            code=_coerce_int(_field(error, "code")),
            message=None if message is None else str(message),
            reason=_first_reason(_field(error, "errors")),
            error=error,
        )
    except Exception:
        return FailureInfo(raw=raw)


def failure_of(exc: BaseException) -> RawFailure:
    """
    Map an exception raised by an operation to the raw failure it carries.
    """
    if isinstance(exc, ApiFailure):
        return exc.failure
    if isinstance(exc, (TimeoutError, asyncio.TimeoutError)):
        return TIMEOUT
    return exc
