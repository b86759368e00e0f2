import traceback
from dataclasses import dataclass
from typing import Any

from .errors import ErrorKind
from .failure import (
    NETWORK_ERROR_CODE,
    TOKEN_REFRESH_REQUIRED,
    FailureInfo,
    RawFailure,
    parse_failure,
)
from .status import AuthStatus
from .types import DiagnosticSink

FATAL_403_REASONS = frozenset(
    {
        "domainPolicy",
        "insufficientFilePermissions",
        # Undocumented, but seen in production logs.
        "cannotDownloadAbusiveFile",
    }
)

GENERIC_MESSAGE = "Error."
FALLBACK_MESSAGE = "Error. See developer console for details."
REASON_MESSAGES = {
    "insufficientFilePermissions": "You do not have permission to modify the file.",
    "domainPolicy": "Your domain administrators have disabled Drive apps.",
}


@dataclass(frozen=True)
class DiagnosticRecord:
    status: int | None
    error: Any | None
    auth_status: dict[str, Any] | None
    capture_point: str
    detail: str | None = None


def _capture_point() -> str:
    # Drop the two innermost frames (this helper and _report).
    frames = traceback.extract_stack()[:-2]
    return " <- ".join(f"{f.name}:{f.lineno}" for f in reversed(frames[-6:]))


def _report(sink: DiagnosticSink | None, **fields: Any) -> None:
    if sink is None:
        return
    try:
        sink(DiagnosticRecord(capture_point=_capture_point(), **fields))
    except Exception:
        pass


def _diagnose(info: FailureInfo, status: AuthStatus | None, sink: DiagnosticSink | None) -> None:
    if info.status is not None and info.status > 200:
        _report(
            sink,
            status=info.status,
            error=info.error,
            auth_status=status.snapshot() if status is not None else None,
        )


def diagnose(
    failure: RawFailure,
    *,
    status: AuthStatus | None = None,
    report_diagnostic: DiagnosticSink | None = None,
) -> None:
    """Report ``failure`` the way ``classify`` does, without classifying it."""
    _diagnose(parse_failure(failure), status, report_diagnostic)


def classify(
    failure: RawFailure,
    *,
    status: AuthStatus | None = None,
    report_diagnostic: DiagnosticSink | None = None,
) -> ErrorKind:
    """
    Map a raw API failure onto the remediation it calls for.

    Decision order (first match wins):
      * absent failure                         -> MANUAL_REFRESH
      * token_refresh_required / 401           -> AUTO_REFRESH
      * 403 with a policy/permission reason     -> FATAL
      * any other 403                          -> AUTO_REFRESH
      * 404                                    -> FATAL
      * the "timeout" sentinel                 -> NETWORK_ERROR
      * nested error code -1                   -> NETWORK_ERROR
      * 400                                    -> FATAL
      * 500                                    -> SERVER_ERROR
      * anything else                          -> FATAL

    Never raises. Failures with a status above 200 are reported to
    ``report_diagnostic`` first; sink errors are swallowed.
    """
    info = parse_failure(failure)

    if info.is_absent:
        return ErrorKind.MANUAL_REFRESH

    _diagnose(info, status, report_diagnostic)

    if info.type == TOKEN_REFRESH_REQUIRED or info.status == 401:
        return ErrorKind.AUTO_REFRESH

    if info.status == 403:
        if info.reason in FATAL_403_REASONS:
            return ErrorKind.FATAL
        return ErrorKind.AUTO_REFRESH

    if info.status == 404:
        return ErrorKind.FATAL
    if info.is_timeout:
        return ErrorKind.NETWORK_ERROR
    if info.code == NETWORK_ERROR_CODE:
        return ErrorKind.NETWORK_ERROR
    if info.status == 400:
        return ErrorKind.FATAL
    if info.status == 500:
        return ErrorKind.SERVER_ERROR
    return ErrorKind.FATAL


def describe(failure: RawFailure, *, report_diagnostic: DiagnosticSink | None = None) -> str:
    """
    Render a failure as a short user-facing sentence.
    """
    info = parse_failure(failure)
    if info.is_absent:
        return GENERIC_MESSAGE

    if info.reason in REASON_MESSAGES:
        return REASON_MESSAGES[info.reason]

    if info.message is not None:
        return info.message

    try:
        detail = repr(failure)
    except Exception:
        detail = f"<unrepresentable {type(failure).__name__}>"
    _report(
        report_diagnostic,
        status=info.status,
        error=info.error,
        auth_status=None,
        detail=f"Strangely structured error: {detail}",
    )
    return FALLBACK_MESSAGE


def is_recoverable(kind: ErrorKind) -> bool:
    return kind is not ErrorKind.FATAL
