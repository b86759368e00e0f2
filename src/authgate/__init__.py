from .backoff import BackoffScheduler, BackoffState
from .classify import DiagnosticRecord, classify, describe, diagnose, is_recoverable
from .config import DEFAULT_DELAYS_MS, RecoveryConfig
from .coordinator import RecoveryCoordinator
from .driver import RetryDriver
from .errors import (
    ApiFailure,
    Authorization,
    ErrorKind,
    GateRejectedError,
    GateState,
    ReauthorizationUnavailableError,
    RecoveryExhaustedError,
    StopReason,
)
from .events import EventName, logging_hook
from .extras import httpx_failure
from .failure import TIMEOUT, FailureInfo, failure_of, parse_failure
from .gate import AuthGate
from .status import AuthStatus

__all__ = [
    "ApiFailure",
    "AuthGate",
    "AuthStatus",
    "Authorization",
    "BackoffScheduler",
    "BackoffState",
    "DEFAULT_DELAYS_MS",
    "DiagnosticRecord",
    "ErrorKind",
    "EventName",
    "FailureInfo",
    "GateRejectedError",
    "GateState",
    "ReauthorizationUnavailableError",
    "RecoveryConfig",
    "RecoveryCoordinator",
    "RecoveryExhaustedError",
    "RetryDriver",
    "StopReason",
    "TIMEOUT",
    "classify",
    "describe",
    "diagnose",
    "failure_of",
    "httpx_failure",
    "is_recoverable",
    "logging_hook",
    "parse_failure",
]
