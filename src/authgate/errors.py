from enum import Enum, IntEnum, auto
from typing import Any


class ErrorKind(Enum):
    """
    Remediation categories for a failed API call.

    The kind only says what to do next; the original failure stays with the
    caller so it can still be rendered for the user.
    """

    FATAL = auto()
    AUTO_REFRESH = auto()
    MANUAL_REFRESH = auto()
    NETWORK_ERROR = auto()
    SERVER_ERROR = auto()


class Authorization(IntEnum):
    UNAUTHENTICATED = -1
    REFRESHING = 0
    AUTHENTICATED = 1


class GateState(str, Enum):
    PENDING = "pending"
    RESOLVED = "resolved"
    REJECTED = "rejected"


class StopReason(str, Enum):
    FATAL = "FATAL"
    ABORTED = "ABORTED"
    MAX_ATTEMPTS = "MAX_ATTEMPTS"
    RECOVERY_EXHAUSTED = "RECOVERY_EXHAUSTED"


class ApiFailure(Exception):
    """
    Raised by an operation to carry a raw API failure payload.

    The payload is kept as-is (dict, object, the "timeout" sentinel or None)
    and inspected later by the classifier.
    """

    def __init__(self, failure: Any, message: str | None = None) -> None:
        self.failure = failure
        super().__init__(message if message is not None else repr(failure))


class GateRejectedError(ApiFailure):
    """Delivered to every waiter of a gate whose recovery attempt failed."""

    pass


class RecoveryExhaustedError(ApiFailure):
    """
    Raised when consecutive recovery attempts exceed the configured ceiling.

    Classifies as FATAL, so blocked drivers abort instead of waiting forever.
    """

    def __init__(self, attempts: int, last_failure: Any = None) -> None:
        self.attempts = attempts
        self.last_failure = last_failure
        super().__init__(self, f"Gave up after {attempts} recovery attempts")


class ReauthorizationUnavailableError(RuntimeError):
    """No authorizer was configured for the requested reauthorization."""

    pass
