from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, TypeVar

if TYPE_CHECKING:
    from .classify import DiagnosticRecord
    from .status import AuthStatus

T = TypeVar("T")

MetricHook = Callable[[str, int, float, dict[str, Any]], None]
LogHook = Callable[[str, dict[str, Any]], None]

Operation = Callable[[], Awaitable[T]]
Interceptor = Callable[[BaseException], bool | Awaitable[bool]]
Authorizer = Callable[[], Awaitable[Any]]
ConnectivityWatcher = Callable[[], Awaitable[None]]
FailureExtractor = Callable[[BaseException], Any]
BackoffAction = Callable[[], Awaitable[Any] | None]

RenderStatusFn = Callable[["AuthStatus"], None]
ShowErrorFn = Callable[[str], None]
PromptFn = Callable[[bool], None]
DiagnosticSink = Callable[["DiagnosticRecord"], None]
