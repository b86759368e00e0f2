import asyncio
from collections.abc import Callable
from typing import Any

from .backoff import BackoffScheduler
from .classify import classify, describe, diagnose
from .config import RecoveryConfig
from .driver import RetryDriver
from .errors import (
    Authorization,
    ErrorKind,
    GateRejectedError,
    GateState,
    RecoveryExhaustedError,
    ReauthorizationUnavailableError,
)
from .events import EventName, emit
from .failure import TIMEOUT, RawFailure, failure_of
from .gate import AuthGate
from .status import AuthStatus
from .types import (
    Authorizer,
    ConnectivityWatcher,
    DiagnosticSink,
    FailureExtractor,
    LogHook,
    MetricHook,
    Operation,
    PromptFn,
    RenderStatusFn,
    ShowErrorFn,
    T,
)

NETWORK_ERROR_MESSAGE = "network error. retrying..."
SERVER_ERROR_MESSAGE = "server error. retrying..."


class RecoveryCoordinator:
    """
    Drives recovery from authentication failures for every in-flight call.

    Failures reach the coordinator through the gate's rejection handler. Each
    one is classified and then:

      * AUTO_REFRESH   - an automatic reauthorization is scheduled on the
                         shared backoff timer.
      * MANUAL_REFRESH - the user is prompted; ``perform_manual_reauth`` runs
                         once they accept.
      * NETWORK_ERROR  - the connectivity watcher is armed (once) and the gate
                         reopens when it reports the network is back.
      * SERVER_ERROR   - the gate reopens after its own backoff delay.
      * FATAL          - the failure is shown to the user. A failed recovery
                         is final only for the calls it woke: the gate
                         reopens so later calls go through.

    All collaborators are optional and best-effort: presentation and
    diagnostic callbacks never interrupt recovery.
    """

    def __init__(
        self,
        *,
        authorize_automatic: Authorizer | None = None,
        authorize_interactive: Authorizer | None = None,
        render_status: RenderStatusFn | None = None,
        show_error: ShowErrorFn | None = None,
        prompt_manual_permission: PromptFn | None = None,
        report_diagnostic: DiagnosticSink | None = None,
        watch_connectivity: ConnectivityWatcher | None = None,
        extract_failure: FailureExtractor = failure_of,
        config: RecoveryConfig | None = None,
        gate: AuthGate | None = None,
        status: AuthStatus | None = None,
        on_metric: MetricHook | None = None,
        on_log: LogHook | None = None,
    ) -> None:
        self.config = config or RecoveryConfig()
        self.authorize_automatic = authorize_automatic
        self.authorize_interactive = authorize_interactive
        self.render_status = render_status
        self.show_error = show_error
        self.prompt_manual_permission = prompt_manual_permission
        self.report_diagnostic = report_diagnostic
        self.watch_connectivity = watch_connectivity
        self.extract_failure = extract_failure
        self.on_metric = on_metric
        self.on_log = on_log

        self.status = status or AuthStatus()
        self.gate = gate or AuthGate()
        self.gate.on_reject = self.handle_failure
        self.backoff = BackoffScheduler(
            self.config.delays_ms,
            name="reauth",
            on_metric=on_metric,
            on_log=on_log,
        )
        self.server_backoff = BackoffScheduler(
            self.config.server_error_delays_ms,
            name="server_error",
            on_metric=on_metric,
            on_log=on_log,
        )

        self.failed_attempts = 0
        self._token: Any = None
        self._watcher: asyncio.Task[None] | None = None

    @classmethod
    def from_config(cls, config: RecoveryConfig, **kwargs: Any) -> "RecoveryCoordinator":
        return cls(config=config, **kwargs)

    # ------------------------------------------------------------------
    # Collaborator plumbing
    # ------------------------------------------------------------------

    def _emit(self, event: EventName, **kwargs: Any) -> None:
        emit(event, on_metric=self.on_metric, on_log=self.on_log, **kwargs)

    @staticmethod
    def _notify(callback: Callable[..., Any] | None, *args: Any) -> None:
        if callback is None:
            return
        try:
            callback(*args)
        except Exception:
            pass

    def _set_status(self, authorization: Authorization, *, popup_active: bool = False) -> None:
        self.status.update(authorization=authorization, popup_active=popup_active)
        self._notify(self.render_status, self.status)

    def _describe(self, failure: RawFailure) -> str:
        if isinstance(failure, (RecoveryExhaustedError, ReauthorizationUnavailableError)):
            return str(failure)
        return describe(failure, report_diagnostic=self.report_diagnostic)

    # ------------------------------------------------------------------
    # Failure handling
    # ------------------------------------------------------------------

    def handle_failure(self, failure: RawFailure) -> ErrorKind:
        """
        Rejection handler for the gate: classify ``failure`` and start the
        matching recovery path.
        """
        self._emit(EventName.AUTH_FAILURE)
        self._set_status(Authorization.UNAUTHENTICATED)

        kind = classify(failure, status=self.status, report_diagnostic=self.report_diagnostic)
        self._emit(EventName.CLASSIFIED, kind=kind)

        if kind is ErrorKind.FATAL:
            self._notify(self.show_error, self._describe(failure))
            self._emit(EventName.FATAL, kind=kind)
            if self.gate.state is GateState.REJECTED:
                # Current waiters already hold the rejection.
                self.gate.resolve(self._token)
        elif kind is ErrorKind.AUTO_REFRESH:
            self._schedule_automatic_reauth()
        elif kind is ErrorKind.MANUAL_REFRESH:
            self._set_status(Authorization.REFRESHING)
            self._notify(self.prompt_manual_permission, True)
            self._emit(EventName.MANUAL_PROMPT, kind=kind)
        elif kind is ErrorKind.NETWORK_ERROR:
            self._notify(self.show_error, NETWORK_ERROR_MESSAGE)
            self._emit(EventName.NETWORK_WAIT, kind=kind)
            self._arm_connectivity_watcher()
        else:
            self._notify(self.show_error, SERVER_ERROR_MESSAGE)
            self._emit(EventName.SERVER_ERROR_WAIT, kind=kind)
            self.server_backoff.arm(self._reopen_gate)
        return kind

    def report_failure(self, failure: RawFailure) -> None:
        """
        Push a failure from outside a RetryDriver (for example a realtime
        document channel) into the recovery path.

        Fatal failures are shown without closing the gate.
        """
        if classify(failure, status=self.status) is ErrorKind.FATAL:
            self.handle_failure(failure)
            return
        self.gate.invalidate(failure)

    def intercept(self, exc: BaseException) -> bool:
        """
        Canonical RetryDriver interceptor.

        Returns True when the operation should be retried once the gate
        reopens and False when ``exc`` must propagate to the caller.
        """
        failure = self.extract_failure(exc)
        rerouted = isinstance(exc, GateRejectedError)
        # handle_failure reports everything else once it sees the failure.
        kind = classify(failure, status=self.status)
        if kind is ErrorKind.FATAL:
            if not rerouted:
                diagnose(failure, status=self.status, report_diagnostic=self.report_diagnostic)
            return False
        if not rerouted:
            self.gate.invalidate(failure)
        return True

    # ------------------------------------------------------------------
    # Recovery paths
    # ------------------------------------------------------------------

    def _schedule_automatic_reauth(self) -> None:
        self._set_status(Authorization.REFRESHING)
        self.backoff.arm(self.perform_automatic_reauth)

    async def perform_automatic_reauth(self) -> bool:
        """
        Race the automatic reauthorization against ``auth_timeout_s``.

        A late answer from a timed-out attempt is discarded; the attempt
        counts as rejected with the "timeout" sentinel. Returns True when the
        gate was resolved with a new token.
        """
        if self.authorize_automatic is None:
            self._recovery_failed(
                ReauthorizationUnavailableError("No automatic authorizer configured")
            )
            return False
        return await self._reauthorize(self.authorize_automatic, self.config.auth_timeout_s)

    async def perform_manual_reauth(self) -> bool:
        """
        Run the interactive reauthorization. Called when the user accepts the
        manual-permission prompt.
        """
        if self.authorize_interactive is None:
            self._recovery_failed(
                ReauthorizationUnavailableError("No interactive authorizer configured")
            )
            return False
        self._set_status(Authorization.REFRESHING, popup_active=True)
        return await self._reauthorize(
            self.authorize_interactive, self.config.interactive_timeout_s
        )

    async def _reauthorize(self, authorizer: Authorizer, timeout_s: float | None) -> bool:
        self._emit(EventName.REAUTH_STARTED, attempt=self.failed_attempts + 1)
        try:
            if timeout_s is None:
                token = await authorizer()
            else:
                token = await asyncio.wait_for(authorizer(), timeout=timeout_s)
        except asyncio.CancelledError:
            raise
        except asyncio.TimeoutError as exc:
            self._emit(EventName.REAUTH_TIMEOUT, attempt=self.failed_attempts + 1, exc=exc)
            self._recovery_failed(TIMEOUT)
            return False
        except Exception as exc:
            self._emit(EventName.REAUTH_FAILED, attempt=self.failed_attempts + 1, exc=exc)
            self._recovery_failed(self.extract_failure(exc))
            return False
        self._recovery_succeeded(token)
        return True

    def _recovery_succeeded(self, token: Any) -> None:
        self.failed_attempts = 0
        self._token = token
        if self.config.reset_backoff_on_success:
            self.backoff.reset()
            self.server_backoff.reset()
        self._set_status(Authorization.AUTHENTICATED)
        self._notify(self.prompt_manual_permission, False)
        self._emit(EventName.REAUTH_SUCCEEDED)
        self.gate.resolve(token)

    def _recovery_failed(self, failure: RawFailure) -> None:
        self.failed_attempts += 1
        limit = self.config.max_recovery_attempts
        if limit is not None and self.failed_attempts >= limit:
            exhausted = RecoveryExhaustedError(self.failed_attempts, failure)
            self.failed_attempts = 0
            self._emit(EventName.RECOVERY_EXHAUSTED, attempt=exhausted.attempts, exc=exhausted)
            self.gate.reject(exhausted)
            return
        self.gate.reject(failure)

    def _arm_connectivity_watcher(self) -> None:
        if self.watch_connectivity is None:
            # Without a probe the only way forward is another reauth attempt.
            self._schedule_automatic_reauth()
            return
        if self._watcher is not None and not self._watcher.done():
            return
        self._watcher = asyncio.ensure_future(self._await_connectivity(self.watch_connectivity))

    async def _await_connectivity(self, watcher: ConnectivityWatcher) -> None:
        try:
            await watcher()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            self._recovery_failed(self.extract_failure(exc))
            return
        self._emit(EventName.CONNECTIVITY_RESTORED)
        self._reopen_gate()

    def _reopen_gate(self) -> None:
        """
        Let waiters through with the token they already had.

        Network and server failures say nothing about the token, so status
        returns to AUTHENTICATED. If the token did expire meanwhile, the next
        401 starts a regular reauthorization.
        """
        self._set_status(Authorization.AUTHENTICATED)
        self.gate.resolve(self._token)

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def authorize(self, *, interactive: bool = False) -> Any:
        """
        Perform an immediate authorization, bypassing the backoff timer.

        Returns the new token, or None when the attempt failed.
        """
        if interactive:
            ok = await self.perform_manual_reauth()
        else:
            ok = await self.perform_automatic_reauth()
        return self._token if ok else None

    def mark_authenticated(self, token: Any = None) -> None:
        self._recovery_succeeded(token)

    def driver(
        self,
        *,
        max_attempts: int | None = None,
        operation: str | None = None,
    ) -> RetryDriver:
        return RetryDriver(
            self.gate,
            self.intercept,
            max_attempts=max_attempts,
            operation=operation,
            on_metric=self.on_metric,
            on_log=self.on_log,
        )

    async def run(
        self,
        func: Operation[T],
        *,
        max_attempts: int | None = None,
        operation: str | None = None,
    ) -> T:
        result = await self.driver(max_attempts=max_attempts, operation=operation).run(func)
        return result

    def close(self) -> None:
        self.backoff.cancel()
        self.server_backoff.cancel()
        if self._watcher is not None:
            self._watcher.cancel()
            self._watcher = None

