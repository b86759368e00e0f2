"""Testing utilities for deterministic recovery and observability."""

from __future__ import annotations

import asyncio
from collections import deque
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from ..classify import DiagnosticRecord
from ..config import RecoveryConfig
from ..errors import Authorization
from ..status import AuthStatus


class FakeAuthorizer:
    """
    Scripted authorizer stub.

    Each call pops the next outcome from ``outcomes``: exceptions are raised,
    ``FakeAuthorizer.HANG`` never completes (to exercise timeouts) and any
    other value is returned as the token. When the script runs out,
    ``default`` is returned.
    """

    HANG = object()

    def __init__(self, outcomes: Sequence[Any] = (), *, default: Any = "token") -> None:
        self._outcomes = deque(outcomes)
        self.default = default
        self.calls = 0

    async def __call__(self) -> Any:
        self.calls += 1
        outcome = self._outcomes.popleft() if self._outcomes else self.default
        if outcome is FakeAuthorizer.HANG:
            await asyncio.Event().wait()
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    def push(self, outcome: Any) -> None:
        self._outcomes.append(outcome)


@dataclass
class RecordingPresenter:
    """Collects everything the coordinator tries to show the user."""

    statuses: list[tuple[Authorization, bool]] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    prompts: list[bool] = field(default_factory=list)
    diagnostics: list[DiagnosticRecord] = field(default_factory=list)

    def render_status(self, status: AuthStatus) -> None:
        self.statuses.append((status.authorization, status.popup_active))

    def show_error(self, message: str) -> None:
        self.errors.append(message)

    def prompt_manual_permission(self, active: bool) -> None:
        self.prompts.append(active)

    def report_diagnostic(self, record: DiagnosticRecord) -> None:
        self.diagnostics.append(record)

    def callbacks(self) -> dict[str, Any]:
        """Keyword arguments for RecoveryCoordinator."""
        return {
            "render_status": self.render_status,
            "show_error": self.show_error,
            "prompt_manual_permission": self.prompt_manual_permission,
            "report_diagnostic": self.report_diagnostic,
        }


@dataclass
class RecordingHooks:
    metrics: list[tuple[str, int, float, dict[str, Any]]] = field(default_factory=list)
    logs: list[tuple[str, dict[str, Any]]] = field(default_factory=list)

    def on_metric(self, event: str, attempt: int, delay_s: float, tags: dict[str, Any]) -> None:
        self.metrics.append((event, attempt, delay_s, tags))

    def on_log(self, event: str, fields: dict[str, Any]) -> None:
        self.logs.append((event, fields))

    def events(self) -> list[str]:
        return [event for event, *_ in self.metrics]

    def count(self, event: str) -> int:
        return sum(1 for name in self.events() if name == event)


class ManualConnectivity:
    """Connectivity watcher stub that completes when ``restore()`` is called."""

    def __init__(self) -> None:
        self.calls = 0
        self._event: asyncio.Event | None = None

    async def __call__(self) -> None:
        self.calls += 1
        self._event = asyncio.Event()
        await self._event.wait()

    def restore(self) -> None:
        if self._event is not None:
            self._event.set()


def instant_delays(steps: int = 1) -> tuple[float, ...]:
    """Zero-delay backoff table for fast, deterministic recovery in tests."""

    return (0.0,) * max(steps, 1)


def fast_config(**overrides: Any) -> RecoveryConfig:
    """Return a RecoveryConfig with instant backoff and a short auth timeout."""

    values: dict[str, Any] = {
        "auth_timeout_s": 0.05,
        "delays_ms": instant_delays(),
        "server_error_delays_ms": instant_delays(),
    }
    values.update(overrides)
    return RecoveryConfig(**values)


__all__ = [
    "FakeAuthorizer",
    "ManualConnectivity",
    "RecordingHooks",
    "RecordingPresenter",
    "fast_config",
    "instant_delays",
]
