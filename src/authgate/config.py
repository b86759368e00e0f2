from collections.abc import Sequence
from dataclasses import dataclass

DEFAULT_DELAYS_MS: tuple[int, ...] = (1, 500, 1000, 2500, 5000, 10000, 60000)
DEFAULT_AUTH_TIMEOUT_S = 10.0


def _validate_delays(name: str, delays: Sequence[float]) -> tuple[float, ...]:
    values = tuple(delays)
    if not values:
        raise ValueError(f"{name} must not be empty.")
    if any(d < 0 for d in values):
        raise ValueError(f"{name} must be >= 0.")
    if any(b < a for a, b in zip(values, values[1:])):
        raise ValueError(f"{name} must be non-decreasing.")
    return values


@dataclass
class RecoveryConfig:
    """
    Tunables for RecoveryCoordinator.

    interactive_timeout_s:
        Upper bound for the interactive (popup) reauthorization. ``None``
        waits for the user indefinitely.

    max_recovery_attempts:
        Number of consecutive failed recovery attempts after which the
        coordinator escalates to a fatal error. ``None`` retries forever at
        the capped delay.

    reset_backoff_on_success:
        Rewind the backoff sequence after a successful reauthorization. Off by
        default, so a flapping token keeps its long spacing.
    """

    auth_timeout_s: float = DEFAULT_AUTH_TIMEOUT_S
    interactive_timeout_s: float | None = None
    delays_ms: Sequence[float] = DEFAULT_DELAYS_MS
    server_error_delays_ms: Sequence[float] = DEFAULT_DELAYS_MS
    max_recovery_attempts: int | None = None
    reset_backoff_on_success: bool = False

    def __post_init__(self) -> None:
        if self.auth_timeout_s <= 0:
            raise ValueError("auth_timeout_s must be > 0.")
        if self.interactive_timeout_s is not None and self.interactive_timeout_s <= 0:
            raise ValueError("interactive_timeout_s must be > 0.")
        if self.max_recovery_attempts is not None and self.max_recovery_attempts < 1:
            raise ValueError("max_recovery_attempts must be >= 1.")
        self.delays_ms = _validate_delays("delays_ms", self.delays_ms)
        self.server_error_delays_ms = _validate_delays(
            "server_error_delays_ms", self.server_error_delays_ms
        )
