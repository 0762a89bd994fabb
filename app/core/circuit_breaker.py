from datetime import datetime, timezone
from enum import Enum
from dataclasses import dataclass, field
from threading import Lock
from typing import Any, Callable, Dict, Optional, TypeVar

from app.core.logging_config import get_logger

T = TypeVar("T")

__all__ = [
    "CircuitState",
    "CircuitBreakerConfig",
    "CircuitBreaker",
    "CircuitBreakerError",
    "CircuitOpenError",
    "CircuitHalfOpenError",
]


class CircuitBreakerError(Exception):
    """Raised instead of invoking the guarded call."""


class CircuitOpenError(CircuitBreakerError):
    def __init__(self) -> None:
        super().__init__("circuit breaker is open")


class CircuitHalfOpenError(CircuitBreakerError):
    def __init__(self) -> None:
        super().__init__("circuit breaker is half-open")


class CircuitState(Enum):
    CLOSED = "closed"  # Normal operation
    HALF_OPEN = "half_open"  # Testing if recovered
    OPEN = "open"  # Failing, reject requests


@dataclass(frozen=True)
class CircuitBreakerConfig:
    failure_threshold: int = 5
    success_threshold: int = 3
    timeout: float = 30.0  # seconds in OPEN before a probe is allowed
    max_concurrent_calls: int = 1  # in-flight probes while HALF_OPEN

    def normalized(self) -> "CircuitBreakerConfig":
        """Replace non-positive values with the defaults."""
        defaults = CircuitBreakerConfig()
        return CircuitBreakerConfig(
            failure_threshold=self.failure_threshold if self.failure_threshold > 0 else defaults.failure_threshold,
            success_threshold=self.success_threshold if self.success_threshold > 0 else defaults.success_threshold,
            timeout=self.timeout if self.timeout > 0 else defaults.timeout,
            max_concurrent_calls=(
                self.max_concurrent_calls if self.max_concurrent_calls > 0 else defaults.max_concurrent_calls
            ),
        )


@dataclass
class CircuitBreaker:
    """
    Call-guarding state machine shielding a flaky downstream dependency.

    CLOSED runs every call and opens after ``failure_threshold`` consecutive
    failures. OPEN rejects calls until ``timeout`` seconds have passed since the
    last failure, then lets the next call through as a HALF_OPEN probe. HALF_OPEN
    admits at most ``max_concurrent_calls`` probes at a time; one failure reopens
    the circuit and ``success_threshold`` successes close it.

    The guarded call always runs outside the lock.
    """

    name: str = "default"
    config: CircuitBreakerConfig = field(default_factory=CircuitBreakerConfig)
    logger: Any = None

    _state: CircuitState = field(default=CircuitState.CLOSED, init=False)
    _failure_count: int = field(default=0, init=False)
    _success_count: int = field(default=0, init=False)
    _concurrent_calls: int = field(default=0, init=False)
    _last_failure_time: Optional[datetime] = field(default=None, init=False)
    _total_calls: int = field(default=0, init=False)
    _total_failures: int = field(default=0, init=False)
    _total_successes: int = field(default=0, init=False)
    _total_rejections: int = field(default=0, init=False)
    _lock: Lock = field(default_factory=Lock, init=False)

    def __post_init__(self):
        self.config = self.config.normalized()
        if self.logger is None:
            self.logger = get_logger(__name__)

    @property
    def state(self) -> CircuitState:
        with self._lock:
            return self._state

    def get_state(self) -> CircuitState:
        return self.state

    def execute(self, work: Callable[[], T]) -> T:
        """
        Run ``work`` according to the current state.

        Returns whatever ``work`` returns. Raises the exception ``work`` raised,
        CircuitOpenError, or CircuitHalfOpenError.
        """
        with self._lock:
            current = self._state
            if current == CircuitState.OPEN:
                if not self._timeout_elapsed():
                    self._total_rejections += 1
                    self.logger.warning(
                        "Circuit breaker is open, request rejected",
                        breaker=self.name,
                        seconds_since_last_failure=self._seconds_since_last_failure(),
                        timeout=self.config.timeout,
                    )
                    raise CircuitOpenError()
                self._transition_to_half_open()
                current = CircuitState.HALF_OPEN

            if current == CircuitState.HALF_OPEN:
                if self._concurrent_calls >= self.config.max_concurrent_calls:
                    self._total_rejections += 1
                    self.logger.warning(
                        "Circuit breaker max concurrent calls reached in half-open state",
                        breaker=self.name,
                        max_concurrent_calls=self.config.max_concurrent_calls,
                    )
                    raise CircuitHalfOpenError()
                self._concurrent_calls += 1

            self._total_calls += 1

        if current == CircuitState.HALF_OPEN:
            return self._run_half_open(work)
        return self._run_closed(work)

    def _run_closed(self, work: Callable[[], T]) -> T:
        try:
            result = work()
        except Exception as e:
            with self._lock:
                self._total_failures += 1
                self._last_failure_time = datetime.now(timezone.utc)
                if self._state == CircuitState.CLOSED:
                    self._failure_count += 1
                    self.logger.warning(
                        "Circuit breaker failure in closed state",
                        breaker=self.name,
                        error=str(e),
                        failure_count=self._failure_count,
                        threshold=self.config.failure_threshold,
                    )
                    if self._failure_count >= self.config.failure_threshold:
                        self._transition_to_open()
            raise

        with self._lock:
            self._total_successes += 1
            if self._state == CircuitState.CLOSED:
                self._failure_count = 0
        return result

    def _run_half_open(self, work: Callable[[], T]) -> T:
        try:
            result = work()
        except Exception as e:
            with self._lock:
                self._release_probe()
                self._total_failures += 1
                self._last_failure_time = datetime.now(timezone.utc)
                self.logger.warning(
                    "Circuit breaker failure in half-open state",
                    breaker=self.name,
                    error=str(e),
                )
                self._transition_to_open()
            raise

        with self._lock:
            self._release_probe()
            self._total_successes += 1
            if self._state == CircuitState.HALF_OPEN:
                self._success_count += 1
                self.logger.info(
                    "Circuit breaker success in half-open state",
                    breaker=self.name,
                    success_count=self._success_count,
                    threshold=self.config.success_threshold,
                )
                if self._success_count >= self.config.success_threshold:
                    self._transition_to_closed()
        return result

    # Transition helpers. Must be called while holding self._lock.

    def _release_probe(self) -> None:
        if self._concurrent_calls > 0:
            self._concurrent_calls -= 1

    def _seconds_since_last_failure(self) -> Optional[float]:
        if self._last_failure_time is None:
            return None
        return (datetime.now(timezone.utc) - self._last_failure_time).total_seconds()

    def _timeout_elapsed(self) -> bool:
        elapsed = self._seconds_since_last_failure()
        # Forced open without a recorded failure: measure from now on
        if elapsed is None:
            self._last_failure_time = datetime.now(timezone.utc)
            return False
        return elapsed >= self.config.timeout

    def _transition_to_open(self) -> None:
        if self._state != CircuitState.OPEN:
            old_state = self._state
            self._state = CircuitState.OPEN
            self._success_count = 0
            self._concurrent_calls = 0
            self.logger.warning(
                f"Circuit {self.name}: {old_state.name} -> OPEN",
                failure_count=self._failure_count,
                timeout=self.config.timeout,
            )

    def _transition_to_half_open(self) -> None:
        if self._state != CircuitState.HALF_OPEN:
            old_state = self._state
            self._state = CircuitState.HALF_OPEN
            self._success_count = 0
            self._concurrent_calls = 0
            self.logger.info(f"Circuit {self.name}: {old_state.name} -> HALF_OPEN")

    def _transition_to_closed(self) -> None:
        if self._state != CircuitState.CLOSED:
            old_state = self._state
            self._state = CircuitState.CLOSED
            self._failure_count = 0
            self._success_count = 0
            self._concurrent_calls = 0
            self.logger.info(f"Circuit {self.name}: {old_state.name} -> CLOSED")

    # Manual control

    def force_open(self) -> None:
        with self._lock:
            self._last_failure_time = datetime.now(timezone.utc)
            self._transition_to_open()

    def force_close(self) -> None:
        with self._lock:
            self._transition_to_closed()

    def reset(self) -> None:
        """Return to CLOSED and zero every counter, totals included."""
        with self._lock:
            self._state = CircuitState.CLOSED
            self._failure_count = 0
            self._success_count = 0
            self._concurrent_calls = 0
            self._last_failure_time = None
            self._total_calls = 0
            self._total_failures = 0
            self._total_successes = 0
            self._total_rejections = 0
        self.logger.info("Circuit breaker reset", breaker=self.name)

    def get_metrics(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "enabled": True,
                "name": self.name,
                "state": self._state.value,
                "failure_count": self._failure_count,
                "success_count": self._success_count,
                "concurrent_calls": self._concurrent_calls,
                "total_calls": self._total_calls,
                "total_failures": self._total_failures,
                "total_successes": self._total_successes,
                "total_rejections": self._total_rejections,
                "last_failure_time": self._last_failure_time.isoformat() if self._last_failure_time else None,
                "config": {
                    "failure_threshold": self.config.failure_threshold,
                    "success_threshold": self.config.success_threshold,
                    "timeout": self.config.timeout,
                    "max_concurrent_calls": self.config.max_concurrent_calls,
                },
            }
