from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

T = TypeVar("T")
logger = logging.getLogger(__name__)


class CircuitOpenError(Exception):
    """Raised when calls are blocked by an open circuit."""


@dataclass
class CircuitBreakerState:
    failure_count: int = 0
    opened_at_seconds: float | None = None


class CircuitBreaker:
    """Fails fast after repeated upstream failures; never retries on its own."""

    def __init__(
        self,
        name: str,
        failure_threshold: int = 3,
        recovery_timeout_seconds: int = 30,
        is_failure: Callable[[BaseException], bool] | None = None,
    ) -> None:
        self.name = name
        self._failure_threshold = failure_threshold
        self._recovery_timeout_seconds = recovery_timeout_seconds
        self._is_failure = is_failure or (lambda _exc: True)
        self._state = CircuitBreakerState()

    def status(self, now_seconds: float) -> str:
        opened_at = self._state.opened_at_seconds
        if opened_at is None:
            return "closed"
        if now_seconds - opened_at >= self._recovery_timeout_seconds:
            return "half_open"
        return "open"

    async def call(
        self,
        operation: Callable[[], Awaitable[T]],
        now_seconds: float,
    ) -> T:
        if self._is_open(now_seconds):
            logger.warning("circuit_open", extra={"circuit": self.name, "now_seconds": now_seconds})
            raise CircuitOpenError(f"circuit {self.name} is open")

        try:
            result = await operation()
        except Exception as exc:
            # Caller mistakes (e.g. a blank address) say nothing about upstream health.
            if self._is_failure(exc):
                self._record_failure(now_seconds)
            raise
        self._record_success()
        return result

    def _is_open(self, now_seconds: float) -> bool:
        status = self.status(now_seconds)
        if status == "half_open":
            self._state.opened_at_seconds = None
            self._state.failure_count = self._failure_threshold - 1
            logger.info("circuit_half_open", extra={"circuit": self.name})
            return False
        return status == "open"

    def _record_failure(self, now_seconds: float) -> None:
        self._state.failure_count += 1
        if self._state.failure_count >= self._failure_threshold:
            self._state.opened_at_seconds = now_seconds
            logger.error(
                "circuit_opened",
                extra={
                    "circuit": self.name,
                    "failure_count": self._state.failure_count,
                    "opened_at_seconds": now_seconds,
                },
            )

    def _record_success(self) -> None:
        self._state.failure_count = 0
        self._state.opened_at_seconds = None
