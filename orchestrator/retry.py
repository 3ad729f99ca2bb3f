"""
Exponential backoff with jitter, guarded by a circuit breaker per service.
"""
import asyncio
import json
import logging
import random
import time
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx


RETRYABLE_CODES = frozenset(
    {
        "ECONNRESET",
        "ETIMEDOUT",
        "ENOTFOUND",
        "ECONNREFUSED",
        "RATE_LIMIT_EXCEEDED",
        "SERVICE_UNAVAILABLE",
        "INTERNAL_SERVER_ERROR",
        "GATEWAY_TIMEOUT",
    }
)
RETRYABLE_STATUSES = frozenset({429, 500, 502, 503, 504})
RETRYABLE_MESSAGE_HINTS = ("timeout", "network", "connection", "rate limit")


class RemoteCallError(Exception):
    """A remote call failed with an optional HTTP status and error code attached."""

    def __init__(self, message: str, status: Optional[int] = None, code: Optional[str] = None) -> None:
        super().__init__(message)
        self.status = status
        self.code = code


@dataclass
class RetryConfig:
    max_attempts: int = 3
    initial_delay: float = 1.0  # seconds
    max_delay: float = 10.0
    backoff_multiplier: float = 2.0
    jitter_factor: float = 0.1


@dataclass
class RetryResult:
    success: bool
    attempts: int
    total_duration: float
    data: Any = None
    error: Optional[str] = None


@dataclass
class CircuitBreakerState:
    failures: int = 0
    last_failure: float = 0.0
    state: str = "closed"  # closed | open | half-open
    trial_in_flight: bool = field(default=False, repr=False)


def _error_code(error: BaseException) -> Optional[str]:
    code = getattr(error, "code", None)
    if isinstance(code, str):
        return code
    if isinstance(error, httpx.TimeoutException):
        return "ETIMEDOUT"
    if isinstance(error, httpx.ConnectError):
        return "ECONNREFUSED"
    if isinstance(error, (httpx.ReadError, httpx.WriteError, httpx.RemoteProtocolError)):
        return "ECONNRESET"
    return None


def _error_status(error: BaseException) -> Optional[int]:
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code
    status = getattr(error, "status", None) or getattr(error, "status_code", None)
    return status if isinstance(status, int) else None


def is_retryable_error(error: Optional[BaseException]) -> bool:
    if error is None:
        return False
    if _error_code(error) in RETRYABLE_CODES:
        return True
    if _error_status(error) in RETRYABLE_STATUSES:
        return True
    message = str(error).lower()
    return any(hint in message for hint in RETRYABLE_MESSAGE_HINTS)


def calculate_delay(attempt: int, config: RetryConfig, rand: Callable[[], float] = random.random) -> float:
    exponential = config.initial_delay * (config.backoff_multiplier ** (attempt - 1))
    capped = min(exponential, config.max_delay)
    jitter = capped * config.jitter_factor * (rand() - 0.5)
    return max(0.0, capped + jitter)


class RetryHandler:
    """Owns the circuit breakers for every downstream service name."""

    def __init__(
        self,
        config: Optional[RetryConfig] = None,
        failure_threshold: int = 5,
        reset_timeout: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rand: Callable[[], float] = random.random,
    ) -> None:
        self.config = config or RetryConfig()
        self.failure_threshold = failure_threshold
        self.reset_timeout = reset_timeout
        self._clock = clock
        self._sleep = sleep
        self._rand = rand
        self._breakers: Dict[str, CircuitBreakerState] = {}

    def _breaker(self, service_name: str) -> CircuitBreakerState:
        breaker = self._breakers.get(service_name)
        if breaker is None:
            breaker = CircuitBreakerState()
            self._breakers[service_name] = breaker
        return breaker

    def _acquire(self, service_name: str) -> bool:
        breaker = self._breaker(service_name)
        if breaker.state == "closed":
            return True
        if breaker.state == "open":
            if self._clock() - breaker.last_failure >= self.reset_timeout:
                breaker.state = "half-open"
                breaker.trial_in_flight = True
                logging.info("Circuit breaker half-open for %s", service_name)
                return True
            return False
        # half-open: a single trial at a time
        if breaker.trial_in_flight:
            return False
        breaker.trial_in_flight = True
        return True

    def _record_success(self, service_name: str) -> None:
        breaker = self._breaker(service_name)
        breaker.failures = 0
        breaker.state = "closed"
        breaker.trial_in_flight = False

    def _record_failure(self, service_name: str) -> None:
        breaker = self._breaker(service_name)
        breaker.failures += 1
        breaker.last_failure = self._clock()
        breaker.trial_in_flight = False
        if breaker.state == "half-open" or breaker.failures >= self.failure_threshold:
            if breaker.state != "open":
                logging.warning("Circuit breaker opened for %s (failures=%d)", service_name, breaker.failures)
            breaker.state = "open"

    def _release_trial(self, service_name: str) -> None:
        # A cancelled trial reopens the circuit so the next caller may try again after reset_timeout.
        breaker = self._breaker(service_name)
        if breaker.state == "half-open":
            breaker.state = "open"
            breaker.last_failure = self._clock()
        breaker.trial_in_flight = False

    async def with_retry(
        self,
        fn: Callable[[], Awaitable[Any]],
        service_name: str = "default",
        **overrides: Any,
    ) -> RetryResult:
        config = replace(self.config, **overrides) if overrides else self.config
        start = time.monotonic()

        if not self._acquire(service_name):
            message = f"Circuit breaker is open for {service_name}. Service temporarily unavailable."
            return RetryResult(success=False, attempts=0, total_duration=0.0, error=message)

        last_error: Optional[BaseException] = None
        attempts = 0
        try:
            for attempt in range(1, config.max_attempts + 1):
                attempts = attempt
                try:
                    data = await fn()
                except Exception as e:
                    last_error = e
                    logging.warning(
                        "Attempt %d/%d failed for %s: %s (code=%s, status=%s)",
                        attempt,
                        config.max_attempts,
                        service_name,
                        e,
                        _error_code(e),
                        _error_status(e),
                    )
                    if attempt >= config.max_attempts or not is_retryable_error(e):
                        break
                    await self._sleep(calculate_delay(attempt, config, self._rand))
                    continue

                self._record_success(service_name)
                duration = time.monotonic() - start
                logging.info(json.dumps({
                    "ts": datetime.utcnow().isoformat(),
                    "service": service_name,
                    "fn": "with_retry",
                    "latency_ms": f"{duration * 1000:.2f}",
                    "ok": True,
                    "attempts": attempt,
                }))
                return RetryResult(success=True, attempts=attempt, total_duration=duration, data=data)
        except asyncio.CancelledError:
            logging.info("Call to %s cancelled", service_name)
            self._release_trial(service_name)
            raise

        self._record_failure(service_name)
        duration = time.monotonic() - start
        logging.info(json.dumps({
            "ts": datetime.utcnow().isoformat(),
            "service": service_name,
            "fn": "with_retry",
            "latency_ms": f"{duration * 1000:.2f}",
            "ok": False,
            "attempts": attempts,
        }))
        return RetryResult(success=False, attempts=attempts, total_duration=duration, error=str(last_error))

    def reset_circuit_breaker(self, service_name: str) -> None:
        self._breakers.pop(service_name, None)
        logging.info("Circuit breaker reset for %s", service_name)

    def get_circuit_breaker_status(self, service_name: str) -> CircuitBreakerState:
        return replace(self._breaker(service_name))

    def clear_all_circuit_breakers(self) -> None:
        self._breakers.clear()


def retry_handler_from_config(cfg, **kwargs: Any) -> RetryHandler:
    return RetryHandler(
        config=RetryConfig(
            max_attempts=cfg.retry_max_attempts,
            initial_delay=cfg.retry_initial_delay_ms / 1000.0,
            max_delay=cfg.retry_max_delay_ms / 1000.0,
        ),
        failure_threshold=cfg.circuit_failure_threshold,
        reset_timeout=cfg.circuit_reset_timeout_sec,
        **kwargs,
    )
