"""
Ticket External Service Integrations
====================================

Adapters for things outside the process:
- SystemClock: wall-clock time
- LoggingNotifier / WebhookNotifier: notification delivery
- SLAScheduler: APScheduler wrapper for the periodic breach-alert scan
"""

import asyncio
import time
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from helpdesk.core.exceptions import NotificationException
from helpdesk.shared.infrastructure.logging import get_logger
from helpdesk.tickets.application.services import IClock, INotifier, NotificationRequest

logger = get_logger(__name__)


class SystemClock(IClock):
    """UTC wall clock."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class CircuitState:
    """Circuit breaker states."""
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """
    Circuit breaker for preventing cascade failures.

    States:
    - CLOSED: Normal operation, requests pass through
    - OPEN: After N failures, reject all requests for M seconds
    - HALF_OPEN: After timeout, allow one test request
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        recovery_timeout: float = 60.0,
        monotonic: Callable[[], float] = time.monotonic,
    ):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self._monotonic = monotonic
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._opened_at: Optional[float] = None

    @property
    def state(self) -> str:
        """Get current circuit state."""
        if self._state == CircuitState.OPEN and self._opened_at is not None:
            if self._monotonic() - self._opened_at >= self.recovery_timeout:
                self._state = CircuitState.HALF_OPEN
        return self._state

    def allow_request(self) -> bool:
        return self.state in (CircuitState.CLOSED, CircuitState.HALF_OPEN)

    def record_success(self) -> None:
        self._failure_count = 0
        self._state = CircuitState.CLOSED
        self._opened_at = None

    def record_failure(self) -> None:
        self._failure_count += 1
        if self._state == CircuitState.HALF_OPEN or self._failure_count >= self.failure_threshold:
            self._state = CircuitState.OPEN
            self._opened_at = self._monotonic()
            logger.warning(
                "Circuit breaker opened",
                extra={
                    "failure_count": self._failure_count,
                    "recovery_timeout": self.recovery_timeout
                }
            )


class LoggingNotifier(INotifier):
    """Default notifier: writes each notification to the log."""

    async def send(self, request: NotificationRequest) -> None:
        logger.info(
            "Notification",
            extra={
                "kind": request.kind.value,
                "recipient": request.recipient,
                "context": request.context,
            }
        )


class WebhookNotifier(INotifier):
    """
    Posts notifications to a rendering/delivery webhook.

    Handles:
    - Circuit breaker to stop hammering a dead endpoint
    - Exponential backoff retry
    - Timeout handling
    """

    def __init__(
        self,
        webhook_url: str,
        timeout_seconds: float = 5.0,
        max_retries: int = 3,
        backoff_base: float = 1.0,
        circuit_breaker: Optional[CircuitBreaker] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self._webhook_url = webhook_url
        self._timeout_seconds = timeout_seconds
        self._max_retries = max_retries
        self._backoff_base = backoff_base
        self._circuit_breaker = circuit_breaker or CircuitBreaker(failure_threshold=5, recovery_timeout=60)
        self._http_client = http_client

    async def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._timeout_seconds)
        return self._http_client

    def _build_payload(self, request: NotificationRequest) -> Dict[str, Any]:
        return {
            "template": request.kind.value,
            "recipient": request.recipient,
            "context": request.context,
        }

    async def send(self, request: NotificationRequest) -> None:
        """
        Deliver one notification.

        Raises:
            NotificationException: circuit open, or every attempt failed
        """
        if not self._circuit_breaker.allow_request():
            raise NotificationException(
                "circuit breaker open",
                {"kind": request.kind.value, "recipient": request.recipient}
            )

        payload = self._build_payload(request)
        last_error = "no attempt made"

        for attempt in range(self._max_retries):
            try:
                client = await self._get_client()
                response = await client.post(self._webhook_url, json=payload)
                if response.is_success:
                    self._circuit_breaker.record_success()
                    logger.debug(
                        "Notification delivered",
                        extra={"kind": request.kind.value, "recipient": request.recipient}
                    )
                    return
                last_error = f"webhook returned {response.status_code}"
                logger.warning(
                    "Notification webhook returned an error",
                    extra={"status_code": response.status_code, "attempt": attempt + 1}
                )
            except httpx.HTTPError as e:
                last_error = str(e)
                logger.warning(
                    "Notification webhook call failed",
                    extra={"error": str(e), "attempt": attempt + 1}
                )

            if attempt < self._max_retries - 1:
                await asyncio.sleep(self._backoff_base * 2 ** attempt)

        self._circuit_breaker.record_failure()
        raise NotificationException(last_error, {"kind": request.kind.value, "recipient": request.recipient})

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None


class SLAScheduler:
    """
    Wrapper for APScheduler running the breach-alert scan.

    Manages the lifecycle of the scheduler and its single job.
    """

    def __init__(self, interval_seconds: int = 60):
        self.interval_seconds = interval_seconds
        self._scheduler: Optional[AsyncIOScheduler] = None
        self._running = False

    async def start(self, job_func: Callable[[], Awaitable[Any]]) -> None:
        """Start the scheduler with the given job function."""
        if self._running:
            logger.warning("SLA scheduler already running")
            return

        self._scheduler = AsyncIOScheduler()
        self._scheduler.add_job(
            job_func,
            "interval",
            seconds=self.interval_seconds,
            id="sla_alert_scan",
            name="SLA Alert Scan",
            misfire_grace_time=self.interval_seconds,
            max_instances=1,
            coalesce=True,
            replace_existing=True
        )
        self._scheduler.start()
        self._running = True

        logger.info("SLA scheduler started", extra={"interval_seconds": self.interval_seconds})

    async def stop(self) -> None:
        """Stop the scheduler gracefully."""
        if not self._running:
            return

        if self._scheduler:
            self._scheduler.shutdown(wait=False)

        self._running = False
        logger.info("SLA scheduler stopped")

    @property
    def is_running(self) -> bool:
        return self._running
