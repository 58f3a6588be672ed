"""Tests for the notifier, circuit breaker and scheduler adapters."""

import json

import httpx
import pytest

from helpdesk.config import NotificationKind
from helpdesk.core.exceptions import NotificationException
from helpdesk.tickets.application import NotificationRequest
from helpdesk.tickets.infrastructure import (
    CircuitBreaker,
    LoggingNotifier,
    SLAScheduler,
    SystemClock,
    WebhookNotifier,
)

WEBHOOK = "https://notify.example.edu/hooks/helpdesk"


def _request():
    return NotificationRequest(
        NotificationKind.TICKET_ASSIGNED,
        "tech-1",
        {"ticket_code": "TKT-202603-0001", "title": "Printer jammed"},
    )


class FakeMonotonic:
    def __init__(self):
        self.value = 100.0

    def __call__(self) -> float:
        return self.value


def _notifier(handler, **kwargs):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return WebhookNotifier(WEBHOOK, backoff_base=0, http_client=client, **kwargs)


class TestWebhookNotifier:
    """Tests for WebhookNotifier."""

    async def test_posts_template_payload(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(202)

        notifier = _notifier(handler)
        await notifier.send(_request())
        await notifier.close()

        assert len(seen) == 1
        assert str(seen[0].url) == WEBHOOK
        body = json.loads(seen[0].content)
        assert body["template"] == "ticket-assigned"
        assert body["recipient"] == "tech-1"
        assert body["context"]["ticket_code"] == "TKT-202603-0001"

    async def test_retries_then_succeeds(self):
        statuses = iter([503, 503, 200])

        notifier = _notifier(lambda request: httpx.Response(next(statuses)))
        await notifier.send(_request())

        assert next(statuses, None) is None

    async def test_gives_up_after_retries(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(500)

        notifier = _notifier(handler, max_retries=2)

        with pytest.raises(NotificationException) as exc_info:
            await notifier.send(_request())

        assert len(calls) == 2
        assert exc_info.value.service_name == "Notifier"
        assert "500" in exc_info.value.message

    async def test_transport_errors_are_retried(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        notifier = _notifier(handler, max_retries=2)

        with pytest.raises(NotificationException):
            await notifier.send(_request())

    async def test_open_circuit_short_circuits(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(500)

        breaker = CircuitBreaker(failure_threshold=1, recovery_timeout=60, monotonic=FakeMonotonic())
        notifier = _notifier(handler, max_retries=1, circuit_breaker=breaker)

        with pytest.raises(NotificationException):
            await notifier.send(_request())
        with pytest.raises(NotificationException, match="circuit breaker open"):
            await notifier.send(_request())

        assert len(calls) == 1


class TestCircuitBreaker:
    """Tests for CircuitBreaker."""

    def test_opens_after_threshold(self):
        breaker = CircuitBreaker(failure_threshold=2, recovery_timeout=30, monotonic=FakeMonotonic())

        breaker.record_failure()
        assert breaker.allow_request()
        breaker.record_failure()

        assert breaker.state == "open"
        assert not breaker.allow_request()

    def test_half_open_after_recovery_timeout(self):
        clock = FakeMonotonic()
        breaker = CircuitBreaker(failure_threshold=1, recovery_timeout=30, monotonic=clock)
        breaker.record_failure()

        clock.value += 30

        assert breaker.state == "half_open"
        assert breaker.allow_request()

    def test_half_open_failure_reopens(self):
        clock = FakeMonotonic()
        breaker = CircuitBreaker(failure_threshold=3, recovery_timeout=30, monotonic=clock)
        for _ in range(3):
            breaker.record_failure()
        clock.value += 31
        assert breaker.state == "half_open"

        breaker.record_failure()

        assert breaker.state == "open"

    def test_success_closes(self):
        clock = FakeMonotonic()
        breaker = CircuitBreaker(failure_threshold=1, recovery_timeout=30, monotonic=clock)
        breaker.record_failure()
        clock.value += 30

        breaker.record_success()

        assert breaker.state == "closed"


class TestLoggingNotifier:
    async def test_send_and_close(self):
        notifier = LoggingNotifier()

        await notifier.send(_request())
        await notifier.close()


class TestSystemClock:
    def test_is_timezone_aware(self):
        assert SystemClock().now().utcoffset().total_seconds() == 0


class TestSLAScheduler:
    """Tests for SLAScheduler lifecycle."""

    async def test_start_and_stop(self):
        async def job():
            return None

        scheduler = SLAScheduler(interval_seconds=60)

        await scheduler.start(job)
        assert scheduler.is_running
        await scheduler.start(job)

        await scheduler.stop()
        assert not scheduler.is_running

    async def test_stop_when_not_started(self):
        scheduler = SLAScheduler()

        await scheduler.stop()

        assert not scheduler.is_running
