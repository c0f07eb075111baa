"""
Unit tests for stk_checkout/services/poller.py.

sleep is injected, so no test actually waits.
"""
import httpx
import pytest

from stk_checkout.services.poller import PollPolicy, poll_payment_status


class FakeSleep:
    def __init__(self):
        self.calls = []

    async def __call__(self, seconds):
        self.calls.append(seconds)


def responses(*items):
    """fetch_status() that replays items in order; exceptions are raised."""
    queue = list(items)

    async def fetch():
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, Exception):
            raise item
        return item

    return fetch


PENDING = {"status": "pending", "message": "Payment is being processed"}
COMPLETED = {"status": "completed", "message": "Payment completed successfully"}
FAILED = {"status": "failed", "message": "Request cancelled by user"}


class TestPollStops:
    async def test_completed_on_first_attempt(self):
        sleep = FakeSleep()
        result = await poll_payment_status(responses(COMPLETED), sleep=sleep)

        assert result.status == "completed"
        assert result.attempts == 1
        assert result.timed_out is False
        assert sleep.calls == []

    async def test_pending_then_completed(self):
        sleep = FakeSleep()
        result = await poll_payment_status(responses(PENDING, PENDING, PENDING, COMPLETED), sleep=sleep)

        assert result.status == "completed"
        assert result.attempts == 4
        assert sleep.calls == [2.0, 2.0, 2.0]
        assert result.last_response == COMPLETED

    async def test_failed_stops_immediately(self):
        result = await poll_payment_status(responses(PENDING, FAILED), sleep=FakeSleep())

        assert result.status == "failed"
        assert result.attempts == 2
        assert result.timed_out is False
        assert result.last_response["message"] == "Request cancelled by user"


class TestPollTimeout:
    async def test_default_budget_is_30_attempts_at_2_seconds(self):
        sleep = FakeSleep()
        result = await poll_payment_status(responses(PENDING), sleep=sleep)

        assert result.status == "failed"
        assert result.timed_out is True
        assert result.attempts == 30
        assert sleep.calls == [2.0] * 29
        assert result.last_response == PENDING

    async def test_custom_policy(self):
        sleep = FakeSleep()
        result = await poll_payment_status(responses(PENDING), PollPolicy(3, 0.5), sleep=sleep)

        assert result.timed_out is True
        assert result.attempts == 3
        assert sleep.calls == [0.5, 0.5]


class TestPollTransientErrors:
    async def test_network_errors_are_retried(self):
        request = httpx.Request("GET", "http://test/api/payment-status")
        fetch = responses(
            httpx.ConnectError("connection refused", request=request),
            ValueError("Expecting value"),
            COMPLETED,
        )
        result = await poll_payment_status(fetch, sleep=FakeSleep())

        assert result.status == "completed"
        assert result.attempts == 3

    async def test_error_body_is_retried(self):
        error = {"status": "error", "message": "STK Query failed: 500"}
        result = await poll_payment_status(responses(error, error, COMPLETED), sleep=FakeSleep())

        assert result.status == "completed"
        assert result.attempts == 3

    async def test_errors_until_budget_exhausted(self):
        request = httpx.Request("GET", "http://test/api/payment-status")
        fetch = responses(httpx.ReadTimeout("timed out", request=request))

        result = await poll_payment_status(fetch, PollPolicy(5, 2.0), sleep=FakeSleep())

        assert result.status == "failed"
        assert result.timed_out is True
        assert result.last_response is None


class TestPollPolicy:
    def test_defaults(self):
        policy = PollPolicy()
        assert policy.max_attempts == 30
        assert policy.interval_seconds == 2.0

    @pytest.mark.parametrize("attempts,interval", [(0, 2.0), (-1, 2.0), (5, -0.1)])
    def test_invalid(self, attempts, interval):
        with pytest.raises(ValueError):
            PollPolicy(attempts, interval)
