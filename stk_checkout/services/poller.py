"""
Client-side polling of /payment-status.

A fixed number of attempts at a fixed interval (default 30 x 2s). completed
and failed end the loop; pending, error bodies and transport failures are
retried. When the budget runs out the caller is told "failed" with
timed_out=True. That is a local timeout only: the stored transaction may
still settle later through a callback.
"""
import asyncio
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

from stk_checkout.logging_config import get_logger
from stk_checkout.services.state import COMPLETED, FAILED

logger = get_logger(__name__)

DEFAULT_MAX_ATTEMPTS = 30
DEFAULT_INTERVAL_SECONDS = 2.0


class PollPolicy:
    def __init__(self, max_attempts: int = DEFAULT_MAX_ATTEMPTS,
                 interval_seconds: float = DEFAULT_INTERVAL_SECONDS):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if interval_seconds < 0:
            raise ValueError("interval_seconds cannot be negative")
        self.max_attempts = max_attempts
        self.interval_seconds = interval_seconds


class PollResult:
    def __init__(self, status: str, attempts: int, timed_out: bool,
                 last_response: Optional[Dict[str, Any]] = None):
        self.status = status
        self.attempts = attempts
        self.timed_out = timed_out
        self.last_response = last_response


async def poll_payment_status(
    fetch_status: Callable[[], Awaitable[Dict[str, Any]]],
    policy: Optional[PollPolicy] = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> PollResult:
    policy = policy or PollPolicy()
    last_response = None

    for attempt in range(1, policy.max_attempts + 1):
        try:
            last_response = await fetch_status()
        except (httpx.HTTPError, ValueError) as e:
            # Network and decode errors are transient until the budget runs out
            logger.warning("poll_attempt_failed", attempt=attempt, error=str(e))
        else:
            status = last_response.get("status") if isinstance(last_response, dict) else None
            if status in (COMPLETED, FAILED):
                return PollResult(status, attempt, False, last_response)

        if attempt < policy.max_attempts:
            await sleep(policy.interval_seconds)

    logger.info("poll_budget_exhausted", attempts=policy.max_attempts)
    return PollResult(FAILED, policy.max_attempts, True, last_response)
