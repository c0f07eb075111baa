"""Async client for the checkout API, as a storefront would use it."""
import asyncio
from typing import Any, Dict, List, Optional

import httpx

from stk_checkout.services.poller import PollPolicy, PollResult, poll_payment_status


class CheckoutError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class CheckoutClient:
    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout,
                                 transport=self._transport)

    async def start_payment(self, phone: str, amount: int,
                            items: List[Dict[str, Any]]) -> Dict[str, Any]:
        """POST /api/stk-push. Raises CheckoutError unless the push was sent."""
        async with self._client() as client:
            resp = await client.post("/api/stk-push",
                                     json={"phone": phone, "amount": amount, "items": items})
        try:
            body = resp.json()
        except ValueError:
            raise CheckoutError(f"Unexpected response ({resp.status_code})", resp.status_code)
        if not isinstance(body, dict):
            raise CheckoutError(f"Unexpected response ({resp.status_code})", resp.status_code)
        if not body.get("success"):
            raise CheckoutError(body.get("error") or "Payment could not be started",
                                resp.status_code)
        return body

    async def payment_status(self, checkout_request_id: str) -> Dict[str, Any]:
        async with self._client() as client:
            resp = await client.get("/api/payment-status",
                                    params={"checkoutRequestId": checkout_request_id})
        return resp.json()

    async def pay_and_wait(
        self,
        phone: str,
        amount: int,
        items: List[Dict[str, Any]],
        policy: Optional[PollPolicy] = None,
        sleep=asyncio.sleep,
    ) -> PollResult:
        started = await self.start_payment(phone, amount, items)
        checkout_request_id = started["checkoutRequestId"]

        async def fetch():
            return await self.payment_status(checkout_request_id)

        return await poll_payment_status(fetch, policy, sleep=sleep)
