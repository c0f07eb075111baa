"""
Safaricom Daraja (M-Pesa Express) client.

OAuth: GET /oauth/v1/generate with HTTP basic auth of consumer key/secret.
Push:  POST /mpesa/stkpush/v1/processrequest
Query: POST /mpesa/stkpushquery/v1/query

Both POST calls sign with Password = base64(shortcode + passkey + timestamp),
Timestamp formatted YYYYMMDDHHMMSS.
"""
import base64
from datetime import datetime
from typing import Any, Dict, Optional

import httpx

from stk_checkout.config import Settings
from stk_checkout.exceptions import GatewayAuthError, GatewayQueryError, GatewaySubmitError
from stk_checkout.gateway.base import BaseGatewayClient, PushAcceptance, QueryResult
from stk_checkout.logging_config import get_logger

logger = get_logger(__name__)

TOKEN_PATH = "/oauth/v1/generate"
PUSH_PATH = "/mpesa/stkpush/v1/processrequest"
QUERY_PATH = "/mpesa/stkpushquery/v1/query"

TRANSACTION_TYPE = "CustomerPayBillOnline"


def make_timestamp(now: Optional[datetime] = None) -> str:
    return (now or datetime.now()).strftime("%Y%m%d%H%M%S")


def make_password(short_code: str, passkey: str, timestamp: str) -> str:
    raw = f"{short_code}{passkey}{timestamp}".encode("utf-8")
    return base64.b64encode(raw).decode("utf-8")


class DarajaClient(BaseGatewayClient):
    def __init__(
        self,
        base_url: str,
        consumer_key: Optional[str],
        consumer_secret: Optional[str],
        short_code: str,
        passkey: str,
        callback_url: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.consumer_key = consumer_key
        self.consumer_secret = consumer_secret
        self.short_code = short_code
        self.passkey = passkey
        self.callback_url = callback_url
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> "DarajaClient":
        return cls(
            base_url=settings.daraja_base_url,
            consumer_key=settings.daraja_consumer_key,
            consumer_secret=settings.daraja_consumer_secret,
            short_code=settings.daraja_business_short_code,
            passkey=settings.daraja_passkey,
            callback_url=settings.daraja_callback_url,
            timeout=settings.daraja_timeout_seconds,
        )

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self._transport,
        )

    async def get_access_token(self) -> str:
        if not self.consumer_key or not self.consumer_secret:
            raise GatewayAuthError("Daraja credentials not configured")

        try:
            async with self._client() as client:
                resp = await client.get(
                    TOKEN_PATH,
                    params={"grant_type": "client_credentials"},
                    auth=(self.consumer_key, self.consumer_secret),
                )
        except httpx.HTTPError as e:
            logger.error("daraja_token_transport_error", error=str(e))
            raise GatewayAuthError("Failed to get Daraja token") from e

        if resp.status_code != 200:
            logger.error("daraja_token_rejected", upstream_status=resp.status_code, body=resp.text)
            raise GatewayAuthError("Failed to get Daraja token", upstream_status=resp.status_code)

        data = _json_or_none(resp)
        token = data.get("access_token") if isinstance(data, dict) else None
        if not token:
            logger.error("daraja_token_missing", upstream_status=resp.status_code)
            raise GatewayAuthError("Failed to get Daraja token", upstream_status=resp.status_code)
        return token

    async def submit_push(
        self,
        access_token: str,
        phone: str,
        amount: int,
        account_reference: str,
        description: str,
    ) -> PushAcceptance:
        timestamp = make_timestamp()
        payload = {
            "BusinessShortCode": self.short_code,
            "Password": make_password(self.short_code, self.passkey, timestamp),
            "Timestamp": timestamp,
            "TransactionType": TRANSACTION_TYPE,
            "Amount": amount,
            "PartyA": phone,
            "PartyB": self.short_code,
            "PhoneNumber": phone,
            "CallBackURL": self.callback_url,
            "AccountReference": account_reference,
            "TransactionDesc": description,
        }

        data = await self._post(PUSH_PATH, access_token, payload, GatewaySubmitError, "STK Push")

        # Daraja accepts with ResponseCode "0"; anything else is a rejection even on HTTP 200
        response_code = data.get("ResponseCode")
        checkout_request_id = data.get("CheckoutRequestID")
        if response_code is not None and str(response_code) != "0":
            message = data.get("ResponseDescription") or data.get("errorMessage") or "STK Push was not accepted"
            raise GatewaySubmitError(f"STK Push failed: {message}")
        if not checkout_request_id:
            raise GatewaySubmitError("STK Push failed: missing CheckoutRequestID")

        return PushAcceptance(
            checkout_request_id=checkout_request_id,
            merchant_request_id=data.get("MerchantRequestID"),
            response_description=data.get("ResponseDescription"),
            customer_message=data.get("CustomerMessage"),
        )

    async def query_status(self, access_token: str, checkout_request_id: str) -> QueryResult:
        timestamp = make_timestamp()
        payload = {
            "BusinessShortCode": self.short_code,
            "Password": make_password(self.short_code, self.passkey, timestamp),
            "Timestamp": timestamp,
            "CheckoutRequestID": checkout_request_id,
        }

        data = await self._post(QUERY_PATH, access_token, payload, GatewayQueryError, "STK Query")

        result_code = data.get("ResultCode")
        return QueryResult(
            result_code=str(result_code) if result_code is not None else None,
            result_desc=data.get("ResultDesc"),
        )

    async def _post(
        self,
        path: str,
        access_token: str,
        payload: Dict[str, Any],
        error_cls: type,
        label: str,
    ) -> Dict[str, Any]:
        headers = {"Authorization": f"Bearer {access_token}"}
        try:
            async with self._client() as client:
                resp = await client.post(path, json=payload, headers=headers)
        except httpx.HTTPError as e:
            logger.error("daraja_transport_error", operation=label, error=str(e))
            raise error_cls(f"{label} failed: Unknown error") from e

        if resp.is_error:
            logger.error("daraja_request_failed", operation=label,
                         upstream_status=resp.status_code, body=resp.text)
            raise error_cls(f"{label} failed: {resp.status_code}", upstream_status=resp.status_code)

        data = _json_or_none(resp)
        if not isinstance(data, dict):
            raise error_cls(f"{label} failed: invalid response body", upstream_status=resp.status_code)
        return data


def _json_or_none(resp: httpx.Response) -> Any:
    try:
        return resp.json()
    except ValueError:
        return None
