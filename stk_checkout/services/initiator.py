"""
Payment initiation.

1. Validate phone / amount / items (each failure its own error type)
2. Acquire a gateway access token
3. Submit the push request
4. Insert the pending Transaction, keyed by the gateway's CheckoutRequestID

No record is written unless step 3 succeeded.
"""
import math
import time
from typing import Any, Dict, List, Optional

from stk_checkout.config import Settings, get_settings
from stk_checkout.exceptions import InvalidAmount, InvalidPhoneFormat, InvalidRequest
from stk_checkout.gateway.base import BaseGatewayClient
from stk_checkout.logging_config import get_logger
from stk_checkout.services.normalizer import is_valid_phone, normalize_phone
from stk_checkout.services.store import TransactionStore, new_transaction

logger = get_logger(__name__)


class InitiationResult:
    def __init__(self, checkout_request_id: str, merchant_request_id: Optional[str]):
        self.checkout_request_id = checkout_request_id
        self.merchant_request_id = merchant_request_id


def make_account_reference(prefix: str) -> str:
    return f"{prefix}-{int(time.time() * 1000)}"


def _validate_amount(amount: Any) -> int:
    if isinstance(amount, bool) or not isinstance(amount, (int, float)):
        raise InvalidAmount("Amount must be a number")
    if not math.isfinite(amount):
        raise InvalidAmount("Amount must be a finite number")
    if amount < 1:
        raise InvalidAmount("Amount must be at least KSh 1")
    if int(amount) != amount:
        raise InvalidAmount("Amount must be a whole number of KSh")
    return int(amount)


def validate_payment_request(phone: Optional[str], amount: Any, items: Optional[List[Any]]):
    """Returns (normalized_phone, amount_as_int)."""
    if not phone or amount is None or not items:
        raise InvalidRequest("Invalid request data")

    normalized = normalize_phone(phone)
    if not is_valid_phone(normalized):
        raise InvalidPhoneFormat("Invalid phone number format. Use 254XXXXXXXXX")

    return normalized, _validate_amount(amount)


async def initiate_payment(
    phone: Optional[str],
    amount: Any,
    items: Optional[List[Dict[str, Any]]],
    store: TransactionStore,
    gateway: BaseGatewayClient,
    settings: Optional[Settings] = None,
) -> InitiationResult:
    """
    Raises:
        InvalidRequest / InvalidPhoneFormat / InvalidAmount: bad input
        GatewayAuthError: token exchange failed
        GatewaySubmitError: push rejected or unreachable
    """
    settings = settings or get_settings()
    normalized_phone, amount_units = validate_payment_request(phone, amount, items)

    log = logger.bind(phone=normalized_phone, amount=amount_units)
    log.info("stk_push_initiating", item_count=len(items))

    access_token = await gateway.get_access_token()

    acceptance = await gateway.submit_push(
        access_token,
        normalized_phone,
        amount_units,
        make_account_reference(settings.account_reference_prefix),
        settings.transaction_desc,
    )
    log.info(
        "stk_push_accepted",
        checkout_request_id=acceptance.checkout_request_id,
        merchant_request_id=acceptance.merchant_request_id,
    )

    store.insert(new_transaction(
        request_id=acceptance.checkout_request_id,
        merchant_request_id=acceptance.merchant_request_id,
        phone=normalized_phone,
        amount=amount_units,
        items=[dict(item) for item in items],
    ))

    return InitiationResult(
        checkout_request_id=acceptance.checkout_request_id,
        merchant_request_id=acceptance.merchant_request_id,
    )
