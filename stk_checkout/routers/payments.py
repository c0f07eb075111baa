import json
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from stk_checkout.dependencies import get_gateway, get_store
from stk_checkout.exceptions import InvalidRequest, PaymentError, TransactionStoreError
from stk_checkout.gateway.base import BaseGatewayClient
from stk_checkout.logging_config import get_logger
from stk_checkout.schemas.requests import StkPushRequest
from stk_checkout.schemas.responses import (
    CallbackAck,
    ErrorResponse,
    PaymentStatusResponse,
    StkPushErrorResponse,
    StkPushResponse,
)
from stk_checkout.services.callback import CallbackOutcome, handle_callback
from stk_checkout.services.initiator import initiate_payment
from stk_checkout.services.resolver import resolve_status
from stk_checkout.services.store import TransactionStore

router = APIRouter()
logger = get_logger(__name__)


def _error(model, status_code: int) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=model.model_dump(by_alias=True))


@router.post("/stk-push", response_model=StkPushResponse)
async def stk_push(
    request: Request,
    store: TransactionStore = Depends(get_store),
    gateway: BaseGatewayClient = Depends(get_gateway),
):
    """
    Start a push payment for a cart.

    - Validates phone (normalized to 254XXXXXXXXX), amount and items
    - Asks the gateway to prompt the phone for the amount
    - Records the attempt as pending under the gateway's CheckoutRequestID

    The caller polls /payment-status with the returned checkoutRequestId.
    """
    try:
        try:
            body = StkPushRequest.model_validate(await request.json())
        except (ValueError, ValidationError) as e:
            raise InvalidRequest("Invalid request data") from e

        items = [item.model_dump() for item in body.items] if body.items else None
        result = await initiate_payment(body.phone, body.amount, items, store, gateway)
    except PaymentError as e:
        logger.warning("stk_push_rejected", error=e.message, error_type=type(e).__name__)
        return _error(StkPushErrorResponse(error=e.message), e.status_code)
    except TransactionStoreError as e:
        logger.error("stk_push_store_error", error=str(e))
        return _error(StkPushErrorResponse(error="Failed to record transaction"), 500)

    return StkPushResponse(
        message="STK push sent successfully",
        checkout_request_id=result.checkout_request_id,
        merchant_request_id=result.merchant_request_id,
    )


@router.get("/payment-status", response_model=PaymentStatusResponse)
async def payment_status(
    checkout_request_id: Optional[str] = Query(default=None, alias="checkoutRequestId"),
    store: TransactionStore = Depends(get_store),
    gateway: BaseGatewayClient = Depends(get_gateway),
):
    """
    Best-known status for one payment attempt.

    Settled attempts are answered from the store; pending ones are checked
    against the gateway and settled when it reports a final result.
    """
    try:
        result = await resolve_status(checkout_request_id, store, gateway)
    except PaymentError as e:
        logger.warning("payment_status_error", checkout_request_id=checkout_request_id,
                       error=e.message, error_type=type(e).__name__)
        return _error(ErrorResponse(message=e.message), e.status_code)
    except TransactionStoreError as e:
        logger.error("payment_status_store_error", checkout_request_id=checkout_request_id, error=str(e))
        return _error(ErrorResponse(message="Failed to update transaction"), 500)

    return PaymentStatusResponse(
        status=result.status,
        message=result.message,
        result_code=result.result_code,
        result_desc=result.result_desc,
    )


@router.post("/callback", response_model=CallbackAck)
async def callback(request: Request, store: TransactionStore = Depends(get_store)):
    """
    Gateway result notification. Always acknowledged with ResultCode 0,
    whatever happened internally, so the gateway does not retry.
    """
    try:
        payload = json.loads(await request.body() or b"null")
    except ValueError:
        logger.warning("callback_unparseable_body")
        return CallbackAck(ResultDesc="Callback processed")

    outcome = handle_callback(payload, store)
    if outcome in (CallbackOutcome.MALFORMED, CallbackOutcome.ERROR):
        return CallbackAck(ResultDesc="Callback processed")
    return CallbackAck(ResultDesc="Callback processed successfully")
