"""
Gateway callback handling.

The gateway retries any callback it does not see acknowledged, so
handle_callback() never raises: malformed bodies, unknown transactions,
already-settled transactions and store failures are all logged and dropped.
"""
from typing import Any

from pydantic import ValidationError

from stk_checkout.logging_config import get_logger
from stk_checkout.schemas.callback import CallbackEnvelope
from stk_checkout.services.normalizer import extract_transaction_details, status_for_callback_code
from stk_checkout.services.state import COMPLETED, TerminalOutcome, utcnow
from stk_checkout.services.store import TransactionStore

logger = get_logger(__name__)


class CallbackOutcome:
    APPLIED = "applied"
    IGNORED = "ignored"            # record already terminal
    UNKNOWN_TRANSACTION = "unknown_transaction"
    MALFORMED = "malformed"
    ERROR = "error"


def handle_callback(payload: Any, store: TransactionStore) -> str:
    """Apply one gateway callback. Returns a CallbackOutcome value, never raises."""
    try:
        envelope = CallbackEnvelope.model_validate(payload)
    except ValidationError as e:
        logger.warning("callback_malformed", errors=e.error_count())
        return CallbackOutcome.MALFORMED

    callback = envelope.body.stk_callback
    request_id = callback.checkout_request_id
    status = status_for_callback_code(callback.result_code)
    log = logger.bind(checkout_request_id=request_id,
                      merchant_request_id=callback.merchant_request_id)
    log.info("callback_received", result_code=callback.result_code, status=status)

    try:
        details = None
        if status == COMPLETED and callback.callback_metadata is not None:
            details = extract_transaction_details(callback.callback_metadata.items)

        if store.get(request_id) is None:
            log.warning("callback_dropped_unknown_transaction")
            return CallbackOutcome.UNKNOWN_TRANSACTION

        applied = store.settle(request_id, TerminalOutcome(
            status=status,
            result_code=str(callback.result_code),
            result_desc=callback.result_desc,
            transaction_details=details,
            callback_received_at=utcnow(),
        ))
    except Exception:
        log.exception("callback_processing_error")
        return CallbackOutcome.ERROR

    if applied:
        log.info("terminal_write_applied", source="callback", status=status)
        return CallbackOutcome.APPLIED

    log.info("terminal_write_ignored", source="callback", status=status)
    return CallbackOutcome.IGNORED
