"""
Payment status resolution.

1. Stored record already terminal → answer from the store, no gateway call
2. Otherwise query the gateway with a fresh token
3. Map the result code ("0" completed, "1032"/empty pending, else failed)
4. Terminal result and a stored record → settle (first terminal write wins)
   and answer with whatever the store now holds
5. Still pending and past the configured expiry → settle as failed
"""
from datetime import timedelta
from typing import Optional

from stk_checkout import models
from stk_checkout.config import Settings, get_settings
from stk_checkout.exceptions import GatewayAuthError, GatewayQueryError, MissingParameter
from stk_checkout.gateway.base import BaseGatewayClient
from stk_checkout.logging_config import get_logger
from stk_checkout.services.normalizer import status_for_query_code
from stk_checkout.services.state import (
    FAILED,
    PENDING,
    TerminalOutcome,
    is_terminal,
    message_for,
    utcnow,
)
from stk_checkout.services.store import TransactionStore

logger = get_logger(__name__)

EXPIRED_DESC = "Payment request expired"


class StatusResult:
    def __init__(
        self,
        status: str,
        message: str,
        result_code: Optional[str] = None,
        result_desc: Optional[str] = None,
    ):
        self.status = status
        self.message = message
        self.result_code = result_code
        self.result_desc = result_desc

    @classmethod
    def from_record(cls, txn: models.Transaction) -> "StatusResult":
        return cls(
            status=txn.status,
            message=message_for(txn.status, txn.result_desc),
            result_code=txn.result_code,
            result_desc=txn.result_desc,
        )


def _is_expired(txn: models.Transaction, expiry_seconds: Optional[int]) -> bool:
    if not expiry_seconds:
        return False
    return utcnow() - txn.created_at > timedelta(seconds=expiry_seconds)


def _settled_view(store: TransactionStore, request_id: str, fallback: StatusResult) -> StatusResult:
    # Re-read after settle(): if another path won the race, its outcome is the answer
    txn = store.get(request_id)
    if txn is not None and is_terminal(txn.status):
        return StatusResult.from_record(txn)
    return fallback


async def resolve_status(
    request_id: Optional[str],
    store: TransactionStore,
    gateway: BaseGatewayClient,
    settings: Optional[Settings] = None,
) -> StatusResult:
    """
    Raises:
        MissingParameter: no request id given
        GatewayQueryError: token exchange or status query failed
    """
    if not request_id:
        raise MissingParameter("checkoutRequestId parameter is required")

    settings = settings or get_settings()
    log = logger.bind(checkout_request_id=request_id)

    txn = store.get(request_id)
    if txn is not None and is_terminal(txn.status):
        return StatusResult.from_record(txn)

    try:
        access_token = await gateway.get_access_token()
    except GatewayAuthError as e:
        raise GatewayQueryError(e.message, upstream_status=e.upstream_status) from e

    query = await gateway.query_status(access_token, request_id)
    status = status_for_query_code(query.result_code)
    log.info("stk_query_result", result_code=query.result_code, status=status,
             known_transaction=txn is not None)

    live = StatusResult(
        status=status,
        message=message_for(status, query.result_desc),
        result_code=query.result_code,
        result_desc=query.result_desc,
    )

    if txn is None:
        return live

    if is_terminal(status):
        applied = store.settle(request_id, TerminalOutcome(
            status=status,
            result_code=query.result_code,
            result_desc=query.result_desc,
        ))
        log.info("terminal_write_applied" if applied else "terminal_write_ignored",
                 source="status_query", status=status)
        return _settled_view(store, request_id, live)

    if status == PENDING and _is_expired(txn, settings.pending_expiry_seconds):
        applied = store.settle(request_id, TerminalOutcome(
            status=FAILED,
            result_code=None,
            result_desc=EXPIRED_DESC,
        ))
        log.info("pending_transaction_expired", applied=applied,
                 expiry_seconds=settings.pending_expiry_seconds)
        return _settled_view(store, request_id, live)

    return live
