"""
Transaction status machine.

    pending ──▶ completed
       └──────▶ failed

Terminal states never change. Every writer (status resolver, callback
handler, expiry policy) describes its result as a TerminalOutcome and hands
it to TransactionStore.settle(), which applies it only while the stored
status is still pending.
"""
from datetime import datetime, timezone
from typing import Any, Dict, Optional


PENDING = "pending"
COMPLETED = "completed"
FAILED = "failed"

TERMINAL_STATES = frozenset({COMPLETED, FAILED})

STATUS_MESSAGES = {
    COMPLETED: "Payment completed successfully",
    FAILED: "Payment failed",
    PENDING: "Payment is being processed",
}


def utcnow() -> datetime:
    # Naive UTC, as stored by SQLite
    return datetime.now(timezone.utc).replace(tzinfo=None)


def is_terminal(status: Optional[str]) -> bool:
    return status in TERMINAL_STATES


def can_settle(current_status: Optional[str]) -> bool:
    return current_status == PENDING


class TerminalOutcome:
    def __init__(
        self,
        status: str,
        result_code: Optional[str],
        result_desc: Optional[str],
        transaction_details: Optional[Dict[str, Any]] = None,
        callback_received_at: Optional[datetime] = None,
    ):
        if not is_terminal(status):
            raise ValueError(f"Not a terminal status: {status}")
        self.status = status
        self.result_code = result_code
        self.result_desc = result_desc
        self.transaction_details = transaction_details
        self.callback_received_at = callback_received_at

    def as_update(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Column values written, all together, by the pending → terminal transition."""
        values = {
            "status": self.status,
            "result_code": self.result_code,
            "result_desc": self.result_desc,
            "updated_at": now or utcnow(),
        }
        if self.transaction_details:
            values["transaction_details"] = self.transaction_details
        if self.callback_received_at is not None:
            values["callback_received_at"] = self.callback_received_at
        return values


def message_for(status: str, result_desc: Optional[str] = None) -> str:
    if status == FAILED and result_desc:
        return result_desc
    return STATUS_MESSAGES.get(status, STATUS_MESSAGES[PENDING])
