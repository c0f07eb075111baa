"""
Normalizes buyer input and gateway results to the service's canonical forms.

- Phone numbers: any common Kenyan spelling → 254XXXXXXXXX
- Query result codes → completed / failed / pending
- Callback result codes → completed / failed
- Callback metadata name/value pairs → transaction details
"""
import re
from typing import Any, Dict, Iterable, Optional

from stk_checkout.services.state import COMPLETED, FAILED, PENDING


COUNTRY_CODE = "254"
PHONE_PATTERN = re.compile(r"^254[0-9]{9}$")

SUCCESS_CODE = "0"
# Codes the status query returns while the buyer has not finished on the handset
IN_PROGRESS_CODES = {"1032"}

# Callback metadata item name → transaction_details key
METADATA_FIELDS = {
    "Amount": "amount",
    "MpesaReceiptNumber": "mpesa_receipt_number",
    "TransactionDate": "transaction_date",
    "PhoneNumber": "phone_number",
}


def normalize_phone(phone: str) -> str:
    """
    Strip everything but digits, then force the 254 country prefix.

    0712345678 / +254712345678 / 254712345678 / 712345678 → 254712345678
    The result is not validated here; see is_valid_phone().
    """
    digits = re.sub(r"\D", "", phone or "")
    if digits.startswith("0"):
        return COUNTRY_CODE + digits[1:]
    if not digits.startswith(COUNTRY_CODE):
        return COUNTRY_CODE + digits
    return digits


def is_valid_phone(phone: str) -> bool:
    return bool(PHONE_PATTERN.match(phone or ""))


def status_for_query_code(result_code: Optional[str]) -> str:
    """"0" → completed, in-progress or empty → pending, anything else → failed."""
    code = str(result_code).strip() if result_code is not None else ""
    if code == SUCCESS_CODE:
        return COMPLETED
    if not code or code in IN_PROGRESS_CODES:
        return PENDING
    return FAILED


def status_for_callback_code(result_code: Any) -> str:
    return COMPLETED if str(result_code).strip() == SUCCESS_CODE else FAILED


def extract_transaction_details(items: Iterable[Any]) -> Dict[str, Any]:
    """
    Look up the known metadata entries by name. Items may be dicts
    ({"Name": ..., "Value": ...}) or objects with .name/.value.
    Entries that are absent, or present without a value, are left out.
    """
    values: Dict[str, Any] = {}
    for item in items or []:
        if isinstance(item, dict):
            name, value = item.get("Name"), item.get("Value")
        else:
            name, value = getattr(item, "name", None), getattr(item, "value", None)
        if isinstance(name, str) and name in METADATA_FIELDS and value is not None and name not in values:
            values[name] = value

    return {METADATA_FIELDS[name]: value for name, value in values.items()}
