"""
Daraja STK callback envelope:

    {"Body": {"stkCallback": {
        "MerchantRequestID": "...",
        "CheckoutRequestID": "...",
        "ResultCode": 0,
        "ResultDesc": "...",
        "CallbackMetadata": {"Item": [{"Name": "Amount", "Value": 1}, ...]}
    }}}

CallbackMetadata is only sent for successful payments.
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, List, Optional


class _Envelope(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class CallbackItem(_Envelope):
    # Odd entries are kept here and skipped by name lookup, not rejected
    name: Optional[Any] = Field(default=None, alias="Name")
    value: Optional[Any] = Field(default=None, alias="Value")


class CallbackMetadata(_Envelope):
    items: List[CallbackItem] = Field(default_factory=list, alias="Item")


class StkCallback(_Envelope):
    merchant_request_id: Optional[str] = Field(default=None, alias="MerchantRequestID")
    checkout_request_id: str = Field(alias="CheckoutRequestID")
    result_code: int = Field(alias="ResultCode")
    result_desc: Optional[str] = Field(default=None, alias="ResultDesc")
    callback_metadata: Optional[CallbackMetadata] = Field(default=None, alias="CallbackMetadata")


class CallbackBody(_Envelope):
    stk_callback: StkCallback = Field(alias="stkCallback")


class CallbackEnvelope(_Envelope):
    body: CallbackBody = Field(alias="Body")
