from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from typing import Optional
from datetime import datetime


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class StkPushResponse(CamelModel):
    success: bool = True
    message: str
    checkout_request_id: str
    merchant_request_id: Optional[str] = None


class StkPushErrorResponse(CamelModel):
    success: bool = False
    error: str


class PaymentStatusResponse(CamelModel):
    status: str  # "pending" | "completed" | "failed"
    message: str
    result_code: Optional[str] = None
    result_desc: Optional[str] = None


class ErrorResponse(CamelModel):
    status: str = "error"
    message: str


class CallbackAck(BaseModel):
    ResultCode: int = 0
    ResultDesc: str


class HealthResponse(BaseModel):
    status: str
    service: str
    timestamp: datetime
