"""
Error taxonomy.

Client input errors carry a 4xx status; upstream gateway failures carry 502
plus the gateway's own HTTP status when one was received.
"""
from typing import Optional


class PaymentError(Exception):
    status_code = 400

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class InvalidRequest(PaymentError):
    pass


class InvalidPhoneFormat(PaymentError):
    pass


class InvalidAmount(PaymentError):
    pass


class MissingParameter(PaymentError):
    pass


class GatewayError(PaymentError):
    status_code = 502

    def __init__(self, message: str, upstream_status: Optional[int] = None):
        super().__init__(message)
        self.upstream_status = upstream_status


class GatewayAuthError(GatewayError):
    pass


class GatewaySubmitError(GatewayError):
    pass


class GatewayQueryError(GatewayError):
    pass


class TransactionStoreError(Exception):
    """Duplicate insert or backend failure in a transaction store."""
