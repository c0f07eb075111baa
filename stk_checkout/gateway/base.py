from abc import ABC, abstractmethod
from typing import Optional


class PushAcceptance:
    def __init__(
        self,
        checkout_request_id: str,
        merchant_request_id: Optional[str],
        response_description: Optional[str] = None,
        customer_message: Optional[str] = None,
    ):
        self.checkout_request_id = checkout_request_id
        self.merchant_request_id = merchant_request_id
        self.response_description = response_description
        self.customer_message = customer_message


class QueryResult:
    def __init__(self, result_code: Optional[str], result_desc: Optional[str]):
        self.result_code = result_code
        self.result_desc = result_desc


class BaseGatewayClient(ABC):
    """Abstract base for push-payment gateway clients."""

    @abstractmethod
    async def get_access_token(self) -> str:
        """
        Exchange the configured credentials for a short-lived bearer token.
        Raises GatewayAuthError.
        """
        pass

    @abstractmethod
    async def submit_push(
        self,
        access_token: str,
        phone: str,
        amount: int,
        account_reference: str,
        description: str,
    ) -> PushAcceptance:
        """
        Ask the gateway to prompt `phone` for `amount`.
        Raises GatewaySubmitError unless the gateway accepted the request.
        """
        pass

    @abstractmethod
    async def query_status(self, access_token: str, checkout_request_id: str) -> QueryResult:
        """
        Fetch the current result for a previously accepted push.
        Raises GatewayQueryError.
        """
        pass
