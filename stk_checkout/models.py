from sqlalchemy import Column, String, Integer, DateTime, JSON
from stk_checkout.database import Base


class Transaction(Base):
    """One push-payment attempt, keyed by the gateway's CheckoutRequestID."""

    __tablename__ = "transactions"

    request_id = Column(String, primary_key=True)
    merchant_request_id = Column(String, nullable=True)
    phone = Column(String, nullable=False)
    amount = Column(Integer, nullable=False)
    items = Column(JSON, nullable=False)  # cart snapshot at initiation
    status = Column(String, nullable=False, default="pending", index=True)
    result_code = Column(String, nullable=True)
    result_desc = Column(String, nullable=True)
    transaction_details = Column(JSON, nullable=True)
    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=False)
    callback_received_at = Column(DateTime, nullable=True)
