"""
Shared pytest fixtures for all test modules.

Uses an in-memory SQLite database (StaticPool) so every test
function gets a clean, isolated database — no disk I/O, no state leakage.
The gateway is an AsyncMock; no test talks to Daraja.
"""
import pytest
from datetime import datetime
from unittest.mock import AsyncMock
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from typing import Optional

from stk_checkout.database import Base
from stk_checkout.dependencies import get_gateway, get_store
from stk_checkout.gateway.base import PushAcceptance, QueryResult
from stk_checkout.services.store import SQLTransactionStore, new_transaction
from stk_checkout import models


# ---------------------------------------------------------------------------
# In-memory database engine shared across all fixtures in a test session.
# StaticPool forces all SQLAlchemy connections to reuse the same underlying
# sqlite3 connection, which is required for in-memory SQLite.
# ---------------------------------------------------------------------------
TEST_ENGINE = create_engine(
    "sqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=TEST_ENGINE)

CHECKOUT_ID = "ws_CO_191220191020363925"
MERCHANT_ID = "29115-34620561-1"


@pytest.fixture(autouse=True)
def reset_db():
    """Drop and recreate all tables before each test for full isolation."""
    Base.metadata.drop_all(bind=TEST_ENGINE)
    Base.metadata.create_all(bind=TEST_ENGINE)
    yield
    Base.metadata.drop_all(bind=TEST_ENGINE)


@pytest.fixture
def db(reset_db):
    """Yield a SQLAlchemy session backed by the in-memory test database."""
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def store(db):
    return SQLTransactionStore(db)


@pytest.fixture
def gateway():
    return make_gateway()


@pytest.fixture
def client(db, gateway):
    """
    FastAPI TestClient with the store and gateway dependencies overridden.
    The TestClient is NOT used as a context manager so the lifespan hook
    (which creates tables in the on-disk DB) is skipped.
    """
    from stk_checkout.main import app

    app.dependency_overrides[get_store] = lambda: SQLTransactionStore(db)
    app.dependency_overrides[get_gateway] = lambda: gateway
    yield TestClient(app)
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Helpers — not fixtures — so any test file can import and call them directly.
# ---------------------------------------------------------------------------
def make_gateway(
    result_code: Optional[str] = "1032",
    result_desc: Optional[str] = "The transaction is being processed",
    checkout_request_id: str = CHECKOUT_ID,
    merchant_request_id: str = MERCHANT_ID,
) -> AsyncMock:
    gw = AsyncMock()
    gw.get_access_token = AsyncMock(return_value="test-token")
    gw.submit_push = AsyncMock(return_value=PushAcceptance(
        checkout_request_id=checkout_request_id,
        merchant_request_id=merchant_request_id,
        response_description="Success. Request accepted for processing",
        customer_message="Success. Request accepted for processing",
    ))
    gw.query_status = AsyncMock(return_value=QueryResult(result_code, result_desc))
    return gw


def make_txn(
    store,
    request_id: str = CHECKOUT_ID,
    phone: str = "254712345678",
    amount: int = 5500,
    items: Optional[list] = None,
    status: str = "pending",
    result_code: Optional[str] = None,
    result_desc: Optional[str] = None,
    created_at: Optional[datetime] = None,
) -> models.Transaction:
    txn = new_transaction(
        request_id=request_id,
        merchant_request_id=MERCHANT_ID,
        phone=phone,
        amount=amount,
        items=items if items is not None else [{"id": "1", "name": "Headphones", "price": 5500, "quantity": 1}],
    )
    txn.status = status
    txn.result_code = result_code
    txn.result_desc = result_desc
    if created_at is not None:
        txn.created_at = created_at
    return store.insert(txn)


def success_callback(
    request_id: str = CHECKOUT_ID,
    amount=5500,
    receipt: str = "ABC123",
    extra_items: Optional[list] = None,
) -> dict:
    items = [
        {"Name": "Amount", "Value": amount},
        {"Name": "MpesaReceiptNumber", "Value": receipt},
        {"Name": "Balance"},
        {"Name": "TransactionDate", "Value": 20191219102115},
        {"Name": "PhoneNumber", "Value": 254712345678},
    ]
    return {
        "Body": {
            "stkCallback": {
                "MerchantRequestID": MERCHANT_ID,
                "CheckoutRequestID": request_id,
                "ResultCode": 0,
                "ResultDesc": "The service request is processed successfully.",
                "CallbackMetadata": {"Item": items + (extra_items or [])},
            }
        }
    }


def failure_callback(
    request_id: str = CHECKOUT_ID,
    result_code: int = 1032,
    result_desc: str = "Request cancelled by user",
) -> dict:
    return {
        "Body": {
            "stkCallback": {
                "MerchantRequestID": MERCHANT_ID,
                "CheckoutRequestID": request_id,
                "ResultCode": result_code,
                "ResultDesc": result_desc,
            }
        }
    }
