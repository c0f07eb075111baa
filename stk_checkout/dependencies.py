from fastapi import Depends
from sqlalchemy.orm import Session

from stk_checkout.config import get_settings
from stk_checkout.database import get_db
from stk_checkout.gateway.base import BaseGatewayClient
from stk_checkout.gateway.daraja import DarajaClient
from stk_checkout.services.store import (
    InMemoryTransactionStore,
    SQLTransactionStore,
    TransactionStore,
)

# Shared by every request when STORE_BACKEND=memory
memory_store = InMemoryTransactionStore()


def get_store(db: Session = Depends(get_db)) -> TransactionStore:
    if get_settings().store_backend == "memory":
        return memory_store
    return SQLTransactionStore(db)


def get_gateway() -> BaseGatewayClient:
    return DarajaClient.from_settings(get_settings())
