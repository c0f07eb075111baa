"""
Transaction store.

get / insert / settle over Transaction records. settle() is the only
mutation after insert: a compare-and-set from pending to a terminal outcome,
atomic per record, returning whether this call's outcome was the one stored.

Backends:
- SQLTransactionStore: conditional UPDATE ... WHERE status = 'pending'
- InMemoryTransactionStore: process-wide dict guarded by a lock
"""
import copy
import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from sqlalchemy import inspect
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from stk_checkout import models
from stk_checkout.exceptions import TransactionStoreError
from stk_checkout.services.state import PENDING, TerminalOutcome, can_settle, utcnow


def new_transaction(
    request_id: str,
    merchant_request_id: Optional[str],
    phone: str,
    amount: int,
    items: List[Dict[str, Any]],
) -> models.Transaction:
    now = utcnow()
    return models.Transaction(
        request_id=request_id,
        merchant_request_id=merchant_request_id,
        phone=phone,
        amount=amount,
        items=items,
        status=PENDING,
        created_at=now,
        updated_at=now,
    )


class TransactionStore(ABC):
    @abstractmethod
    def get(self, request_id: str) -> Optional[models.Transaction]:
        pass

    @abstractmethod
    def insert(self, txn: models.Transaction) -> models.Transaction:
        """Raises TransactionStoreError if request_id already exists."""
        pass

    @abstractmethod
    def settle(self, request_id: str, outcome: TerminalOutcome) -> bool:
        """
        Apply `outcome` if the record exists and is still pending.
        Returns False when the record is missing or already terminal.
        """
        pass


class SQLTransactionStore(TransactionStore):
    def __init__(self, db: Session):
        self.db = db

    def get(self, request_id: str) -> Optional[models.Transaction]:
        return self.db.query(models.Transaction).filter(
            models.Transaction.request_id == request_id
        ).first()

    def insert(self, txn: models.Transaction) -> models.Transaction:
        self.db.add(txn)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise TransactionStoreError(f"Transaction {txn.request_id} already exists") from e
        self.db.refresh(txn)
        return txn

    def settle(self, request_id: str, outcome: TerminalOutcome) -> bool:
        # The status predicate makes check-and-write a single statement
        try:
            updated = self.db.query(models.Transaction).filter(
                models.Transaction.request_id == request_id,
                models.Transaction.status == PENDING,
            ).update(outcome.as_update(), synchronize_session=False)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise TransactionStoreError(f"Failed to settle transaction {request_id}") from e
        # commit() expires loaded instances, so the next get() re-reads the row
        return updated == 1


def _snapshot(txn: models.Transaction) -> models.Transaction:
    """Detached copy so callers never hold the record the lock guards."""
    values = {attr.key: copy.deepcopy(getattr(txn, attr.key)) for attr in inspect(models.Transaction).column_attrs}
    return models.Transaction(**values)


class InMemoryTransactionStore(TransactionStore):
    """Unbounded, non-evicting map. Suitable for a single process only."""

    def __init__(self):
        self._records: Dict[str, models.Transaction] = {}
        self._lock = threading.Lock()

    def get(self, request_id: str) -> Optional[models.Transaction]:
        with self._lock:
            txn = self._records.get(request_id)
            return _snapshot(txn) if txn is not None else None

    def insert(self, txn: models.Transaction) -> models.Transaction:
        with self._lock:
            if txn.request_id in self._records:
                raise TransactionStoreError(f"Transaction {txn.request_id} already exists")
            self._records[txn.request_id] = _snapshot(txn)
        return txn

    def settle(self, request_id: str, outcome: TerminalOutcome) -> bool:
        with self._lock:
            txn = self._records.get(request_id)
            if txn is None or not can_settle(txn.status):
                return False
            for field, value in outcome.as_update().items():
                setattr(txn, field, value)
            return True
