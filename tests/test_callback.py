"""
Unit tests for stk_checkout/services/callback.py.

handle_callback() must never raise; every path is checked for its
outcome and for what it left in the store.
"""
import pytest
from unittest.mock import MagicMock

from stk_checkout.services.callback import CallbackOutcome, handle_callback
from tests.conftest import CHECKOUT_ID, failure_callback, make_txn, success_callback


class TestCallbackApplied:
    def test_success_settles_completed_with_details(self, store):
        make_txn(store)

        outcome = handle_callback(success_callback(amount=5500, receipt="ABC123"), store)

        assert outcome == CallbackOutcome.APPLIED
        txn = store.get(CHECKOUT_ID)
        assert txn.status == "completed"
        assert txn.result_code == "0"
        assert txn.result_desc == "The service request is processed successfully."
        assert txn.transaction_details == {
            "amount": 5500,
            "mpesa_receipt_number": "ABC123",
            "transaction_date": 20191219102115,
            "phone_number": 254712345678,
        }
        assert txn.callback_received_at is not None

    def test_failure_settles_failed_without_details(self, store):
        make_txn(store)

        outcome = handle_callback(failure_callback(result_code=1032), store)

        assert outcome == CallbackOutcome.APPLIED
        txn = store.get(CHECKOUT_ID)
        assert txn.status == "failed"
        assert txn.result_code == "1032"
        assert txn.result_desc == "Request cancelled by user"
        assert txn.transaction_details is None

    def test_success_without_metadata(self, store):
        make_txn(store)
        payload = success_callback()
        del payload["Body"]["stkCallback"]["CallbackMetadata"]

        assert handle_callback(payload, store) == CallbackOutcome.APPLIED
        txn = store.get(CHECKOUT_ID)
        assert txn.status == "completed"
        assert txn.transaction_details is None

    def test_odd_metadata_items_are_skipped(self, store):
        make_txn(store)
        payload = success_callback(extra_items=[
            {"Value": "x"},
            {"Name": 7, "Value": "y"},
            {"Name": "Balance", "Value": {"Available": 100}},
            {"Name": "MpesaReceiptNumber", "Value": ["ZZZ999"]},
        ])

        assert handle_callback(payload, store) == CallbackOutcome.APPLIED
        txn = store.get(CHECKOUT_ID)
        assert txn.status == "completed"
        assert txn.transaction_details["mpesa_receipt_number"] == "ABC123"
        assert "balance" not in txn.transaction_details

    def test_string_result_code_accepted(self, store):
        make_txn(store)
        payload = failure_callback()
        payload["Body"]["stkCallback"]["ResultCode"] = "0"

        assert handle_callback(payload, store) == CallbackOutcome.APPLIED
        assert store.get(CHECKOUT_ID).status == "completed"


class TestCallbackIdempotence:
    def test_duplicate_delivery_ignored(self, store):
        make_txn(store)
        handle_callback(success_callback(receipt="ABC123"), store)
        first_seen = store.get(CHECKOUT_ID).callback_received_at

        outcome = handle_callback(success_callback(receipt="ZZZ999"), store)

        assert outcome == CallbackOutcome.IGNORED
        txn = store.get(CHECKOUT_ID)
        assert txn.transaction_details["mpesa_receipt_number"] == "ABC123"
        assert txn.callback_received_at == first_seen

    def test_conflicting_code_after_completion_ignored(self, store):
        make_txn(store)
        handle_callback(success_callback(), store)

        outcome = handle_callback(failure_callback(result_code=2001, result_desc="invalid"), store)

        assert outcome == CallbackOutcome.IGNORED
        txn = store.get(CHECKOUT_ID)
        assert txn.status == "completed"
        assert txn.result_code == "0"

    def test_success_after_failure_ignored(self, store):
        make_txn(store, status="failed", result_code="1037", result_desc="DS timeout")

        assert handle_callback(success_callback(), store) == CallbackOutcome.IGNORED
        txn = store.get(CHECKOUT_ID)
        assert txn.status == "failed"
        assert txn.result_code == "1037"
        assert txn.transaction_details is None


class TestCallbackDropped:
    def test_unknown_transaction(self, store):
        outcome = handle_callback(success_callback(request_id="ws_unknown"), store)

        assert outcome == CallbackOutcome.UNKNOWN_TRANSACTION
        assert store.get("ws_unknown") is None

    @pytest.mark.parametrize("payload", [
        None,
        {},
        [],
        "not a callback",
        {"Body": {}},
        {"Body": {"stkCallback": {}}},
        {"Body": {"stkCallback": {"CheckoutRequestID": CHECKOUT_ID}}},
        {"Body": {"stkCallback": {"CheckoutRequestID": CHECKOUT_ID, "ResultCode": "abc"}}},
    ])
    def test_malformed_body_is_a_no_op(self, store, payload):
        make_txn(store)

        assert handle_callback(payload, store) == CallbackOutcome.MALFORMED
        assert store.get(CHECKOUT_ID).status == "pending"

    def test_store_failure_is_absorbed(self):
        broken = MagicMock()
        broken.get.side_effect = RuntimeError("database is locked")

        assert handle_callback(success_callback(), broken) == CallbackOutcome.ERROR

    def test_settle_failure_is_absorbed(self):
        broken = MagicMock()
        broken.settle.side_effect = RuntimeError("disk I/O error")

        assert handle_callback(success_callback(), broken) == CallbackOutcome.ERROR
