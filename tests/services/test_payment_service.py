from datetime import datetime, timedelta
from unittest.mock import patch

import pytest

from voucherspot.extensions import db
from voucherspot.models import Transaction, Voucher
from voucherspot.services import payment_service
from voucherspot.services.charge_service import ChargeDetails
from voucherspot.services.mikrotik_service import HOTSPOT_USER

from helpers import http_response, yo_xml

pytestmark = pytest.mark.payment

YO_POST = "voucherspot.payments.yopayments.requests.post"


def yo_deposit(reference="YO-REF-1", status="PENDING"):
    return http_response(text=yo_xml(
        Status="OK",
        StatusCode="1",
        TransactionStatus=status,
        TransactionReference=reference,
    ))


def yo_status(status):
    return http_response(text=yo_xml(Status="OK", StatusCode="0", TransactionStatus=status, Amount="1000"))


def purchase(package, voucher_code=""):
    return payment_service.process_payment(
        payload={"phone_number": "256771234567", "amount": 900, "currency": "UGX"},
        package=package,
        charge_details=ChargeDetails(charge=100, total=900),
        voucher_code=voucher_code,
    )


def test_process_payment_records_transaction(package):
    with patch(YO_POST, return_value=yo_deposit()):
        result = purchase(package)

    assert result["id"] == "YO-REF-1"
    assert result["status"] == "instructions_sent"
    assert result["contact"] == {"phone_number": "256771234567"}
    assert result["_gateway"] == "yopayments"

    transaction = Transaction.query.one()
    assert transaction.payment_id == "YO-REF-1"
    assert transaction.amount == 900
    assert transaction.charge == 100
    assert transaction.total_amount == 1000
    assert transaction.gateway == "yopayments"
    assert transaction.router_id == package.router_id
    assert transaction.response_json


def test_duplicate_purchase_returns_existing_transaction(package, make_transaction):
    existing = make_transaction(phone_number="256771234567", payment_id="EXISTING-1", status="pending")

    with patch(YO_POST) as post:
        result = purchase(package)

    post.assert_not_called()
    assert result["id"] == "EXISTING-1"
    assert Transaction.query.count() == 1
    assert existing.id == Transaction.query.one().id


def test_failed_or_old_transactions_are_not_duplicates(package, make_transaction):
    make_transaction(phone_number="256771234567", status="failed")
    make_transaction(
        phone_number="256771234567",
        status="pending",
        created_at=datetime.utcnow() - timedelta(minutes=30),
    )

    with patch(YO_POST, return_value=yo_deposit("YO-NEW")):
        result = purchase(package)

    assert result["id"] == "YO-NEW"
    assert Transaction.query.count() == 3


def test_gateway_refusal_records_nothing(package):
    refused = http_response(text=yo_xml(Status="ERROR", StatusCode="-1", StatusMessage="Account blocked"))
    with patch(YO_POST, return_value=refused):
        result = purchase(package)

    assert result == {"message": "Payment request failed", "error": "Account blocked"}
    assert Transaction.query.count() == 0


def test_voucher_code_is_linked(package, make_voucher):
    voucher = make_voucher(code="LINK1")
    with patch(YO_POST, return_value=yo_deposit()):
        purchase(package, voucher_code="LINK1")

    assert db.session.get(Voucher, voucher.id).transaction_id == Transaction.query.one().id


def test_deleted_voucher_is_not_linked(package, make_voucher):
    voucher = make_voucher(code="LINK2", deleted_at=datetime.utcnow())
    with patch(YO_POST, return_value=yo_deposit()):
        purchase(package, voucher_code="LINK2")

    assert db.session.get(Voucher, voucher.id).transaction_id is None


def test_successful_status_issues_voucher(make_transaction, router_api):
    transaction = make_transaction(payment_id="YO-REF-1", status="pending")

    with patch(YO_POST, return_value=yo_status("SUCCEEDED")):
        result = payment_service.check_payment_status("YO-REF-1", transaction)

    assert result.ok
    assert transaction.status == "successful"
    assert len(result.voucher.code) == 4
    assert result.voucher.transaction_id == transaction.id
    assert result.voucher.gateway == "yopayments"
    assert router_api.calls_to(f"{HOTSPOT_USER}/add")[0]["profile"] == "daily"


def test_terminal_status_is_never_overwritten(make_transaction, router_api):
    transaction = make_transaction(status="failed")

    with patch(YO_POST, return_value=yo_status("SUCCEEDED")):
        result = payment_service.check_payment_status(transaction.payment_id, transaction)

    assert result.ok
    assert transaction.status == "failed"
    assert result.voucher is None
    assert Voucher.query.count() == 0


def test_pending_status_keeps_polling(make_transaction):
    transaction = make_transaction(status="new")

    with patch(YO_POST, return_value=yo_status("PENDING")):
        result = payment_service.check_payment_status(transaction.payment_id, transaction)

    assert result.ok
    assert result.voucher is None
    assert transaction.status == "instructions_sent"


def test_failed_check_leaves_open_transaction_untouched(make_transaction):
    transaction = make_transaction(status="pending")

    with patch(YO_POST, return_value=http_response(503, text="down")):
        result = payment_service.check_payment_status(transaction.payment_id, transaction)

    assert result.ok
    assert result.voucher is None
    assert result.gateway_error == "Payment status check failed"
    assert transaction.status == "pending"


def test_failed_check_on_settled_transaction_returns_voucher(make_transaction, make_voucher):
    transaction = make_transaction(status="successful")
    voucher = make_voucher(code="KEEP", transaction_id=transaction.id)

    with patch(YO_POST, return_value=http_response(503, text="down")):
        result = payment_service.check_payment_status(transaction.payment_id, transaction)

    assert result.ok
    assert result.voucher.id == voucher.id


def test_voucher_generation_can_be_skipped(make_transaction, router_api):
    transaction = make_transaction(status="pending")

    with patch(YO_POST, return_value=yo_status("SUCCEEDED")):
        result = payment_service.check_payment_status(
            transaction.payment_id, transaction, generate_voucher=False
        )

    assert transaction.status == "successful"
    assert result.voucher is None
    assert router_api.calls == []


def test_router_failure_leaves_transaction_successful(make_transaction, router_api):
    router_api.connect.side_effect = OSError("unreachable")
    transaction = make_transaction(status="pending")

    with patch(YO_POST, return_value=yo_status("SUCCEEDED")):
        result = payment_service.check_payment_status(transaction.payment_id, transaction)

    assert not result.ok
    assert "unreachable" in result.error
    assert db.session.get(Transaction, transaction.id).status == "successful"
    assert Voucher.query.count() == 0


def test_status_message():
    assert payment_service.status_message("successful") == (
        "Transaction status has been checked and it is successful. You can now use your voucher."
    )
    assert payment_service.status_message("instructions_sent").endswith("instructions have been sent to your phone.")
    assert payment_service.status_message("weird").endswith("failed. Please try again or contact support.")


def test_process_test_payment(app):
    with patch(YO_POST, return_value=yo_deposit("YO-TEST")):
        result = payment_service.process_test_payment({"phone_number": "256771234567", "amount": 500})

    assert result["success"] is True
    assert result["payment_id"] == "YO-TEST"
    transaction = db.session.get(Transaction, result["transaction_id"])
    assert transaction.package_id is None
    assert transaction.charge == 0


def test_discard_transaction_detaches_voucher(make_transaction, make_voucher):
    transaction = make_transaction(gateway="cinemaug", status="successful")
    voucher = make_voucher(code="KEEPME", transaction_id=transaction.id)

    payment_service.discard_transaction(transaction)

    assert Transaction.query.count() == 0
    assert db.session.get(Voucher, voucher.id).transaction_id is None
