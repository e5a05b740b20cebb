"""
Mobile-money voucher purchases.

Every gateway call goes through PaymentGatewayFactory; transactions
remember which gateway created them so status checks go back to the
same provider.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from flask import current_app

from voucherspot.errors import DomainError
from voucherspot.extensions import db
from voucherspot.models import Transaction, Voucher
from voucherspot.models.transaction import CHANNEL_MOBILE_MONEY
from voucherspot.payments import PaymentGatewayFactory, TransactionStatus, is_terminal_status
from voucherspot.services import voucher_service

logger = logging.getLogger(__name__)

STATUS_MESSAGES = {
    TransactionStatus.SUCCESSFUL: "successful. You can now use your voucher.",
    TransactionStatus.NEW: "the transaction is still pending.",
    TransactionStatus.INSTRUCTIONS_SENT: "instructions have been sent to your phone.",
    TransactionStatus.PENDING: "the transaction is still pending.",
    TransactionStatus.PROCESSING_STARTED: "the transaction is being processed.",
    TransactionStatus.FAILED: "failed. Please try again or contact support.",
}


@dataclass
class StatusCheckResult:
    transaction: Transaction
    voucher: Optional[Voucher] = None
    error: Optional[str] = None
    # Gateway could not be reached; the transaction is left untouched
    gateway_error: Optional[str] = None

    @property
    def ok(self):
        return self.error is None


def compatible_response(*, payment_id, phone_number, amount, currency, status, mfscode, gateway):
    """Response shape the captive portal polls against."""
    return {
        "id": payment_id,
        "phone_number": phone_number,
        "amount": amount,
        "currency": currency or "UGX",
        "status": status,
        "mfscode": mfscode,
        "contact": {"phone_number": phone_number},
        "_gateway": gateway,
    }


def find_recent_duplicate(phone_number, package_id, now=None):
    window = current_app.config.get("DUPLICATE_PAYMENT_WINDOW_MINUTES", 5)
    since = (now or datetime.utcnow()) - timedelta(minutes=window)
    return (
        Transaction.not_deleted()
        .filter(
            Transaction.phone_number == phone_number,
            Transaction.package_id == package_id,
            Transaction.status != TransactionStatus.FAILED.value,
            Transaction.created_at >= since,
        )
        .order_by(Transaction.created_at.desc(), Transaction.id.desc())
        .first()
    )


def link_voucher(voucher_code, transaction):
    if not voucher_code:
        return None
    voucher = Voucher.not_deleted().filter_by(code=voucher_code).first()
    if voucher is None:
        return None
    voucher.transaction_id = transaction.id
    logger.info(
        "Voucher linked to transaction",
        extra={"voucher_code": voucher_code, "transaction_id": transaction.id},
    )
    return voucher


def process_payment(*, payload, package, charge_details, voucher_code=""):
    """Charge the customer for ``package`` and record the transaction.

    Returns the compatible response on success, or ``{message, error}``
    when the gateway refuses the request.
    """
    phone_number = payload.get("phone_number")

    if phone_number:
        recent = find_recent_duplicate(phone_number, package.id)
        if recent is not None:
            logger.info(
                "Duplicate payment blocked, returning existing transaction",
                extra={
                    "phone": phone_number,
                    "package_id": package.id,
                    "existing_transaction_id": recent.id,
                    "existing_status": recent.status,
                },
            )
            return compatible_response(
                payment_id=recent.payment_id,
                phone_number=recent.phone_number,
                amount=recent.amount,
                currency=recent.currency,
                status=recent.status,
                mfscode=recent.mfscode,
                gateway=recent.gateway,
            )

    gateway = PaymentGatewayFactory.make()
    gateway_name = gateway.get_name()
    logger.info(
        "Processing payment via gateway",
        extra={"gateway": gateway_name, "phone": phone_number, "amount": payload.get("amount")},
    )

    response = gateway.process_payment(payload)
    if not response.success:
        logger.error(
            "Payment gateway request failed",
            extra={"gateway": gateway_name, "error": response.error},
        )
        return {
            "message": "Payment request failed",
            "error": response.error or "Unknown error",
        }

    phone = response.phone_number or phone_number
    amount = response.amount if response.amount is not None else payload.get("amount")

    transaction = Transaction(
        phone_number=phone,
        amount=amount,
        currency=response.currency or "UGX",
        status=response.status.value,
        payment_id=response.id,
        mfscode=response.mfscode,
        package_id=package.id,
        channel=CHANNEL_MOBILE_MONEY,
        router_id=package.router_id,
        charge=charge_details.charge,
        total_amount=charge_details.total + charge_details.charge,
        gateway=gateway_name,
    )
    transaction.set_response(response.raw_response or response.to_dict())
    db.session.add(transaction)
    db.session.flush()

    link_voucher(voucher_code, transaction)
    db.session.commit()

    PaymentGatewayFactory.record_gateway_usage(gateway_name)

    return compatible_response(
        payment_id=response.id,
        phone_number=phone,
        amount=amount,
        currency=response.currency,
        status=response.status.value,
        mfscode=response.mfscode,
        gateway=gateway_name,
    )


def check_payment_status(reference, transaction, generate_voucher=True, voucher_code=""):
    """Refresh ``transaction`` from its gateway and issue a voucher on success.

    A terminal status (successful / failed) is never overwritten.
    """
    gateway = PaymentGatewayFactory.make(transaction.gateway or PaymentGatewayFactory.default_gateway_name())
    logger.info(
        "Checking payment status via gateway",
        extra={"gateway": gateway.get_name(), "reference": reference},
    )

    response = gateway.check_payment_status(str(reference))
    was_terminal = is_terminal_status(transaction.status)

    if not response.success:
        logger.error(
            "Payment status check failed",
            extra={"gateway": gateway.get_name(), "reference": reference, "error": response.error},
        )
        if was_terminal:
            return StatusCheckResult(transaction=transaction, voucher=transaction.voucher)
        return StatusCheckResult(transaction=transaction, gateway_error="Payment status check failed")

    if not was_terminal:
        transaction.status = response.status.value
    transaction.set_response(response.raw_response or response.to_dict())
    if response.mfscode:
        transaction.mfscode = response.mfscode

    voucher = link_voucher(voucher_code, transaction)
    db.session.commit()

    if voucher is None:
        voucher = transaction.voucher

    if (
        voucher is None
        and generate_voucher
        and transaction.status == TransactionStatus.SUCCESSFUL.value
        and transaction.package is not None
    ):
        try:
            voucher = generate_voucher_for_transaction(transaction)
        except DomainError as e:
            logger.error(
                "Voucher generation failed for successful transaction",
                extra={"transaction_id": transaction.id, "error": e.message},
            )
            return StatusCheckResult(transaction=transaction, error=e.message)

    return StatusCheckResult(transaction=transaction, voucher=voucher)


def generate_voucher_for_transaction(transaction):
    package = transaction.package
    if package is None:
        logger.error(
            "Cannot generate voucher: transaction has no package",
            extra={"transaction_id": transaction.id},
        )
        return None

    item = {
        "code": voucher_service.generate_voucher_code(4),
        "transaction_id": transaction.id,
        "package_id": package.id,
        "expires_at": voucher_service.compute_expiry(package.session_timeout),
        "profile_name": package.profile_name,
        "gateway": transaction.gateway,
    }
    vouchers = voucher_service.create_vouchers_and_push_to_router([item], package.router)
    return vouchers[0] if vouchers else None


def process_test_payment(payload):
    """Charge through the default gateway without issuing a voucher."""
    gateway = PaymentGatewayFactory.make()
    gateway_name = gateway.get_name()
    logger.info(
        "Processing TEST payment via gateway",
        extra={"gateway": gateway_name, "phone": payload.get("phone_number"), "amount": payload.get("amount")},
    )

    response = gateway.process_payment(payload)
    if not response.success:
        return {
            "success": False,
            "message": "Payment request failed",
            "error": response.error or "Unknown error",
            "gateway": gateway_name,
        }

    transaction = Transaction(
        phone_number=response.phone_number or payload.get("phone_number"),
        amount=response.amount if response.amount is not None else payload.get("amount"),
        currency=response.currency or "UGX",
        status=response.status.value,
        payment_id=response.id,
        mfscode=response.mfscode,
        package_id=None,
        channel=CHANNEL_MOBILE_MONEY,
        router_id=None,
        charge=0,
        total_amount=payload.get("amount") or 0,
        gateway=gateway_name,
    )
    transaction.set_response(response.raw_response or response.to_dict())
    db.session.add(transaction)
    db.session.commit()

    PaymentGatewayFactory.record_gateway_usage(gateway_name)

    return {
        "success": True,
        "message": "Test payment initiated successfully",
        "gateway": gateway_name,
        "transaction_id": transaction.id,
        "payment_id": response.id,
        "status": response.status.value,
        "raw_response": response.raw_response,
    }


def status_message(status):
    parsed = TransactionStatus.parse(status, default=TransactionStatus.FAILED)
    return "Transaction status has been checked and it is " + STATUS_MESSAGES[parsed]


def discard_transaction(transaction):
    """Hard-delete ``transaction`` after detaching its voucher."""
    voucher = transaction.voucher
    if voucher is not None:
        voucher.transaction_id = None
        transaction.voucher = None
    db.session.delete(transaction)
    db.session.commit()
