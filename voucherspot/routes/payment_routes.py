import logging

from flask import Blueprint, current_app, jsonify, request

from voucherspot.errors import DomainError
from voucherspot.extensions import db, limiter
from voucherspot.models import Transaction, VoucherPackage
from voucherspot.payments import TransactionStatus
from voucherspot.services import charge_service, network_detector, payment_service, sms_service
from voucherspot.utils.validation import Validator, to_bool

logger = logging.getLogger(__name__)

bp = Blueprint("payments", __name__, url_prefix="/api/payments")

PROMPT_SENT = (
    "A payment prompt has been sent to your phone. Please enter your pin to complete "
    "the payment and an SMS with a voucher will be sent to you in less than 2 minutes."
)


def purchase_rate_limit():
    return current_app.config.get("VOUCHER_PURCHASE_RATE_LIMIT", "10 per minute")


@bp.route("/voucher", methods=["POST"])
@limiter.limit(purchase_rate_limit)
def purchase_voucher():
    """Start a mobile-money purchase for a voucher package."""
    payload = request.get_json(silent=True) or {}
    validator = (
        Validator(payload)
        .string("phone_number", required=True)
        .integer("package_id", required=True)
        .string("voucher_code")
    )
    package_id = validator.data.get("package_id")
    package = db.session.get(VoucherPackage, package_id) if package_id is not None else None
    if package_id is not None and package is None:
        validator.check(False, "package_id", "The selected package_id is invalid.")
    data = validator.validate()

    phone_number = network_detector.normalize_phone_number(data["phone_number"])
    if not phone_number:
        return jsonify({"message": "Invalid phone number format"}), 202

    network = network_detector.detect_network(phone_number)
    if not network:
        return jsonify({"message": "Could not detect network from phone number"}), 202

    charge_details = charge_service.calculate_total_with_charge(package.price, network)
    gateway_payload = {
        "phone_number": phone_number,
        "amount": charge_details.total,
        "currency": "UGX",
    }

    try:
        payment_data = payment_service.process_payment(
            payload=gateway_payload,
            package=package,
            charge_details=charge_details,
            voucher_code=data.get("voucher_code", ""),
        )
    except DomainError:
        raise
    except Exception as e:
        db.session.rollback()
        logger.error(f"Payment error: {e}", extra={"package_id": package.id}, exc_info=True)
        return jsonify({
            "message": "An error occurred while processing the payment",
            "error": str(e),
        }), 500

    return jsonify({"message": PROMPT_SENT, "paymentData": payment_data}), 200


@bp.route("/voucher/status/<payment_id>", methods=["GET"])
def check_transaction_status(payment_id):
    """Poll a purchase; issues and texts the voucher once payment succeeds."""
    voucher_code = request.args.get("voucher_code", "")
    generate_voucher = to_bool(request.args.get("generate_voucher", True))

    # Soft-deleted rows are still answerable
    transaction = Transaction.query.filter_by(payment_id=payment_id).first()
    if transaction is None:
        return jsonify({"message": "Transaction not found"}), 202

    try:
        result = payment_service.check_payment_status(
            payment_id, transaction, generate_voucher, voucher_code
        )
    except Exception as e:
        db.session.rollback()
        logger.error(f"Transaction status check error: {e}", extra={"payment_id": payment_id})
        result = payment_service.StatusCheckResult(transaction=transaction, error=str(e))

    if not result.ok:
        return jsonify({
            "message": (
                "An error occurred while checking the transaction status. "
                "Please contact support for assistance."
            ),
            "error": result.error,
        }), 500

    status = transaction.status
    successful = status == TransactionStatus.SUCCESSFUL.value
    voucher = result.voucher
    message = payment_service.status_message(status)

    transaction_data = transaction.to_dict()
    voucher_data = voucher.to_dict() if voucher is not None else None
    discard = successful and transaction.gateway == "cinemaug"

    sms_sent = False
    if voucher is not None and generate_voucher and successful:
        sms_sent = sms_service.send_voucher_sms(transaction.phone_number, voucher.code)

        # Settled CinemaUG transactions are not kept
        if discard:
            payment_service.discard_transaction(transaction)
            logger.info(
                "CinemaUG transaction deleted after successful payment",
                extra={"payment_id": payment_id},
            )
            voucher_data = voucher.to_dict()

    return jsonify({
        "message": message,
        "transaction": None if discard else transaction_data,
        "voucher": voucher_data if successful else None,
        "sms_sent": sms_sent,
    }), 200
