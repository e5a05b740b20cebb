"""Gateway smoke tests for administrators."""

import logging
import re

from flask import Blueprint, current_app, jsonify, request

from voucherspot.errors import NotFoundError
from voucherspot.extensions import db
from voucherspot.models import Transaction, VoucherPackage
from voucherspot.payments import PaymentGatewayFactory
from voucherspot.security.permissions import TEST_PAYMENTS, require_permission
from voucherspot.services import charge_service, network_detector, payment_service
from voucherspot.utils.validation import Validator

logger = logging.getLogger(__name__)

bp = Blueprint("payment_test", __name__, url_prefix="/api/admin/test")

UGANDA_NUMBER = re.compile(r"^\+?256[0-9]{9}$")
INVALID_PHONE = "Invalid phone number format. Use format: 256XXXXXXXXX"
NOT_AUTHORIZED = "You are not authorized to test payments."


@bp.route("/payment", methods=["POST"])
@require_permission(TEST_PAYMENTS, NOT_AUTHORIZED)
def test_payment():
    """Charge a phone without issuing a voucher."""
    data = (
        Validator(request.get_json(silent=True))
        .string("phone_number", required=True)
        .number("amount", minimum=500, required=True)
        .validate()
    )
    phone_number = data["phone_number"]
    if not UGANDA_NUMBER.match(phone_number):
        return jsonify({"success": False, "message": INVALID_PHONE}), 422

    network = network_detector.detect_network(phone_number)
    result = payment_service.process_test_payment({
        "phone_number": phone_number,
        "amount": data["amount"],
        "currency": "UGX",
        "narrative": "Test Payment - SuperSpot WiFi",
    })

    return jsonify({
        "success": result.get("success", False),
        "message": result.get("message", "Unknown result"),
        "gateway": result.get("gateway", "unknown"),
        "network_detected": network,
        "transaction_id": result.get("transaction_id"),
        "payment_id": result.get("payment_id"),
        "status": result.get("status"),
        "error": result.get("error"),
    }), 200


@bp.route("/voucher-purchase", methods=["POST"])
@require_permission(TEST_PAYMENTS, NOT_AUTHORIZED)
def test_voucher_purchase():
    """Run the production purchase flow for a package."""
    validator = (
        Validator(request.get_json(silent=True))
        .string("phone_number", required=True)
        .integer("package_id", required=True)
    )
    package_id = validator.data.get("package_id")
    package = db.session.get(VoucherPackage, package_id) if package_id is not None else None
    if package_id is not None and package is None:
        validator.check(False, "package_id", "The selected package_id is invalid.")
    data = validator.validate()

    phone_number = data["phone_number"]
    if not UGANDA_NUMBER.match(phone_number):
        return jsonify({"success": False, "message": INVALID_PHONE}), 422

    network = network_detector.detect_network(phone_number)
    if not network:
        return jsonify({"success": False, "message": "Could not detect network from phone number"}), 422

    charge_details = charge_service.calculate_total_with_charge(package.price, network)
    payment_data = payment_service.process_payment(
        payload={"phone_number": phone_number, "amount": charge_details.total, "currency": "UGX"},
        package=package,
        charge_details=charge_details,
    )

    return jsonify({
        "success": True,
        "message": "Test voucher purchase initiated. Payment prompt sent to phone.",
        "gateway": payment_data.get("_gateway", "unknown"),
        "network_detected": network,
        "package": {"id": package.id, "name": package.name, "price": package.price},
        "charge_details": {"charge": charge_details.charge, "total": charge_details.total},
        "payment_data": payment_data,
    }), 200


@bp.route("/payment/status/<reference>", methods=["GET"])
@require_permission(TEST_PAYMENTS, NOT_AUTHORIZED)
def test_payment_status(reference):
    """Refresh a transaction by payment id or row id, without issuing vouchers."""
    query = Transaction.query.filter(Transaction.payment_id == reference)
    if reference.isdigit():
        query = Transaction.query.filter(db.or_(
            Transaction.payment_id == reference,
            Transaction.id == int(reference),
        ))
    transaction = query.first()
    if transaction is None:
        raise NotFoundError("Transaction not found", payload={"success": False})

    result = payment_service.check_payment_status(
        transaction.payment_id, transaction, generate_voucher=False
    )
    voucher = transaction.voucher

    return jsonify({
        "success": result.ok and result.gateway_error is None,
        "gateway": transaction.gateway,
        "error": result.error or result.gateway_error,
        "transaction": {
            "id": transaction.id,
            "payment_id": transaction.payment_id,
            "phone_number": transaction.phone_number,
            "amount": transaction.amount,
            "status": transaction.status,
            "mfscode": transaction.mfscode,
            "created_at": transaction.created_at.isoformat() if transaction.created_at else None,
        },
        "voucher": {
            "code": voucher.code,
            "expires_at": voucher.expires_at.isoformat() if voucher.expires_at else None,
            "is_used": voucher.is_used,
        } if voucher else None,
    }), 200


@bp.route("/gateway-info", methods=["GET"])
@require_permission(TEST_PAYMENTS, "You are not authorized to view gateway info.")
def gateway_info():
    config = current_app.config
    gateway = PaymentGatewayFactory.make()
    return jsonify({
        "success": True,
        "active_gateway": gateway.get_name(),
        "configured_gateway": PaymentGatewayFactory.default_gateway_name(),
        "supported_gateways": PaymentGatewayFactory.supported_gateways(),
        "auto_switch_enabled": bool(config.get("PAYMENT_GATEWAY_AUTO_SWITCH", False)),
        "auto_switch_mode": config.get("PAYMENT_GATEWAY_SWITCH_MODE"),
        "auto_switch_every": int(config.get("PAYMENT_GATEWAY_SWITCH_EVERY", 10)),
        "yopayments_configured": bool(config.get("YOPAYMENTS_USERNAME")),
        "cinemaug_configured": bool(config.get("CINEMAUG_API_TOKEN")),
    }), 200
