from datetime import datetime

from flask import Blueprint, Response, jsonify, request
from flask_jwt_extended import jwt_required

from voucherspot.security.permissions import EXPORT_PAYMENTS, VIEW_PAYMENTS, require_permission
from voucherspot.services import transaction_service

bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")


@bp.route("", methods=["GET"])
@require_permission(
    VIEW_PAYMENTS,
    "You are not authorized to view transactions. Please contact system admin.",
)
def list_transactions():
    return jsonify(transaction_service.list_transactions(request.args)), 200


@bp.route("/export", methods=["GET"])
@require_permission(EXPORT_PAYMENTS, "You are not authorized to export transactions.")
def export_transactions():
    body = transaction_service.export_csv(request.args)
    filename = f"transactions_{datetime.utcnow():%Y-%m-%d_%H-%M-%S}.csv"
    return Response(
        body,
        mimetype="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@bp.route("", methods=["POST"])
@jwt_required()
def save_transaction():
    """Record a transaction that happened outside the gateways."""
    transaction = transaction_service.save_manual_transaction(request.get_json(silent=True))
    return jsonify({
        "message": "Transaction saved successfully",
        "transaction": transaction.to_dict(),
    }), 200
