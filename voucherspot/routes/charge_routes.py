from flask import Blueprint, jsonify, request
from flask_jwt_extended import jwt_required

from voucherspot.errors import NotFoundError
from voucherspot.extensions import db
from voucherspot.models import TransactionCharge
from voucherspot.models.transaction_charge import NETWORKS
from voucherspot.security.permissions import MANAGE_CHARGES, require_permission
from voucherspot.services import charge_service
from voucherspot.utils.validation import Validator

bp = Blueprint("transaction_charges", __name__, url_prefix="/api/transaction-charges")

NOT_AUTHORIZED = "You are not authorized to manage transaction charges."


def get_charge_or_404(charge_id):
    charge = db.session.get(TransactionCharge, charge_id)
    if charge is None:
        raise NotFoundError("Transaction charge not found")
    return charge


@bp.route("", methods=["GET"])
@jwt_required()
def list_charges():
    query = TransactionCharge.query
    if request.args.get("network"):
        query = query.filter(TransactionCharge.network == request.args["network"])
    search = request.args.get("search")
    if search:
        term = f"%{search}%"
        query = query.filter(db.or_(
            TransactionCharge.network.ilike(term),
            db.cast(TransactionCharge.min_amount, db.String).ilike(term),
            db.cast(TransactionCharge.max_amount, db.String).ilike(term),
        ))
    charges = query.order_by(TransactionCharge.network, TransactionCharge.min_amount).all()
    return jsonify([c.to_dict() for c in charges]), 200


@bp.route("/<int:charge_id>", methods=["GET"])
@jwt_required()
def get_charge(charge_id):
    return jsonify(get_charge_or_404(charge_id).to_dict()), 200


@bp.route("", methods=["POST"])
@require_permission(MANAGE_CHARGES, NOT_AUTHORIZED)
def create_charge():
    charge = charge_service.create_charge(payload=request.get_json(silent=True))
    return jsonify({
        "message": "Transaction charge created successfully",
        "charge": charge.to_dict(),
    }), 201


@bp.route("/<int:charge_id>", methods=["PUT"])
@require_permission(MANAGE_CHARGES, NOT_AUTHORIZED)
def update_charge(charge_id):
    charge = charge_service.update_charge(
        charge=get_charge_or_404(charge_id),
        payload=request.get_json(silent=True),
    )
    return jsonify({
        "message": "Transaction charge updated successfully",
        "charge": charge.to_dict(),
    }), 200


@bp.route("/<int:charge_id>", methods=["DELETE"])
@require_permission(MANAGE_CHARGES, NOT_AUTHORIZED)
def delete_charge(charge_id):
    db.session.delete(get_charge_or_404(charge_id))
    db.session.commit()
    return jsonify({"message": "Transaction charge deleted successfully"}), 200


@bp.route("/calculate", methods=["POST"])
@jwt_required()
def calculate_charge():
    data = (
        Validator(request.get_json(silent=True))
        .integer("amount", minimum=0, required=True)
        .one_of("network", NETWORKS, required=True)
        .validate()
    )
    return jsonify(charge_service.calculate_charge(amount=data["amount"], network=data["network"])), 200
