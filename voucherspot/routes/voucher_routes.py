from flask import Blueprint, jsonify, request
from flask_jwt_extended import jwt_required

from voucherspot.errors import NotFoundError
from voucherspot.extensions import db
from voucherspot.models import Voucher, VoucherPackage
from voucherspot.services import transaction_service, voucher_service
from voucherspot.utils.pagination import paginate
from voucherspot.utils.validation import Validator

bp = Blueprint("vouchers", __name__, url_prefix="/api/vouchers")


def get_voucher_or_404(voucher_id):
    voucher = Voucher.not_deleted().filter_by(id=voucher_id).first()
    if voucher is None:
        raise NotFoundError("Voucher not found")
    return voucher


def voucher_detail(voucher):
    data = voucher.to_dict()
    data["transaction"] = voucher.transaction.to_dict() if voucher.transaction else None
    return data


def _push(voucher):
    router = voucher.router or (voucher.package.router if voucher.package else None)
    if router is None:
        return jsonify({"error": "No router is assigned to this voucher."}), 422

    voucher_service.push_voucher_to_router(voucher)
    return jsonify({"message": f"Voucher {voucher.code} pushed to {router.name} successfully."}), 200


@bp.route("", methods=["GET"])
@jwt_required()
def list_vouchers():
    query = voucher_service.filter_vouchers(request.args.get("search"))
    page = request.args.get("page", 1, type=int)
    return jsonify(paginate(query, page, 10)), 200


@bp.route("/<int:voucher_id>", methods=["GET"])
@jwt_required()
def get_voucher(voucher_id):
    return jsonify(voucher_detail(get_voucher_or_404(voucher_id))), 200


@bp.route("/<int:voucher_id>/transaction", methods=["GET"])
@jwt_required()
def get_voucher_transaction(voucher_id):
    voucher = get_voucher_or_404(voucher_id)
    transaction = voucher.transaction.to_dict() if voucher.transaction else None
    return jsonify({"transaction": transaction}), 200


@bp.route("/generate", methods=["POST"])
@jwt_required()
def generate_vouchers():
    """Print vouchers for sale at the shop and push them to the router."""
    validator = (
        Validator(request.get_json(silent=True))
        .integer("package_id", required=True)
        .integer("quantity", minimum=1, maximum=500, required=True)
    )
    package_id = validator.data.get("package_id")
    package = db.session.get(VoucherPackage, package_id) if package_id is not None else None
    if package_id is not None and package is None:
        validator.check(False, "package_id", "The selected package_id is invalid.")
    data = validator.validate()

    vouchers = voucher_service.generate_vouchers(package=package, quantity=data["quantity"])
    return jsonify({
        "message": "Vouchers generated successfully",
        "vouchers": [v.to_dict() for v in vouchers],
    }), 200


@bp.route("/<int:voucher_id>/push", methods=["POST"])
@jwt_required()
def push_to_router(voucher_id):
    return _push(get_voucher_or_404(voucher_id))


@bp.route("/push", methods=["POST"])
@jwt_required()
def push_to_router_by_code():
    data = Validator(request.get_json(silent=True)).string("code", required=True).validate()
    code = data["code"].upper()

    voucher = Voucher.not_deleted().filter_by(code=code).first()
    if voucher is None:
        return jsonify({"error": f"Voucher '{code}' not found."}), 404
    return _push(voucher)


@bp.route("/<int:voucher_id>/transaction", methods=["POST"])
@jwt_required()
def save_voucher_transaction(voucher_id):
    voucher = transaction_service.save_voucher_transaction(voucher_id, request.get_json(silent=True))
    return jsonify({
        "message": "Voucher transaction saved successfully",
        "voucher": voucher_detail(voucher),
    }), 200


@bp.route("/<int:voucher_id>", methods=["DELETE"])
@jwt_required()
def delete_voucher(voucher_id):
    voucher = get_voucher_or_404(voucher_id)
    router = voucher.router or (voucher.package.router if voucher.package else None)
    if router is None:
        return jsonify({"error": "No router is assigned to this voucher."}), 422

    voucher_service.delete_voucher(voucher.code, router)
    return jsonify({"message": f"Voucher {voucher.code} deleted successfully"}), 200
