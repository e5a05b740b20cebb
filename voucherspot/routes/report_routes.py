from flask import Blueprint, jsonify, request
from flask_jwt_extended import jwt_required

from voucherspot.security.permissions import VIEW_REVENUE_STATS, has_permission
from voucherspot.services import report_service
from voucherspot.utils.validation import Validator, to_bool

bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@bp.route("/stats", methods=["GET"])
@jwt_required()
def get_statistics():
    args = dict(request.args.items())
    validator = Validator(args).integer("router_id")
    if args.get("date_from") and args.get("date_to"):
        validator.date("date_from").date("date_to")
    if validator.errors:
        return jsonify({"error": "Invalid date format. Use YYYY-MM-DD"}), 400
    data = validator.data

    stats = report_service.get_statistics(
        router_id=data.get("router_id") or None,
        date_from=data.get("date_from"),
        date_to=data.get("date_to"),
        all_time=to_bool(args.get("all", False)),
        can_view_revenue=has_permission(VIEW_REVENUE_STATS),
    )
    return jsonify(stats), 200
