"""Routers, voucher packages and support contacts."""

from datetime import datetime, timedelta

from flask import Blueprint, jsonify, request
from flask_jwt_extended import jwt_required

from voucherspot.errors import NotFoundError
from voucherspot.extensions import db
from voucherspot.models import RouterConfiguration, RouterLog, SupportContact, VoucherPackage
from voucherspot.security.permissions import VIEW_ROUTER_LOGS, require_permission
from voucherspot.services import package_service
from voucherspot.services.mikrotik_service import MikroTikService
from voucherspot.utils.pagination import paginate
from voucherspot.utils.validation import Validator, parse_date, to_bool

bp = Blueprint("configuration", __name__, url_prefix="/api/configuration")


def get_or_404(model, object_id, message):
    obj = db.session.get(model, object_id)
    if obj is None:
        raise NotFoundError(message)
    return obj


def validate_router(payload):
    return (
        Validator(payload)
        .string("name", max_length=100, required=True)
        .string("host", max_length=60, required=True)
        .integer("port", minimum=1, maximum=65535, required=True)
        .string("username", max_length=100, required=True)
        .string("password")
        .validate()
    )


# Routers

@bp.route("/routers", methods=["GET"])
@jwt_required()
def list_routers():
    query = RouterConfiguration.query
    search = request.args.get("search")
    if search:
        term = f"%{search}%"
        query = query.filter(db.or_(
            RouterConfiguration.name.ilike(term),
            RouterConfiguration.host.ilike(term),
        ))
    query = query.order_by(RouterConfiguration.id)

    if to_bool(request.args.get("no_paging", False)):
        return jsonify([r.to_dict() for r in query.all()]), 200
    page = request.args.get("page", 1, type=int)
    return jsonify(paginate(query, page, 10)), 200


@bp.route("/routers/<int:router_id>", methods=["GET"])
@jwt_required()
def get_router(router_id):
    router = get_or_404(RouterConfiguration, router_id, "Router configuration not found")
    return jsonify(router.to_dict()), 200


@bp.route("/routers", methods=["POST"])
@jwt_required()
def create_router():
    data = validate_router(request.get_json(silent=True))
    data.setdefault("password", "")
    router = RouterConfiguration(**data)
    db.session.add(router)
    db.session.commit()
    return jsonify({
        "message": "Router Configuration saved successfully",
        "configuration": router.to_dict(),
    }), 200


@bp.route("/routers/<int:router_id>", methods=["PUT"])
@jwt_required()
def update_router(router_id):
    router = get_or_404(RouterConfiguration, router_id, "Router configuration not found")
    data = validate_router(request.get_json(silent=True))
    data.setdefault("password", "")
    for key, value in data.items():
        setattr(router, key, value)
    db.session.commit()
    return jsonify({
        "message": "Router Configuration updated successfully",
        "configuration": router.to_dict(),
    }), 200


@bp.route("/routers/<int:router_id>", methods=["DELETE"])
@jwt_required()
def delete_router(router_id):
    router = get_or_404(RouterConfiguration, router_id, "Router configuration not found")
    db.session.delete(router)
    db.session.commit()
    return jsonify({"message": "Router Configuration deleted successfully"}), 200


@bp.route("/routers/<int:router_id>/test", methods=["POST"])
@jwt_required()
def test_router_connection(router_id):
    router = get_or_404(RouterConfiguration, router_id, "No router configuration found")
    with MikroTikService(router) as mikrotik:
        result = mikrotik.test_connection()

    if not result["success"]:
        return jsonify({"error": result["message"]}), 202
    return jsonify({"message": "Connection successful"}), 200


@bp.route("/router-logs", methods=["GET"])
@require_permission(
    VIEW_ROUTER_LOGS,
    "You are not authorized to view router logs. Please contact system admin.",
)
def router_logs():
    now = datetime.utcnow()
    week_start = (now - timedelta(days=now.weekday())).replace(hour=0, minute=0, second=0, microsecond=0)
    start = parse_date(request.args["from"]) if request.args.get("from") else week_start
    end = parse_date(request.args["to"]) if request.args.get("to") else now

    query = RouterLog.query.filter(RouterLog.created_at.between(start, end))
    search = request.args.get("search")
    if search:
        term = f"%{search}%"
        query = query.filter(db.or_(RouterLog.message.ilike(term), RouterLog.action.ilike(term)))
    if request.args.get("router_id"):
        query = query.filter(RouterLog.router_id == request.args.get("router_id", type=int))

    page = request.args.get("page", 1, type=int)
    return jsonify(paginate(query.order_by(RouterLog.id.desc()), page, 200)), 200


# Voucher packages

@bp.route("/vouchers/packages", methods=["GET"])
def list_packages():
    """Package list shared by the admin screens and the captive portal."""
    query = VoucherPackage.query
    if request.args.get("search"):
        query = query.filter(VoucherPackage.name.ilike(f"%{request.args['search']}%"))
    if request.args.get("router_id"):
        query = query.filter(VoucherPackage.router_id == request.args.get("router_id", type=int))

    packages = query.order_by(VoucherPackage.created_at.desc(), VoucherPackage.id.desc()).all()
    return jsonify({"packages": [p.to_dict() for p in packages]}), 200


@bp.route("/vouchers/packages/<int:package_id>", methods=["GET"])
@jwt_required()
def get_package(package_id):
    package = get_or_404(VoucherPackage, package_id, "Voucher package not found")
    return jsonify(package.to_dict()), 200


@bp.route("/vouchers/packages", methods=["POST"])
@jwt_required()
def create_package():
    package = package_service.create_package(request.get_json(silent=True))
    return jsonify({
        "message": "Voucher Package saved successfully",
        "package": package.to_dict(),
    }), 200


@bp.route("/vouchers/packages/<int:package_id>", methods=["PUT"])
@jwt_required()
def update_package(package_id):
    package = get_or_404(VoucherPackage, package_id, "Voucher package not found")
    package_service.update_package(package, request.get_json(silent=True))
    return jsonify({
        "message": "Voucher Package updated successfully",
        "package": package.to_dict(),
    }), 200


@bp.route("/vouchers/packages/<int:package_id>", methods=["DELETE"])
@jwt_required()
def delete_package(package_id):
    package = get_or_404(VoucherPackage, package_id, "Voucher package not found")
    db.session.delete(package)
    db.session.commit()
    return jsonify({"message": "Voucher Package deleted successfully"}), 200


@bp.route("/vouchers/packages/<int:package_id>/toggle", methods=["POST"])
@jwt_required()
def toggle_package(package_id):
    package = get_or_404(VoucherPackage, package_id, "Voucher package not found")
    message = package_service.toggle_package(package)
    return jsonify({"message": message, "package": package.to_dict()}), 200


@bp.route("/vouchers/packages/<int:package_id>/push-profile", methods=["POST"])
@jwt_required()
def push_package_profile(package_id):
    package = get_or_404(VoucherPackage, package_id, "Voucher package not found")
    if package.router is None:
        return jsonify({"error": "No router is assigned to this package."}), 422

    with MikroTikService(package.router) as mikrotik:
        mikrotik.push_profile_to_router(package)
    return jsonify({
        "message": f"Profile '{package.profile_name}' pushed to {package.router.name} successfully.",
    }), 200


# Support contacts

@bp.route("/support-contacts", methods=["GET"])
@jwt_required()
def list_support_contacts():
    query = SupportContact.query
    router_id = request.args.get("router_id", 0, type=int)
    if router_id:
        query = query.filter(SupportContact.router_id == router_id)
    search = request.args.get("search")
    if search:
        term = f"%{search}%"
        query = query.filter(db.or_(
            SupportContact.phone_number.ilike(term),
            SupportContact.email.ilike(term),
        ))
    contacts = query.order_by(SupportContact.created_at.desc(), SupportContact.id.desc()).all()
    return jsonify([c.to_dict() for c in contacts]), 200


@bp.route("/support-contacts", methods=["POST"])
@jwt_required()
def save_support_contact():
    payload = request.get_json(silent=True) or {}
    validator = (
        Validator(payload)
        .string("email", max_length=120)
        .string("phone_number", max_length=15, required=True)
        .string("type", max_length=100, required=True)
        .integer("router_id")
    )
    data = validator.data
    if "email" in data:
        validator.check("@" in data["email"], "email", "The email must be a valid email address.")
    if data.get("router_id") and db.session.get(RouterConfiguration, data["router_id"]) is None:
        validator.check(False, "router_id", "The selected router_id is invalid.")
    data = validator.validate()

    contact_id = payload.get("id")
    if contact_id:
        contact = get_or_404(SupportContact, int(contact_id), "Support contact not found")
        for key, value in data.items():
            setattr(contact, key, value)
    else:
        contact = SupportContact(**data)
        db.session.add(contact)
    db.session.commit()

    return jsonify({
        "message": "Support contact updated successfully" if contact_id else "Support contact created successfully",
        "contact": contact.to_dict(),
    }), 200


@bp.route("/support-contacts/<int:contact_id>", methods=["DELETE"])
@jwt_required()
def delete_support_contact(contact_id):
    contact = get_or_404(SupportContact, contact_id, "Support contact not found")
    db.session.delete(contact)
    db.session.commit()
    return jsonify({"message": "Support contact deleted successfully"}), 200
