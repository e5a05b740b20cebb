"""
Captive portal endpoints hit by the MikroTik hotspot login pages.

The router posts ``link-login``/``link-orig``/``mac``/``ip`` to
``/wifi-login``; they are kept in the Flask session so the purchase and
voucher login pages can send the client back to the router.
"""

from flask import Blueprint, current_app, jsonify, request, session

from voucherspot.errors import NotFoundError
from voucherspot.extensions import db
from voucherspot.models import RouterConfiguration, SupportContact, VoucherPackage
from voucherspot.services import voucher_service
from voucherspot.utils.validation import Validator

bp = Blueprint("hotspot", __name__)

SESSION_KEYS = ("link_login", "link_orig", "mac", "ip")


def _contacts(router_id):
    query = SupportContact.query
    if router_id:
        query = query.filter(SupportContact.router_id == router_id)
    else:
        query = query.filter(SupportContact.router_id.is_(None))
    return [c.to_dict() for c in query.all()]


@bp.route("/wifi-login", methods=["POST"])
def wifi_login():
    router_id = request.values.get("router_id", type=int)
    if router_id is None or db.session.get(RouterConfiguration, router_id) is None:
        raise NotFoundError("Router configuration not found")

    session.update({
        "link_login": request.values.get("link-login"),
        "link_orig": request.values.get("link-orig"),
        "mac": request.values.get("mac"),
        "ip": request.values.get("ip"),
        "router_id": router_id,
    })

    plans = (
        VoucherPackage.query
        .filter(VoucherPackage.router_id == router_id, VoucherPackage.is_active.is_(True))
        .all()
    )
    return jsonify({
        "link_login": session["link_login"],
        "link_orig": session["link_orig"],
        "mac": session["mac"],
        "ip": session["ip"],
        "router_id": router_id,
        "plans": [p.to_dict() for p in plans],
        "error": request.args.get("error"),
        "support_contacts": _contacts(router_id),
    }), 200


@bp.route("/hotspot-login", methods=["POST"])
def hotspot_login():
    """Hand the voucher back to the router's login URL."""
    data = Validator(request.values).string("voucher_code", required=True).validate()
    link_login = session.get("link_login") or request.args.get("link-login")
    return jsonify({"voucher": data["voucher_code"], "link_login": link_login}), 200


@bp.route("/hotspot-link-login", methods=["POST"])
def hotspot_link_login():
    for key in SESSION_KEYS:
        session.pop(key, None)
    return jsonify({"status": "ok"}), 200


@bp.route("/hotspot-login-successful", methods=["GET"])
def hotspot_login_successful():
    """Router success page hook; starts the voucher's validity window."""
    code = request.args.get("username")
    if code:
        voucher_service.activate_voucher(code)
    return jsonify({"status": "ok"}), 200


@bp.route("/buy-voucher/<int:package_id>", methods=["GET"])
def buy_voucher(package_id):
    package = db.session.get(VoucherPackage, package_id)

    packages = VoucherPackage.query.filter(VoucherPackage.is_active.is_(True))
    if package is not None:
        packages = packages.filter(VoucherPackage.router_id == package.router_id)

    return jsonify({
        "package_id": package.id if package else None,
        "packages": [p.to_dict() for p in packages.all()],
        "wifi_name": current_app.config.get("APP_NAME", "Hotspot WiFi"),
        "link_login": session.get("link_login"),
        "support_contacts": _contacts(package.router_id if package else None),
    }), 200
