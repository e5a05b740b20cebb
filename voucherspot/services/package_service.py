import logging

from flask import current_app

from voucherspot.extensions import db
from voucherspot.models import RouterConfiguration, VoucherPackage
from voucherspot.services.mikrotik_service import MikroTikService
from voucherspot.utils.validation import Validator

logger = logging.getLogger(__name__)

TIMEOUT_UNITS = ("hours", "days")


def validate_package_payload(payload, require_router=True):
    validator = (
        Validator(payload)
        .string("name", max_length=100, required=True)
        .number("price", minimum=0, required=True)
        .string("profile_name", max_length=100, required=True)
        .integer("rate_limit", minimum=0, maximum=100)
        .integer("session_timeout", minimum=1, maximum=100, required=True)
        .one_of("session_timeout_unit", TIMEOUT_UNITS)
        .integer("limit_bytes_total", minimum=0)
        .one_of("limit_bytes_total_unit", ("GB", "MB", "KB"))
        .integer("shared_users", minimum=1, required=True)
        .string("description", max_length=255)
    )
    if require_router:
        validator.integer("router_id", required=True)
        router_id = validator.data.get("router_id")
        if router_id is not None and db.session.get(RouterConfiguration, router_id) is None:
            validator.check(False, "router_id", "The selected router_id is invalid.")
    data = validator.validate()
    return _package_fields(data)


def _package_fields(data):
    """Turn validated form values into column values."""
    fields = {
        "name": data["name"],
        "price": data["price"],
        "profile_name": data["profile_name"],
        "shared_users": data["shared_users"],
    }

    unit = "d" if data.get("session_timeout_unit") == "days" else "h"
    fields["session_timeout"] = f"{data['session_timeout']}{unit}"

    limit = data.get("limit_bytes_total")
    fields["limit_bytes_total"] = (
        MikroTikService.convert_to_bytes(limit, data.get("limit_bytes_total_unit", "MB"))
        if limit else None
    )

    rate = data.get("rate_limit")
    # Megabits per second, same for upload and download
    fields["rate_limit"] = f"{rate}M/{rate}M" if rate else None

    fields["description"] = f"{data['name']} - {data['price']:g} UGX"
    if "router_id" in data:
        fields["router_id"] = data["router_id"]
    return fields


def push_profile(package):
    if current_app.config.get("ENVIRONMENT") == "development" or package.router is None:
        return None
    with MikroTikService(package.router) as mikrotik:
        return mikrotik.push_profile_to_router(package)


def create_package(payload):
    package = VoucherPackage(**validate_package_payload(payload))
    db.session.add(package)
    db.session.commit()
    logger.info("Voucher package created", extra={"package_id": package.id, "router_id": package.router_id})

    push_profile(package)
    return package


def update_package(package, payload):
    for key, value in validate_package_payload(payload, require_router=False).items():
        setattr(package, key, value)
    db.session.commit()

    push_profile(package)
    return package


def toggle_package(package):
    package.is_active = not package.is_active
    db.session.commit()
    if package.is_active:
        return "Voucher Package activated successfully"
    return "Voucher Package deactivated successfully"
