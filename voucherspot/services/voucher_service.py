import logging
import secrets
import string
from datetime import datetime

from voucherspot.errors import NotFoundError, RouterError
from voucherspot.extensions import db
from voucherspot.models import SupportContact, Transaction, Voucher, VoucherPackage
from voucherspot.models.package import session_timeout_delta
from voucherspot.models.transaction import CHANNEL_CASH
from voucherspot.models.voucher import GATEWAY_SHOP
from voucherspot.payments import TransactionStatus
from voucherspot.services.mikrotik_service import MikroTikService

logger = logging.getLogger(__name__)

CODE_ALPHABET = string.ascii_uppercase + string.digits
MAX_CODE_ATTEMPTS = 50


def generate_voucher_code(length=8):
    """Random uppercase alphanumeric code not yet used by any voucher."""
    for _ in range(MAX_CODE_ATTEMPTS):
        code = "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))
        if not db.session.query(Voucher.query.filter_by(code=code).exists()).scalar():
            return code
    # Short codes can run out; widen rather than loop forever
    return generate_voucher_code(length + 1)


def compute_expiry(session_timeout, start=None):
    return (start or datetime.utcnow()) + session_timeout_delta(session_timeout)


def create_vouchers_and_push_to_router(items, router):
    """Create hotspot users on ``router`` and persist the matching vouchers.

    Each item carries ``code``, ``package_id``, ``expires_at``,
    ``profile_name`` and optionally ``transaction_id`` and ``gateway``.
    No voucher row is written unless every router push succeeded.
    """
    vouchers = []
    try:
        with MikroTikService(router) as mikrotik:
            for item in items:
                mikrotik.create_hotspot_user(item["code"], item["code"], item.get("profile_name") or "default")
                vouchers.append(Voucher(
                    code=item["code"],
                    package_id=item.get("package_id"),
                    transaction_id=item.get("transaction_id"),
                    expires_at=item.get("expires_at"),
                    gateway=item.get("gateway"),
                    router_id=router.id,
                ))

        db.session.add_all(vouchers)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        logger.error(f"Voucher generation failed: {e}")
        raise

    return vouchers


def generate_vouchers(*, package, quantity, gateway=GATEWAY_SHOP):
    """Admin-printed vouchers pushed to the package's router."""
    if package.router is None:
        raise RouterError(f"Package {package.name} is not linked to a router")

    items = [
        {
            "code": generate_voucher_code(8),
            "package_id": package.id,
            "expires_at": compute_expiry(package.session_timeout),
            "profile_name": package.profile_name,
            "gateway": gateway,
        }
        for _ in range(quantity)
    ]
    return create_vouchers_and_push_to_router(items, package.router)


def push_voucher_to_router(voucher):
    """Re-create the hotspot user for an existing voucher."""
    router = voucher.router or (voucher.package.router if voucher.package else None)
    if router is None:
        raise RouterError(f"Voucher {voucher.code} has no router to push to")

    profile = voucher.package.profile_name if voucher.package else "default"
    with MikroTikService(router) as mikrotik:
        mikrotik.create_hotspot_user(voucher.code, voucher.code, profile)

    if voucher.router_id is None:
        voucher.router_id = router.id
        db.session.commit()
    return voucher


def delete_voucher(code, router):
    voucher = Voucher.not_deleted().filter_by(code=code).first()
    if voucher is None:
        raise NotFoundError(f"Voucher {code} not found")

    try:
        with MikroTikService(router) as mikrotik:
            mikrotik.delete_hotspot_user(voucher.code)
        voucher.soft_delete()
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        logger.error(f"Failed to delete voucher: {e}")
        raise
    return True


def activate_voucher(code, now=None):
    """First login through the captive portal starts the voucher's clock.

    Shop vouchers without a sale get a successful cash transaction at the
    package price. Returns the voucher, or None when there is nothing to
    activate.
    """
    now = now or datetime.utcnow()
    voucher = (
        Voucher.not_deleted()
        .filter(Voucher.code == code, Voucher.activated_at.is_(None))
        .first()
    )
    if voucher is None:
        return None

    voucher.activated_at = now
    # Without a package there is no timeout to start
    if voucher.package:
        voucher.expires_at = compute_expiry(voucher.package.session_timeout, now)
    db.session.commit()
    logger.info("Voucher activated", extra={"voucher": voucher.code})

    if voucher.gateway == GATEWAY_SHOP and voucher.transaction_id is None and voucher.package:
        try:
            record_shop_sale(voucher)
        except Exception as e:
            db.session.rollback()
            logger.error(f"Failed to create cash transaction for shop voucher {voucher.code}: {e}")

    return voucher


def record_shop_sale(voucher):
    phone = SupportContact.phone_for_router(voucher.router_id) or "N/A"
    price = voucher.package.price

    transaction = Transaction(
        phone_number=phone,
        amount=price,
        currency="UGX",
        status=TransactionStatus.SUCCESSFUL.value,
        channel=CHANNEL_CASH,
        gateway=GATEWAY_SHOP,
        package_id=voucher.package_id,
        router_id=voucher.router_id,
        charge=0,
        total_amount=price,
    )
    db.session.add(transaction)
    db.session.flush()
    voucher.transaction_id = transaction.id
    db.session.commit()
    return transaction


def filter_vouchers(search=None, now=None):
    """Admin voucher list query: a state keyword or a code/package search."""
    now = now or datetime.utcnow()
    query = Voucher.not_deleted()

    if search == "active":
        query = query.filter(Voucher.expires_at > now)
    elif search == "expired":
        query = query.filter(Voucher.expires_at < now)
    elif search == "used":
        query = query.filter(Voucher.is_used.is_(True))
    elif search == "unused":
        query = query.filter(Voucher.is_used.is_(False))
    elif search:
        term = f"%{search}%"
        query = query.filter(db.or_(
            Voucher.code.ilike(term),
            Voucher.package.has(VoucherPackage.name.ilike(term)),
        ))

    return query.order_by(Voucher.created_at.desc(), Voucher.id.desc())
