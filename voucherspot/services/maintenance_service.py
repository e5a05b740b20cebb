"""Work done by the scheduled jobs and management commands."""

import glob
import logging
import os
import re
from datetime import date, datetime, timedelta

from flask import current_app

from voucherspot.errors import DomainError
from voucherspot.extensions import db
from voucherspot.logging_config import LOG_FILE_NAME
from voucherspot.models import RouterConfiguration, Transaction, Voucher
from voucherspot.models.package import session_timeout_delta
from voucherspot.models.voucher import GATEWAY_SHOP
from voucherspot.payments import PENDING_LIKE_STATUSES, TransactionStatus
from voucherspot.services import payment_service, sms_service
from voucherspot.services.mikrotik_service import MikroTikService

logger = logging.getLogger(__name__)

CINEMAUG = "cinemaug"
ROTATED_LOG_DATE = re.compile(r"\.(\d{4}-\d{2}-\d{2})$")


def pending_transactions():
    return (
        Transaction.not_deleted()
        .filter(
            Transaction.status.in_([s.value for s in PENDING_LIKE_STATUSES]),
            Transaction.amount > 0,
        )
        .all()
    )


def successful_transactions_without_voucher():
    return (
        Transaction.not_deleted()
        .filter(
            Transaction.status == TransactionStatus.SUCCESSFUL.value,
            Transaction.amount > 0,
            ~Transaction.voucher.has(),
        )
        .all()
    )


def _process(transactions):
    processed = 0
    for transaction in transactions:
        payment_id = transaction.payment_id
        try:
            result = payment_service.check_payment_status(payment_id, transaction, True)
            if result.voucher is not None and transaction.status == TransactionStatus.SUCCESSFUL.value:
                if sms_service.send_voucher_sms(transaction.phone_number, result.voucher.code):
                    logger.info(f"SMS sent to {transaction.phone_number}")
                else:
                    logger.warning(f"Failed to send SMS to {transaction.phone_number}")
            processed += 1
        except Exception as e:
            db.session.rollback()
            logger.error(f"Error processing transaction {payment_id}", extra={"error": str(e)})
    return processed


def check_pending_transactions():
    """Poll gateways for open transactions and issue vouchers for paid ones."""
    pending = pending_transactions()
    if pending:
        logger.info("Found pending transactions", extra={"count": len(pending)})
    processed = _process(pending)

    orphaned = successful_transactions_without_voucher()
    if orphaned:
        logger.info("Found successful transactions without vouchers", extra={"count": len(orphaned)})
    processed += _process(orphaned)

    return processed


def cleanup_expired_hotspot_users(now=None):
    routers = RouterConfiguration.query.all()
    if not routers:
        logger.info("No router configurations found for cleanup.")
        return 0

    removed = 0
    for router in routers:
        try:
            with MikroTikService(router) as mikrotik:
                removed += mikrotik.remove_expired_hotspot_users(now)
        except DomainError as e:
            logger.error(f"Failed to cleanup expired vouchers on {router.name}: {e.message}")
    return removed


def cleanup_cinemaug_transactions(now=None):
    """Drop CinemaUG transactions that settled or went stale."""
    now = now or datetime.utcnow()
    ttl = current_app.config.get("CINEMAUG_TRANSACTION_TTL_MINUTES", 10)
    terminal = [TransactionStatus.SUCCESSFUL.value, TransactionStatus.FAILED.value]

    transactions = (
        Transaction.query
        .filter(Transaction.gateway == CINEMAUG)
        .filter(db.or_(
            Transaction.status.in_(terminal),
            Transaction.created_at <= now - timedelta(minutes=ttl),
        ))
        .all()
    )

    for transaction in transactions:
        payment_service.discard_transaction(transaction)

    if transactions:
        logger.info(f"TXN cleanup: deleted {len(transactions)} transactions.")
    return len(transactions)


def cleanup_expired_vouchers(now=None):
    removed = cleanup_expired_hotspot_users(now)
    deleted = cleanup_cinemaug_transactions(now)
    return {"hotspot_users_removed": removed, "transactions_deleted": deleted}


def backfill_voucher_gateways():
    """Fill in ``gateway`` on vouchers created before it was tracked."""
    shop = (
        Voucher.not_deleted()
        .filter(Voucher.gateway.is_(None), Voucher.transaction_id.is_(None))
        .update({Voucher.gateway: GATEWAY_SHOP}, synchronize_session=False)
    )

    copied = skipped = 0
    vouchers = Voucher.not_deleted().filter(
        Voucher.gateway.is_(None), Voucher.transaction_id.isnot(None)
    ).all()
    for voucher in vouchers:
        gateway = voucher.transaction.gateway if voucher.transaction else None
        if gateway:
            voucher.gateway = gateway
            copied += 1
        else:
            logger.warning(
                f"Voucher {voucher.code}: transaction #{voucher.transaction_id} "
                "also has no gateway, skipped."
            )
            skipped += 1

    db.session.commit()
    return {"shop": shop, "copied": copied, "skipped": skipped}


def recalculate_voucher_expiry(dry_run=False):
    """Set ``expires_at`` to activation time plus the package timeout.

    Returns ``(code, new_expiry)`` pairs for every voucher considered.
    """
    changes = []
    for voucher in Voucher.not_deleted().filter(Voucher.activated_at.isnot(None)).all():
        if voucher.package is None:
            logger.warning(f"Voucher {voucher.id} skipped (missing package).")
            continue

        expires_at = voucher.activated_at + session_timeout_delta(voucher.package.session_timeout)
        changes.append((voucher.code, expires_at))
        if not dry_run:
            voucher.expires_at = expires_at

    if not dry_run:
        db.session.commit()
        logger.info(f"Updated {len(changes)} vouchers.")
    return changes


def cleanup_old_logs(log_dir=None, today=None):
    """Delete rotated log files dated before yesterday."""
    log_dir = log_dir or current_app.config.get("LOG_DIR")
    if not log_dir or not os.path.isdir(log_dir):
        return 0

    retention = current_app.config.get("LOG_RETENTION_DAYS", 2)
    cutoff = (today or date.today()) - timedelta(days=retention)

    deleted = 0
    for path in glob.glob(os.path.join(log_dir, f"{LOG_FILE_NAME}.*")):
        match = ROTATED_LOG_DATE.search(path)
        if not match:
            continue
        if datetime.strptime(match.group(1), "%Y-%m-%d").date() < cutoff:
            os.remove(path)
            deleted += 1

    if deleted:
        logger.info(f"Log cleanup: deleted {deleted} old log files.")
    return deleted
