"""
Scheduled jobs. Each run holds a Redis lock so a slow run is never
overlapped by the next beat tick; the overlapping run is skipped.
"""

import logging

from celery import shared_task
from flask import current_app

from voucherspot.services import maintenance_service, report_service
from voucherspot.utils.redis_lock import LockUnavailable, redis_lock

logger = logging.getLogger(__name__)

SKIPPED = "skipped"


def run_exclusive(name, func, *args, **kwargs):
    ttl = current_app.config.get("JOB_LOCK_TTL", 600)
    try:
        with redis_lock(f"voucherspot:job:{name}", ttl=ttl):
            logger.info("Job started", extra={"job": name})
            result = func(*args, **kwargs)
    except LockUnavailable:
        logger.warning("Job already running, skipping", extra={"job": name})
        return SKIPPED

    logger.info("Job finished", extra={"job": name, "result": result})
    return result


@shared_task(name="voucherspot.check_pending_transactions")
def check_pending_transactions():
    return run_exclusive("check_pending_transactions", maintenance_service.check_pending_transactions)


@shared_task(name="voucherspot.cleanup_expired_vouchers")
def cleanup_expired_vouchers():
    return run_exclusive("cleanup_expired_vouchers", maintenance_service.cleanup_expired_vouchers)


@shared_task(name="voucherspot.refresh_dashboard_stats")
def refresh_dashboard_stats():
    return run_exclusive("refresh_dashboard_stats", report_service.refresh_dashboard_stats)


@shared_task(name="voucherspot.cleanup_old_logs")
def cleanup_old_logs():
    return run_exclusive("cleanup_old_logs", maintenance_service.cleanup_old_logs)
