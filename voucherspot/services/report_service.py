"""
Dashboard statistics.

Revenue figures count successful YoPayments transactions only; CinemaUG
transactions are removed by the cleanup job once they settle.
"""

import logging
import time
from datetime import datetime, timedelta

from flask import current_app
from sqlalchemy import func

from voucherspot.errors import DomainError
from voucherspot.extensions import db
from voucherspot.models import DashboardStatistic, RouterConfiguration, Transaction, Voucher, VoucherPackage
from voucherspot.models.dashboard_statistic import PERIOD_ALL_TIME, PERIOD_CURRENT_MONTH, PERIODS
from voucherspot.models.transaction import CHANNEL_CASH, CHANNEL_MOBILE_MONEY
from voucherspot.payments import TransactionStatus
from voucherspot.services.mikrotik_service import MikroTikService

logger = logging.getLogger(__name__)

REVENUE_GATEWAY = "yopayments"

# Stripped for callers without view_revenue_stats
REVENUE_KEYS = (
    "total_vouchers", "expired_vouchers", "total_packages",
    "transactions", "successful_txn", "failed_tnx",
    "cash_revenue", "mm_revenue", "total_revenue",
    "total_withdrawals", "total_charges", "balance",
)


def format_ugx(amount):
    return f"{float(amount or 0):,.2f} UGX"


def month_bounds(now=None):
    now = now or datetime.utcnow()
    start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    next_month = (start + timedelta(days=32)).replace(day=1)
    return start, next_month - timedelta(microseconds=1)


def _scoped(query, model, router_id, start, end):
    if router_id:
        query = query.filter(model.router_id == router_id)
    if start is not None and end is not None:
        query = query.filter(model.created_at.between(start, end))
    return query


def _sum(query, column):
    return query.with_entities(func.coalesce(func.sum(column), 0)).scalar() or 0


def compute_stats(router_id=None, start=None, end=None, now=None):
    """Aggregate transaction and voucher figures.

    Leave ``start`` and ``end`` unset for all-time figures.
    """
    now = now or datetime.utcnow()

    base = _scoped(
        Transaction.query.filter(
            Transaction.status == TransactionStatus.SUCCESSFUL.value,
            Transaction.gateway == REVENUE_GATEWAY,
        ),
        Transaction, router_id, start, end,
    )
    income = base.filter(Transaction.amount > 0)

    total_revenue = _sum(income, Transaction.amount)
    total_charges = _sum(income, Transaction.charge)
    cash_revenue = _sum(income.filter(Transaction.channel == CHANNEL_CASH), Transaction.amount)
    mm_revenue = _sum(income.filter(Transaction.channel == CHANNEL_MOBILE_MONEY), Transaction.amount)
    total_withdrawals = abs(_sum(base.filter(Transaction.amount < 0), Transaction.amount))

    # Soft-deleted vouchers still count
    vouchers = _scoped(Voucher.query, Voucher, router_id, start, end)
    all_transactions = _scoped(Transaction.query, Transaction, router_id, start, end)

    packages = VoucherPackage.query
    if router_id:
        packages = packages.filter(VoucherPackage.router_id == router_id)

    return {
        "total_vouchers": vouchers.count(),
        "expired_vouchers": vouchers.filter(Voucher.expires_at < now).count(),
        "total_packages": packages.count(),
        "transactions": all_transactions.count(),
        "successful_txn": base.count(),
        "failed_tnx": all_transactions.filter(
            Transaction.status == TransactionStatus.FAILED.value
        ).count(),
        "cash_revenue": format_ugx(cash_revenue),
        "mm_revenue": format_ugx(mm_revenue),
        "total_revenue": format_ugx(total_revenue),
        "total_withdrawals": format_ugx(total_withdrawals),
        "total_charges": format_ugx(total_charges),
        "balance": format_ugx(total_revenue - total_withdrawals),
    }


def compute_period_stats(router_id, period, now=None):
    if period == PERIOD_ALL_TIME:
        return compute_stats(router_id, now=now)
    start, end = month_bounds(now)
    return compute_stats(router_id, start, end, now=now)


def router_stats_enabled():
    return current_app.config.get("ENVIRONMENT") != "development"


def fetch_router_stats(router):
    try:
        with MikroTikService(router) as mikrotik:
            return mikrotik.get_user_statistics()
    except DomainError as e:
        logger.warning(f"Could not fetch router stats for {router.name}: {e.message}")
        return {}


def refresh_dashboard_stats(now=None):
    """Recompute cached statistics for every router and for all routers."""
    started = time.monotonic()
    now = now or datetime.utcnow()

    routers = RouterConfiguration.query.all()
    targets = [None] + [router.id for router in routers]
    by_id = {router.id: router for router in routers}

    for router_id in targets:
        for period in PERIODS:
            stats = compute_period_stats(router_id, period, now)

            if router_id and period == PERIOD_CURRENT_MONTH and router_stats_enabled():
                stats.update(fetch_router_stats(by_id[router_id]))

            row = DashboardStatistic.find(router_id, period)
            if row is None:
                row = DashboardStatistic(router_id=router_id, period=period)
                db.session.add(row)
            row.statistics = stats
            row.computed_at = now

    db.session.commit()

    count = len(targets) * len(PERIODS)
    duration = round(time.monotonic() - started, 2)
    logger.info(f"Dashboard stats refreshed: {count} entries in {duration}s")
    return count


def filter_for_permission(statistics, can_view_revenue):
    if can_view_revenue:
        return dict(statistics)
    return {k: v for k, v in statistics.items() if k not in REVENUE_KEYS}


def get_statistics(*, router_id=None, date_from=None, date_to=None, all_time=False, can_view_revenue=False):
    """Cached statistics unless a custom date range is requested."""
    custom_range = not all_time and date_from is not None and date_to is not None
    period = PERIOD_ALL_TIME if all_time else PERIOD_CURRENT_MONTH

    if not custom_range:
        cached = DashboardStatistic.find(router_id or None, period)
        if cached is not None:
            return filter_for_permission(cached.statistics or {}, can_view_revenue)

    if all_time:
        stats = compute_stats(router_id)
    elif custom_range:
        start = date_from.replace(hour=0, minute=0, second=0, microsecond=0)
        end = date_to.replace(hour=23, minute=59, second=59, microsecond=999999)
        stats = compute_stats(router_id, start, end)
    else:
        stats = compute_period_stats(router_id, PERIOD_CURRENT_MONTH)

    router_stats = {}
    if router_id and router_stats_enabled():
        router = db.session.get(RouterConfiguration, router_id)
        if router is not None:
            router_stats = fetch_router_stats(router)

    if not can_view_revenue:
        return router_stats
    return {**stats, **router_stats}
