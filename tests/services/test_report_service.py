from datetime import datetime, timedelta

import pytest

from voucherspot.extensions import db
from voucherspot.models import DashboardStatistic
from voucherspot.services import report_service


@pytest.fixture
def ledger(make_transaction, make_voucher):
    """A month of activity on the default router"""
    make_transaction(status="successful", amount=1000, charge=100, channel="mobile_money")
    make_transaction(status="successful", amount=500, channel="cash")
    make_transaction(status="successful", amount=-300, channel="mobile_money")
    make_transaction(status="successful", amount=2000, gateway="cinemaug")
    make_transaction(status="failed", amount=1000)
    make_voucher(code="V1")
    make_voucher(code="V2", expires_at=datetime.utcnow() - timedelta(hours=1))


def test_format_ugx():
    assert report_service.format_ugx(1234) == "1,234.00 UGX"
    assert report_service.format_ugx(None) == "0.00 UGX"


def test_month_bounds_handles_leap_february():
    start, end = report_service.month_bounds(datetime(2024, 2, 15, 9, 30))
    assert start == datetime(2024, 2, 1)
    assert end == datetime(2024, 2, 29, 23, 59, 59, 999999)


def test_compute_stats_counts_yopayments_revenue_only(ledger):
    stats = report_service.compute_stats()

    assert stats["total_revenue"] == "1,500.00 UGX"
    assert stats["cash_revenue"] == "500.00 UGX"
    assert stats["mm_revenue"] == "1,000.00 UGX"
    assert stats["total_withdrawals"] == "300.00 UGX"
    assert stats["total_charges"] == "100.00 UGX"
    assert stats["balance"] == "1,200.00 UGX"
    assert stats["transactions"] == 5
    assert stats["successful_txn"] == 3
    assert stats["failed_tnx"] == 1
    assert stats["total_vouchers"] == 2
    assert stats["expired_vouchers"] == 1
    assert stats["total_packages"] == 1


def test_compute_stats_scoped_to_other_router(ledger):
    stats = report_service.compute_stats(router_id=9999)
    assert stats["transactions"] == 0
    assert stats["total_revenue"] == "0.00 UGX"


def test_refresh_dashboard_stats(router, ledger, router_api):
    count = report_service.refresh_dashboard_stats()

    assert count == 4
    assert DashboardStatistic.query.count() == 4

    overall = DashboardStatistic.find(None, "all_time")
    assert overall.statistics["total_revenue"] == "1,500.00 UGX"

    router_month = DashboardStatistic.find(router.id, "current_month")
    assert router_month.statistics["total_users"] == 0
    assert router_month.statistics["active_users"] == 0


def test_refresh_updates_rows_in_place(router, router_api):
    report_service.refresh_dashboard_stats()
    report_service.refresh_dashboard_stats()
    assert DashboardStatistic.query.count() == 4


def test_cached_statistics_are_served(app):
    cached = DashboardStatistic(
        router_id=None,
        period="current_month",
        statistics={"total_revenue": "9.00 UGX", "total_users": 3},
    )
    db.session.add(cached)
    db.session.commit()

    assert report_service.get_statistics(can_view_revenue=True) == {
        "total_revenue": "9.00 UGX",
        "total_users": 3,
    }
    assert report_service.get_statistics(can_view_revenue=False) == {"total_users": 3}


def test_custom_range_is_computed_live(ledger):
    today = datetime.utcnow()
    stats = report_service.get_statistics(
        date_from=today - timedelta(days=1),
        date_to=today,
        can_view_revenue=True,
    )
    assert stats["total_revenue"] == "1,500.00 UGX"

    empty = report_service.get_statistics(
        date_from=datetime(2000, 1, 1),
        date_to=datetime(2000, 1, 31),
        can_view_revenue=True,
    )
    assert empty["transactions"] == 0


def test_revenue_hidden_without_permission(ledger):
    assert report_service.get_statistics(all_time=True, can_view_revenue=False) == {}
