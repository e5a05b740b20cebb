from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest
from librouteros.exceptions import LibRouterosError

from voucherspot.errors import RouterError
from voucherspot.models import RouterConfiguration, RouterLog
from voucherspot.services.mikrotik_service import (
    HOTSPOT_ACTIVE,
    HOTSPOT_PROFILE,
    HOTSPOT_USER,
    MikroTikService,
)

pytestmark = pytest.mark.router


def test_connects_with_router_credentials(router, router_api):
    with MikroTikService(router):
        pass

    kwargs = router_api.connect.call_args.kwargs
    assert kwargs["host"] == router.host
    assert kwargs["username"] == "api"
    assert kwargs["password"] == "secret"
    assert kwargs["port"] == 8728
    assert router_api.closed is True

    log = RouterLog.query.one()
    assert log.action == "initialize_mikrotik_client"
    assert log.success is True
    assert log.router_id == router.id


def test_connection_failure_is_logged_and_raised(router, router_api):
    router_api.connect.side_effect = OSError("No route to host")

    with pytest.raises(RouterError) as exc_info:
        MikroTikService(router)

    assert "No route to host" in exc_info.value.message
    log = RouterLog.query.one()
    assert log.success is False


def test_incomplete_configuration(router_api):
    router = RouterConfiguration(name="broken", host="", username="", port=8728)
    with pytest.raises(RouterError):
        MikroTikService(router)
    router_api.connect.assert_not_called()


def test_create_hotspot_user_removes_orphans_first(router, router_api):
    router_api.responses[f"{HOTSPOT_USER}/print"] = [
        {".id": "*1", "name": "ABCD"},
        {".id": "*2", "name": "OTHER"},
    ]

    with MikroTikService(router) as mikrotik:
        mikrotik.create_hotspot_user("ABCD", "ABCD", "daily")

    assert router_api.calls_to(f"{HOTSPOT_USER}/remove") == [{".id": "*1"}]
    assert router_api.calls_to(f"{HOTSPOT_USER}/add") == [
        {"name": "ABCD", "password": "ABCD", "profile": "daily"},
    ]
    log = RouterLog.query.filter_by(action="create_hotspot_user").one()
    assert log.success is True
    assert log.voucher == "ABCD"


def test_create_hotspot_user_failure(router, router_api):
    router_api.responses[f"{HOTSPOT_USER}/add"] = LibRouterosError("already have user")

    with MikroTikService(router) as mikrotik:
        with pytest.raises(RouterError):
            mikrotik.create_hotspot_user("ABCD", "ABCD")

    log = RouterLog.query.filter_by(action="create_hotspot_user").one()
    assert log.success is False
    assert "already have user" in log.message


def test_delete_hotspot_user_drops_active_sessions(router, router_api):
    router_api.responses[f"{HOTSPOT_USER}/print"] = [{".id": "*5", "name": "WXYZ"}]
    router_api.responses[f"{HOTSPOT_ACTIVE}/print"] = [
        {".id": "*9", "user": "WXYZ"},
        {".id": "*10", "user": "SOMEONE"},
    ]

    with MikroTikService(router) as mikrotik:
        assert mikrotik.delete_hotspot_user("WXYZ") is True

    assert router_api.calls_to(f"{HOTSPOT_USER}/remove") == [{".id": "*5"}]
    assert router_api.calls_to(f"{HOTSPOT_ACTIVE}/remove") == [{".id": "*9"}]


def test_remove_expired_hotspot_users(router, router_api, make_voucher):
    now = datetime.utcnow()
    make_voucher(code="OLD1", expires_at=now - timedelta(hours=1))
    make_voucher(code="USED", expires_at=now - timedelta(hours=1), is_used=True)
    make_voucher(code="LIVE", expires_at=now + timedelta(hours=1))
    make_voucher(code="GONE", expires_at=now + timedelta(hours=1), deleted_at=now)

    router_api.responses[f"{HOTSPOT_USER}/print"] = [
        {".id": "*1", "name": "OLD1"},
        {".id": "*2", "name": "USED"},
        {".id": "*3", "name": "LIVE"},
        {".id": "*4", "name": "GONE"},
        {".id": "*5", "name": "admin"},
    ]

    with MikroTikService(router) as mikrotik:
        removed = mikrotik.remove_expired_hotspot_users(now)

    assert removed == 2
    removed_ids = {call[".id"] for call in router_api.calls_to(f"{HOTSPOT_USER}/remove")}
    assert removed_ids == {"*1", "*4"}


def test_user_statistics(router, router_api):
    router_api.responses[f"{HOTSPOT_USER}/print"] = [{".id": "*1"}, {".id": "*2"}]
    router_api.responses[f"{HOTSPOT_ACTIVE}/print"] = [{".id": "*7"}]

    with MikroTikService(router) as mikrotik:
        assert mikrotik.get_user_statistics() == {"total_users": 2, "active_users": 1}


def test_router_name(router, router_api):
    router_api.responses["/system/identity/print"] = [{"name": "hotspot-1"}]
    with MikroTikService(router) as mikrotik:
        assert mikrotik.get_router_name() == "hotspot-1"


def test_test_connection_reports_failure(router, router_api):
    router_api.responses["/system/resource/print"] = LibRouterosError("timeout")

    with MikroTikService(router) as mikrotik:
        result = mikrotik.test_connection()

    assert result["success"] is False
    assert "timeout" in result["message"]


def test_push_profile_adds_new_profile(router, router_api):
    package = SimpleNamespace(
        name="Weekly",
        profile_name="weekly",
        shared_users=2,
        rate_limit="5M/5M",
        session_timeout="7d",
        limit_bytes_total=1073741824,
    )

    with MikroTikService(router) as mikrotik:
        mikrotik.push_profile_to_router(package)

    assert router_api.calls_to(f"{HOTSPOT_PROFILE}/add") == [{
        "name": "weekly",
        "shared-users": "2",
        "rate-limit": "5M/5M",
        "session-timeout": "7d",
        "limit-bytes-total": "1073741824",
    }]


def test_push_profile_skips_existing(router, router_api):
    router_api.responses[f"{HOTSPOT_PROFILE}/print"] = [{".id": "*1", "name": "weekly"}]
    package = SimpleNamespace(name="Weekly", profile_name="weekly")

    with MikroTikService(router) as mikrotik:
        result = mikrotik.push_profile_to_router(package)

    assert result["name"] == "weekly"
    assert router_api.calls_to(f"{HOTSPOT_PROFILE}/add") == []


@pytest.mark.parametrize("value, unit, expected", [
    (1, "GB", 1073741824),
    (500, "MB", 524288000),
    (2, "kb", 2048),
])
def test_convert_to_bytes(value, unit, expected):
    assert MikroTikService.convert_to_bytes(value, unit) == expected


def test_convert_to_bytes_rejects_unknown_unit():
    with pytest.raises(ValueError):
        MikroTikService.convert_to_bytes(1, "TB")
