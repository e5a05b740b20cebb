from datetime import datetime

from voucherspot.extensions import db
from voucherspot.models import Voucher


def test_wifi_login_stores_router_parameters(client, router, package, support_contact):
    response = client.post("/wifi-login", data={
        "router_id": router.id,
        "link-login": "http://10.5.50.1/login",
        "link-orig": "http://example.com",
        "mac": "AA:BB:CC:DD:EE:FF",
        "ip": "10.5.50.23",
    })

    assert response.status_code == 200
    data = response.get_json()
    assert data["link_login"] == "http://10.5.50.1/login"
    assert [p["id"] for p in data["plans"]] == [package.id]
    assert data["support_contacts"][0]["formatted_phone_number"] == "+256700111222"

    with client.session_transaction() as session:
        assert session["mac"] == "AA:BB:CC:DD:EE:FF"
        assert session["router_id"] == router.id


def test_wifi_login_hides_inactive_plans(client, router, package):
    package.is_active = False
    db.session.commit()

    response = client.post("/wifi-login", data={"router_id": router.id})
    assert response.get_json()["plans"] == []


def test_wifi_login_unknown_router(client):
    response = client.post("/wifi-login", data={"router_id": 404})
    assert response.status_code == 404


def test_hotspot_login_uses_session_link(client, router):
    client.post("/wifi-login", data={"router_id": router.id, "link-login": "http://10.5.50.1/login"})

    response = client.post("/hotspot-login", data={"voucher_code": "AB12"})

    assert response.get_json() == {"voucher": "AB12", "link_login": "http://10.5.50.1/login"}


def test_hotspot_login_requires_code(client):
    assert client.post("/hotspot-login", data={}).status_code == 422


def test_link_login_clears_session(client, router):
    client.post("/wifi-login", data={"router_id": router.id, "mac": "AA"})
    client.post("/hotspot-link-login")

    with client.session_transaction() as session:
        assert "mac" not in session


def test_login_successful_activates_voucher(client, make_voucher):
    voucher = make_voucher(code="WIFI1")

    response = client.get("/hotspot-login-successful?username=WIFI1")

    assert response.status_code == 200
    activated = db.session.get(Voucher, voucher.id)
    assert activated.activated_at is not None
    assert activated.activated_at <= datetime.utcnow()


def test_buy_voucher_lists_router_packages(client, package):
    response = client.get(f"/buy-voucher/{package.id}")

    data = response.get_json()
    assert data["package_id"] == package.id
    assert [p["name"] for p in data["packages"]] == ["Daily"]
