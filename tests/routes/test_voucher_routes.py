from datetime import datetime

from voucherspot.extensions import db
from voucherspot.models import Voucher
from voucherspot.services.mikrotik_service import HOTSPOT_USER


def test_list_vouchers(client, admin_headers, make_voucher):
    for _ in range(12):
        make_voucher()

    first = client.get("/api/vouchers", headers=admin_headers).get_json()
    assert first["total"] == 12
    assert len(first["data"]) == 10
    assert first["last_page"] == 2

    second = client.get("/api/vouchers?page=2", headers=admin_headers).get_json()
    assert len(second["data"]) == 2


def test_voucher_detail_includes_transaction(client, admin_headers, make_voucher, make_transaction):
    transaction = make_transaction(status="successful")
    voucher = make_voucher(transaction_id=transaction.id)

    data = client.get(f"/api/vouchers/{voucher.id}", headers=admin_headers).get_json()
    assert data["transaction"]["id"] == transaction.id

    response = client.get(f"/api/vouchers/{voucher.id}/transaction", headers=admin_headers)
    assert response.get_json()["transaction"]["id"] == transaction.id


def test_generate_vouchers(client, admin_headers, package, router_api):
    response = client.post("/api/vouchers/generate", headers=admin_headers, json={
        "package_id": package.id,
        "quantity": 2,
    })

    assert response.status_code == 200
    assert len(response.get_json()["vouchers"]) == 2
    assert Voucher.query.count() == 2


def test_generate_vouchers_quantity_limits(client, admin_headers, package):
    response = client.post("/api/vouchers/generate", headers=admin_headers, json={
        "package_id": package.id,
        "quantity": 501,
    })
    assert response.status_code == 422


def test_push_by_code(client, admin_headers, make_voucher, router_api):
    make_voucher(code="PUSHME")

    response = client.post("/api/vouchers/push", headers=admin_headers, json={"code": "pushme"})

    assert response.status_code == 200
    assert router_api.calls_to(f"{HOTSPOT_USER}/add")[0]["name"] == "PUSHME"


def test_push_unknown_code(client, admin_headers):
    response = client.post("/api/vouchers/push", headers=admin_headers, json={"code": "nope"})
    assert response.status_code == 404
    assert response.get_json() == {"error": "Voucher 'NOPE' not found."}


def test_push_without_router(client, admin_headers):
    voucher = Voucher(code="LONELY")
    db.session.add(voucher)
    db.session.commit()

    response = client.post(f"/api/vouchers/{voucher.id}/push", headers=admin_headers)
    assert response.status_code == 422


def test_delete_voucher(client, admin_headers, make_voucher, router_api):
    voucher = make_voucher(code="BYEBYE")

    response = client.delete(f"/api/vouchers/{voucher.id}", headers=admin_headers)

    assert response.status_code == 200
    assert db.session.get(Voucher, voucher.id).deleted_at is not None


def test_record_cash_sale_for_voucher(client, admin_headers, make_voucher):
    voucher = make_voucher()

    response = client.post(f"/api/vouchers/{voucher.id}/transaction", headers=admin_headers, json={
        "phone_number": "256700000000",
        "amount": 1000,
        "currency": "UGX",
        "status": "successful",
    })

    assert response.status_code == 200
    assert response.get_json()["voucher"]["transaction"]["channel"] == "cash"


def test_deleted_vouchers_are_not_listed(client, admin_headers, make_voucher):
    make_voucher(code="GONE0001", deleted_at=datetime.utcnow())
    live = make_voucher(code="LIVE0001")

    data = client.get("/api/vouchers", headers=admin_headers).get_json()

    assert data["total"] == 1
    assert [v["code"] for v in data["data"]] == [live.code]


def test_deleted_voucher_detail_is_not_found(client, admin_headers, make_voucher):
    voucher = make_voucher(code="GONE0002", deleted_at=datetime.utcnow())

    assert client.get(f"/api/vouchers/{voucher.id}", headers=admin_headers).status_code == 404
    assert client.get(f"/api/vouchers/{voucher.id}/transaction", headers=admin_headers).status_code == 404


def test_deleted_voucher_is_not_pushed_again(client, admin_headers, make_voucher, router_api):
    voucher = make_voucher(code="GONE0003", deleted_at=datetime.utcnow())

    by_code = client.post("/api/vouchers/push", headers=admin_headers, json={"code": "gone0003"})
    by_id = client.post(f"/api/vouchers/{voucher.id}/push", headers=admin_headers)

    assert by_code.status_code == 404
    assert by_id.status_code == 404
    assert router_api.calls == []
