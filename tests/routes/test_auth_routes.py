import pytest

from voucherspot.extensions import db

pytestmark = pytest.mark.auth


def test_login_success(client, admin_user):
    response = client.post("/api/auth/login", json={
        "email": "Admin@VoucherSpot.test",
        "password": "securepassword",
    })

    assert response.status_code == 200
    data = response.get_json()
    assert data["access_token"]
    assert data["user"]["email"] == "admin@voucherspot.test"
    assert "view_payments" in data["user"]["permissions"]
    assert admin_user.last_login is not None


def test_login_invalid_password(client, admin_user):
    response = client.post("/api/auth/login", json={
        "email": "admin@voucherspot.test",
        "password": "wrongpassword",
    })

    assert response.status_code == 401
    assert response.get_json()["message"] == "Invalid email or password"


def test_login_missing_fields(client):
    response = client.post("/api/auth/login", json={"email": "admin@voucherspot.test"})
    assert response.status_code == 400


def test_login_disabled_account(client, admin_user):
    admin_user.is_active = False
    db.session.commit()

    response = client.post("/api/auth/login", json={
        "email": "admin@voucherspot.test",
        "password": "securepassword",
    })
    assert response.status_code == 403


def test_token_carries_permissions(client, admin_user):
    login = client.post("/api/auth/login", json={
        "email": "admin@voucherspot.test",
        "password": "securepassword",
    })
    token = login.get_json()["access_token"]

    response = client.get("/api/transactions", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 200


def test_me(client, admin_user, auth_headers):
    response = client.get("/api/auth/me", headers=auth_headers(identity=str(admin_user.id)))
    assert response.status_code == 200
    assert response.get_json()["id"] == admin_user.id


def test_me_requires_token(client):
    response = client.get("/api/auth/me")
    assert response.status_code == 401
    assert response.get_json()["error"] == "authorization_required"
