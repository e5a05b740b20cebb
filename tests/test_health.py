from unittest.mock import patch


def test_health_ok(client):
    response = client.get("/health")

    assert response.status_code == 200
    data = response.get_json()
    assert data["status"] == "ok"
    assert data["checks"]["database"]["status"] == "ok"
    assert data["checks"]["redis"]["status"] == "skipped"
    assert data["environment"] == "testing"


def test_health_degraded_when_database_fails(client):
    with patch("voucherspot.health.checks._check_database", return_value={"status": "error", "error": "down"}):
        response = client.get("/health")

    assert response.status_code == 503
    assert response.get_json()["status"] == "degraded"


def test_request_id_header(client):
    response = client.get("/health", headers={"X-Request-ID": "abc-123"})
    assert response.headers["X-Request-ID"] == "abc-123"


def test_unknown_route_returns_json(client):
    response = client.get("/no-such-page")
    assert response.status_code == 404
    assert response.get_json()["status_code"] == 404
