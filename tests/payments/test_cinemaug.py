from unittest.mock import patch

import pytest
import requests

from voucherspot.payments import CinemaUGGateway, TransactionStatus

from helpers import http_response

pytestmark = pytest.mark.payment


@pytest.fixture
def gateway():
    return CinemaUGGateway(api_url="https://cinemaug.test/api/payments", token="test-token")


def test_process_payment_success(gateway):
    payload = {
        "id": 4412,
        "amount": "1000",
        "currency": "UGX",
        "status": "pending",
        "mfscode": None,
        "contact": {"phone_number": "256771234567"},
    }
    with patch("voucherspot.payments.cinemaug.requests.post", return_value=http_response(json_data=payload)) as post:
        result = gateway.process_payment({"phone_number": "256771234567", "amount": 1000})

    assert result.success is True
    assert result.id == "4412"
    assert result.phone_number == "256771234567"
    assert result.amount == 1000.0
    assert result.status == TransactionStatus.PENDING

    kwargs = post.call_args.kwargs
    assert kwargs["json"] == {"phone_number": "256771234567", "amount": 1000, "currency": "UGX"}
    assert kwargs["headers"]["Authorization"] == "Bearer test-token"


def test_process_payment_http_failure(gateway):
    response = http_response(422, text='{"message": "bad phone"}', json_data={"message": "bad phone"})
    with patch("voucherspot.payments.cinemaug.requests.post", return_value=response):
        result = gateway.process_payment({"phone_number": "256771234567", "amount": 1000})

    assert result.success is False
    assert result.error == "Payment request failed"
    assert result.raw_response == {"message": "bad phone"}


def test_process_payment_timeout(gateway):
    with patch("voucherspot.payments.cinemaug.requests.post", side_effect=requests.Timeout("timed out")):
        result = gateway.process_payment({"phone_number": "256771234567", "amount": 1000})

    assert result.success is False
    assert "timed out" in result.error


def test_check_status_passes_status_through(gateway):
    payload = {"id": 4412, "amount": 1000, "status": "successful", "mfscode": "MP-1"}
    with patch("voucherspot.payments.cinemaug.requests.get", return_value=http_response(json_data=payload)) as get:
        result = gateway.check_payment_status("4412")

    assert result.success is True
    assert result.status == TransactionStatus.SUCCESSFUL
    assert result.mfscode == "MP-1"
    assert get.call_args.kwargs["params"] == {"id": "4412"}


def test_unknown_status_is_treated_as_pending(gateway):
    payload = {"id": 1, "amount": 1000, "status": "queued"}
    with patch("voucherspot.payments.cinemaug.requests.get", return_value=http_response(json_data=payload)):
        result = gateway.check_payment_status("1")

    assert result.status == TransactionStatus.PENDING


def test_non_json_body_is_a_failure(gateway):
    with patch("voucherspot.payments.cinemaug.requests.get", return_value=http_response(text="<html>")):
        result = gateway.check_payment_status("1")

    assert result.success is False
    assert result.error == "Invalid response from gateway"
