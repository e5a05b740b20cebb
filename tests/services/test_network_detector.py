import pytest

from voucherspot.services.network_detector import (
    AIRTEL,
    MTN,
    detect_network,
    format_phone_number,
    get_phone_number_info,
    is_valid_ugandan_number,
    normalize_phone_number,
)


@pytest.mark.parametrize("phone, network", [
    ("0771234567", MTN),
    ("0781234567", MTN),
    ("256761234567", MTN),
    ("+256 77 123 4567", MTN),
    ("0701234567", AIRTEL),
    ("256751234567", AIRTEL),
    ("0741234567", AIRTEL),
    ("0791234567", None),
    ("", None),
    (None, None),
])
def test_detect_network(phone, network):
    assert detect_network(phone) == network


def test_normalize_phone_number():
    assert normalize_phone_number("0771234567") == "256771234567"
    assert normalize_phone_number("771234567") == "256771234567"
    assert normalize_phone_number("+256771234567") == "256771234567"
    assert normalize_phone_number("12345") is None


def test_is_valid_requires_known_network():
    assert is_valid_ugandan_number("0701234567")
    assert not is_valid_ugandan_number("0791234567")
    assert not is_valid_ugandan_number("abc")


def test_format_phone_number():
    assert format_phone_number("256771234567", "local") == "0771 234 567"
    assert format_phone_number("0771234567") == "+256 771 234 567"
    assert format_phone_number("12") is None


def test_phone_number_info():
    info = get_phone_number_info("0701234567")
    assert info["normalized"] == "256701234567"
    assert info["network"] == AIRTEL
    assert info["is_valid"] is True
    assert info["formatted_local"] == "0701 234 567"

    invalid = get_phone_number_info("0791234567")
    assert invalid["is_valid"] is False
    assert invalid["formatted_local"] is None
