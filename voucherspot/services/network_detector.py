"""Ugandan mobile network detection and phone number formatting."""

import re

MTN = "MTN"
AIRTEL = "AIRTEL"

MTN_PREFIXES = ("077", "078", "076", "25677", "25678", "25676")
AIRTEL_PREFIXES = ("075", "070", "074", "25675", "25670", "25674")


def _clean(phone_number):
    return re.sub(r"[^0-9]", "", str(phone_number or "")).lstrip("0")


def detect_network(phone_number):
    """Return ``MTN``, ``AIRTEL`` or None.

    Matching runs on the digits with leading zeros removed, in both the
    international form and the local ``0``-prefixed form.
    """
    cleaned = _clean(phone_number)
    if not cleaned:
        return None

    candidates = (cleaned, "0" + cleaned)
    if any(c.startswith(MTN_PREFIXES) for c in candidates):
        return MTN
    if any(c.startswith(AIRTEL_PREFIXES) for c in candidates):
        return AIRTEL
    return None


def normalize_phone_number(phone_number):
    """Normalize to ``256XXXXXXXXX``; None when the input is not usable."""
    cleaned = _clean(phone_number)

    if cleaned.startswith("256"):
        return cleaned

    if len(cleaned) == 9:
        return "256" + cleaned

    return None


def is_valid_ugandan_number(phone_number):
    if not normalize_phone_number(phone_number):
        return False
    return detect_network(phone_number) is not None


def format_phone_number(phone_number, fmt="international"):
    normalized = normalize_phone_number(phone_number)
    if not normalized:
        return None

    if fmt == "local":
        local = "0" + normalized[3:]
        return f"{local[:4]} {local[4:7]} {local[7:]}"

    return f"+{normalized[:3]} {normalized[3:6]} {normalized[6:9]} {normalized[9:]}"


def get_phone_number_info(phone_number):
    is_valid = is_valid_ugandan_number(phone_number)
    return {
        "original": phone_number,
        "normalized": normalize_phone_number(phone_number),
        "network": detect_network(phone_number),
        "is_valid": is_valid,
        "formatted_local": format_phone_number(phone_number, "local") if is_valid else None,
        "formatted_international": format_phone_number(phone_number, "international") if is_valid else None,
    }
