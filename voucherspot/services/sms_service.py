import logging

import requests
from flask import current_app

logger = logging.getLogger(__name__)

VOUCHER_MESSAGE = (
    "Your SuperSpotWiFi voucher code is: {code}. "
    "Use it to access the internet. Thank you for using our service!"
)


def send_sms(recipients, message):
    """Send a plain SMS through EgoSMS. Returns True on delivery acceptance."""
    config = current_app.config
    if not config.get("SMS_ENABLED", True):
        logger.info("SMS sending disabled, skipping", extra={"recipients": recipients})
        return False

    params = {
        "number": recipients,
        "message": message,
        "username": config.get("EGOSMS_USERNAME"),
        "password": config.get("EGOSMS_PASSWORD"),
        "sender": config.get("EGOSMS_SENDER", ""),
        "priority": 0,
    }

    try:
        response = requests.get(config.get("EGOSMS_API_URL"), params=params, timeout=15)
    except requests.RequestException as e:
        logger.error(f"Error sending SMS: {e}")
        return False

    # EgoSMS answers "OK" on success
    if response.ok and len(response.text) == 2:
        return True

    logger.warning("SMS sending failed", extra={"response": response.text})
    return False


def send_voucher_sms(phone_number, code):
    return send_sms(phone_number.lstrip("+"), VOUCHER_MESSAGE.format(code=code))
