import logging

import requests

from .base import GatewayResponse, PaymentGateway, TransactionStatus

logger = logging.getLogger(__name__)


def _json_or_body(response):
    try:
        return response.json()
    except ValueError:
        return {"body": response.text}


class CinemaUGGateway(PaymentGateway):
    """CinemaUG collections API (JSON over HTTP, bearer token).

    The vendor already reports statuses in our own vocabulary, so they
    pass through unchanged.
    """

    name = "cinemaug"

    def __init__(self, api_url, token, timeout=30):
        self.api_url = api_url
        self.token = token
        self.timeout = timeout

    @classmethod
    def from_config(cls, config):
        return cls(
            api_url=config.get("CINEMAUG_API_URL"),
            token=config.get("CINEMAUG_API_TOKEN"),
            timeout=config.get("GATEWAY_TIMEOUT", 30),
        )

    @property
    def headers(self):
        return {
            "Authorization": f"Bearer {self.token}",
            "Accept": "application/json",
        }

    def process_payment(self, payload):
        body = {
            "phone_number": payload["phone_number"],
            "amount": payload["amount"],
            "currency": payload.get("currency") or "UGX",
        }

        try:
            response = requests.post(self.api_url, json=body, headers=self.headers, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"CinemaUG processPayment exception: {e}")
            return GatewayResponse.failure(str(e))

        if not response.ok:
            logger.error(
                "CinemaUG payment request failed",
                extra={"status": response.status_code, "body": response.text},
            )
            return GatewayResponse.failure("Payment request failed", raw_response=_json_or_body(response))

        return self._normalize(response)

    def check_payment_status(self, reference):
        try:
            response = requests.get(
                self.api_url,
                params={"id": reference},
                headers=self.headers,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"CinemaUG checkPaymentStatus exception for {reference}: {e}")
            return GatewayResponse.failure(str(e))

        if not response.ok:
            logger.error(
                "CinemaUG status check failed",
                extra={"reference": reference, "status": response.status_code},
            )
            return GatewayResponse.failure("Status check failed", raw_response=_json_or_body(response))

        return self._normalize(response)

    @staticmethod
    def _normalize(response):
        try:
            data = response.json()
        except ValueError:
            logger.error("CinemaUG returned a non-JSON body", extra={"body": response.text})
            return GatewayResponse.failure("Invalid response from gateway", raw_response={"body": response.text})

        contact = data.get("contact") or {}
        try:
            amount = float(data.get("amount") or 0)
        except (TypeError, ValueError):
            amount = 0.0

        return GatewayResponse(
            success=True,
            id=str(data.get("id") or ""),
            phone_number=contact.get("phone_number") or data.get("phone_number") or "",
            amount=amount,
            currency=data.get("currency") or "UGX",
            status=TransactionStatus.parse(data.get("status") or "pending"),
            mfscode=data.get("mfscode"),
            raw_response=data,
        )
