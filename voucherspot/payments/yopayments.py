import logging
import random
import re
import string
import xml.etree.ElementTree as ET
from datetime import datetime

import requests

from .base import GatewayResponse, PaymentGateway, TransactionStatus

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://paymentsapi1.yo.co.ug/ybs/task.php"
DEFAULT_NARRATIVE = "SuperSpot WiFi Payment"

STATUS_MAP = {
    "PENDING": TransactionStatus.INSTRUCTIONS_SENT,
    "SUCCEEDED": TransactionStatus.SUCCESSFUL,
    "FAILED": TransactionStatus.FAILED,
    "INDETERMINATE": TransactionStatus.PENDING,
}

RESPONSE_FIELDS = (
    "Status",
    "StatusCode",
    "StatusMessage",
    "TransactionStatus",
    "TransactionReference",
    "MNOTransactionReferenceId",
    "ErrorMessage",
    "ErrorMessageCode",
    "Amount",
    "AmountFormatted",
    "CurrencyCode",
    "TransactionInitiationDate",
    "TransactionCompletionDate",
    "IssuingOrganizationCode",
)

TRANSACTION_NOT_FOUND_CODE = "-30"

HEADERS = {
    "Content-Type": "text/xml",
    "Content-transfer-encoding": "text",
}


def map_status(yo_status):
    return STATUS_MAP.get((yo_status or "").strip().upper(), TransactionStatus.PENDING)


def normalize_phone_number(phone):
    """Yo expects accounts as 256XXXXXXXXX."""
    digits = re.sub(r"[^0-9]", "", str(phone))
    if digits.startswith("0"):
        return "256" + digits[1:]
    if not digits.startswith("256"):
        return "256" + digits
    return digits


def generate_external_reference(now=None):
    now = now or datetime.utcnow()
    suffix = "".join(random.choices(string.ascii_uppercase + string.digits, k=8))
    return f"ZYB-{now:%Y%m%d}-{suffix}"


def _format_amount(amount):
    amount = float(amount)
    return str(int(amount)) if amount.is_integer() else f"{amount:.2f}"


class YoPaymentsGateway(PaymentGateway):
    """YoPayments business API (XML over HTTP POST)."""

    name = "yopayments"

    def __init__(self, username, password, api_url=DEFAULT_API_URL,
                 narrative=DEFAULT_NARRATIVE, timeout=30):
        self.api_url = api_url or DEFAULT_API_URL
        self.username = username or ""
        self.password = password or ""
        self.narrative = narrative or DEFAULT_NARRATIVE
        self.timeout = timeout

    @classmethod
    def from_config(cls, config):
        return cls(
            username=config.get("YOPAYMENTS_USERNAME"),
            password=config.get("YOPAYMENTS_PASSWORD"),
            api_url=config.get("YOPAYMENTS_API_URL"),
            narrative=config.get("YOPAYMENTS_NARRATIVE"),
            timeout=config.get("GATEWAY_TIMEOUT", 30),
        )

    def process_payment(self, payload):
        external_reference = payload.get("external_reference") or generate_external_reference()
        phone_number = payload["phone_number"]
        amount = float(payload["amount"])

        body = self.build_deposit_xml(
            amount=amount,
            account=normalize_phone_number(phone_number),
            narrative=payload.get("narrative") or self.narrative,
            external_reference=external_reference,
        )

        logger.info(
            "YoPayments deposit request",
            extra={"phone": phone_number, "amount": amount, "external_reference": external_reference},
        )

        try:
            response = requests.post(self.api_url, data=body, headers=HEADERS, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"YoPayments processPayment exception: {e}")
            return GatewayResponse.failure(str(e))

        if not response.ok:
            logger.error(
                "YoPayments HTTP request failed",
                extra={"status": response.status_code, "body": response.text},
            )
            return GatewayResponse.failure(
                f"Payment request failed: HTTP {response.status_code}",
                raw_response={"body": response.text},
            )

        data = self.parse_response(response.text)
        return self._normalize_deposit(data, phone_number, amount, external_reference)

    def check_payment_status(self, reference):
        body = self.build_status_xml(reference)
        logger.info("YoPayments status check", extra={"reference": reference})

        try:
            response = requests.post(self.api_url, data=body, headers=HEADERS, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"YoPayments checkPaymentStatus exception for {reference}: {e}")
            return GatewayResponse.failure(str(e))

        if not response.ok:
            logger.error(
                "YoPayments status check HTTP failed",
                extra={"reference": reference, "status": response.status_code},
            )
            return GatewayResponse.failure(
                f"Status check failed: HTTP {response.status_code}",
                raw_response={"body": response.text},
            )

        data = self.parse_response(response.text)
        return self._normalize_status(data, reference)

    def _request_root(self, method):
        root = ET.Element("AutoCreate")
        request = ET.SubElement(root, "Request")
        ET.SubElement(request, "APIUsername").text = self.username
        ET.SubElement(request, "APIPassword").text = self.password
        ET.SubElement(request, "Method").text = method
        return root, request

    @staticmethod
    def _serialize(root):
        return ET.tostring(root, encoding="UTF-8", xml_declaration=True)

    def build_deposit_xml(self, *, amount, account, narrative, external_reference):
        root, request = self._request_root("acdepositfunds")
        ET.SubElement(request, "NonBlocking").text = "TRUE"
        ET.SubElement(request, "Amount").text = _format_amount(amount)
        ET.SubElement(request, "Account").text = account
        ET.SubElement(request, "Narrative").text = narrative
        ET.SubElement(request, "ExternalReference").text = external_reference
        return self._serialize(root)

    def build_status_xml(self, reference):
        root, request = self._request_root("actransactioncheckstatus")
        ET.SubElement(request, "PrivateTransactionReference").text = reference
        return self._serialize(root)

    @staticmethod
    def parse_response(text):
        try:
            root = ET.fromstring(text)
        except ET.ParseError as e:
            logger.error("YoPayments XML parse error", extra={"xml": text})
            return {"Status": "ERROR", "StatusMessage": f"Failed to parse XML response: {e}"}

        node = root.find("Response")
        if node is None:
            node = root

        data = {name: (node.findtext(name) or "").strip() for name in RESPONSE_FIELDS}
        data["Status"] = data["Status"] or "ERROR"
        data["StatusCode"] = data["StatusCode"] or "-1"
        data["raw_xml"] = text
        return data

    @staticmethod
    def _error_text(data):
        return data.get("StatusMessage") or data.get("ErrorMessage") or "Unknown error"

    def _normalize_deposit(self, data, phone_number, amount, external_reference):
        if data.get("Status") != "OK":
            return GatewayResponse.failure(self._error_text(data), raw_response=data)

        return GatewayResponse(
            success=True,
            id=data.get("TransactionReference") or external_reference,
            phone_number=phone_number,
            amount=amount,
            currency=data.get("CurrencyCode") or "UGX",
            status=map_status(data.get("TransactionStatus")),
            mfscode=data.get("MNOTransactionReferenceId") or None,
            raw_response=data,
        )

    def _normalize_status(self, data, reference):
        is_ok = data.get("Status") == "OK"
        transaction_status = data.get("TransactionStatus", "")

        if not is_ok and data.get("StatusCode") == TRANSACTION_NOT_FOUND_CODE:
            return GatewayResponse.failure("Transaction not found", raw_response=data)

        if not is_ok and not transaction_status:
            return GatewayResponse.failure(self._error_text(data), raw_response=data)

        try:
            amount = float(data.get("Amount") or 0)
        except ValueError:
            amount = 0.0

        return GatewayResponse(
            success=True,
            id=data.get("TransactionReference") or reference,
            phone_number="",
            amount=amount,
            currency=data.get("CurrencyCode") or "UGX",
            status=map_status(transaction_status),
            mfscode=data.get("MNOTransactionReferenceId") or None,
            raw_response=data,
        )
