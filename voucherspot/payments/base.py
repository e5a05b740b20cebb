from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class TransactionStatus(str, Enum):
    NEW = "new"
    PENDING = "pending"
    INSTRUCTIONS_SENT = "instructions_sent"
    PROCESSING_STARTED = "processing_started"
    SUCCESSFUL = "successful"
    FAILED = "failed"

    @classmethod
    def parse(cls, value, default=None):
        """Map a raw status string onto the enum, falling back to ``default``."""
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return default if default is not None else cls.PENDING

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({TransactionStatus.SUCCESSFUL, TransactionStatus.FAILED})

# Statuses polled by the pending-transaction job
PENDING_LIKE_STATUSES = (
    TransactionStatus.NEW,
    TransactionStatus.INSTRUCTIONS_SENT,
    TransactionStatus.PENDING,
)


def is_terminal_status(status) -> bool:
    return TransactionStatus.parse(status, default=TransactionStatus.PENDING).is_terminal


@dataclass
class GatewayResponse:
    """Normalized result of a gateway call."""

    success: bool
    id: Optional[str] = None
    phone_number: Optional[str] = None
    amount: Optional[float] = None
    currency: str = "UGX"
    status: TransactionStatus = TransactionStatus.PENDING
    mfscode: Optional[str] = None
    raw_response: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None

    @classmethod
    def failure(cls, error: str, raw_response=None, status=TransactionStatus.FAILED):
        return cls(
            success=False,
            error=error,
            status=status,
            raw_response=raw_response or {},
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        return data


class PaymentGateway(ABC):
    """Contract every mobile-money provider adapter implements.

    Adapters never raise on transport or vendor errors; they log and
    return ``GatewayResponse(success=False, error=...)``.
    """

    name: str = ""

    @abstractmethod
    def process_payment(self, payload: Dict[str, Any]) -> GatewayResponse:
        """Initiate a collection from ``payload['phone_number']``."""

    @abstractmethod
    def check_payment_status(self, reference: str) -> GatewayResponse:
        """Look up a previously initiated collection."""

    def get_name(self) -> str:
        return self.name
