from .base import (
    PENDING_LIKE_STATUSES,
    TERMINAL_STATUSES,
    GatewayResponse,
    PaymentGateway,
    TransactionStatus,
    is_terminal_status,
)
from .cinemaug import CinemaUGGateway
from .factory import PaymentGatewayFactory
from .yopayments import YoPaymentsGateway

__all__ = [
    "PENDING_LIKE_STATUSES",
    "TERMINAL_STATUSES",
    "CinemaUGGateway",
    "GatewayResponse",
    "PaymentGateway",
    "PaymentGatewayFactory",
    "TransactionStatus",
    "YoPaymentsGateway",
    "is_terminal_status",
]
