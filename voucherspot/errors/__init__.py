from .domain import (
    ChargeOverlapError,
    DomainError,
    GatewayError,
    NotFoundError,
    PermissionDenied,
    RouterError,
    UnsupportedGatewayError,
    ValidationError,
)

__all__ = [
    "ChargeOverlapError",
    "DomainError",
    "GatewayError",
    "NotFoundError",
    "PermissionDenied",
    "RouterError",
    "UnsupportedGatewayError",
    "ValidationError",
]
