class DomainError(Exception):
    status_code = 400

    def __init__(self, message, payload=None):
        super().__init__(message)
        self.message = message
        self.payload = payload


class ValidationError(DomainError):
    status_code = 422

    def __init__(self, errors, message="The given data was invalid."):
        super().__init__(message, payload={"errors": errors})
        self.errors = errors


class NotFoundError(DomainError):
    status_code = 404


class PermissionDenied(DomainError):
    status_code = 403


class GatewayError(DomainError):
    status_code = 502


class UnsupportedGatewayError(DomainError, ValueError):
    pass


class RouterError(DomainError):
    status_code = 502


class ChargeOverlapError(DomainError):
    status_code = 422
