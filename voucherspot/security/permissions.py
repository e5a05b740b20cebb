from functools import wraps

from flask_jwt_extended import get_jwt, verify_jwt_in_request

from voucherspot.errors import PermissionDenied

VIEW_PAYMENTS = "view_payments"
EXPORT_PAYMENTS = "export_payments"
VIEW_REVENUE_STATS = "view_revenue_stats"
VIEW_ROUTER_LOGS = "view_router_logs"
TEST_PAYMENTS = "test_payments"
MANAGE_CHARGES = "manage_charges"

ALL_PERMISSIONS = (
    VIEW_PAYMENTS,
    EXPORT_PAYMENTS,
    VIEW_REVENUE_STATS,
    VIEW_ROUTER_LOGS,
    TEST_PAYMENTS,
    MANAGE_CHARGES,
)


def current_permissions():
    return set(get_jwt().get("permissions") or [])


def has_permission(permission):
    return permission in current_permissions()


def require_permission(permission, message=None):
    """
    Decorator for JWT-protected views that need a permission claim.
    Use as: @require_permission(VIEW_PAYMENTS)
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            verify_jwt_in_request()
            if not has_permission(permission):
                raise PermissionDenied(
                    message or f"You are not authorized to perform this action ({permission}).",
                    payload={"permission": permission},
                )
            return func(*args, **kwargs)
        return wrapper
    return decorator
