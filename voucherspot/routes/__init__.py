import logging

from voucherspot.health import health_bp
from voucherspot.routes import (
    auth_routes,
    charge_routes,
    configuration_routes,
    hotspot_routes,
    payment_routes,
    payment_test_routes,
    report_routes,
    transaction_routes,
    voucher_routes,
)

logger = logging.getLogger(__name__)

BLUEPRINTS = (
    auth_routes.bp,
    payment_routes.bp,
    configuration_routes.bp,
    voucher_routes.bp,
    transaction_routes.bp,
    charge_routes.bp,
    report_routes.bp,
    payment_test_routes.bp,
    hotspot_routes.bp,
    health_bp,
)


def register_routes(app):
    """Register all blueprints"""
    for blueprint in BLUEPRINTS:
        app.register_blueprint(blueprint)
    logger.info("Registered API blueprints", extra={"count": len(BLUEPRINTS)})
    return app
