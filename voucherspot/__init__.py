"""
Flask application factory for the voucher back office.
"""

import logging

import sentry_sdk
from flask import Flask
from sentry_sdk.integrations.flask import FlaskIntegration

from voucherspot.config import get_config
from voucherspot.error_handlers import register_error_handlers
from voucherspot.extensions import cors, init_extensions
from voucherspot.logging_config import setup_logging
from voucherspot.middleware.request_id import init_request_id_middleware

logger = logging.getLogger(__name__)


def setup_sentry(app):
    """Initialize Sentry error tracking"""
    sentry_dsn = app.config.get("SENTRY_DSN")

    if sentry_dsn and app.config.get("ENVIRONMENT") == "production":
        sentry_sdk.init(
            dsn=sentry_dsn,
            integrations=[FlaskIntegration()],
            traces_sample_rate=0.1,
            environment="production",
            release=app.config.get("APP_VERSION", "1.0.0"),
            send_default_pii=False,
        )
        app.logger.info("Sentry error tracking initialized")


def setup_cors(app):
    """CORS for API routes only; the captive portal is same-origin."""
    origins = app.config.get("CORS_ORIGINS", "*")
    if origins != "*":
        origins = [o.strip() for o in origins.split(",") if o.strip()]

    if origins == "*" and app.config.get("ENVIRONMENT") == "production":
        app.logger.warning("Wildcard CORS origin in production")

    cors.init_app(app, resources={
        r"/api/*": {
            "origins": origins,
            "allow_headers": ["Content-Type", "Authorization", "X-Requested-With", "Accept", "Origin"],
            "methods": ["GET", "POST", "PUT", "DELETE", "OPTIONS"],
            "expose_headers": ["X-Request-ID", "Content-Disposition"],
            "max_age": 86400,
        },
    })


def register_commands(app):
    from voucherspot.cli import register_cli

    register_cli(app)


def create_app(config_name=None):
    app = Flask(__name__)
    app.config.from_object(get_config(config_name))

    setup_logging(app)
    setup_sentry(app)
    setup_cors(app)

    init_extensions(app)
    init_request_id_middleware(app)
    register_error_handlers(app)

    from voucherspot.routes import register_routes

    register_routes(app)
    register_commands(app)

    logger.info(
        "Application created",
        extra={"environment": app.config.get("ENVIRONMENT")},
    )
    return app
