import logging
import logging.config
import os
from datetime import datetime

from flask import g, has_request_context, request
from pythonjsonlogger import jsonlogger

LOG_FILE_NAME = "voucherspot.log"

JSON_FORMAT = (
    "%(asctime)s "
    "%(levelname)s "
    "%(name)s "
    "%(message)s "
    "%(module)s "
    "%(funcName)s "
    "%(lineno)d"
)

NOISY_LOGGERS = ("werkzeug", "sqlalchemy.engine", "urllib3", "librouteros")


class RequestIdFilter(logging.Filter):
    """
    Inject request_id into every log record if present.
    """

    def filter(self, record):
        record.request_id = g.get("request_id") if has_request_context() else None
        return True


def _build_config(log_level, log_dir=None, with_request_id=True):
    handlers = {
        "default": {
            "class": "logging.StreamHandler",
            "formatter": "json",
        },
    }
    if with_request_id:
        handlers["default"]["filters"] = ["request_id"]

    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        handlers["file"] = {
            "class": "logging.handlers.TimedRotatingFileHandler",
            "formatter": "json",
            "filename": os.path.join(log_dir, LOG_FILE_NAME),
            "when": "midnight",
            "encoding": "utf-8",
        }
        if with_request_id:
            handlers["file"]["filters"] = ["request_id"]

    fmt = JSON_FORMAT + " %(request_id)s" if with_request_id else JSON_FORMAT

    config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {
                "()": jsonlogger.JsonFormatter,
                "fmt": fmt,
            },
        },
        "handlers": handlers,
        "root": {
            "level": log_level,
            "handlers": list(handlers),
        },
        "loggers": {
            name: {"level": "WARNING"} for name in NOISY_LOGGERS
        },
    }
    if with_request_id:
        config["filters"] = {"request_id": {"()": RequestIdFilter}}
    return config


def setup_logging(app):
    """Configure logging for the application"""
    log_level = app.config.get("LOG_LEVEL", os.getenv("LOG_LEVEL", "INFO")).upper()

    logging.config.dictConfig(
        _build_config(log_level, app.config.get("LOG_DIR"))
    )

    @app.before_request
    def log_request():
        if app.config.get("DEBUG") or app.config.get("LOG_REQUESTS"):
            g.start_time = datetime.now()
            app.logger.info(
                f"Request: {request.method} {request.path}",
                extra={"ip": request.remote_addr},
            )

    @app.after_request
    def log_response(response):
        if (app.config.get("DEBUG") or app.config.get("LOG_REQUESTS")) and "start_time" in g:
            duration = (datetime.now() - g.start_time).total_seconds() * 1000
            app.logger.info(
                f"Response: {request.method} {request.path} - {response.status_code}",
                extra={
                    "status_code": response.status_code,
                    "duration_ms": round(duration, 2),
                },
            )
        return response

    return app


def configure_logging_for_worker():
    """Configure logging for the Celery worker and CLI scripts"""
    log_level = os.getenv("LOG_LEVEL", "INFO").upper()
    logging.config.dictConfig(
        _build_config(log_level, os.getenv("LOG_DIR"), with_request_id=False)
    )
