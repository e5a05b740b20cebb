"""Celery entry point: ``celery -A voucherspot.workers.worker worker -B``."""

from voucherspot import create_app
from voucherspot.logging_config import configure_logging_for_worker
from voucherspot.workers.celery_app import celery, init_celery

flask_app = create_app()
configure_logging_for_worker()
init_celery(flask_app)

__all__ = ["celery", "flask_app"]
