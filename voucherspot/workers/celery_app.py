import os

from celery import Celery
from celery.schedules import crontab

celery = Celery(
    "voucherspot",
    broker=os.getenv("CELERY_BROKER_URL", os.getenv("REDIS_URL", "redis://localhost:6379/0")),
    backend=os.getenv("CELERY_RESULT_BACKEND", os.getenv("REDIS_URL", "redis://localhost:6379/0")),
    include=["voucherspot.workers.tasks"],
)

celery.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="Africa/Kampala",
    enable_utc=True,
    worker_prefetch_multiplier=1,
    task_acks_late=True,
    beat_schedule={
        "check-pending-transactions": {
            "task": "voucherspot.check_pending_transactions",
            "schedule": crontab(minute="*/2"),
        },
        "cleanup-expired-vouchers": {
            "task": "voucherspot.cleanup_expired_vouchers",
            "schedule": crontab(minute="*/30"),
        },
        "refresh-dashboard-stats": {
            "task": "voucherspot.refresh_dashboard_stats",
            "schedule": crontab(minute=0),
        },
        "cleanup-old-logs": {
            "task": "voucherspot.cleanup_old_logs",
            "schedule": crontab(hour=0, minute=30),
        },
    },
)


def init_celery(app):
    celery.conf.update(
        task_always_eager=app.config.get("CELERY_TASK_ALWAYS_EAGER", False),
    )

    class ContextTask(celery.Task):
        abstract = True

        def __call__(self, *args, **kwargs):
            with app.app_context():
                return super().__call__(*args, **kwargs)

    celery.Task = ContextTask
    return celery
