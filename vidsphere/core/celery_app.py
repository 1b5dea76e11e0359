"""Celery application for background tasks (counter reconciliation)."""
from celery import Celery

from vidsphere.core.config import settings

celery_app = Celery(
    "vidsphere",
    broker=settings.CELERY_BROKER_URL,
    include=["vidsphere.workers.reconciliation"],
)
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    beat_schedule={
        "reconcile-counters": {
            "task": "vidsphere.reconcile_counters",
            "schedule": float(settings.RECONCILE_INTERVAL_SECONDS),
        },
    },
)
