"""Celery application configuration and beat schedule."""

from celery import Celery
from celery.schedules import crontab

from merchant_directory.config import get_settings

settings = get_settings()

celery_app = Celery(
    "merchants",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=[
        "merchant_directory.tasks.import_tasks",
    ],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    task_track_started=True,
    task_time_limit=3600,
    task_soft_time_limit=3300,
    worker_prefetch_multiplier=1,
    task_acks_late=True,
    task_reject_on_worker_lost=True,
)

celery_app.conf.beat_schedule = {
    "schedule-franchise-import": {
        "task": "merchant_directory.tasks.import_tasks.schedule_franchise_import",
        "schedule": crontab(minute=0, hour=f"*/{settings.franchise_import_schedule_hours}"),
    },
    "recover-stale-imports": {
        "task": "merchant_directory.tasks.import_tasks.recover_stale_imports",
        "schedule": crontab(minute="*/15"),
    },
}
