"""Franchise directory import tasks."""

import logging
import uuid
from datetime import timedelta

from merchant_directory.tasks.celery_app import celery_app
from merchant_directory.config import get_settings
from merchant_directory.models.base import SyncSessionLocal
from merchant_directory.models.import_job import TRIGGER_CRON
from merchant_directory.services.import_coordinator import (
    recover_stale_jobs,
    run_import_job,
    start_import,
)

logger = logging.getLogger(__name__)


@celery_app.task(name="merchant_directory.tasks.import_tasks.run_franchise_import")
def run_franchise_import(job_id: str):
    """Run one import job end to end: paginate, stage, then swap or roll back."""
    db = SyncSessionLocal()
    try:
        job = run_import_job(db, uuid.UUID(job_id))
        if not job:
            return {"job_id": job_id, "status": "missing"}
        return {
            "job_id": job_id,
            "status": job.status,
            "processed_count": job.processed_count,
            "total_count": job.total_count,
        }
    finally:
        db.close()


@celery_app.task(name="merchant_directory.tasks.import_tasks.schedule_franchise_import")
def schedule_franchise_import():
    """Periodic refresh trigger. A no-op while another import is still running."""
    db = SyncSessionLocal()
    try:
        job = start_import(db, TRIGGER_CRON, "cron")
        return {"job_id": str(job.id), "status": job.status}
    finally:
        db.close()


@celery_app.task(name="merchant_directory.tasks.import_tasks.recover_stale_imports")
def recover_stale_imports():
    """Fail imports whose worker disappeared so single-flight is not blocked forever."""
    settings = get_settings()
    db = SyncSessionLocal()
    try:
        recovered = recover_stale_jobs(db, timedelta(minutes=settings.stale_import_minutes))
        if recovered:
            logger.warning(f"Marked {recovered} stale franchise imports as failed")
        return {"recovered": recovered}
    finally:
        db.close()
