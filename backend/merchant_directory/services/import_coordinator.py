"""Import job coordination: single-flight start, generation swap and rollback."""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Callable

from sqlalchemy import case, delete, func, select, update
from sqlalchemy.orm import Session

from merchant_directory.models.cache_record import CacheRecord
from merchant_directory.models.import_job import (
    ImportJob,
    JOB_COMPLETED,
    JOB_FAILED,
    JOB_RUNNING,
)
from merchant_directory.services.directory_client import DirectoryClient
from merchant_directory.services.ingestion import IngestionLoop

logger = logging.getLogger(__name__)

Dispatch = Callable[[uuid.UUID], None]


def _dispatch_celery(job_id: uuid.UUID) -> None:
    from merchant_directory.tasks.import_tasks import run_franchise_import

    run_franchise_import.delay(str(job_id))


def get_running_job(db: Session) -> ImportJob | None:
    return db.execute(
        select(ImportJob)
        .where(ImportJob.status == JOB_RUNNING)
        .order_by(ImportJob.started_at.desc())
        .limit(1)
    ).scalar_one_or_none()


def get_import_job(db: Session, job_id: uuid.UUID) -> ImportJob | None:
    return db.get(ImportJob, job_id, populate_existing=True)


def start_import(
    db: Session,
    trigger: str,
    requested_by: str | None,
    dispatch: Dispatch | None = None,
) -> ImportJob:
    """Start a directory refresh unless one is already running.

    The job row is committed before the background task is dispatched, so the
    caller always has an id to poll. A running job is returned unchanged.
    If dispatching fails the job is returned already failed.
    """
    existing = get_running_job(db)
    if existing:
        logger.info(f"Import {existing.id} already running, ignoring {trigger} trigger from {requested_by}")
        return existing

    job = ImportJob(
        id=uuid.uuid4(),
        status=JOB_RUNNING,
        processed_count=0,
        total_count=None,
        started_at=datetime.now(timezone.utc),
        trigger=trigger,
        requested_by=requested_by,
    )
    db.add(job)
    db.commit()
    logger.info(f"Started franchise import {job.id} ({trigger}, requested by {requested_by})")

    try:
        (dispatch or _dispatch_celery)(job.id)
    except Exception as e:
        logger.exception(f"Failed to dispatch franchise import {job.id}")
        fail_import(db, job.id, f"Could not queue import: {e}")
        return get_import_job(db, job.id)
    return job


def finalize_import(db: Session, job_id: uuid.UUID, processed_count: int) -> None:
    """Swap the job's staged rows in as the active generation.

    Activation, stale-row deletion and the job status change commit together,
    so readers see either the old generation or the new one, never a mix.
    """
    db.execute(
        update(CacheRecord).values(
            is_active=case((CacheRecord.job_id == job_id, True), else_=False)
        )
        .execution_options(synchronize_session=False)
    )
    db.execute(
        delete(CacheRecord)
        .where(CacheRecord.job_id != job_id)
        .execution_options(synchronize_session=False)
    )

    job = db.get(ImportJob, job_id)
    job.status = JOB_COMPLETED
    job.finished_at = datetime.now(timezone.utc)
    job.processed_count = processed_count
    if job.total_count is None:
        job.total_count = processed_count
    db.commit()
    logger.info(f"Franchise import {job_id} completed: {processed_count} records active")


def fail_import(db: Session, job_id: uuid.UUID, error: BaseException | str) -> None:
    """Discard the job's staged rows and mark it failed; the active generation is untouched."""
    db.rollback()
    db.execute(
        delete(CacheRecord)
        .where(CacheRecord.job_id == job_id)
        .execution_options(synchronize_session=False)
    )

    job = db.get(ImportJob, job_id)
    if job is not None:
        job.status = JOB_FAILED
        job.finished_at = datetime.now(timezone.utc)
        job.error_message = str(error)[:2000] or error.__class__.__name__
    db.commit()
    logger.error(f"Franchise import {job_id} failed: {error}")


def _has_staged_rows(db: Session, job_id: uuid.UUID) -> bool:
    count = db.execute(
        select(func.count(CacheRecord.id)).where(CacheRecord.job_id == job_id)
    ).scalar()
    return bool(count)


def run_import_job(
    db: Session,
    job_id: uuid.UUID,
    client: DirectoryClient | None = None,
    page_size: int | None = None,
    max_pages: int | None = None,
) -> ImportJob | None:
    """Execute one import to completion or failure and return the final job row."""
    job = get_import_job(db, job_id)
    if job is None:
        logger.error(f"Import job {job_id} not found")
        return None
    if job.status != JOB_RUNNING:
        logger.warning(f"Import job {job_id} is already {job.status}, not running it again")
        return job

    if job.processed_count or job.total_count is not None or _has_staged_rows(db, job_id):
        # A redelivered task finds the rows of the attempt that died mid-import
        fail_import(db, job_id, "Import was interrupted before it finished; staged rows discarded.")
        return get_import_job(db, job_id)

    owns_client = client is None
    client = client or DirectoryClient()
    try:
        loop = IngestionLoop(db, client, page_size=page_size, max_pages=max_pages)
        processed_count = loop.run(job_id)
        finalize_import(db, job_id, processed_count)
    except Exception as e:
        logger.exception(f"Failed to import franchise data for job {job_id}")
        fail_import(db, job_id, e)
    finally:
        if owns_client:
            client.close()

    return get_import_job(db, job_id)


def recover_stale_jobs(db: Session, max_age: timedelta) -> int:
    """Fail running jobs older than ``max_age``.

    A worker that dies mid-import leaves its job running forever, which would
    block every later trigger. Returns the number of jobs recovered.
    """
    cutoff = datetime.now(timezone.utc) - max_age
    stale_jobs = db.execute(
        select(ImportJob).where(
            ImportJob.status == JOB_RUNNING,
            ImportJob.started_at < cutoff,
        )
    ).scalars().all()

    for job in stale_jobs:
        fail_import(db, job.id, f"Import did not finish within {max_age}; marked failed.")

    return len(stale_jobs)


def get_last_completed_import(db: Session) -> ImportJob | None:
    return db.execute(
        select(ImportJob)
        .where(ImportJob.status == JOB_COMPLETED)
        .order_by(ImportJob.finished_at.desc())
        .limit(1)
    ).scalar_one_or_none()


def last_import_check(db: Session, max_age: timedelta) -> dict:
    """Health entry for the active generation: ok while the last completed import is recent."""
    job = get_last_completed_import(db)
    if job is None or job.finished_at is None:
        return {"ok": False, "message": "No completed franchise import"}

    finished_at = job.finished_at
    if finished_at.tzinfo is None:
        finished_at = finished_at.replace(tzinfo=timezone.utc)
    age = datetime.now(timezone.utc) - finished_at
    return {
        "ok": age <= max_age,
        "job_id": str(job.id),
        "finished_at": finished_at.isoformat(),
        "age_minutes": int(age.total_seconds() // 60),
    }
