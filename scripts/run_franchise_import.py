"""Run a franchise directory import inline, without a Celery broker.

Starts an import job the same way the API does (single-flight: if a job is
already running, reports it and exits), then runs the ingestion loop in this
process and prints the final job state.

Usage:
    docker compose exec backend python -m scripts.run_franchise_import
    docker compose exec backend python -m scripts.run_franchise_import --page-size 100 --max-pages 5
    docker compose exec backend python -m scripts.run_franchise_import --status <job-id>
"""

import argparse
import logging
import sys
import uuid

from merchant_directory.models.base import SyncSessionLocal
from merchant_directory.models.import_job import JOB_COMPLETED, TRIGGER_MANUAL
from merchant_directory.services.import_coordinator import get_import_job, run_import_job, start_import

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
logger = logging.getLogger(__name__)


def print_job(job) -> None:
    print(f"\n=== Import {job.id} ===")
    print(f"Status:     {job.status}")
    print(f"Trigger:    {job.trigger} ({job.requested_by or 'unknown'})")
    print(f"Progress:   {job.processed_count} / {job.total_count if job.total_count is not None else '?'}")
    print(f"Started:    {job.started_at}")
    print(f"Finished:   {job.finished_at or '-'}")
    if job.error_message:
        print(f"Error:      {job.error_message}")


def main() -> int:
    parser = argparse.ArgumentParser(description="Refresh the franchise directory cache")
    parser.add_argument("--requested-by", default="cli", help="Actor recorded on the job")
    parser.add_argument("--page-size", type=int, default=None, help="Rows per API page")
    parser.add_argument("--max-pages", type=int, default=None, help="Hard page ceiling")
    parser.add_argument("--status", metavar="JOB_ID", help="Only show the status of an existing job")
    args = parser.parse_args()

    db = SyncSessionLocal()
    try:
        if args.status:
            job = get_import_job(db, uuid.UUID(args.status))
            if not job:
                logger.error(f"Import job {args.status} not found")
                return 1
            print_job(job)
            return 0

        started = []
        job = start_import(db, TRIGGER_MANUAL, args.requested_by, dispatch=started.append)
        if not started:
            logger.warning(f"Import {job.id} is already running; not starting another")
            print_job(job)
            return 1

        job = run_import_job(db, job.id, page_size=args.page_size, max_pages=args.max_pages)
        print_job(job)
        return 0 if job.status == JOB_COMPLETED else 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
