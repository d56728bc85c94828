"""Franchise directory ingestion loop: paginates the API into a staged generation."""

import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import update
from sqlalchemy.orm import Session

from merchant_directory.config import get_settings
from merchant_directory.models.cache_record import CacheRecord
from merchant_directory.models.import_job import ImportJob
from merchant_directory.services.directory_client import DirectoryClient
from merchant_directory.services.record_normalizer import normalize_franchise

logger = logging.getLogger(__name__)


class ImportAbortedError(Exception):
    """Raised when an import cannot produce a trustworthy generation."""
    pass


class IngestionLoop:
    """Fetch, normalize and stage every franchise page for one import job.

    Rows are written with ``is_active=False`` so readers never see them until
    the coordinator swaps the generation in. Progress is committed after every
    page, in page order.
    """

    def __init__(
        self,
        db: Session,
        client: DirectoryClient,
        page_size: int | None = None,
        max_pages: int | None = None,
    ):
        settings = get_settings()
        self.db = db
        self.client = client
        self.page_size = page_size if page_size and page_size > 0 else settings.franchise_import_page_size
        self.max_pages = max_pages if max_pages and max_pages > 0 else settings.franchise_import_max_pages

    def run(self, job_id: uuid.UUID) -> int:
        """Run pagination to exhaustion. Returns the number of records staged."""
        processed_count = 0
        import_index = 0
        total_count_set = False
        received_any_rows = False
        page = 1

        while True:
            response = self.client.fetch_page(page, self.page_size)
            rows = response.rows

            if page == 1 and not rows and response.total_count is None:
                raise ImportAbortedError("Franchise API returned no data.")
            if rows:
                received_any_rows = True

            if not total_count_set and response.total_count is not None:
                total_count_set = True
                self._update_job(job_id, total_count=response.total_count)

            if rows:
                now = datetime.now(timezone.utc)
                records = []
                for raw in rows:
                    normalized = normalize_franchise(raw, now=now)
                    if normalized is None:
                        continue
                    records.append(CacheRecord(
                        **normalized,
                        raw_payload=raw,
                        import_index=import_index,
                        job_id=job_id,
                        is_active=False,
                    ))
                    import_index += 1

                dropped = len(rows) - len(records)
                if dropped:
                    logger.warning(f"Import {job_id}: dropped {dropped} unrecognizable rows on page {page}")

                self.db.add_all(records)
                processed_count += len(records)
                self._update_job(job_id, processed_count=processed_count)

            logger.info(
                f"Import {job_id}: page {page} -> {len(rows)} rows, "
                f"{processed_count} processed (total={response.total_count})"
            )

            if response.total_pages and page >= response.total_pages:
                break
            if len(rows) < response.per_page:
                break
            if page >= self.max_pages:
                logger.warning(f"Import {job_id}: reached max page limit {self.max_pages}")
                break
            page += 1

        if not received_any_rows:
            raise ImportAbortedError("No franchise data imported.")

        return processed_count

    def _update_job(self, job_id: uuid.UUID, **values) -> None:
        # Committing here makes every page visible to status pollers immediately
        self.db.execute(update(ImportJob).where(ImportJob.id == job_id).values(**values))
        self.db.commit()
