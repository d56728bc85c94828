"""Tests for the cache store read API."""

import uuid
from datetime import datetime, timezone

import pytest

from merchant_directory.models.cache_record import CacheRecord
from merchant_directory.models.import_job import ImportJob
from merchant_directory.services import cache_store
from merchant_directory.services.cache_store import CacheSort


@pytest.fixture
def seeded(db):
    active_job = ImportJob(id=uuid.uuid4(), status="completed", trigger="cron",
                           started_at=datetime.now(timezone.utc))
    staged_job = ImportJob(id=uuid.uuid4(), status="running", trigger="manual",
                           started_at=datetime.now(timezone.utc))
    db.add_all([active_job, staged_job])
    db.flush()

    rows = [
        # fid, name, company, outlets, active outlets
        ("300", "Bakso Boss", "Boss Foods", 3, 2),
        ("100", "Kopi Corner", "Kopi 50% Sdn Bhd", 1, 1),
        ("200", "Roti Raya", None, 5, 0),
        (None, "Teh Tarik Co", "Tarik Group", 2, 2),
        ("400", "No Outlets Yet", "Empty Ltd", 0, 0),
    ]
    for index, (fid, name, company, outlets, active) in enumerate(rows):
        db.add(CacheRecord(
            fid=fid,
            name=name,
            company=company,
            outlets=[{"id": str(n), "name": f"{name} #{n}"} for n in range(outlets)],
            outlet_count=outlets,
            active_outlet_count=active,
            import_index=index,
            job_id=active_job.id,
            is_active=True,
        ))
    # A staged row from a job that has not been swapped in yet
    db.add(CacheRecord(fid="999", name="Kopi Staged", outlets=[{"id": "1"}], outlet_count=1,
                       active_outlet_count=1, import_index=0, job_id=staged_job.id, is_active=False))
    db.commit()
    return active_job


def names(records):
    return [r.name for r in records]


class TestList:
    def test_default_order_is_newest_import_first(self, db, seeded):
        records, total = cache_store.list_records(db, 1, 25)
        assert total == 4
        assert names(records) == ["Teh Tarik Co", "Roti Raya", "Kopi Corner", "Bakso Boss"]

    def test_inactive_and_outletless_rows_are_hidden(self, db, seeded):
        records, _ = cache_store.list_records(db, 1, 25)
        assert "Kopi Staged" not in names(records)
        assert "No Outlets Yet" not in names(records)

    def test_pagination(self, db, seeded):
        first, total = cache_store.list_records(db, 1, 3)
        second, _ = cache_store.list_records(db, 2, 3)
        assert total == 4
        assert len(first) == 3
        assert names(second) == ["Bakso Boss"]

    def test_invalid_paging_falls_back(self, db, seeded):
        records, _ = cache_store.list_records(db, 0, -5)
        assert len(records) == 4

    def test_sort_by_fid_ascending_puts_missing_last(self, db, seeded):
        records, _ = cache_store.list_records(db, 1, 25, CacheSort("fid", "asc"))
        assert [r.fid for r in records] == ["100", "200", "300", None]

    def test_sort_by_outlets_descending(self, db, seeded):
        records, _ = cache_store.list_records(db, 1, 25, CacheSort("outlets", "desc"))
        assert [r.outlet_count for r in records] == [5, 3, 2, 1]

    def test_sort_by_franchise_name(self, db, seeded):
        records, _ = cache_store.list_records(db, 1, 25, CacheSort("franchise", "asc"))
        assert names(records) == ["Bakso Boss", "Kopi Corner", "Roti Raya", "Teh Tarik Co"]


class TestSearch:
    def test_matches_name_case_insensitively(self, db, seeded):
        assert names(cache_store.search_records(db, "kopi")) == ["Kopi Corner"]

    def test_matches_fid_and_company(self, db, seeded):
        assert names(cache_store.search_records(db, "300")) == ["Bakso Boss"]
        assert names(cache_store.search_records(db, "tarik group")) == ["Teh Tarik Co"]

    def test_wildcards_are_literal(self, db, seeded):
        assert names(cache_store.search_records(db, "50%")) == ["Kopi Corner"]
        assert cache_store.search_records(db, "_") == []

    def test_includes_outletless_rows(self, db, seeded):
        assert names(cache_store.search_records(db, "empty")) == ["No Outlets Yet"]

    def test_blank_query(self, db, seeded):
        assert cache_store.search_records(db, "   ") == []

    def test_sorted(self, db, seeded):
        records = cache_store.search_records(db, "o", CacheSort("franchise", "desc"))
        assert names(records) == ["Teh Tarik Co", "Roti Raya", "No Outlets Yet", "Kopi Corner", "Bakso Boss"]


class TestMetrics:
    def test_sums_active_outlets_of_active_rows_only(self, db, seeded):
        assert cache_store.get_metrics(db) == {"total_active_outlets": 5}

    def test_empty_cache(self, db):
        assert cache_store.get_metrics(db) == {"total_active_outlets": 0}
