"""Read API over the active franchise cache generation."""

import logging
from dataclasses import dataclass
from typing import Literal

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from merchant_directory.models.cache_record import CacheRecord

logger = logging.getLogger(__name__)

SortKey = Literal["fid", "franchise", "outlets"]
SortDirection = Literal["asc", "desc"]

DEFAULT_PER_PAGE = 25

SORT_COLUMNS = {
    "fid": CacheRecord.fid,
    "franchise": CacheRecord.name,
    "outlets": CacheRecord.outlet_count,
}


@dataclass(frozen=True)
class CacheSort:
    key: SortKey = "fid"
    direction: SortDirection = "desc"


def _order_by(sort: CacheSort | None) -> list:
    # Newest-imported first is the default and the tie-breaker
    freshness = CacheRecord.import_index.desc()
    if sort is None or sort.key not in SORT_COLUMNS:
        return [freshness]
    column = SORT_COLUMNS[sort.key]
    ordered = column.asc() if sort.direction == "asc" else column.desc()
    return [ordered.nulls_last(), freshness]


def _active():
    return CacheRecord.is_active == True  # noqa: E712


def list_records(
    db: Session,
    page: int,
    per_page: int,
    sort: CacheSort | None = None,
) -> tuple[list[CacheRecord], int]:
    """Return one page of active franchises that have outlets, plus the total."""
    safe_page = page if isinstance(page, int) and page > 0 else 1
    safe_per_page = per_page if isinstance(per_page, int) and per_page > 0 else DEFAULT_PER_PAGE
    base_filter = (_active(), CacheRecord.outlet_count >= 1)

    total = db.execute(
        select(func.count(CacheRecord.id)).where(*base_filter)
    ).scalar() or 0

    query = (
        select(CacheRecord)
        .where(*base_filter)
        .order_by(*_order_by(sort))
        .offset((safe_page - 1) * safe_per_page)
        .limit(safe_per_page)
    )
    records = db.execute(query).scalars().all()
    return list(records), total


def search_records(db: Session, query: str, sort: CacheSort | None = None) -> list[CacheRecord]:
    """Active franchises whose fid, name, company or company address contain ``query``."""
    term = (query or "").strip()
    if not term:
        return []

    stmt = (
        select(CacheRecord)
        .where(
            _active(),
            or_(
                CacheRecord.fid.icontains(term, autoescape=True),
                CacheRecord.name.icontains(term, autoescape=True),
                CacheRecord.company.icontains(term, autoescape=True),
                CacheRecord.company_address.icontains(term, autoescape=True),
            ),
        )
        .order_by(*_order_by(sort))
    )
    return list(db.execute(stmt).scalars().all())


def get_metrics(db: Session) -> dict[str, int]:
    """Aggregate counters computed from ingestion-time outlet activity."""
    total = db.execute(
        select(func.coalesce(func.sum(CacheRecord.active_outlet_count), 0)).where(_active())
    ).scalar()
    return {"total_active_outlets": int(total or 0)}
