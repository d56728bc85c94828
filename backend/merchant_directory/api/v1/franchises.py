"""Franchise directory cache API endpoints."""

from typing import Iterator, Literal
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from merchant_directory.models.base import get_db
from merchant_directory.models.import_job import TRIGGER_MANUAL
from merchant_directory.schemas.franchise import (
    FranchiseListResponse,
    FranchiseMetrics,
    FranchiseRead,
    FranchiseSearchResponse,
    OutletLookupRead,
)
from merchant_directory.schemas.import_job import ImportJobRead, ImportJobResponse, ManualImportRequest
from merchant_directory.services import cache_store
from merchant_directory.services.cache_store import CacheSort
from merchant_directory.services.directory_client import DirectoryClient, digits_only
from merchant_directory.services.import_coordinator import Dispatch, get_import_job, start_import

router = APIRouter(prefix="/franchises", tags=["franchises"])

SortKey = Literal["fid", "franchise", "outlets"]
SortDirection = Literal["asc", "desc"]


def get_import_dispatcher() -> Dispatch | None:
    """Background dispatcher for new import jobs (None means the Celery task)."""
    return None


def get_directory_client() -> Iterator[DirectoryClient]:
    client = DirectoryClient()
    try:
        yield client
    finally:
        client.close()


def _sort(sort: SortKey | None, direction: SortDirection) -> CacheSort | None:
    return CacheSort(key=sort, direction=direction) if sort else None


@router.get("", response_model=FranchiseListResponse)
async def list_franchises(
    db: AsyncSession = Depends(get_db),
    page: int = Query(1, ge=1),
    per_page: int = Query(25, ge=1, le=100),
    sort: SortKey | None = Query(None, description="Sort key (default: newest import first)"),
    dir: SortDirection = Query("desc", description="Sort direction"),
):
    """List active cached franchises."""
    records, total = await db.run_sync(
        lambda session: cache_store.list_records(session, page, per_page, _sort(sort, dir))
    )
    return FranchiseListResponse(
        franchises=[FranchiseRead.model_validate(record) for record in records],
        total_count=total,
        page=page,
        per_page=per_page,
    )


@router.get("/search", response_model=FranchiseSearchResponse)
async def search_franchises(
    db: AsyncSession = Depends(get_db),
    q: str = Query(..., min_length=1, description="Search fid, name, company or address"),
    sort: SortKey | None = Query(None),
    dir: SortDirection = Query("desc"),
):
    """Search active cached franchises."""
    records = await db.run_sync(
        lambda session: cache_store.search_records(session, q, _sort(sort, dir))
    )
    return FranchiseSearchResponse(
        franchises=[FranchiseRead.model_validate(record) for record in records],
        total_count=len(records),
    )


@router.get("/metrics", response_model=FranchiseMetrics)
async def get_franchise_metrics(db: AsyncSession = Depends(get_db)):
    """Aggregate outlet counters for the active generation."""
    metrics = await db.run_sync(cache_store.get_metrics)
    return FranchiseMetrics(**metrics)


@router.get("/lookup/{fid}/{oid}", response_model=OutletLookupRead)
def lookup_single_outlet(
    fid: str,
    oid: str,
    client: DirectoryClient = Depends(get_directory_client),
):
    """Live franchise/outlet name lookup, bypassing the cache."""
    if not digits_only(fid) or not digits_only(oid):
        raise HTTPException(status_code=422, detail="Franchise and outlet ids must contain digits")
    result = client.fetch_one(fid, oid)
    if result is None:
        raise HTTPException(status_code=503, detail="Franchise directory unavailable")
    return OutletLookupRead(
        franchise_name=result.franchise_name,
        outlet_name=result.outlet_name,
        found=result.found,
    )


@router.post("/import", response_model=ImportJobResponse)
async def trigger_import(
    body: ManualImportRequest | None = None,
    db: AsyncSession = Depends(get_db),
    dispatch: Dispatch | None = Depends(get_import_dispatcher),
):
    """Trigger a manual refresh. Returns the running job if one exists."""
    requested_by = body.requested_by if body else None
    job = await db.run_sync(
        lambda session: start_import(session, TRIGGER_MANUAL, requested_by, dispatch=dispatch)
    )
    return ImportJobResponse(job=ImportJobRead.model_validate(job))


@router.get("/import/{job_id}", response_model=ImportJobResponse)
async def get_import_status(
    job_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    """Poll an import job's status and progress."""
    job = await db.run_sync(lambda session: get_import_job(session, job_id))
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    return ImportJobResponse(job=ImportJobRead.model_validate(job))
