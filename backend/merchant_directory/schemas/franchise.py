"""Pydantic schemas for cached franchise records."""

from pydantic import BaseModel, ConfigDict


class OutletRead(BaseModel):
    """Outlet sub-record as stored in the cache."""

    id: str | None = None
    name: str | None = None
    address: str | None = None
    maps_url: str | None = None
    valid_until: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


class FranchiseRead(BaseModel):
    """One active franchise from the directory cache."""

    model_config = ConfigDict(from_attributes=True)

    fid: str | None = None
    name: str | None = None
    company: str | None = None
    company_address: str | None = None
    source_created_at: str | None = None
    source_updated_at: str | None = None
    outlets: list[OutletRead] = []
    outlet_count: int = 0
    active_outlet_count: int = 0
    import_index: int


class FranchiseListResponse(BaseModel):
    franchises: list[FranchiseRead]
    total_count: int
    page: int
    per_page: int


class FranchiseSearchResponse(BaseModel):
    franchises: list[FranchiseRead]
    total_count: int


class FranchiseMetrics(BaseModel):
    total_active_outlets: int = 0


class OutletLookupRead(BaseModel):
    """Live single-outlet lookup against the remote directory."""

    franchise_name: str | None = None
    outlet_name: str | None = None
    found: bool = False
