"""Pydantic schemas package."""

from merchant_directory.schemas.import_job import (
    ImportJobRead,
    ImportJobResponse,
    ManualImportRequest,
)
from merchant_directory.schemas.franchise import (
    OutletRead,
    FranchiseRead,
    FranchiseListResponse,
    FranchiseSearchResponse,
    FranchiseMetrics,
    OutletLookupRead,
)

__all__ = [
    # ImportJob
    "ImportJobRead",
    "ImportJobResponse",
    "ManualImportRequest",
    # Franchise cache
    "OutletRead",
    "FranchiseRead",
    "FranchiseListResponse",
    "FranchiseSearchResponse",
    "FranchiseMetrics",
    "OutletLookupRead",
]
