"""Pydantic schemas for ImportJob model."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ImportJobRead(BaseModel):
    """Import job status as seen by pollers."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    status: Literal["running", "completed", "failed"]
    processed_count: int = 0
    total_count: int | None = None
    started_at: datetime
    finished_at: datetime | None = None
    error_message: str | None = None
    trigger: Literal["cron", "manual"]
    requested_by: str | None = None


class ImportJobResponse(BaseModel):
    """Envelope returned by the trigger and status endpoints."""

    job: ImportJobRead


class ManualImportRequest(BaseModel):
    """Body of a manual "refresh now" request."""

    requested_by: str | None = Field(None, max_length=255)
