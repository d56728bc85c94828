"""Scheduler-facing trigger endpoints."""

import secrets

from fastapi import APIRouter, Depends, Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from merchant_directory.api.v1.franchises import get_import_dispatcher
from merchant_directory.config import get_settings
from merchant_directory.models.base import get_db
from merchant_directory.models.import_job import TRIGGER_CRON
from merchant_directory.schemas.import_job import ImportJobRead, ImportJobResponse
from merchant_directory.services.import_coordinator import Dispatch, start_import

router = APIRouter(prefix="/cron", tags=["cron"])


def require_cron_secret(x_cron_secret: str | None = Header(None)) -> None:
    """Reject callers that do not present the configured cron secret."""
    secret = get_settings().franchise_import_cron_secret
    if not secret or not x_cron_secret or not secrets.compare_digest(secret, x_cron_secret):
        raise HTTPException(status_code=401, detail="Unauthorized")


@router.post("/franchise-import", response_model=ImportJobResponse, dependencies=[Depends(require_cron_secret)])
async def cron_franchise_import(
    db: AsyncSession = Depends(get_db),
    dispatch: Dispatch | None = Depends(get_import_dispatcher),
):
    """External scheduler hook for the periodic directory refresh."""
    job = await db.run_sync(lambda session: start_import(session, TRIGGER_CRON, "cron", dispatch=dispatch))
    return ImportJobResponse(job=ImportJobRead.model_validate(job))
