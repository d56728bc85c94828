"""API v1 router aggregation."""

from fastapi import APIRouter

from merchant_directory.api.v1.franchises import router as franchises_router
from merchant_directory.api.v1.cron import router as cron_router

router = APIRouter(prefix="/api/v1")

router.include_router(franchises_router)
router.include_router(cron_router)
