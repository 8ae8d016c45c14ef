from __future__ import annotations

from fastapi import APIRouter

from linkedin_import.api.routers import linkedin

router = APIRouter(prefix="/api/v1")
router.include_router(linkedin.router)
