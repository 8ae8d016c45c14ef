from __future__ import annotations

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, HTTPException

from linkedin_import.api.errors import register_api_exception_handlers
from linkedin_import.api.router import router as api_router
from linkedin_import.db.session import check_database, close_engine
from linkedin_import.http.middleware import RequestLoggingMiddleware, parse_skip_paths
from linkedin_import.logging_config import configure_logging, parse_redact_fields
from linkedin_import.logging_utils import structured_log
from linkedin_import.settings import settings

logger = logging.getLogger(__name__)

configure_logging(
    level=settings.log_level,
    log_format=settings.log_format,
    redact_fields=parse_redact_fields(settings.log_redact_fields),
    include_uvicorn_access=settings.log_uvicorn_access,
)


def _log_startup() -> None:
    structured_log(
        logger,
        "info",
        "app.startup",
        log_format=settings.log_format,
        credentials_configured=bool(settings.linkedin_client_id and settings.linkedin_client_secret),
        scrape_enabled=settings.linkedin_scrape_enabled,
        scrape_mode="remote" if settings.linkedin_scraper_url else "in_process",
        retry_max_attempts=settings.linkedin_retry_max_attempts,
    )


@asynccontextmanager
async def lifespan(_: FastAPI):
    _log_startup()
    yield
    await close_engine()


app = FastAPI(title=settings.app_name, lifespan=lifespan)
register_api_exception_handlers(app)
app.add_middleware(
    RequestLoggingMiddleware,
    log_requests=settings.log_requests,
    skip_paths=parse_skip_paths(settings.log_request_skip_paths),
)
app.include_router(api_router)


@app.get("/healthz")
async def healthz() -> dict[str, str]:
    if await check_database():
        return {"status": "ok"}
    raise HTTPException(status_code=500, detail="database unavailable")
