from __future__ import annotations

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from linkedin_import.db.session import get_db_session
from linkedin_import.services.linkedin.application import LinkedInImportService
from linkedin_import.services.linkedin.client import LinkedInClient
from linkedin_import.services.linkedin.persistence import ProfileSink, SqlProfileSink
from linkedin_import.services.linkedin.scraper import (
    LiveProfileScraper,
    ProfileScraper,
    build_profile_scraper,
)


def get_linkedin_client() -> LinkedInClient:
    return LinkedInClient()


def get_profile_scraper(
    client: LinkedInClient = Depends(get_linkedin_client),
) -> ProfileScraper | None:
    return build_profile_scraper(client)


def get_page_scraper(
    client: LinkedInClient = Depends(get_linkedin_client),
) -> ProfileScraper:
    # The scrape endpoint is the RPC itself, so it always parses in-process.
    return LiveProfileScraper(client=client)


def get_profile_sink(
    db_session: AsyncSession = Depends(get_db_session),
) -> ProfileSink:
    return SqlProfileSink(db_session)


def get_import_service(
    client: LinkedInClient = Depends(get_linkedin_client),
    scraper: ProfileScraper | None = Depends(get_profile_scraper),
    sink: ProfileSink = Depends(get_profile_sink),
) -> LinkedInImportService:
    return LinkedInImportService(client=client, scraper=scraper, sink=sink)


def get_exchange_service(
    client: LinkedInClient = Depends(get_linkedin_client),
    scraper: ProfileScraper | None = Depends(get_profile_scraper),
) -> LinkedInImportService:
    return LinkedInImportService(client=client, scraper=scraper)
