from __future__ import annotations

import logging
from typing import Any, Protocol

from linkedin_import.logging_utils import structured_log
from linkedin_import.services.linkedin.client import LinkedInClient
from linkedin_import.services.linkedin.constants import (
    PROFILE_URL_MARKER,
    RAW_BODY_LOG_MAX_CHARS,
    SCRAPE_ACCEPT_HEADER,
    SCRAPE_ACCEPT_LANGUAGE,
)
from linkedin_import.services.linkedin.errors import ScrapeValidationError
from linkedin_import.services.linkedin.scrape_parser import parse_profile_html
from linkedin_import.services.linkedin.types import (
    EducationEntry,
    ExperienceEntry,
    ScrapedFragment,
    ScrapeResult,
)
from linkedin_import.settings import settings

logger = logging.getLogger(__name__)


class ProfileScraper(Protocol):
    async def scrape(self, profile_url: str) -> ScrapeResult: ...


def validate_profile_url(profile_url: str | None) -> str:
    value = (profile_url or "").strip()
    if not value:
        raise ScrapeValidationError("Missing profileUrl.")
    if PROFILE_URL_MARKER not in value.lower():
        raise ScrapeValidationError("Invalid LinkedIn profile URL.", detail=value)
    return value


class LiveProfileScraper:
    """Fetches the public profile page and parses it in-process."""

    def __init__(
        self,
        *,
        client: LinkedInClient,
        user_agent: str | None = None,
        timeout_seconds: float | None = None,
        max_html_bytes: int | None = None,
    ) -> None:
        self._client = client
        self._user_agent = (user_agent or settings.linkedin_scrape_user_agent).strip()
        self._timeout_seconds = (
            float(settings.linkedin_scrape_timeout_seconds) if timeout_seconds is None else float(timeout_seconds)
        )
        self._max_html_bytes = (
            int(settings.linkedin_scrape_max_html_bytes) if max_html_bytes is None else int(max_html_bytes)
        )

    def _request_headers(self) -> dict[str, str]:
        return {
            "User-Agent": self._user_agent,
            "Accept": SCRAPE_ACCEPT_HEADER,
            "Accept-Language": SCRAPE_ACCEPT_LANGUAGE,
            "Connection": "keep-alive",
            "Upgrade-Insecure-Requests": "1",
        }

    async def scrape(self, profile_url: str) -> ScrapeResult:
        target = validate_profile_url(profile_url)
        response = await self._client.get_html(
            target,
            headers=self._request_headers(),
            timeout_seconds=self._timeout_seconds,
            max_bytes=self._max_html_bytes,
            label="scrape.page",
        )
        if not response.ok:
            structured_log(
                logger,
                "warning",
                "linkedin.scrape_fetch_failed",
                profile_url=target,
                status_code=response.status_code,
                detail=(response.error or "")[:RAW_BODY_LOG_MAX_CHARS],
            )
            return ScrapeResult(
                profile_url=target,
                success=False,
                status_code=response.status_code,
                error=response.error,
            )

        fragment = parse_profile_html(response.text)
        structured_log(
            logger,
            "info",
            "linkedin.scrape_parsed",
            profile_url=target,
            html_length=len(response.text),
            has_headline=bool(fragment.headline),
            has_location=bool(fragment.location),
            skill_count=len(fragment.skills),
        )
        return ScrapeResult(
            profile_url=target,
            success=True,
            status_code=response.status_code,
            data=fragment,
        )


class RemoteProfileScraper:
    """Calls a scrape RPC: ``POST {profileUrl} -> {success, data}``."""

    def __init__(
        self,
        *,
        client: LinkedInClient,
        endpoint_url: str,
        timeout_seconds: float | None = None,
    ) -> None:
        self._client = client
        self._endpoint_url = endpoint_url
        self._timeout_seconds = (
            float(settings.linkedin_scrape_timeout_seconds) if timeout_seconds is None else float(timeout_seconds)
        )

    async def scrape(self, profile_url: str) -> ScrapeResult:
        target = validate_profile_url(profile_url)
        response = await self._client.post_json(
            self._endpoint_url,
            payload={"profileUrl": target},
            timeout_seconds=self._timeout_seconds,
            label="scrape.rpc",
        )
        if not response.ok:
            structured_log(
                logger,
                "warning",
                "linkedin.scrape_rpc_failed",
                profile_url=target,
                status_code=response.status_code,
                detail=(response.error or "")[:RAW_BODY_LOG_MAX_CHARS],
            )
            return ScrapeResult(
                profile_url=target,
                success=False,
                status_code=response.status_code,
                error=response.error,
            )

        body = response.payload if isinstance(response.payload, dict) else {}
        data = body.get("data")
        if body.get("success") is not True or not isinstance(data, dict):
            return ScrapeResult(
                profile_url=target,
                success=False,
                status_code=response.status_code,
                error="scrape RPC reported no data",
            )
        return ScrapeResult(
            profile_url=target,
            success=True,
            status_code=response.status_code,
            data=fragment_from_payload(data),
        )


def fragment_from_payload(data: dict[str, Any]) -> ScrapedFragment:
    return ScrapedFragment(
        headline=_optional_str(data.get("headline")),
        location=_optional_str(data.get("location")),
        about=_optional_str(data.get("about")),
        experience=[
            ExperienceEntry(title=str(item.get("title") or ""), company=str(item.get("company") or ""))
            for item in data.get("experience") or []
            if isinstance(item, dict)
        ],
        education=[
            EducationEntry(school=str(item.get("school") or ""), degree=str(item.get("degree") or ""))
            for item in data.get("education") or []
            if isinstance(item, dict)
        ],
        skills=[str(skill).strip() for skill in data.get("skills") or [] if str(skill).strip()],
    )


def build_profile_scraper(client: LinkedInClient) -> ProfileScraper | None:
    if not settings.linkedin_scrape_enabled:
        return None
    if settings.linkedin_scraper_url:
        return RemoteProfileScraper(client=client, endpoint_url=settings.linkedin_scraper_url)
    return LiveProfileScraper(client=client)


def _optional_str(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None
