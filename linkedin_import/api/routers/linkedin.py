from __future__ import annotations

from dataclasses import asdict
from datetime import UTC, datetime
import logging
from typing import Any

from fastapi import APIRouter, Depends, Request

from linkedin_import.api.errors import ApiException, api_exception_from_domain
from linkedin_import.api.responses import success_payload
from linkedin_import.api.runtime_deps import (
    get_exchange_service,
    get_import_service,
    get_page_scraper,
)
from linkedin_import.api.schemas import (
    LinkedInExchangeEnvelope,
    LinkedInExchangeRequest,
    LinkedInImportEnvelope,
    LinkedInImportRequest,
    LinkedInScrapeEnvelope,
    LinkedInScrapeRequest,
)
from linkedin_import.logging_utils import structured_log
from linkedin_import.services.linkedin.application import LinkedInImportService
from linkedin_import.services.linkedin.errors import LinkedInImportError, upstream_error
from linkedin_import.services.linkedin.scraper import ProfileScraper, validate_profile_url
from linkedin_import.services.linkedin.types import EnrichedProfile, RequestMetadata

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/linkedin", tags=["api-linkedin"])


def _client_ip(request: Request) -> str | None:
    forwarded_for = (request.headers.get("x-forwarded-for") or "").strip()
    if forwarded_for:
        return forwarded_for.split(",")[0].strip() or None
    real_ip = (request.headers.get("x-real-ip") or "").strip()
    if real_ip:
        return real_ip
    if request.client is not None:
        return request.client.host
    return None


def _request_metadata(request: Request) -> RequestMetadata:
    return RequestMetadata(
        received_at=datetime.now(UTC),
        user_agent=request.headers.get("user-agent"),
        client_ip=_client_ip(request),
    )


def _serialize_profile(enriched: EnrichedProfile) -> dict[str, Any]:
    profile = enriched.profile
    return {
        "linkedin_id": profile.identity_id,
        "given_name": profile.given_name,
        "family_name": profile.family_name,
        "full_name": profile.full_name,
        "headline": profile.headline,
        "email": profile.email,
        "avatar_url": profile.avatar_url,
        "profile_url": profile.profile_url,
        "profile_url_guessed": profile.profile_url_guessed,
        "vanity_name": profile.vanity_name,
        "location": profile.location,
        "provenance": {
            str(field): str(source) if source is not None else None
            for field, source in profile.provenance.items()
        },
        "tags": list(enriched.tags),
        "role_level": str(enriched.role_level),
    }


@router.post(
    "/import",
    response_model=LinkedInImportEnvelope,
)
async def import_linkedin_profile(
    payload: LinkedInImportRequest,
    request: Request,
    service: LinkedInImportService = Depends(get_import_service),
):
    try:
        result = await service.import_profile(
            code=payload.code,
            user_id=payload.user_id,
            redirect_uri=payload.redirect_uri,
            metadata=_request_metadata(request),
        )
    except LinkedInImportError as exc:
        structured_log(
            logger,
            "warning",
            "api.linkedin.import_failed",
            user_id=payload.user_id,
            error_code=str(exc.kind),
            status_code=exc.status_code,
        )
        raise api_exception_from_domain(exc) from exc
    return success_payload(
        request,
        profile=_serialize_profile(result.enriched),
        import_id=result.import_id,
    )


@router.post(
    "/exchange",
    response_model=LinkedInExchangeEnvelope,
)
async def exchange_linkedin_profile(
    payload: LinkedInExchangeRequest,
    request: Request,
    service: LinkedInImportService = Depends(get_exchange_service),
):
    try:
        enriched = await service.exchange_profile(
            code=payload.code,
            redirect_uri=payload.redirect_uri,
        )
    except LinkedInImportError as exc:
        raise api_exception_from_domain(exc) from exc
    return success_payload(request, profile=_serialize_profile(enriched))


@router.post(
    "/scrape",
    response_model=LinkedInScrapeEnvelope,
)
async def scrape_linkedin_profile(
    payload: LinkedInScrapeRequest,
    request: Request,
    scraper: ProfileScraper = Depends(get_page_scraper),
):
    try:
        profile_url = validate_profile_url(payload.profile_url)
    except LinkedInImportError as exc:
        raise api_exception_from_domain(exc) from exc

    result = await scraper.scrape(profile_url)
    if not result.success or result.data is None:
        failure = upstream_error(
            "Failed to fetch LinkedIn profile page.",
            status_code=result.status_code,
            detail=result.error,
        )
        raise ApiException(
            status_code=failure.status_code,
            code=str(failure.kind),
            message=failure.message,
            detail=failure.detail,
            hint=failure.hint,
        )
    return success_payload(
        request,
        profile_url=result.profile_url,
        data=asdict(result.data),
    )
