from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime

from linkedin_import.logging_utils import structured_log
from linkedin_import.services.linkedin.client import LinkedInClient
from linkedin_import.services.linkedin.enrichment import enrich_profile
from linkedin_import.services.linkedin.errors import (
    ConfigurationError,
    InputInvalidError,
    LinkedInImportError,
    MergeIncompleteError,
    upstream_error,
)
from linkedin_import.services.linkedin.merge import merge_observations
from linkedin_import.services.linkedin.persistence import (
    ProfileSink,
    ProfileUpsert,
    consent_log_payload,
    raw_profile_snapshot,
    record_import,
)
from linkedin_import.services.linkedin.scraper import ProfileScraper
from linkedin_import.services.linkedin.sources import ChainResult, LinkedInProfileSources
from linkedin_import.services.linkedin.token_exchange import exchange_authorization_code
from linkedin_import.services.linkedin.types import (
    ClientCredentials,
    EnrichedProfile,
    FieldName,
    ImportResult,
    ProfileResolution,
    RequestMetadata,
    SourceId,
)
from linkedin_import.settings import settings

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


def credentials_from_settings() -> ClientCredentials | None:
    if not settings.linkedin_client_id or not settings.linkedin_client_secret:
        return None
    return ClientCredentials(
        client_id=settings.linkedin_client_id,
        client_secret=settings.linkedin_client_secret,
    )


class LinkedInImportService:
    """Token exchange, source chain, merge and enrichment, then persistence.

    Each call owns its access token and observation set; nothing mutable is
    shared between concurrent calls except the sink's database session.
    """

    def __init__(
        self,
        *,
        client: LinkedInClient,
        scraper: ProfileScraper | None,
        sink: ProfileSink | None = None,
        credentials: ClientCredentials | None = None,
        default_redirect_uri: str | None = None,
        now_fn: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._client = client
        self._scraper = scraper
        self._sink = sink
        self._credentials = credentials if credentials is not None else credentials_from_settings()
        self._default_redirect_uri = (
            settings.linkedin_redirect_uri if default_redirect_uri is None else default_redirect_uri
        )
        self._now = now_fn

    async def exchange_profile(self, *, code: str | None, redirect_uri: str | None = None) -> EnrichedProfile:
        if not _has_text(code):
            raise InputInvalidError("Missing authorization code.")
        resolution = await self.resolve_profile(code=str(code).strip(), redirect_uri=redirect_uri)
        return resolution.enriched

    async def import_profile(
        self,
        *,
        code: str | None,
        user_id: str | None,
        redirect_uri: str | None,
        metadata: RequestMetadata,
    ) -> ImportResult:
        if not _has_text(code) or not _has_text(user_id):
            raise InputInvalidError("Missing code or user_id.")
        if self._sink is None:
            raise ConfigurationError("Server configuration error.", detail="profile sink is not configured")
        owner_id = str(user_id).strip()

        resolution = await self.resolve_profile(code=str(code).strip(), redirect_uri=redirect_uri)
        fetched_at = self._now()
        stored, audit_recorded = await record_import(
            self._sink,
            record=ProfileUpsert(
                user_id=owner_id,
                enriched=resolution.enriched,
                raw_profile=raw_profile_snapshot(resolution.reports),
                consent_log=consent_log_payload(metadata),
                fetched_at=fetched_at,
            ),
        )
        structured_log(
            logger,
            "info",
            "linkedin.import_completed",
            user_id=owner_id,
            linkedin_id=stored.linkedin_id,
            import_id=stored.id,
            audit_recorded=audit_recorded,
        )
        return ImportResult(
            import_id=stored.id,
            enriched=resolution.enriched,
            audit_recorded=audit_recorded,
        )

    async def resolve_profile(self, *, code: str, redirect_uri: str | None) -> ProfileResolution:
        credentials = self._require_credentials()
        resolved_redirect_uri = self._require_redirect_uri(redirect_uri)

        access_token = await exchange_authorization_code(
            self._client,
            code=code,
            redirect_uri=resolved_redirect_uri,
            credentials=credentials,
        )
        sources = LinkedInProfileSources(client=self._client, scraper=self._scraper)
        chain_result = await sources.chain().run(access_token)

        merged = merge_observations(chain_result.observations)
        if not merged.identity_id:
            raise _identity_unresolved_error(chain_result)

        enriched = enrich_profile(merged)
        structured_log(
            logger,
            "info",
            "linkedin.profile_resolved",
            linkedin_id=merged.identity_id,
            observation_count=len(chain_result.observations),
            headline_source=_source_label(merged.provenance.get(FieldName.HEADLINE)),
            profile_url_guessed=merged.profile_url_guessed,
            role_level=str(enriched.role_level),
        )
        return ProfileResolution(enriched=enriched, reports=chain_result.reports)

    def _require_credentials(self) -> ClientCredentials:
        if self._credentials is None:
            structured_log(logger, "error", "linkedin.credentials_missing")
            raise ConfigurationError("Server configuration error.", detail="LinkedIn client credentials are not set")
        return self._credentials

    def _require_redirect_uri(self, redirect_uri: str | None) -> str:
        value = (redirect_uri or "").strip() or (self._default_redirect_uri or "").strip()
        if not value:
            raise ConfigurationError("Server configuration error.", detail="no redirect URI supplied or configured")
        return value


def _identity_unresolved_error(chain_result: ChainResult) -> LinkedInImportError:
    userinfo_report = chain_result.report_for(SourceId.USERINFO)
    # A failure only explains the gap when the final UserInfo response failed too.
    if userinfo_report is not None and userinfo_report.failures and userinfo_report.payload is None:
        last_failure = userinfo_report.failures[-1]
        if last_failure.status_code is not None or last_failure.failure is not None:
            return upstream_error(
                "Failed to fetch LinkedIn profile.",
                status_code=last_failure.status_code,
                detail=last_failure.detail,
            )
    failed_sources = sorted({str(report.source) for report in chain_result.reports if report.failures})
    return MergeIncompleteError(
        "LinkedIn profile identity could not be resolved.",
        detail=f"failed sources: {', '.join(failed_sources) or 'none'}",
    )


def _has_text(value: str | None) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _source_label(source: SourceId | None) -> str | None:
    return str(source) if source is not None else None
