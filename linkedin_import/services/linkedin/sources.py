"""Ordered profile source strategies run against one access token.

Strategies run strictly in priority order. Each one is gated by a predicate
over what earlier strategies already observed, so later (rate-limited or
brittle) sources are only consulted when a gap remains. A strategy failure is
recorded and logged, never raised.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass

import httpx

from linkedin_import.logging_utils import structured_log
from linkedin_import.services.linkedin.client import LinkedInClient
from linkedin_import.services.linkedin.constants import (
    FORBIDDEN_SCOPE_HINT,
    LEGACY_PROFILE_PROJECTION_URLS,
    LINKEDIN_EMAIL_URL,
    LINKEDIN_USERINFO_FALLBACK_URL,
    LINKEDIN_USERINFO_URL,
)
from linkedin_import.services.linkedin.errors import ScrapeValidationError, SourcePayloadError
from linkedin_import.services.linkedin.merge import resolve_profile_url
from linkedin_import.services.linkedin.observations import (
    ObservationSet,
    email_observations,
    legacy_observations,
    scraped_observations,
    userinfo_observations,
)
from linkedin_import.services.linkedin.scraper import ProfileScraper
from linkedin_import.services.linkedin.types import (
    AccessToken,
    FieldName,
    SourceFailure,
    SourceId,
    StrategyReport,
    UpstreamResponse,
)

logger = logging.getLogger(__name__)

STRATEGY_ABSORBED_ERRORS = (
    httpx.HTTPError,
    SourcePayloadError,
    ScrapeValidationError,
    ValueError,
    TypeError,
    KeyError,
)

# Fields that make a profile complete enough to skip the legacy API.
COMPLETE_PROFILE_FIELDS = (
    FieldName.GIVEN_NAME,
    FieldName.FAMILY_NAME,
    FieldName.HEADLINE,
    FieldName.AVATAR_URL,
    FieldName.PROFILE_URL,
)

Predicate = Callable[[ObservationSet], bool]
FetchFn = Callable[[AccessToken, ObservationSet], Awaitable[StrategyReport]]


@dataclass(frozen=True)
class ProfileStrategy:
    source: SourceId
    should_attempt: Predicate
    fetch: FetchFn


@dataclass(frozen=True)
class ChainResult:
    observations: ObservationSet
    reports: list[StrategyReport]

    def report_for(self, source: SourceId) -> StrategyReport | None:
        return next((report for report in self.reports if report.source == source), None)


class ProfileSourceChain:
    def __init__(self, strategies: Sequence[ProfileStrategy]) -> None:
        self._strategies = tuple(strategies)

    async def run(self, access_token: AccessToken) -> ChainResult:
        observations = ObservationSet()
        reports: list[StrategyReport] = []
        for strategy in self._strategies:
            if not strategy.should_attempt(observations):
                structured_log(logger, "debug", "linkedin.strategy_skipped", source=str(strategy.source))
                reports.append(StrategyReport(source=strategy.source, attempted=False))
                continue
            try:
                report = await strategy.fetch(access_token, observations)
            except STRATEGY_ABSORBED_ERRORS as exc:
                structured_log(
                    logger,
                    "warning",
                    "linkedin.strategy_failed",
                    source=str(strategy.source),
                    error_type=type(exc).__name__,
                    detail=str(exc),
                )
                report = StrategyReport(
                    source=strategy.source,
                    attempted=True,
                    failures=(
                        SourceFailure(
                            source=strategy.source,
                            url="",
                            status_code=None,
                            failure=None,
                            detail=str(exc) or type(exc).__name__,
                        ),
                    ),
                )
            observations.extend(report.observations)
            reports.append(report)
            structured_log(
                logger,
                "info",
                "linkedin.strategy_completed",
                source=str(strategy.source),
                observation_count=len(report.observations),
                failure_count=len(report.failures),
            )
        return ChainResult(observations=observations, reports=reports)


class LinkedInProfileSources:
    """Builds the default strategy list: UserInfo, legacy API, email lookup, scrape."""

    def __init__(self, *, client: LinkedInClient, scraper: ProfileScraper | None) -> None:
        self._client = client
        self._scraper = scraper

    def strategies(self) -> list[ProfileStrategy]:
        return [
            ProfileStrategy(SourceId.USERINFO, _always, self.fetch_userinfo),
            ProfileStrategy(SourceId.LEGACY_API, _profile_incomplete, self.fetch_legacy_profile),
            ProfileStrategy(SourceId.EMAIL_LOOKUP, _email_missing, self.fetch_email),
            ProfileStrategy(SourceId.SCRAPE, self._should_scrape, self.fetch_scraped_profile),
        ]

    def chain(self) -> ProfileSourceChain:
        return ProfileSourceChain(self.strategies())

    async def fetch_userinfo(self, access_token: AccessToken, _: ObservationSet) -> StrategyReport:
        failures: list[SourceFailure] = []
        response = await self._client.get_json(LINKEDIN_USERINFO_URL, access_token=access_token, label="userinfo")
        if response.status_code == 404:
            failures.append(_failure(SourceId.USERINFO, response))
            structured_log(logger, "info", "linkedin.userinfo_fallback", url=LINKEDIN_USERINFO_FALLBACK_URL)
            response = await self._client.get_json(
                LINKEDIN_USERINFO_FALLBACK_URL,
                access_token=access_token,
                label="userinfo.fallback",
            )
        if not response.ok:
            failures.append(_log_failure(SourceId.USERINFO, response))
            return StrategyReport(source=SourceId.USERINFO, attempted=True, failures=tuple(failures))
        return StrategyReport(
            source=SourceId.USERINFO,
            attempted=True,
            observations=tuple(userinfo_observations(response.payload)),
            failures=tuple(failures),
            payload=response.payload,
        )

    async def fetch_legacy_profile(self, access_token: AccessToken, _: ObservationSet) -> StrategyReport:
        failures: list[SourceFailure] = []
        for url in LEGACY_PROFILE_PROJECTION_URLS:
            response = await self._client.get_json(url, access_token=access_token, label="legacy_profile")
            if response.ok:
                return StrategyReport(
                    source=SourceId.LEGACY_API,
                    attempted=True,
                    observations=tuple(legacy_observations(response.payload)),
                    failures=tuple(failures),
                    payload=response.payload,
                )
            failures.append(_log_failure(SourceId.LEGACY_API, response))
        structured_log(logger, "warning", "linkedin.legacy_profile_unavailable", attempts=len(failures))
        return StrategyReport(source=SourceId.LEGACY_API, attempted=True, failures=tuple(failures))

    async def fetch_email(self, access_token: AccessToken, _: ObservationSet) -> StrategyReport:
        response = await self._client.get_json(LINKEDIN_EMAIL_URL, access_token=access_token, label="email_lookup")
        if not response.ok:
            return StrategyReport(
                source=SourceId.EMAIL_LOOKUP,
                attempted=True,
                failures=(_log_failure(SourceId.EMAIL_LOOKUP, response),),
            )
        return StrategyReport(
            source=SourceId.EMAIL_LOOKUP,
            attempted=True,
            observations=tuple(email_observations(response.payload)),
        )

    async def fetch_scraped_profile(self, _: AccessToken, observations: ObservationSet) -> StrategyReport:
        profile_url, url_source = resolve_profile_url(observations)
        if self._scraper is None or profile_url is None:
            return StrategyReport(source=SourceId.SCRAPE, attempted=False)
        structured_log(
            logger,
            "info",
            "linkedin.scrape_started",
            profile_url=profile_url,
            guessed_url=url_source == SourceId.CONSTRUCTED,
        )
        result = await self._scraper.scrape(profile_url)
        if not result.success or result.data is None:
            failure = SourceFailure(
                source=SourceId.SCRAPE,
                url=profile_url,
                status_code=result.status_code,
                failure=None,
                detail=result.error or "scrape returned no data",
            )
            return StrategyReport(source=SourceId.SCRAPE, attempted=True, failures=(failure,))
        return StrategyReport(
            source=SourceId.SCRAPE,
            attempted=True,
            observations=tuple(scraped_observations(result.data)),
            payload=dataclasses.asdict(result.data),
        )

    def _should_scrape(self, observations: ObservationSet) -> bool:
        if self._scraper is None or observations.has(FieldName.HEADLINE):
            return False
        profile_url, _ = resolve_profile_url(observations)
        return profile_url is not None


def _always(_: ObservationSet) -> bool:
    return True


def _profile_incomplete(observations: ObservationSet) -> bool:
    return not all(observations.has(field) for field in COMPLETE_PROFILE_FIELDS)


def _email_missing(observations: ObservationSet) -> bool:
    return not observations.has(FieldName.EMAIL)


def _failure(source: SourceId, response: UpstreamResponse) -> SourceFailure:
    return SourceFailure(
        source=source,
        url=response.url,
        status_code=response.status_code,
        failure=response.failure,
        detail=response.error or "",
    )


def _log_failure(source: SourceId, response: UpstreamResponse) -> SourceFailure:
    fields = {
        "source": str(source),
        "url": response.url,
        "status_code": response.status_code,
        "classification": str(response.failure),
        "detail": response.error,
    }
    if response.status_code == 403:
        fields["hint"] = FORBIDDEN_SCOPE_HINT
    structured_log(logger, "warning", "linkedin.source_request_failed", **fields)
    return _failure(source, response)
