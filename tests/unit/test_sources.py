from __future__ import annotations

import logging

import pytest

from linkedin_import.services.linkedin.constants import FORBIDDEN_SCOPE_HINT
from linkedin_import.services.linkedin.observations import ObservationSet
from linkedin_import.services.linkedin.sources import (
    LinkedInProfileSources,
    ProfileSourceChain,
    ProfileStrategy,
)
from linkedin_import.services.linkedin.types import (
    FieldName,
    ScrapedFragment,
    ScrapeResult,
    SourceId,
    StrategyReport,
)
from tests.helpers import (
    ACCESS_TOKEN,
    EMAIL_URL,
    LEGACY_FULL_URL,
    LEGACY_HEADLINE_URL,
    LEGACY_PEOPLE_URL,
    USERINFO_FALLBACK_URL,
    USERINFO_PAYLOAD,
    USERINFO_URL,
    FakeScraper,
    ScriptedUpstream,
    email_payload,
    legacy_payload,
    make_client,
    reply,
)

COMPLETE_USERINFO = {
    **USERINFO_PAYLOAD,
    "headline": "Engineer at Acme",
    "profile_url": "https://www.linkedin.com/in/ada",
}


async def _run(upstream: ScriptedUpstream, scraper=None):
    sources = LinkedInProfileSources(client=make_client(upstream), scraper=scraper)
    return await sources.chain().run(ACCESS_TOKEN)


@pytest.mark.asyncio
async def test_complete_userinfo_skips_every_later_strategy() -> None:
    upstream = ScriptedUpstream().on(USERINFO_URL, reply(200, COMPLETE_USERINFO))
    scraper = FakeScraper()

    result = await _run(upstream, scraper)

    assert [report.source for report in result.reports] == [
        SourceId.USERINFO,
        SourceId.LEGACY_API,
        SourceId.EMAIL_LOOKUP,
        SourceId.SCRAPE,
    ]
    assert [report.attempted for report in result.reports] == [True, False, False, False]
    assert upstream.calls_to(LEGACY_FULL_URL) == 0
    assert upstream.calls_to(EMAIL_URL) == 0
    assert scraper.urls == []


@pytest.mark.asyncio
async def test_userinfo_404_falls_back_to_api_endpoint() -> None:
    upstream = (
        ScriptedUpstream()
        .on(USERINFO_URL, reply(404, {"message": "Not Found"}))
        .on(USERINFO_FALLBACK_URL, reply(200, COMPLETE_USERINFO))
    )

    result = await _run(upstream)

    report = result.report_for(SourceId.USERINFO)
    assert report is not None
    assert upstream.calls_to(USERINFO_URL) == 1
    assert upstream.calls_to(USERINFO_FALLBACK_URL) == 1
    assert [failure.status_code for failure in report.failures] == [404]
    assert result.observations.has(FieldName.IDENTITY_ID)


@pytest.mark.asyncio
async def test_userinfo_401_is_recorded_without_fallback() -> None:
    upstream = ScriptedUpstream().on(USERINFO_URL, reply(401, {"message": "Invalid access token"}))

    result = await _run(upstream)

    report = result.report_for(SourceId.USERINFO)
    assert report is not None
    assert upstream.calls_to(USERINFO_FALLBACK_URL) == 0
    assert report.observations == ()
    assert report.failures[0].status_code == 401
    assert report.failures[0].detail == "Invalid access token"


@pytest.mark.asyncio
async def test_legacy_403_does_not_stop_remaining_projections(caplog) -> None:
    upstream = (
        ScriptedUpstream()
        .on(USERINFO_URL, reply(200, USERINFO_PAYLOAD))
        .on(LEGACY_FULL_URL, reply(403, {"message": "Not enough permissions to access: me.GET.NO_VERSION"}))
        .on(LEGACY_HEADLINE_URL, reply(200, {"id": "legacy-abc", "localizedHeadline": "Data Engineer"}))
    )

    with caplog.at_level(logging.WARNING, logger="linkedin_import.services.linkedin.sources"):
        result = await _run(upstream)

    report = result.report_for(SourceId.LEGACY_API)
    assert report is not None and report.attempted
    assert upstream.calls_to(LEGACY_FULL_URL) == 1
    assert upstream.calls_to(LEGACY_HEADLINE_URL) == 1
    assert upstream.calls_to(LEGACY_PEOPLE_URL) == 0
    assert [failure.status_code for failure in report.failures] == [403]
    assert result.observations.first(FieldName.HEADLINE, (SourceId.LEGACY_API,)).value == "Data Engineer"
    forbidden = [
        record
        for record in caplog.records
        if record.getMessage() == "linkedin.source_request_failed" and record.status_code == 403
    ]
    assert forbidden and forbidden[0].hint == FORBIDDEN_SCOPE_HINT


@pytest.mark.asyncio
async def test_legacy_strategy_records_every_failed_projection() -> None:
    upstream = ScriptedUpstream().on(USERINFO_URL, reply(200, USERINFO_PAYLOAD))

    result = await _run(upstream)

    report = result.report_for(SourceId.LEGACY_API)
    assert report is not None
    assert len(report.failures) == 3
    assert report.observations == ()


@pytest.mark.asyncio
async def test_email_lookup_runs_only_when_email_missing() -> None:
    userinfo = {key: value for key, value in USERINFO_PAYLOAD.items() if key != "email"}
    upstream = (
        ScriptedUpstream()
        .on(USERINFO_URL, reply(200, userinfo))
        .on(LEGACY_FULL_URL, reply(200, legacy_payload()))
        .on(EMAIL_URL, reply(200, email_payload("ada@example.com")))
    )

    result = await _run(upstream)

    assert upstream.calls_to(EMAIL_URL) == 1
    assert result.observations.first(FieldName.EMAIL, (SourceId.EMAIL_LOOKUP,)).value == "ada@example.com"


@pytest.mark.asyncio
async def test_scrape_uses_guessed_url_when_headline_missing() -> None:
    upstream = ScriptedUpstream().on(USERINFO_URL, reply(200, USERINFO_PAYLOAD))
    scraper = FakeScraper(fragment=ScrapedFragment(headline="Mathematician", location="London"))

    result = await _run(upstream, scraper)

    assert scraper.urls == ["https://www.linkedin.com/in/ada-lovelace/"]
    report = result.report_for(SourceId.SCRAPE)
    assert report is not None and report.attempted
    assert report.payload["headline"] == "Mathematician"
    assert result.observations.first(FieldName.LOCATION, (SourceId.SCRAPE,)).value == "London"


@pytest.mark.asyncio
async def test_failed_scrape_is_recorded_not_raised() -> None:
    upstream = ScriptedUpstream().on(USERINFO_URL, reply(200, USERINFO_PAYLOAD))
    scraper = FakeScraper(
        ScrapeResult(
            profile_url="https://www.linkedin.com/in/ada-lovelace/",
            success=False,
            status_code=999,
            error="request denied",
        )
    )

    result = await _run(upstream, scraper)

    report = result.report_for(SourceId.SCRAPE)
    assert report is not None
    assert report.failures[0].status_code == 999
    assert not result.observations.has(FieldName.HEADLINE)


@pytest.mark.asyncio
async def test_scrape_skipped_without_scraper_or_profile_url() -> None:
    upstream = ScriptedUpstream().on(USERINFO_URL, reply(200, {"sub": "abc123"}))

    no_scraper = await _run(upstream)
    no_url = await _run(upstream, FakeScraper())

    assert no_scraper.report_for(SourceId.SCRAPE).attempted is False
    assert no_url.report_for(SourceId.SCRAPE).attempted is False


@pytest.mark.asyncio
async def test_unparseable_payload_is_absorbed_and_chain_continues() -> None:
    upstream = (
        ScriptedUpstream()
        .on(USERINFO_URL, reply(200, ["unexpected", "list"]))
        .on(LEGACY_FULL_URL, reply(200, legacy_payload()))
    )

    result = await _run(upstream)

    userinfo_report = result.report_for(SourceId.USERINFO)
    assert userinfo_report is not None
    assert userinfo_report.failures[0].failure is None
    assert "JSON object" in userinfo_report.failures[0].detail
    assert result.observations.first(FieldName.IDENTITY_ID, (SourceId.LEGACY_API,)).value == "legacy-abc"


@pytest.mark.asyncio
async def test_chain_gates_later_strategies_on_earlier_observations() -> None:
    seen: list[int] = []

    async def _first(_token, _observations: ObservationSet) -> StrategyReport:
        return StrategyReport(source=SourceId.USERINFO, attempted=True)

    async def _second(_token, observations: ObservationSet) -> StrategyReport:
        seen.append(len(observations))
        return StrategyReport(source=SourceId.LEGACY_API, attempted=True)

    chain = ProfileSourceChain(
        [
            ProfileStrategy(SourceId.USERINFO, lambda _: True, _first),
            ProfileStrategy(SourceId.LEGACY_API, lambda observations: len(observations) == 0, _second),
        ]
    )

    result = await chain.run(ACCESS_TOKEN)

    assert seen == [0]
    assert [report.attempted for report in result.reports] == [True, True]
