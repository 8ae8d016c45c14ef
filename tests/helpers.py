from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any
from urllib.parse import unquote

import httpx

from linkedin_import.services.linkedin.client import LinkedInClient
from linkedin_import.services.linkedin.constants import (
    LEGACY_PROFILE_PROJECTION_URLS,
    LINKEDIN_EMAIL_URL,
    LINKEDIN_TOKEN_URL,
    LINKEDIN_USERINFO_FALLBACK_URL,
    LINKEDIN_USERINFO_URL,
)
from linkedin_import.services.linkedin.errors import PersistenceError
from linkedin_import.services.linkedin.persistence import ImportAuditEntry, ProfileUpsert, StoredProfile
from linkedin_import.services.linkedin.retry import RetryPolicy
from linkedin_import.services.linkedin.types import (
    AccessToken,
    ClientCredentials,
    RequestMetadata,
    ScrapedFragment,
    ScrapeResult,
)

TOKEN_URL = LINKEDIN_TOKEN_URL
USERINFO_URL = LINKEDIN_USERINFO_URL
USERINFO_FALLBACK_URL = LINKEDIN_USERINFO_FALLBACK_URL
EMAIL_URL = LINKEDIN_EMAIL_URL
LEGACY_FULL_URL, LEGACY_HEADLINE_URL, LEGACY_PEOPLE_URL = LEGACY_PROFILE_PROJECTION_URLS

CREDENTIALS = ClientCredentials(client_id="client-id", client_secret="client-secret")
ACCESS_TOKEN = AccessToken(value="token-abc", expires_in=5184000, scope="openid profile email")
REDIRECT_URI = "https://app.example.com/auth/linkedin/callback"

TOKEN_PAYLOAD = {"access_token": "token-abc", "expires_in": 5184000, "scope": "openid profile email"}
USERINFO_PAYLOAD = {
    "sub": "abc123",
    "given_name": "Ada",
    "family_name": "Lovelace",
    "email": "ada@example.com",
    "picture": "https://media.licdn.com/ada-100.jpg",
}

Reply = Callable[[], httpx.Response] | Exception


def reply(status_code: int, payload: Any = None, *, text: str | None = None) -> Callable[[], httpx.Response]:
    def _build() -> httpx.Response:
        if text is not None:
            return httpx.Response(status_code, text=text)
        return httpx.Response(status_code, json={} if payload is None else payload)

    return _build


def image_element(url: str, width: int, height: int) -> dict[str, Any]:
    return {
        "data": {
            "com.linkedin.digitalmedia.mediaartifact.StillImage": {
                "storageSize": {"width": width, "height": height},
            }
        },
        "identifiers": [{"identifier": url}],
    }


def legacy_payload(**overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "id": "legacy-abc",
        "localizedFirstName": "Ada",
        "localizedLastName": "Lovelace",
        "localizedHeadline": "Senior Engineer | Analytical Engines",
        "vanityName": "ada-lovelace",
        "profilePicture": {
            "displayImage~": {
                "elements": [
                    image_element("https://media.licdn.com/ada-100.jpg", 100, 100),
                    image_element("https://media.licdn.com/ada-400.jpg", 400, 400),
                    image_element("https://media.licdn.com/ada-200.jpg", 200, 200),
                ]
            }
        },
    }
    payload.update(overrides)
    return payload


def email_payload(address: str) -> dict[str, Any]:
    return {"elements": [{"handle~": {"emailAddress": address}, "handle": "urn:li:emailAddress:1"}]}


class ScriptedUpstream:
    """Scripted LinkedIn endpoints keyed by full URL.

    Replies for a URL are consumed in order and the last one repeats.
    Unscripted URLs answer 404.
    """

    def __init__(self) -> None:
        self._routes: dict[str, list[Reply]] = {}
        self.calls: list[str] = []
        self.requests: list[httpx.Request] = []

    def on(self, url: str, *replies: Reply) -> ScriptedUpstream:
        self._routes.setdefault(unquote(url), []).extend(replies)
        return self

    def calls_to(self, url: str) -> int:
        return self.calls.count(unquote(url))

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        url = unquote(str(request.url))
        self.calls.append(url)
        self.requests.append(request)
        replies = self._routes.get(url)
        if not replies:
            return httpx.Response(404, json={"message": "Not Found"})
        current = replies.pop(0) if len(replies) > 1 else replies[0]
        if isinstance(current, Exception):
            raise current
        return current()


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


def make_client(upstream: ScriptedUpstream, *, sleep: RecordingSleep | None = None) -> LinkedInClient:
    return LinkedInClient(
        transport=upstream.transport(),
        timeout_seconds=5.0,
        retry_policy=RetryPolicy(max_attempts=3, backoff_schedule=(2.0, 4.0)),
        sleep=sleep or RecordingSleep(),
    )


def request_metadata() -> RequestMetadata:
    return RequestMetadata(
        received_at=datetime(2026, 10, 19, 9, 30, tzinfo=UTC),
        user_agent="pytest-agent/1.0",
        client_ip="203.0.113.7",
    )


class FakeScraper:
    def __init__(self, result: ScrapeResult | None = None, *, fragment: ScrapedFragment | None = None) -> None:
        self._result = result
        self._fragment = fragment
        self.urls: list[str] = []

    async def scrape(self, profile_url: str) -> ScrapeResult:
        self.urls.append(profile_url)
        if self._result is not None:
            return self._result
        return ScrapeResult(
            profile_url=profile_url,
            success=True,
            status_code=200,
            data=self._fragment or ScrapedFragment(),
        )


class InMemoryProfileSink:
    def __init__(self, *, fail_upsert: bool = False, fail_audit: bool = False) -> None:
        self.records: dict[str, ProfileUpsert] = {}
        self.ids: dict[str, int] = {}
        self.audits: list[ImportAuditEntry] = []
        self._fail_upsert = fail_upsert
        self._fail_audit = fail_audit

    async def upsert_profile(self, record: ProfileUpsert) -> StoredProfile:
        if self._fail_upsert:
            raise PersistenceError("Failed to persist LinkedIn profile.", detail="simulated")
        linkedin_id = record.enriched.profile.identity_id
        profile_id = self.ids.setdefault(linkedin_id, len(self.ids) + 1)
        self.records[linkedin_id] = record
        return StoredProfile(id=profile_id, linkedin_id=linkedin_id)

    async def insert_audit(self, entry: ImportAuditEntry) -> None:
        if self._fail_audit:
            raise PersistenceError("Failed to record import audit.", detail="simulated")
        self.audits.append(entry)
