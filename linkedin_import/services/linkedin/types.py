from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any


class FailureKind(StrEnum):
    RATE_LIMITED = "rate_limited"
    TRANSIENT = "transient"
    PERMANENT = "permanent"


class SourceId(StrEnum):
    SCRAPE = "scrape"
    LEGACY_API = "legacy_api"
    EMAIL_LOOKUP = "email_lookup"
    USERINFO = "userinfo"
    CONSTRUCTED = "constructed"


# Lower value means a stronger source.
SOURCE_PRIORITY: dict[SourceId, int] = {
    SourceId.SCRAPE: 0,
    SourceId.LEGACY_API: 1,
    SourceId.EMAIL_LOOKUP: 2,
    SourceId.USERINFO: 3,
    SourceId.CONSTRUCTED: 4,
}


class FieldName(StrEnum):
    IDENTITY_ID = "identity_id"
    GIVEN_NAME = "given_name"
    FAMILY_NAME = "family_name"
    HEADLINE = "headline"
    EMAIL = "email"
    AVATAR_URL = "avatar_url"
    PROFILE_URL = "profile_url"
    VANITY_NAME = "vanity_name"
    LOCATION = "location"


class RoleLevel(StrEnum):
    SENIOR = "senior"
    JUNIOR = "junior"
    ENGINEER = "engineer"
    STUDENT = "student"
    PROFESSIONAL = "professional"


@dataclass(frozen=True)
class UpstreamResponse:
    """Outcome of a single upstream HTTP call, classified but never raised."""

    url: str
    status_code: int | None
    text: str
    payload: Any = None
    failure: FailureKind | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None


@dataclass(frozen=True)
class ClientCredentials:
    client_id: str
    client_secret: str


@dataclass(frozen=True)
class AccessToken:
    value: str
    expires_in: int | None = None
    scope: str | None = None

    def __repr__(self) -> str:
        return f"AccessToken(expires_in={self.expires_in!r}, scope={self.scope!r})"


@dataclass(frozen=True)
class ImageVariant:
    url: str
    width: int | None = None
    height: int | None = None

    @property
    def area(self) -> int:
        if self.width is None or self.height is None:
            return 0
        return self.width * self.height


@dataclass(frozen=True)
class CandidateObservation:
    source: SourceId
    field: FieldName
    value: Any
    confidence: int


@dataclass(frozen=True)
class SourceFailure:
    source: SourceId
    url: str
    status_code: int | None
    failure: FailureKind | None
    detail: str


@dataclass(frozen=True)
class StrategyReport:
    source: SourceId
    attempted: bool
    observations: tuple[CandidateObservation, ...] = ()
    failures: tuple[SourceFailure, ...] = ()
    payload: Any = None


@dataclass(frozen=True)
class ExperienceEntry:
    title: str
    company: str


@dataclass(frozen=True)
class EducationEntry:
    school: str
    degree: str


@dataclass(frozen=True)
class ScrapedFragment:
    headline: str | None = None
    location: str | None = None
    about: str | None = None
    experience: list[ExperienceEntry] = field(default_factory=list)
    education: list[EducationEntry] = field(default_factory=list)
    skills: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ScrapeResult:
    profile_url: str
    success: bool
    status_code: int | None
    data: ScrapedFragment | None = None
    error: str | None = None


@dataclass(frozen=True)
class MergedProfile:
    identity_id: str
    given_name: str
    family_name: str
    headline: str
    email: str
    avatar_url: str | None
    profile_url: str | None
    vanity_name: str | None
    location: str | None
    profile_url_guessed: bool
    provenance: dict[FieldName, SourceId | None]

    @property
    def full_name(self) -> str:
        return f"{self.given_name} {self.family_name}".strip()


@dataclass(frozen=True)
class EnrichedProfile:
    profile: MergedProfile
    tags: list[str]
    role_level: RoleLevel


@dataclass(frozen=True)
class RequestMetadata:
    received_at: datetime
    user_agent: str | None
    client_ip: str | None


@dataclass(frozen=True)
class ProfileResolution:
    """Everything one run learned before persistence."""

    enriched: EnrichedProfile
    reports: list[StrategyReport]


@dataclass(frozen=True)
class ImportResult:
    import_id: int
    enriched: EnrichedProfile
    audit_recorded: bool
