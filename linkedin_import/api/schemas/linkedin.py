from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from linkedin_import.api.schemas.common import ApiMeta


class LinkedInImportRequest(BaseModel):
    # Missing values are a 400 from the pipeline, not a 422 from validation.
    code: str | None = None
    user_id: str | None = None
    redirect_uri: str | None = None

    model_config = ConfigDict(extra="ignore")


class LinkedInExchangeRequest(BaseModel):
    code: str | None = None
    redirect_uri: str | None = None

    model_config = ConfigDict(extra="ignore")


class LinkedInScrapeRequest(BaseModel):
    profile_url: str | None = Field(default=None, alias="profileUrl")

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class LinkedInProfileData(BaseModel):
    linkedin_id: str
    given_name: str
    family_name: str
    full_name: str
    headline: str
    email: str
    avatar_url: str | None
    profile_url: str | None
    profile_url_guessed: bool
    vanity_name: str | None
    location: str | None
    provenance: dict[str, str | None]
    tags: list[str] = Field(default_factory=list)
    role_level: str

    model_config = ConfigDict(extra="forbid")


class LinkedInImportEnvelope(BaseModel):
    success: bool
    profile: LinkedInProfileData
    import_id: int
    meta: ApiMeta

    model_config = ConfigDict(extra="forbid")


class LinkedInExchangeEnvelope(BaseModel):
    success: bool
    profile: LinkedInProfileData
    meta: ApiMeta

    model_config = ConfigDict(extra="forbid")


class ExperienceData(BaseModel):
    title: str
    company: str

    model_config = ConfigDict(extra="forbid")


class EducationData(BaseModel):
    school: str
    degree: str

    model_config = ConfigDict(extra="forbid")


class ScrapedProfileData(BaseModel):
    headline: str | None
    location: str | None
    about: str | None
    experience: list[ExperienceData] = Field(default_factory=list)
    education: list[EducationData] = Field(default_factory=list)
    skills: list[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")


class LinkedInScrapeEnvelope(BaseModel):
    success: bool
    profile_url: str = Field(serialization_alias="profileUrl")
    data: ScrapedProfileData
    meta: ApiMeta

    model_config = ConfigDict(extra="forbid", populate_by_name=True)
