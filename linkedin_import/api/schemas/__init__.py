from linkedin_import.api.schemas.common import ApiErrorEnvelope, ApiMeta
from linkedin_import.api.schemas.linkedin import (
    EducationData,
    ExperienceData,
    LinkedInExchangeEnvelope,
    LinkedInExchangeRequest,
    LinkedInImportEnvelope,
    LinkedInImportRequest,
    LinkedInProfileData,
    LinkedInScrapeEnvelope,
    LinkedInScrapeRequest,
    ScrapedProfileData,
)

__all__ = [
    "ApiErrorEnvelope",
    "ApiMeta",
    "EducationData",
    "ExperienceData",
    "LinkedInExchangeEnvelope",
    "LinkedInExchangeRequest",
    "LinkedInImportEnvelope",
    "LinkedInImportRequest",
    "LinkedInProfileData",
    "LinkedInScrapeEnvelope",
    "LinkedInScrapeRequest",
    "ScrapedProfileData",
]
