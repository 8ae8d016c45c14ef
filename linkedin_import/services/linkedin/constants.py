from __future__ import annotations

import re

LINKEDIN_TOKEN_URL = "https://www.linkedin.com/oauth/v2/accessToken"
LINKEDIN_USERINFO_URL = "https://www.linkedin.com/oauth/v2/userinfo"
# Same call shape as the standard endpoint; only consulted after a 404 there.
LINKEDIN_USERINFO_FALLBACK_URL = "https://api.linkedin.com/v2/userinfo"
LINKEDIN_EMAIL_URL = "https://api.linkedin.com/v2/emailAddress?q=members&projection=(elements*(handle~))"
LINKEDIN_PROFILE_BASE_URL = "https://www.linkedin.com/in/"

# Decreasingly specific projections; the first successful one wins.
LEGACY_PROFILE_PROJECTION_URLS = (
    "https://api.linkedin.com/v2/me?projection=(id,localizedFirstName,localizedLastName,"
    "localizedHeadline,vanityName,profilePicture(displayImage~:playableStreams))",
    "https://api.linkedin.com/v2/me?projection=(id,localizedHeadline)",
    "https://api.linkedin.com/v2/people/(id~me)?projection=(id,localizedHeadline)",
)

PROFILE_URL_MARKER = "linkedin.com/in/"

SCRAPE_ACCEPT_HEADER = "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8"
SCRAPE_ACCEPT_LANGUAGE = "en-US,en;q=0.5"

ERROR_DETAIL_MAX_CHARS = 500
RAW_BODY_LOG_MAX_CHARS = 200

STATUS_HINTS = {
    401: "Access token may be invalid or expired.",
    403: "Insufficient permissions. Check LinkedIn app scopes.",
    429: "Rate limit exceeded. Please try again later.",
}
FORBIDDEN_SCOPE_HINT = (
    "The granted scopes likely do not cover this projection; "
    "check the app's product permissions in the LinkedIn developer portal."
)

TAG_DELIMITER_RE = re.compile(r"[|\-@,&()]")
TAG_MIN_EXCLUSIVE_LENGTH = 2
TAG_MAX_EXCLUSIVE_LENGTH = 50
TAG_LIMIT = 5

SENIOR_KEYWORDS_RE = re.compile(r"\b(senior|lead|principal|head|director|vp|chief|manager|architect)\b")
JUNIOR_KEYWORDS_RE = re.compile(r"\b(junior|entry|intern|associate|trainee|graduate|new grad)\b")
ENGINEER_KEYWORDS_RE = re.compile(r"\b(software|engineer|developer|programmer|architect|tech|engineering)\b")
STUDENT_KEYWORDS_RE = re.compile(r"\b(student|phd|master|undergrad|university|college)\b")

IMPORT_STATUS_PENDING = "pending"
AUDIT_ACTION_FETCHED = "fetched"
