from __future__ import annotations

from linkedin_import.services.linkedin.constants import (
    ENGINEER_KEYWORDS_RE,
    JUNIOR_KEYWORDS_RE,
    SENIOR_KEYWORDS_RE,
    STUDENT_KEYWORDS_RE,
    TAG_DELIMITER_RE,
    TAG_LIMIT,
    TAG_MAX_EXCLUSIVE_LENGTH,
    TAG_MIN_EXCLUSIVE_LENGTH,
)
from linkedin_import.services.linkedin.types import EnrichedProfile, MergedProfile, RoleLevel

# Checked in order; the first matching set decides the level.
ROLE_RULES = (
    (RoleLevel.SENIOR, SENIOR_KEYWORDS_RE),
    (RoleLevel.JUNIOR, JUNIOR_KEYWORDS_RE),
    (RoleLevel.ENGINEER, ENGINEER_KEYWORDS_RE),
    (RoleLevel.STUDENT, STUDENT_KEYWORDS_RE),
)


def extract_tags(headline: str) -> list[str]:
    tags: list[str] = []
    seen: set[str] = set()
    for part in TAG_DELIMITER_RE.split(headline or ""):
        candidate = part.strip()
        if not TAG_MIN_EXCLUSIVE_LENGTH < len(candidate) < TAG_MAX_EXCLUSIVE_LENGTH:
            continue
        if candidate in seen:
            continue
        seen.add(candidate)
        tags.append(candidate)
        if len(tags) == TAG_LIMIT:
            break
    return tags


def classify_role_level(headline: str) -> RoleLevel:
    lowered = (headline or "").lower()
    for level, pattern in ROLE_RULES:
        if pattern.search(lowered):
            return level
    return RoleLevel.PROFESSIONAL


def enrich_profile(profile: MergedProfile) -> EnrichedProfile:
    return EnrichedProfile(
        profile=profile,
        tags=extract_tags(profile.headline),
        role_level=classify_role_level(profile.headline),
    )
