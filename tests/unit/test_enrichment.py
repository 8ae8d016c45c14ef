from __future__ import annotations

import pytest

from linkedin_import.services.linkedin.enrichment import classify_role_level, enrich_profile, extract_tags
from linkedin_import.services.linkedin.merge import merge_observations
from linkedin_import.services.linkedin.observations import ObservationSet, observe
from linkedin_import.services.linkedin.types import FieldName, RoleLevel, SourceId


def test_extract_tags_splits_on_delimiters() -> None:
    assert extract_tags("Senior Engineer | Acme Corp, Growth") == ["Senior Engineer", "Acme Corp", "Growth"]


def test_extract_tags_drops_short_long_and_duplicate_segments() -> None:
    headline = "AI | Engineer | Engineer | " + "x" * 60 + " | Data & ML (Ops)"

    assert extract_tags(headline) == ["Engineer", "Data", "Ops"]


def test_extract_tags_caps_at_five() -> None:
    headline = "Alpha | Bravo | Charlie | Delta | Echo | Foxtrot"

    assert extract_tags(headline) == ["Alpha", "Bravo", "Charlie", "Delta", "Echo"]
    assert extract_tags("") == []


@pytest.mark.parametrize(
    ("headline", "expected"),
    [
        ("Senior Software Engineer", RoleLevel.SENIOR),
        ("Engineering Manager at Acme", RoleLevel.SENIOR),
        ("Junior Developer", RoleLevel.JUNIOR),
        ("Software Intern", RoleLevel.JUNIOR),
        ("Backend Developer", RoleLevel.ENGINEER),
        ("PhD candidate in Physics", RoleLevel.STUDENT),
        ("Marketing at Acme", RoleLevel.PROFESSIONAL),
        ("", RoleLevel.PROFESSIONAL),
    ],
)
def test_classify_role_level(headline: str, expected: RoleLevel) -> None:
    assert classify_role_level(headline) == expected


def test_role_keywords_match_whole_words_only() -> None:
    assert classify_role_level("Technician") == RoleLevel.PROFESSIONAL


def test_enrich_profile_derives_tags_and_level_from_headline() -> None:
    profile = merge_observations(
        ObservationSet(
            [
                observe(SourceId.USERINFO, FieldName.IDENTITY_ID, "abc123"),
                observe(SourceId.LEGACY_API, FieldName.HEADLINE, "Lead Architect | Acme"),
            ]
        )
    )

    enriched = enrich_profile(profile)

    assert enriched.profile is profile
    assert enriched.tags == ["Lead Architect", "Acme"]
    assert enriched.role_level == RoleLevel.SENIOR
