"""Resolve candidate observations into one profile under a fixed precedence table."""

from __future__ import annotations

import re
from collections.abc import Sequence

from linkedin_import.services.linkedin.constants import LINKEDIN_PROFILE_BASE_URL
from linkedin_import.services.linkedin.observations import ObservationSet
from linkedin_import.services.linkedin.types import (
    FieldName,
    ImageVariant,
    MergedProfile,
    SourceId,
)

_WHITESPACE_RE = re.compile(r"\s+")

_OBSERVED_ORDER = (SourceId.SCRAPE, SourceId.LEGACY_API, SourceId.EMAIL_LOOKUP, SourceId.USERINFO)

# identity_id is the upsert key, so it prefers the OpenID subject, which is
# returned on every run, over the legacy id that depends on optional scopes.
FIELD_PRECEDENCE: dict[FieldName, tuple[SourceId, ...]] = {
    FieldName.IDENTITY_ID: (SourceId.USERINFO, SourceId.LEGACY_API),
    FieldName.GIVEN_NAME: _OBSERVED_ORDER,
    FieldName.FAMILY_NAME: _OBSERVED_ORDER,
    FieldName.HEADLINE: _OBSERVED_ORDER,
    FieldName.EMAIL: _OBSERVED_ORDER,
    FieldName.AVATAR_URL: _OBSERVED_ORDER,
    FieldName.PROFILE_URL: (*_OBSERVED_ORDER, SourceId.CONSTRUCTED),
    FieldName.VANITY_NAME: _OBSERVED_ORDER,
    FieldName.LOCATION: _OBSERVED_ORDER,
}

TEXT_FIELDS = (
    FieldName.IDENTITY_ID,
    FieldName.GIVEN_NAME,
    FieldName.FAMILY_NAME,
    FieldName.HEADLINE,
    FieldName.EMAIL,
)
OPTIONAL_FIELDS = (
    FieldName.AVATAR_URL,
    FieldName.PROFILE_URL,
    FieldName.VANITY_NAME,
    FieldName.LOCATION,
)


def pick_largest_variant(variants: Sequence[ImageVariant]) -> str | None:
    """Largest width x height wins; without any dimensions the first variant wins."""
    if not variants:
        return None
    return max(variants, key=lambda variant: variant.area).url


def construct_profile_url(given_name: str, family_name: str) -> str | None:
    first = _WHITESPACE_RE.sub("-", given_name.strip().lower())
    last = _WHITESPACE_RE.sub("-", family_name.strip().lower())
    if not first or not last:
        return None
    return f"{LINKEDIN_PROFILE_BASE_URL}{first}-{last}/"


def resolve_field(observations: ObservationSet, field: FieldName) -> tuple[object | None, SourceId | None]:
    winner = observations.first(field, FIELD_PRECEDENCE[field])
    if winner is None:
        return None, None
    if field == FieldName.AVATAR_URL:
        return pick_largest_variant(winner.value), winner.source
    return winner.value, winner.source


def resolve_profile_url(observations: ObservationSet) -> tuple[str | None, SourceId | None]:
    """Observed URL if any, else a guess built from the resolved names."""
    observed, source = resolve_field(observations, FieldName.PROFILE_URL)
    if observed:
        return str(observed), source
    given_name, _ = resolve_field(observations, FieldName.GIVEN_NAME)
    family_name, _ = resolve_field(observations, FieldName.FAMILY_NAME)
    guessed = construct_profile_url(str(given_name or ""), str(family_name or ""))
    if guessed is None:
        return None, None
    return guessed, SourceId.CONSTRUCTED


def merge_observations(observations: ObservationSet) -> MergedProfile:
    values: dict[FieldName, object | None] = {}
    provenance: dict[FieldName, SourceId | None] = {}

    for field in (*TEXT_FIELDS, FieldName.AVATAR_URL, FieldName.VANITY_NAME, FieldName.LOCATION):
        value, source = resolve_field(observations, field)
        values[field] = value
        provenance[field] = source

    profile_url, profile_url_source = resolve_profile_url(observations)
    values[FieldName.PROFILE_URL] = profile_url
    provenance[FieldName.PROFILE_URL] = profile_url_source

    return MergedProfile(
        identity_id=_text(values[FieldName.IDENTITY_ID]),
        given_name=_text(values[FieldName.GIVEN_NAME]),
        family_name=_text(values[FieldName.FAMILY_NAME]),
        headline=_text(values[FieldName.HEADLINE]),
        email=_text(values[FieldName.EMAIL]),
        avatar_url=_optional_text(values[FieldName.AVATAR_URL]),
        profile_url=_optional_text(values[FieldName.PROFILE_URL]),
        vanity_name=_optional_text(values[FieldName.VANITY_NAME]),
        location=_optional_text(values[FieldName.LOCATION]),
        profile_url_guessed=profile_url_source == SourceId.CONSTRUCTED,
        provenance={field: provenance.get(field) for field in FieldName},
    )


def _text(value: object | None) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _optional_text(value: object | None) -> str | None:
    text = _text(value)
    return text or None
