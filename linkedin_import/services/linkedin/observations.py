"""Typed extraction of candidate field observations from each source's payload.

Every source declares which keys it may carry for a field. Values are
normalized once here, so the merge step only ever sees non-empty values.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence
from typing import Any
from urllib.parse import quote

from linkedin_import.services.linkedin.constants import LINKEDIN_PROFILE_BASE_URL
from linkedin_import.services.linkedin.errors import SourcePayloadError
from linkedin_import.services.linkedin.types import (
    SOURCE_PRIORITY,
    CandidateObservation,
    FieldName,
    ImageVariant,
    ScrapedFragment,
    SourceId,
)

USERINFO_ALIASES: dict[FieldName, tuple[str, ...]] = {
    FieldName.IDENTITY_ID: ("sub", "id"),
    FieldName.GIVEN_NAME: ("given_name", "localizedFirstName", "firstName"),
    FieldName.FAMILY_NAME: ("family_name", "localizedLastName", "lastName"),
    FieldName.HEADLINE: ("headline", "localizedHeadline", "jobTitle", "title", "position"),
    FieldName.EMAIL: ("email",),
    FieldName.PROFILE_URL: ("profile_url", "publicProfileUrl", "url", "website"),
}

LEGACY_ALIASES: dict[FieldName, tuple[str, ...]] = {
    FieldName.IDENTITY_ID: ("id",),
    FieldName.GIVEN_NAME: ("localizedFirstName",),
    FieldName.FAMILY_NAME: ("localizedLastName",),
    FieldName.HEADLINE: ("localizedHeadline",),
    FieldName.VANITY_NAME: ("vanityName",),
}

_STILL_IMAGE_KEY = "com.linkedin.digitalmedia.mediaartifact.StillImage"


class ObservationSet:
    """Append-only collection of observations gathered during one run."""

    def __init__(self, observations: Iterable[CandidateObservation] = ()) -> None:
        self._items: list[CandidateObservation] = list(observations)

    def extend(self, observations: Iterable[CandidateObservation]) -> None:
        self._items.extend(observations)

    def __iter__(self) -> Iterator[CandidateObservation]:
        return iter(tuple(self._items))

    def __len__(self) -> int:
        return len(self._items)

    def for_field(self, field: FieldName) -> list[CandidateObservation]:
        return [item for item in self._items if item.field == field]

    def has(self, field: FieldName) -> bool:
        return any(item.field == field for item in self._items)

    def first(self, field: FieldName, order: Sequence[SourceId]) -> CandidateObservation | None:
        candidates = self.for_field(field)
        for source in order:
            for candidate in candidates:
                if candidate.source == source:
                    return candidate
        return None


def observe(source: SourceId, field: FieldName, value: Any) -> CandidateObservation | None:
    if isinstance(value, str):
        value = value.strip()
    if value is None or value == "" or value == ():
        return None
    return CandidateObservation(
        source=source,
        field=field,
        value=value,
        confidence=SOURCE_PRIORITY[source],
    )


def profile_url_from_vanity(vanity_name: str) -> str:
    return f"{LINKEDIN_PROFILE_BASE_URL}{quote(vanity_name.strip(), safe='-_.')}"


def userinfo_observations(payload: Any) -> list[CandidateObservation]:
    body = _require_mapping(payload, source=SourceId.USERINFO)
    observations = _aliased_observations(body, USERINFO_ALIASES, source=SourceId.USERINFO)
    variants = _userinfo_image_variants(body)
    observations.extend(_compact([observe(SourceId.USERINFO, FieldName.AVATAR_URL, variants)]))
    return observations


def legacy_observations(payload: Any) -> list[CandidateObservation]:
    body = _require_mapping(payload, source=SourceId.LEGACY_API)
    observations = _aliased_observations(body, LEGACY_ALIASES, source=SourceId.LEGACY_API)
    vanity_name = _first_text(body, LEGACY_ALIASES[FieldName.VANITY_NAME])
    if vanity_name:
        observations.extend(
            _compact([observe(SourceId.LEGACY_API, FieldName.PROFILE_URL, profile_url_from_vanity(vanity_name))])
        )
    variants = display_image_variants(body.get("profilePicture"))
    observations.extend(_compact([observe(SourceId.LEGACY_API, FieldName.AVATAR_URL, variants)]))
    return observations


def email_observations(payload: Any) -> list[CandidateObservation]:
    body = _require_mapping(payload, source=SourceId.EMAIL_LOOKUP)
    elements = body.get("elements")
    if not isinstance(elements, list) or not elements:
        return []
    first = elements[0] if isinstance(elements[0], dict) else {}
    handle = first.get("handle~")
    email = handle.get("emailAddress") if isinstance(handle, dict) else None
    return _compact([observe(SourceId.EMAIL_LOOKUP, FieldName.EMAIL, email if isinstance(email, str) else None)])


def scraped_observations(fragment: ScrapedFragment) -> list[CandidateObservation]:
    return _compact(
        [
            observe(SourceId.SCRAPE, FieldName.HEADLINE, fragment.headline),
            observe(SourceId.SCRAPE, FieldName.LOCATION, fragment.location),
        ]
    )


def display_image_variants(picture: Any) -> tuple[ImageVariant, ...]:
    if not isinstance(picture, dict):
        return ()
    display_image = picture.get("displayImage~")
    if not isinstance(display_image, dict):
        return ()
    elements = display_image.get("elements")
    if not isinstance(elements, list):
        return ()
    variants: list[ImageVariant] = []
    for element in elements:
        if not isinstance(element, dict):
            continue
        url = _first_identifier(element.get("identifiers"))
        if url is None:
            continue
        width, height = _element_dimensions(element.get("data"))
        variants.append(ImageVariant(url=url, width=width, height=height))
    return tuple(variants)


def _userinfo_image_variants(body: dict[str, Any]) -> tuple[ImageVariant, ...]:
    picture = body.get("picture")
    if isinstance(picture, str) and picture.strip():
        return (ImageVariant(url=picture.strip()),)
    return display_image_variants(body.get("profilePicture"))


def _first_identifier(identifiers: Any) -> str | None:
    if not isinstance(identifiers, list) or not identifiers:
        return None
    first = identifiers[0]
    if not isinstance(first, dict):
        return None
    identifier = first.get("identifier")
    if isinstance(identifier, str) and identifier.strip():
        return identifier.strip()
    return None


def _element_dimensions(data: Any) -> tuple[int | None, int | None]:
    if not isinstance(data, dict):
        return None, None
    still_image = data.get(_STILL_IMAGE_KEY)
    if isinstance(still_image, dict):
        size = still_image.get("storageSize") or still_image.get("displaySize")
        if isinstance(size, dict):
            return _as_int(size.get("width")), _as_int(size.get("height"))
    return _as_int(data.get("width")), _as_int(data.get("height"))


def _as_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    return None


def _aliased_observations(
    body: dict[str, Any],
    aliases: dict[FieldName, tuple[str, ...]],
    *,
    source: SourceId,
) -> list[CandidateObservation]:
    return _compact([observe(source, field, _first_text(body, keys)) for field, keys in aliases.items()])


def _first_text(body: dict[str, Any], keys: Sequence[str]) -> str | None:
    for key in keys:
        value = body.get(key)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            value = str(value)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def _require_mapping(payload: Any, *, source: SourceId) -> dict[str, Any]:
    if not isinstance(payload, dict):
        raise SourcePayloadError(f"{source} payload must be a JSON object")
    return payload


def _compact(items: Iterable[CandidateObservation | None]) -> list[CandidateObservation]:
    return [item for item in items if item is not None]
