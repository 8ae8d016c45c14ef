"""Best-effort extraction of public profile fields from LinkedIn page HTML.

Headline sources are tried in a fixed order and a later source is consulted
only when every earlier one yielded nothing: JSON-LD, meta description, the
page title, then the embedded client-side state blob.
"""

from __future__ import annotations

import html as html_lib
import json
import logging
import re
from collections.abc import Iterator
from typing import Any

from linkedin_import.logging_utils import structured_log
from linkedin_import.services.linkedin.types import EducationEntry, ExperienceEntry, ScrapedFragment

logger = logging.getLogger(__name__)

JSON_LD_RE = re.compile(r"<script[^>]*type=[\"']application/ld\+json[\"'][^>]*>(.*?)</script>", re.I | re.S)
META_DESCRIPTION_RES = (
    re.compile(r"<meta[^>]*property=\"og:description\"[^>]*content=\"([^\"]*)\"", re.I),
    re.compile(r"<meta[^>]*content=\"([^\"]*)\"[^>]*property=\"og:description\"", re.I),
    re.compile(r"<meta[^>]*name=\"description\"[^>]*content=\"([^\"]*)\"", re.I),
)
TITLE_RE = re.compile(r"<title[^>]*>([^<]*)</title>", re.I)
LOCATION_SPAN_RE = re.compile(r"<span[^>]*class=\"[^\"]*text-body-small[^\"]*\"[^>]*>([^<]*)</span>", re.I)
ABOUT_RE = re.compile(r"<section[^>]*id=\"about\"[^>]*>.*?<span[^>]*>([^<]*)</span>", re.I | re.S)
EXPERIENCE_RE = re.compile(
    r"<li[^>]*class=\"[^\"]*experience[^\"]*\"[^>]*>.*?<span[^>]*>([^<]*)</span>.*?<span[^>]*>([^<]*)</span>",
    re.I | re.S,
)
EDUCATION_RE = re.compile(
    r"<li[^>]*class=\"[^\"]*education[^\"]*\"[^>]*>.*?<span[^>]*>([^<]*)</span>.*?<span[^>]*>([^<]*)</span>",
    re.I | re.S,
)
SKILL_RE = re.compile(r"<span[^>]*class=\"[^\"]*skill[^\"]*\"[^>]*>([^<]*)</span>", re.I)
INITIAL_STATE_RE = re.compile(r"window\.__INITIAL_STATE__\s*=\s*")
SPACE_RE = re.compile(r"\s+")

_TITLE_SITE_SEGMENT = "linkedin"


def parse_profile_html(html: str) -> ScrapedFragment:
    json_ld_nodes = list(_json_ld_nodes(html))
    initial_state = _initial_state_profile(html)

    headline = (
        _json_ld_headline(json_ld_nodes)
        or _meta_description(html)
        or _title_headline(html)
        or _state_text(initial_state, "headline")
    )
    location = (
        _json_ld_location(json_ld_nodes)
        or _first_group(LOCATION_SPAN_RE, html)
        or _state_text(initial_state, "location")
    )

    return ScrapedFragment(
        headline=headline,
        location=location,
        about=_first_group(ABOUT_RE, html),
        experience=[
            ExperienceEntry(title=title, company=company)
            for title, company in _paired_groups(EXPERIENCE_RE, html)
        ],
        education=[
            EducationEntry(school=school, degree=degree)
            for school, degree in _paired_groups(EDUCATION_RE, html)
        ],
        skills=[skill for skill in (_clean(match) for match in SKILL_RE.findall(html)) if skill],
    )


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    text = SPACE_RE.sub(" ", html_lib.unescape(value)).strip()
    return text or None


def _first_group(pattern: re.Pattern[str], html: str) -> str | None:
    match = pattern.search(html)
    if match is None:
        return None
    return _clean(match.group(1))


def _paired_groups(pattern: re.Pattern[str], html: str) -> list[tuple[str, str]]:
    pairs: list[tuple[str, str]] = []
    for first, second in pattern.findall(html):
        left, right = _clean(first), _clean(second)
        if left and right:
            pairs.append((left, right))
    return pairs


def _json_ld_nodes(html: str) -> Iterator[dict[str, Any]]:
    for raw in JSON_LD_RE.findall(html):
        try:
            document = json.loads(raw.strip())
        except ValueError:
            structured_log(logger, "debug", "linkedin.scrape_json_ld_unparseable", length=len(raw))
            continue
        yield from _walk_nodes(document)


def _walk_nodes(document: Any) -> Iterator[dict[str, Any]]:
    if isinstance(document, list):
        for item in document:
            yield from _walk_nodes(item)
        return
    if not isinstance(document, dict):
        return
    yield document
    graph = document.get("@graph")
    if isinstance(graph, list):
        for item in graph:
            yield from _walk_nodes(item)


def _json_ld_headline(nodes: list[dict[str, Any]]) -> str | None:
    for node in nodes:
        headline = node.get("headline")
        if isinstance(headline, str) and _clean(headline):
            return _clean(headline)
    return None


def _json_ld_location(nodes: list[dict[str, Any]]) -> str | None:
    for node in nodes:
        address = node.get("address")
        if isinstance(address, dict):
            locality = address.get("addressLocality")
            if isinstance(locality, str) and _clean(locality):
                return _clean(locality)
    return None


def _meta_description(html: str) -> str | None:
    for pattern in META_DESCRIPTION_RES:
        value = _first_group(pattern, html)
        if value:
            return value
    return None


def _title_headline(html: str) -> str | None:
    title = _first_group(TITLE_RE, html)
    if not title or "|" not in title:
        return None
    segments = [segment.strip() for segment in title.split("|")]
    segments = [segment for segment in segments if segment and segment.lower() != _TITLE_SITE_SEGMENT]
    if len(segments) > 1:
        return segments[1]
    if segments and " - " in segments[0]:
        return segments[0].split(" - ", 1)[1].strip() or None
    return None


def _initial_state_profile(html: str) -> dict[str, Any]:
    match = INITIAL_STATE_RE.search(html)
    if match is None:
        return {}
    try:
        state, _ = json.JSONDecoder().raw_decode(html, match.end())
    except ValueError:
        structured_log(logger, "debug", "linkedin.scrape_initial_state_unparseable")
        return {}
    if not isinstance(state, dict):
        return {}
    profile = state.get("profile")
    return profile if isinstance(profile, dict) else {}


def _state_text(profile: dict[str, Any], key: str) -> str | None:
    value = profile.get(key)
    if isinstance(value, str):
        return _clean(value)
    return None
