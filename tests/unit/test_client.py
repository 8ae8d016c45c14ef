from __future__ import annotations

import httpx
import pytest

from linkedin_import.services.linkedin.client import (
    classify_response,
    classify_status,
    upstream_error_detail,
)
from linkedin_import.services.linkedin.types import FailureKind
from tests.helpers import (
    ACCESS_TOKEN,
    CREDENTIALS,
    REDIRECT_URI,
    TOKEN_URL,
    USERINFO_URL,
    RecordingSleep,
    ScriptedUpstream,
    make_client,
    reply,
)


@pytest.mark.parametrize(
    ("status_code", "expected"),
    [
        (200, None),
        (204, None),
        (400, FailureKind.PERMANENT),
        (401, FailureKind.PERMANENT),
        (403, FailureKind.PERMANENT),
        (404, FailureKind.PERMANENT),
        (429, FailureKind.RATE_LIMITED),
        (500, FailureKind.TRANSIENT),
        (503, FailureKind.TRANSIENT),
    ],
)
def test_classify_status(status_code: int, expected: FailureKind | None) -> None:
    assert classify_status(status_code) == expected


def test_classify_response_marks_unparseable_success_body_permanent() -> None:
    response = httpx.Response(200, text="<html>not json</html>")

    result = classify_response("https://api.example.test/v2/me", response)

    assert result.failure == FailureKind.PERMANENT
    assert result.status_code == 200
    assert result.error == "response body is not valid JSON"


def test_classify_response_keeps_html_when_json_is_not_expected() -> None:
    response = httpx.Response(200, text="<html><title>Ada</title></html>")

    result = classify_response("https://www.linkedin.com/in/ada", response, expect_json=False)

    assert result.ok
    assert result.text == "<html><title>Ada</title></html>"
    assert result.payload is None


def test_upstream_error_detail_prefers_error_description() -> None:
    body = '{"error": "invalid_request", "error_description": "Unable to retrieve access token"}'
    assert upstream_error_detail(body) == "Unable to retrieve access token"
    assert upstream_error_detail('{"message": "Not enough permissions", "status": 403}') == "Not enough permissions"
    assert upstream_error_detail('{"error": "invalid_grant"}') == "invalid_grant"
    assert upstream_error_detail("x" * 900) == "x" * 500


@pytest.mark.asyncio
async def test_exchange_code_posts_form_once_without_retry() -> None:
    upstream = ScriptedUpstream().on(TOKEN_URL, reply(503, {"error": "temporarily_unavailable"}))
    sleep = RecordingSleep()
    client = make_client(upstream, sleep=sleep)

    result = await client.exchange_code(code="auth-code", redirect_uri=REDIRECT_URI, credentials=CREDENTIALS)

    assert result.failure == FailureKind.TRANSIENT
    assert upstream.calls_to(TOKEN_URL) == 1
    assert sleep.delays == []
    request = upstream.requests[0]
    assert request.method == "POST"
    assert request.headers["content-type"] == "application/x-www-form-urlencoded"
    body = request.content.decode()
    assert "grant_type=authorization_code" in body
    assert "code=auth-code" in body
    assert "client_secret=client-secret" in body


@pytest.mark.asyncio
async def test_get_json_sends_bearer_token_and_retries_server_errors() -> None:
    upstream = ScriptedUpstream().on(USERINFO_URL, reply(502), reply(200, {"sub": "abc123"}))
    sleep = RecordingSleep()
    client = make_client(upstream, sleep=sleep)

    result = await client.get_json(USERINFO_URL, access_token=ACCESS_TOKEN, label="userinfo")

    assert result.ok
    assert result.payload == {"sub": "abc123"}
    assert upstream.calls_to(USERINFO_URL) == 2
    assert sleep.delays == [2.0]
    assert upstream.requests[0].headers["authorization"] == "Bearer token-abc"


@pytest.mark.asyncio
async def test_network_errors_are_transient_and_retried() -> None:
    upstream = ScriptedUpstream().on(USERINFO_URL, httpx.ConnectError("connection refused"))
    sleep = RecordingSleep()
    client = make_client(upstream, sleep=sleep)

    result = await client.get_json(USERINFO_URL, access_token=ACCESS_TOKEN, label="userinfo")

    assert result.failure == FailureKind.TRANSIENT
    assert result.status_code is None
    assert upstream.calls_to(USERINFO_URL) == 3
    assert sleep.delays == [2.0, 4.0]


@pytest.mark.asyncio
async def test_get_html_stops_reading_at_byte_limit() -> None:
    page_url = "https://www.linkedin.com/in/ada"
    upstream = ScriptedUpstream().on(
        page_url,
        lambda: httpx.Response(200, content="ééé<html>".encode(), headers={"content-type": "text/html; charset=utf-8"}),
    )
    client = make_client(upstream)

    result = await client.get_html(page_url, headers={}, timeout_seconds=5.0, max_bytes=4, label="profile_page")

    assert result.ok
    assert result.text == "éé"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error",
    [httpx.TooManyRedirects("Exceeded maximum allowed redirects."), httpx.DecodingError("bad gzip")],
)
async def test_request_errors_beyond_transport_are_transient(error: Exception) -> None:
    page_url = "https://www.linkedin.com/in/ada"
    upstream = ScriptedUpstream().on(page_url, error)
    client = make_client(upstream)

    result = await client.get_html(page_url, headers={}, timeout_seconds=5.0, max_bytes=1024, label="profile_page")

    assert result.failure == FailureKind.TRANSIENT
    assert result.status_code is None
    assert upstream.calls_to(page_url) == 3
