from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

import httpx

from linkedin_import.logging_utils import structured_log
from linkedin_import.services.linkedin.constants import (
    ERROR_DETAIL_MAX_CHARS,
    LINKEDIN_TOKEN_URL,
)
from linkedin_import.services.linkedin.retry import RetryPolicy, SleepFn, invoke
from linkedin_import.services.linkedin.types import (
    AccessToken,
    ClientCredentials,
    FailureKind,
    UpstreamResponse,
)
from linkedin_import.settings import settings

logger = logging.getLogger(__name__)


class LinkedInClient:
    """Thin httpx wrapper that turns every upstream call into an ``UpstreamResponse``.

    Reads (profile endpoints, page fetches, the scrape RPC) go through the
    bounded retry invoker. The token exchange is sent exactly once.
    """

    def __init__(
        self,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout_seconds: float | None = None,
        retry_policy: RetryPolicy | None = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self._transport = transport
        self._timeout_seconds = (
            float(settings.linkedin_http_timeout_seconds) if timeout_seconds is None else float(timeout_seconds)
        )
        self._retry_policy = retry_policy or RetryPolicy.from_settings()
        self._sleep = sleep

    @property
    def retry_policy(self) -> RetryPolicy:
        return self._retry_policy

    async def exchange_code(
        self,
        *,
        code: str,
        redirect_uri: str,
        credentials: ClientCredentials,
    ) -> UpstreamResponse:
        form = {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": redirect_uri,
            "client_id": credentials.client_id,
            "client_secret": credentials.client_secret,
        }
        return await self._send(
            "POST",
            LINKEDIN_TOKEN_URL,
            data=form,
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )

    async def get_json(self, url: str, *, access_token: AccessToken, label: str) -> UpstreamResponse:
        headers = {"Authorization": f"Bearer {access_token.value}"}
        return await self._with_retry(
            lambda: self._send("GET", url, headers=headers),
            label=label,
        )

    async def get_html(
        self,
        url: str,
        *,
        headers: dict[str, str],
        timeout_seconds: float,
        max_bytes: int,
        label: str,
    ) -> UpstreamResponse:
        return await self._with_retry(
            lambda: self._send(
                "GET",
                url,
                headers=headers,
                expect_json=False,
                follow_redirects=True,
                timeout_seconds=timeout_seconds,
                max_bytes=max_bytes,
            ),
            label=label,
        )

    async def post_json(
        self,
        url: str,
        *,
        payload: dict[str, Any],
        timeout_seconds: float,
        label: str,
    ) -> UpstreamResponse:
        return await self._with_retry(
            lambda: self._send("POST", url, json=payload, timeout_seconds=timeout_seconds),
            label=label,
        )

    async def _with_retry(self, operation, *, label: str) -> UpstreamResponse:
        return await invoke(
            operation,
            max_attempts=self._retry_policy.max_attempts,
            backoff_schedule=self._retry_policy.backoff_schedule,
            sleep=self._sleep,
            label=label,
        )

    async def _send(
        self,
        method: str,
        url: str,
        *,
        expect_json: bool = True,
        follow_redirects: bool = False,
        timeout_seconds: float | None = None,
        max_bytes: int | None = None,
        **request_kwargs: Any,
    ) -> UpstreamResponse:
        timeout_value = self._timeout_seconds if timeout_seconds is None else float(timeout_seconds)
        try:
            async with httpx.AsyncClient(
                timeout=max(timeout_value, 0.5),
                follow_redirects=follow_redirects,
                transport=self._transport,
            ) as client:
                if max_bytes is None:
                    response = await client.request(method, url, **request_kwargs)
                    text = response.text or ""
                else:
                    async with client.stream(method, url, **request_kwargs) as response:
                        text = await read_capped_text(response, max_bytes)
        except httpx.RequestError as exc:
            structured_log(
                logger,
                "warning",
                "linkedin.request_network_error",
                method=method,
                url=url,
                error_type=type(exc).__name__,
            )
            return UpstreamResponse(
                url=url,
                status_code=None,
                text="",
                failure=FailureKind.TRANSIENT,
                error=str(exc) or type(exc).__name__,
            )
        return classify_response(url, response, expect_json=expect_json, text=text)


async def read_capped_text(response: httpx.Response, max_bytes: int) -> str:
    """Read at most ``max_bytes`` of a streamed body, then stop downloading."""
    limit = max(int(max_bytes), 0)
    body = bytearray()
    async for chunk in response.aiter_bytes():
        body.extend(chunk)
        if len(body) >= limit:
            break
    return bytes(body[:limit]).decode(response.encoding or "utf-8", errors="replace")


def classify_status(status_code: int) -> FailureKind | None:
    if 200 <= status_code < 300:
        return None
    if status_code == 429:
        return FailureKind.RATE_LIMITED
    if status_code >= 500:
        return FailureKind.TRANSIENT
    return FailureKind.PERMANENT


def classify_response(
    url: str,
    response: httpx.Response,
    *,
    expect_json: bool = True,
    text: str | None = None,
) -> UpstreamResponse:
    if text is None:
        text = response.text or ""
    failure = classify_status(response.status_code)
    if failure is not None:
        return UpstreamResponse(
            url=url,
            status_code=response.status_code,
            text=text,
            failure=failure,
            error=upstream_error_detail(text),
        )
    if not expect_json:
        return UpstreamResponse(url=url, status_code=response.status_code, text=text)
    try:
        payload = json.loads(text)
    except ValueError:
        return UpstreamResponse(
            url=url,
            status_code=response.status_code,
            text=text,
            failure=FailureKind.PERMANENT,
            error="response body is not valid JSON",
        )
    return UpstreamResponse(url=url, status_code=response.status_code, text=text, payload=payload)


def upstream_error_detail(text: str) -> str:
    """Prefer the provider's own error description over the raw body."""
    try:
        body = json.loads(text)
    except ValueError:
        return text[:ERROR_DETAIL_MAX_CHARS]
    if isinstance(body, dict):
        for key in ("error_description", "message", "error"):
            value = body.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()[:ERROR_DETAIL_MAX_CHARS]
    return text[:ERROR_DETAIL_MAX_CHARS]
