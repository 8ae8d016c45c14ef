from __future__ import annotations

import logging

from linkedin_import.logging_utils import structured_log
from linkedin_import.services.linkedin.client import LinkedInClient
from linkedin_import.services.linkedin.errors import TokenExchangeFailedError, upstream_error_kind
from linkedin_import.services.linkedin.types import AccessToken, ClientCredentials

logger = logging.getLogger(__name__)


async def exchange_authorization_code(
    client: LinkedInClient,
    *,
    code: str,
    redirect_uri: str,
    credentials: ClientCredentials,
) -> AccessToken:
    """Trade a single-use authorization code for an access token.

    Sent exactly once: a code cannot be replayed, so any failure here is
    terminal and the caller decides whether to restart with a fresh code.
    """
    response = await client.exchange_code(
        code=code,
        redirect_uri=redirect_uri,
        credentials=credentials,
    )
    if not response.ok:
        kind = upstream_error_kind(response.status_code)
        status_code = response.status_code if response.status_code and response.status_code >= 400 else 502
        structured_log(
            logger,
            "warning",
            "linkedin.token_exchange_failed",
            status_code=response.status_code,
            error_kind=str(kind),
            detail=response.error,
        )
        raise TokenExchangeFailedError(
            "Failed to exchange code for token.",
            kind=kind,
            status_code=status_code,
            detail=response.error or response.text,
        )

    payload = response.payload if isinstance(response.payload, dict) else {}
    token_value = payload.get("access_token")
    if not isinstance(token_value, str) or not token_value.strip():
        structured_log(logger, "warning", "linkedin.token_exchange_missing_token")
        raise TokenExchangeFailedError(
            "No access token received.",
            kind=upstream_error_kind(None),
            status_code=502,
        )

    expires_in = payload.get("expires_in")
    scope = payload.get("scope")
    structured_log(
        logger,
        "info",
        "linkedin.token_exchange_succeeded",
        expires_in=expires_in,
        scope=scope,
    )
    return AccessToken(
        value=token_value.strip(),
        expires_in=int(expires_in) if isinstance(expires_in, (int, float)) else None,
        scope=scope if isinstance(scope, str) else None,
    )
