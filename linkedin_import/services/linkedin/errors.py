from __future__ import annotations

from enum import StrEnum

from linkedin_import.services.linkedin.constants import STATUS_HINTS


class ErrorKind(StrEnum):
    INPUT_INVALID = "input_invalid"
    UPSTREAM_REJECTED = "upstream_rejected"
    UPSTREAM_RATE_LIMITED = "upstream_rate_limited"
    UPSTREAM_UNAVAILABLE = "upstream_unavailable"
    MERGE_INCOMPLETE = "merge_incomplete"
    CONFIGURATION_ERROR = "configuration_error"
    PERSISTENCE_FAILED = "persistence_failed"


class LinkedInImportError(Exception):
    """Terminal pipeline failure surfaced to the caller."""

    kind: ErrorKind = ErrorKind.UPSTREAM_UNAVAILABLE
    default_status_code: int = 500

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        detail: str | None = None,
        hint: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code if status_code is not None else self.default_status_code
        self.detail = detail
        self.hint = hint if hint is not None else STATUS_HINTS.get(self.status_code)


class InputInvalidError(LinkedInImportError):
    kind = ErrorKind.INPUT_INVALID
    default_status_code = 400


class UpstreamRejectedError(LinkedInImportError):
    kind = ErrorKind.UPSTREAM_REJECTED
    default_status_code = 400


class UpstreamRateLimitedError(LinkedInImportError):
    kind = ErrorKind.UPSTREAM_RATE_LIMITED
    default_status_code = 429


class UpstreamUnavailableError(LinkedInImportError):
    kind = ErrorKind.UPSTREAM_UNAVAILABLE
    default_status_code = 502


class TokenExchangeFailedError(LinkedInImportError):
    """The authorization code could not be exchanged; never retried."""

    def __init__(
        self,
        message: str,
        *,
        kind: ErrorKind,
        status_code: int,
        detail: str | None = None,
    ) -> None:
        super().__init__(message, status_code=status_code, detail=detail)
        self.kind = kind

    @property
    def rejected(self) -> bool:
        return self.kind == ErrorKind.UPSTREAM_REJECTED


class MergeIncompleteError(LinkedInImportError):
    kind = ErrorKind.MERGE_INCOMPLETE
    default_status_code = 502


class ConfigurationError(LinkedInImportError):
    kind = ErrorKind.CONFIGURATION_ERROR
    default_status_code = 500


class PersistenceError(LinkedInImportError):
    kind = ErrorKind.PERSISTENCE_FAILED
    default_status_code = 500


class ScrapeValidationError(InputInvalidError):
    """The scrape target is not a public LinkedIn profile URL."""


class SourcePayloadError(ValueError):
    """An upstream body could not be interpreted as the expected shape."""


def upstream_error_kind(status_code: int | None) -> ErrorKind:
    if status_code is None or status_code >= 500 or 200 <= status_code < 300:
        return ErrorKind.UPSTREAM_UNAVAILABLE
    if status_code == 429:
        return ErrorKind.UPSTREAM_RATE_LIMITED
    return ErrorKind.UPSTREAM_REJECTED


_UPSTREAM_ERRORS: dict[ErrorKind, type[LinkedInImportError]] = {
    ErrorKind.UPSTREAM_REJECTED: UpstreamRejectedError,
    ErrorKind.UPSTREAM_RATE_LIMITED: UpstreamRateLimitedError,
    ErrorKind.UPSTREAM_UNAVAILABLE: UpstreamUnavailableError,
}


def upstream_error(message: str, *, status_code: int | None, detail: str | None) -> LinkedInImportError:
    """Build the terminal error for a failed upstream call, keeping its status."""
    kind = upstream_error_kind(status_code)
    surfaced_status = status_code if status_code is not None and status_code >= 400 else 502
    return _UPSTREAM_ERRORS[kind](message, status_code=surfaced_status, detail=detail)
