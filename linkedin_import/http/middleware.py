from __future__ import annotations

from secrets import token_urlsafe
import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from linkedin_import.logging_context import bind_request_id, unbind_request_id
from linkedin_import.logging_utils import structured_log

REQUEST_ID_HEADER = "X-Request-ID"
MAX_INBOUND_REQUEST_ID_LENGTH = 128

logger = logging.getLogger(__name__)


def _inbound_request_id(request: Request) -> str | None:
    value = (request.headers.get(REQUEST_ID_HEADER) or "").strip()
    if not value or len(value) > MAX_INBOUND_REQUEST_ID_LENGTH:
        return None
    return value


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app,
        *,
        log_requests: bool = True,
        skip_paths: tuple[str, ...] = (),
    ) -> None:
        super().__init__(app)
        self._log_requests = log_requests
        self._skip_paths = tuple(path for path in skip_paths if path)

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = _inbound_request_id(request) or token_urlsafe(12)
        request.state.request_id = request_id
        token = bind_request_id(request_id)

        start = time.perf_counter()
        should_log = self._log_requests and not self._is_skipped_path(request.url.path)
        if should_log:
            structured_log(
                logger, "debug", "request.started",
                method=request.method,
                path=request.url.path,
            )

        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                "request.failed",
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "duration_ms": _elapsed_ms(start),
                },
            )
            raise
        else:
            response.headers[REQUEST_ID_HEADER] = request_id
            if should_log:
                structured_log(
                    logger, "info", "request.completed",
                    method=request.method,
                    path=request.url.path,
                    status_code=response.status_code,
                    duration_ms=_elapsed_ms(start),
                )
            return response
        finally:
            unbind_request_id(token)

    def _is_skipped_path(self, path: str) -> bool:
        return any(path.startswith(prefix) for prefix in self._skip_paths)


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


def parse_skip_paths(raw_value: str) -> tuple[str, ...]:
    parts = [part.strip() for part in raw_value.split(",")]
    return tuple(part for part in parts if part)
