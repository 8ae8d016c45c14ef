from __future__ import annotations

from datetime import UTC, datetime
import json
import logging
import sys
from typing import Any

from linkedin_import.logging_context import get_request_id

DEFAULT_REDACT_FIELDS = {
    "access_token",
    "authorization",
    "client_secret",
    "code",
    "cookie",
    "id_token",
    "refresh_token",
}

_BASE_RECORD = logging.makeLogRecord({})
_STANDARD_RECORD_FIELDS = set(_BASE_RECORD.__dict__.keys()) | {"message", "asctime"}
_NOISY_RECORD_FIELDS = {"color_message"}


def parse_redact_fields(raw: str | None) -> set[str]:
    fields = {field.strip().lower() for field in (raw or "").split(",") if field.strip()}
    return DEFAULT_REDACT_FIELDS | fields


def configure_logging(
    *,
    level: str,
    log_format: str,
    redact_fields: set[str],
    include_uvicorn_access: bool,
) -> None:
    normalized_level = _normalize_level(level)
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(normalized_level)

    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setLevel(normalized_level)
    handler.addFilter(RequestContextFilter())

    if log_format.strip().lower() == "json":
        handler.setFormatter(JsonLogFormatter(redact_fields=redact_fields))
    else:
        handler.setFormatter(ConsoleLogFormatter(redact_fields=redact_fields))

    root_logger.addHandler(handler)

    # Route server logs through the single root handler.
    for logger_name in ("uvicorn", "uvicorn.error"):
        framework_logger = logging.getLogger(logger_name)
        framework_logger.handlers.clear()
        framework_logger.propagate = True
        framework_logger.setLevel(normalized_level)

    access_logger = logging.getLogger("uvicorn.access")
    access_logger.handlers.clear()
    access_logger.propagate = True
    access_logger.setLevel(normalized_level if include_uvicorn_access else logging.WARNING)

    # httpx logs every request URL at INFO, which would duplicate our attempt logs.
    logging.getLogger("httpx").setLevel(max(normalized_level, logging.WARNING))


class RequestContextFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "request_id", None):
            request_id = get_request_id()
            if request_id:
                record.request_id = request_id
        return True


class JsonLogFormatter(logging.Formatter):
    def __init__(self, *, redact_fields: set[str]) -> None:
        super().__init__()
        self._redact_fields = {field.lower() for field in redact_fields}

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": _format_timestamp(record.created),
            "level": record.levelname.lower(),
            "logger": record.name,
            "event": getattr(record, "event", record.getMessage()),
        }
        request_id = getattr(record, "request_id", None)
        if request_id:
            payload["request_id"] = request_id
        payload.update(self._redact_mapping(_extra_fields(record)))
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=True, default=str)

    def _redact_mapping(self, value: dict[str, Any]) -> dict[str, Any]:
        return {key: self._redact_value(key, item) for key, item in value.items()}

    def _redact_value(self, key: str, value: Any) -> Any:
        if key.lower() in self._redact_fields:
            return "[REDACTED]"
        if isinstance(value, dict):
            return {nested_key: self._redact_value(nested_key, nested_value) for nested_key, nested_value in value.items()}
        if isinstance(value, (list, tuple)):
            return [self._redact_value(key, item) for item in value]
        return value


_CONSOLE_SHORT_KEYS = {
    "user_id": "user",
    "linkedin_id": "member",
    "status_code": "status",
}
# Upstream call context goes right after the event so retries read left to right.
_CONSOLE_LEAD_KEYS = ("source", "label", "status_code", "classification")
_CONSOLE_VALUE_LIMIT = 160


class ConsoleLogFormatter(logging.Formatter):
    """One line per record: time, level, event, then the upstream call context."""

    def __init__(self, *, redact_fields: set[str]) -> None:
        super().__init__()
        self._json_formatter = JsonLogFormatter(redact_fields=redact_fields)

    def format(self, record: logging.LogRecord) -> str:
        payload = json.loads(self._json_formatter.format(record))
        exception = payload.pop("exception", None)
        logger_name = str(payload.pop("logger", ""))
        parts = [
            payload.pop("timestamp", ""),
            _short_level(payload.pop("level", "info")),
            str(payload.pop("event", "")),
        ]

        request_id = payload.pop("request_id", None)
        if request_id:
            parts.append(f"rid={request_id}")
        method, path = payload.pop("method", None), payload.pop("path", None)
        if method and path:
            parts.append(f"{method} {path}")
        duration_ms = payload.pop("duration_ms", None)
        if duration_ms is not None:
            parts.append(f"{duration_ms}ms")

        attempt_number = payload.pop("attempt_number", None)
        max_attempts = payload.pop("max_attempts", None)
        if attempt_number is not None:
            parts.append(f"attempt={attempt_number}/{max_attempts}" if max_attempts else f"attempt={attempt_number}")

        ordered_keys = [key for key in _CONSOLE_LEAD_KEYS if key in payload]
        ordered_keys.extend(sorted(key for key in payload if key not in _CONSOLE_LEAD_KEYS))
        for key in ordered_keys:
            parts.append(f"{_CONSOLE_SHORT_KEYS.get(key, key)}={_console_value(payload[key])}")

        # Our own event names already say where they come from.
        if logger_name and not logger_name.startswith("linkedin_import"):
            parts.append(f"logger={logger_name}")
        if exception:
            parts.append(f"exception={exception}")
        return " | ".join(str(part) for part in parts if part)


def _console_value(value: Any) -> str:
    text = str(value)
    if len(text) <= _CONSOLE_VALUE_LIMIT:
        return text
    return text[: _CONSOLE_VALUE_LIMIT - 3] + "..."


def _extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    extras: dict[str, Any] = {}
    for key, value in record.__dict__.items():
        if key in _STANDARD_RECORD_FIELDS or key.startswith("_"):
            continue
        if key in _NOISY_RECORD_FIELDS:
            continue
        extras[key] = value
    return extras


def _normalize_level(level: str) -> int:
    normalized = level.strip().upper()
    mapping = logging.getLevelNamesMapping()
    return mapping.get(normalized, logging.INFO)


def _format_timestamp(created_ts: float) -> str:
    return datetime.fromtimestamp(created_ts, tz=UTC).strftime("%Y-%m-%d %H:%M:%SZ")


def _short_level(level: str) -> str:
    mapping = {
        "debug": "DBG",
        "info": "INF",
        "warning": "WRN",
        "error": "ERR",
        "critical": "CRT",
    }
    return mapping.get(level.lower(), level[:3].upper())
