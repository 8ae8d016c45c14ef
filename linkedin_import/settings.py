from dataclasses import dataclass
import os

DEFAULT_LINKEDIN_SCRAPE_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    return int(value)


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    return float(value)


def _env_str(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip() or default


def parse_backoff_schedule(raw: str) -> tuple[float, ...]:
    """Parse a comma separated list of delays; delays must never decrease."""
    delays = tuple(max(float(part.strip()), 0.0) for part in raw.split(",") if part.strip())
    for previous, current in zip(delays, delays[1:]):
        if current < previous:
            raise ValueError(f"backoff schedule must be non-decreasing: {raw!r}")
    return delays


@dataclass(frozen=True)
class Settings:
    app_name: str = os.getenv("APP_NAME", "linkedin-import")
    database_url: str = os.getenv(
        "DATABASE_URL",
        "postgresql+asyncpg://linkedin:linkedin@db:5432/linkedin",
    )
    database_pool_mode: str = _env_str("DATABASE_POOL_MODE", "auto")
    database_pool_size: int = _env_int("DATABASE_POOL_SIZE", 5)
    database_pool_max_overflow: int = _env_int("DATABASE_POOL_MAX_OVERFLOW", 10)
    database_pool_timeout_seconds: int = _env_int("DATABASE_POOL_TIMEOUT_SECONDS", 30)
    log_level: str = _env_str("LOG_LEVEL", "INFO")
    log_format: str = _env_str("LOG_FORMAT", "console")
    log_requests: bool = _env_bool("LOG_REQUESTS", True)
    log_uvicorn_access: bool = _env_bool("LOG_UVICORN_ACCESS", False)
    log_request_skip_paths: str = _env_str("LOG_REQUEST_SKIP_PATHS", "/healthz")
    log_redact_fields: str = os.getenv("LOG_REDACT_FIELDS", "")
    linkedin_client_id: str = os.getenv("LINKEDIN_CLIENT_ID", "").strip()
    linkedin_client_secret: str = os.getenv("LINKEDIN_CLIENT_SECRET", "").strip()
    linkedin_redirect_uri: str = os.getenv("LINKEDIN_REDIRECT_URI", "").strip()
    linkedin_http_timeout_seconds: float = _env_float("LINKEDIN_HTTP_TIMEOUT_SECONDS", 15.0)
    linkedin_retry_max_attempts: int = _env_int("LINKEDIN_RETRY_MAX_ATTEMPTS", 3)
    linkedin_retry_backoff_seconds: str = _env_str("LINKEDIN_RETRY_BACKOFF_SECONDS", "2,4")
    linkedin_scrape_enabled: bool = _env_bool("LINKEDIN_SCRAPE_ENABLED", True)
    linkedin_scraper_url: str = os.getenv("LINKEDIN_SCRAPER_URL", "").strip()
    linkedin_scrape_timeout_seconds: float = _env_float("LINKEDIN_SCRAPE_TIMEOUT_SECONDS", 20.0)
    linkedin_scrape_max_html_bytes: int = _env_int("LINKEDIN_SCRAPE_MAX_HTML_BYTES", 2_000_000)
    linkedin_scrape_user_agent: str = _env_str(
        "LINKEDIN_SCRAPE_USER_AGENT",
        DEFAULT_LINKEDIN_SCRAPE_USER_AGENT,
    )


settings = Settings()
