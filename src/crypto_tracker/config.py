"""Runtime configuration read from environment variables."""
import os

from pydantic import BaseModel

_DEFAULT_DATABASE_URL = "sqlite:///./crypto_tracker.db"
_DEFAULT_NEWS_API_URL = "https://min-api.cryptocompare.com"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return int(raw)


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class Settings(BaseModel):
    """Service settings. Durations are kept in milliseconds, as configured."""

    coingecko_api_key: str | None = None
    news_api_url: str = _DEFAULT_NEWS_API_URL
    http_timeout_seconds: float = 15.0

    cache_ttl_ms: int = 30_000
    request_delay_ms: int = 1_000
    cache_max_entries: int = 1_000

    alerts_scheduler_enabled: bool = True
    alert_check_interval_ms: int = 60_000
    alert_snapshot_size: int = 250
    alert_snapshot_page: int = 1
    alert_tick_timeout_ms: int = 0  # 0 disables the per-tick deadline

    database_url: str = _DEFAULT_DATABASE_URL
    sql_echo: bool = False

    smtp_host: str | None = None
    smtp_port: int = 587
    smtp_user: str | None = None
    smtp_password: str | None = None
    email_from: str | None = None
    frontend_url: str = "http://localhost:3000"

    auth0_domain: str | None = None
    auth0_client_id: str | None = None
    auth0_client_secret: str | None = None

    log_level: str = "INFO"

    @property
    def cache_ttl_seconds(self) -> float:
        return self.cache_ttl_ms / 1000

    @property
    def request_delay_seconds(self) -> float:
        return self.request_delay_ms / 1000

    @property
    def alert_check_interval_seconds(self) -> float:
        return self.alert_check_interval_ms / 1000

    @property
    def alert_tick_timeout_seconds(self) -> float | None:
        if self.alert_tick_timeout_ms <= 0:
            return None
        return self.alert_tick_timeout_ms / 1000

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the process environment, falling back to defaults."""
        defaults = cls()
        return cls(
            coingecko_api_key=os.getenv("COINGECKO_API_KEY") or None,
            news_api_url=os.getenv("NEWS_API_URL", defaults.news_api_url),
            http_timeout_seconds=float(
                os.getenv("HTTP_TIMEOUT_SECONDS", defaults.http_timeout_seconds)
            ),
            cache_ttl_ms=_env_int("CACHE_TTL_MS", defaults.cache_ttl_ms),
            request_delay_ms=_env_int("REQUEST_DELAY_MS", defaults.request_delay_ms),
            cache_max_entries=_env_int("CACHE_MAX_ENTRIES", defaults.cache_max_entries),
            alerts_scheduler_enabled=_env_flag(
                "ALERTS_SCHEDULER_ENABLED", defaults.alerts_scheduler_enabled
            ),
            alert_check_interval_ms=_env_int(
                "ALERT_CHECK_INTERVAL_MS", defaults.alert_check_interval_ms
            ),
            alert_snapshot_size=_env_int("ALERT_SNAPSHOT_SIZE", defaults.alert_snapshot_size),
            alert_snapshot_page=_env_int("ALERT_SNAPSHOT_PAGE", defaults.alert_snapshot_page),
            alert_tick_timeout_ms=_env_int(
                "ALERT_TICK_TIMEOUT_MS", defaults.alert_tick_timeout_ms
            ),
            database_url=os.getenv("DATABASE_URL", defaults.database_url),
            sql_echo=os.getenv("SQL_ECHO", "0") == "1",
            smtp_host=os.getenv("SMTP_HOST") or None,
            smtp_port=_env_int("SMTP_PORT", defaults.smtp_port),
            smtp_user=os.getenv("SMTP_USER") or None,
            smtp_password=os.getenv("SMTP_PASSWORD") or None,
            email_from=os.getenv("EMAIL_FROM") or os.getenv("SMTP_USER") or None,
            frontend_url=os.getenv("FRONTEND_URL", defaults.frontend_url),
            auth0_domain=os.getenv("AUTH0_DOMAIN") or None,
            auth0_client_id=os.getenv("AUTH0_CLIENT_ID") or None,
            auth0_client_secret=os.getenv("AUTH0_CLIENT_SECRET") or None,
            log_level=os.getenv("LOG_LEVEL", defaults.log_level),
        )
