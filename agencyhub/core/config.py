from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal

AppEnv = Literal["dev", "test", "prod"]
LogLevel = Literal["debug", "info", "warning", "error"]


def _getenv(name: str, default: str) -> str:
    return os.environ.get(name, default).strip()


def _getenv_bool(name: str, default: bool) -> bool:
    raw = _getenv(name, "true" if default else "false").lower()
    if raw in ("1", "true", "yes", "on"):
        return True
    if raw in ("0", "false", "no", "off", ""):
        return False
    raise ValueError(f"{name} must be a boolean (got {raw!r})")


def _getenv_int(name: str, default: int) -> int:
    raw = _getenv(name, str(default))
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer (got {raw!r})") from None


@dataclass(frozen=True)
class Settings:
    app_env: AppEnv
    log_level: LogLevel
    log_json: bool
    port: int
    database_url: str | None
    redis_url: str | None
    stripe_secret_key: str | None = None
    stripe_webhook_secret: str | None = None
    pagseguro_webhook_secret: str | None = None
    ai_api_key: str | None = None
    ai_base_url: str = "https://api.openai.com/v1"
    ai_model: str = "gpt-4o-mini"
    ai_timeout_seconds: int = 30
    analytics_cache_ttl: int = 300

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"

    @property
    def is_test(self) -> bool:
        return self.app_env == "test"

    @property
    def is_prod(self) -> bool:
        return self.app_env == "prod"


def load_settings() -> Settings:
    app_env_raw = _getenv("APP_ENV", "dev").lower()
    log_level_raw = _getenv("LOG_LEVEL", "info").lower()

    if app_env_raw not in ("dev", "test", "prod"):
        raise ValueError(f"APP_ENV must be dev|test|prod (got {app_env_raw!r})")

    if log_level_raw not in ("debug", "info", "warning", "error"):
        raise ValueError(
            f"LOG_LEVEL must be debug|info|warning|error (got {log_level_raw!r})"
        )

    port = _getenv_int("PORT", 8000)
    ai_timeout = _getenv_int("AI_TIMEOUT_SECONDS", 30)
    cache_ttl = _getenv_int("ANALYTICS_CACHE_TTL", 300)
    if cache_ttl < 0:
        raise ValueError(f"ANALYTICS_CACHE_TTL must be >= 0 (got {cache_ttl})")

    return Settings(  # type: ignore[arg-type]
        app_env=app_env_raw,
        log_level=log_level_raw,
        log_json=_getenv_bool("LOG_JSON", False),
        port=port,
        database_url=_getenv("DATABASE_URL", "") or None,
        redis_url=_getenv("REDIS_URL", "") or None,
        stripe_secret_key=_getenv("STRIPE_SECRET_KEY", "") or None,
        stripe_webhook_secret=_getenv("STRIPE_WEBHOOK_SECRET", "") or None,
        pagseguro_webhook_secret=_getenv("PAGSEGURO_WEBHOOK_SECRET", "") or None,
        ai_api_key=_getenv("AI_API_KEY", "") or None,
        ai_base_url=_getenv("AI_BASE_URL", "https://api.openai.com/v1").rstrip("/"),
        ai_model=_getenv("AI_MODEL", "gpt-4o-mini"),
        ai_timeout_seconds=ai_timeout,
        analytics_cache_ttl=cache_ttl,
    )


SETTINGS = load_settings()
