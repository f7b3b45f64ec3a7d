"""
Environment-driven configuration for the widget service.
Server settings (proxy, storage, logging) live on the config classes;
per-widget presentation settings live on WidgetConfig.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields
from typing import Any, Dict, Mapping


class BaseConfig:
    SECRET_KEY: str = os.getenv("SECRET_KEY", "dev-secret-change-me")
    JSON_SORT_KEYS: bool = False

    # Downstream workflow webhook. N8N_WEBHOOK_URL kept for older deployments.
    WEBHOOK_URL: str = (os.getenv("WEBHOOK_URL") or os.getenv("N8N_WEBHOOK_URL", "")).strip()
    WEBHOOK_TIMEOUT_SECONDS: int = int(os.getenv("WEBHOOK_TIMEOUT_SECONDS", "30"))
    # When set, user.sessionId is also copied to this top-level key of the forwarded body
    WEBHOOK_SESSION_FIELD: str = os.getenv("WEBHOOK_SESSION_FIELD", "").strip()

    # Tab-scoped storage: "memory" or "redis"
    STORAGE_BACKEND: str = os.getenv("STORAGE_BACKEND", "memory").strip().lower()
    MEMORY_MAX_TABS: int = int(os.getenv("MEMORY_MAX_TABS", 1000))
    REDIS_HOST: str = os.getenv("REDIS_HOST", "localhost")
    REDIS_PORT: int = int(os.getenv("REDIS_PORT", 6379))
    REDIS_DB: int = int(os.getenv("REDIS_DB", 0))
    REDIS_DECODE_RESPONSES: bool = True
    REDIS_TTL_SECONDS: int = int(os.getenv("REDIS_TTL_SECONDS", 3600))

    CORS_ALLOW_ORIGINS: str = os.getenv("CORS_ALLOW_ORIGINS", "*")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Defaults for widgets rendered by this service
    WIDGET_API_URL: str = os.getenv("WIDGET_API_URL", "http://localhost:8080/api/chat")
    WIDGET_PRIMARY_COLOR: str = os.getenv("WIDGET_PRIMARY_COLOR", "#5B8DEF")
    WIDGET_COMPANY_NAME: str = os.getenv("WIDGET_COMPANY_NAME", "Support")
    WIDGET_LOGO_URL: str = os.getenv("WIDGET_LOGO_URL", "")
    WIDGET_WELCOME_MESSAGE: str = os.getenv("WIDGET_WELCOME_MESSAGE", "Hello! How can we help?")


class DevelopmentConfig(BaseConfig):
    DEBUG: bool = True


class ProductionConfig(BaseConfig):
    DEBUG: bool = False
    REDIS_TTL_SECONDS: int = int(os.getenv("REDIS_TTL_SECONDS", "1800"))


class TestingConfig(BaseConfig):
    TESTING: bool = True
    STORAGE_BACKEND: str = "memory"
    MEMORY_MAX_TABS: int = int(os.getenv("MEMORY_MAX_TABS", 1000))
    REDIS_DB: int = 15


def get_config() -> BaseConfig:
    """Pick the config class from APP_ENV (falls back to development)."""
    env = os.getenv("APP_ENV", os.getenv("FLASK_ENV", "development")).lower()
    mapping = {
        "development": DevelopmentConfig,
        "production": ProductionConfig,
        "testing": TestingConfig,
        "test": TestingConfig,
    }
    config_class = mapping.get(env, DevelopmentConfig)
    cfg = config_class()

    log = logging.getLogger(__name__)
    if not hasattr(get_config, "_logged_startup"):
        log.info(f"⚙️ CONFIG_STARTUP | env={env} | config_class={config_class.__name__}")
        log.info(
            f"🔗 WEBHOOK_CONFIG | configured={bool(cfg.WEBHOOK_URL)} | "
            f"timeout={cfg.WEBHOOK_TIMEOUT_SECONDS}s | session_field={cfg.WEBHOOK_SESSION_FIELD or '-'}"
        )
        log.info(
            f"💾 STORAGE_CONFIG | backend={cfg.STORAGE_BACKEND} | host={cfg.REDIS_HOST} | "
            f"port={cfg.REDIS_PORT} | db={cfg.REDIS_DB} | ttl={cfg.REDIS_TTL_SECONDS}s"
        )
        get_config._logged_startup = True

    return cfg


# camelCase keys accepted by the embed snippet
_ALIASES = {
    "primaryColor": "primary_color",
    "companyName": "company_name",
    "logoUrl": "logo_url",
    "welcomeMessage": "welcome_message",
    "apiUrl": "api_url",
    "containerWidth": "container_width",
    "cardWidth": "card_width",
    "transitionMs": "transition_ms",
}


@dataclass
class WidgetConfig:
    """Constructor-time options for one widget instance."""
    primary_color: str = "#5B8DEF"
    company_name: str = "Support"
    logo_url: str = ""
    welcome_message: str = "Hello! How can we help?"
    api_url: str = "http://localhost:8080/api/chat"
    container: str = "body"

    # Carousel geometry and timing
    container_width: float = 360.0
    card_width: float = 140.0
    transition_ms: int = 400

    @classmethod
    def from_mapping(cls, options: Mapping[str, Any] | None = None) -> "WidgetConfig":
        """Build from a dict using either snake_case or the embed snippet's camelCase keys."""
        known = {f.name for f in fields(cls)}
        kwargs: Dict[str, Any] = {}
        for key, value in (options or {}).items():
            name = _ALIASES.get(key, key)
            if name in known and value is not None:
                kwargs[name] = value
        return cls(**kwargs)

    @classmethod
    def from_app_config(cls, cfg: BaseConfig, **overrides: Any) -> "WidgetConfig":
        base = {
            "primary_color": cfg.WIDGET_PRIMARY_COLOR,
            "company_name": cfg.WIDGET_COMPANY_NAME,
            "logo_url": cfg.WIDGET_LOGO_URL,
            "welcome_message": cfg.WIDGET_WELCOME_MESSAGE,
            "api_url": cfg.WIDGET_API_URL,
        }
        base.update(overrides)
        return cls.from_mapping(base)
