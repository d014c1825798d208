"""
Configuration Module
------------------
Reads application settings from environment variables and sets up logging.
"""
import logging
import os
from typing import List, Optional

from pydantic import BaseModel

from campshare.geocoding.nominatim import NOMINATIM_SEARCH_URL, USER_AGENT

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
REQUIRED_ENV_VARS = ["DB_URL", "SECRET"]
DEV_ORIGINS = ["http://localhost:5173", "http://localhost:3000"]


class ConfigError(Exception):
    pass


class Settings(BaseModel):
    database_url: str
    secret: str
    environment: str = "development"
    geocoding_enabled: bool = True
    nominatim_url: str = NOMINATIM_SEARCH_URL
    geocoder_user_agent: str = USER_AGENT
    media_root: str = "media"
    media_url: str = "/media"
    session_max_age: int = 60 * 60 * 24 * 7
    cookie_name: str = "campshare.sid"
    frontend_url: Optional[str] = None
    admin_token: Optional[str] = None
    log_level: str = "INFO"
    rate_limiting_enabled: bool = True
    rate_limit: str = "100/15minutes"
    auth_rate_limit: str = "5/15minutes"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def cors_origins(self) -> List[str]:
        origins = list(DEV_ORIGINS)
        if self.frontend_url:
            origins.append(self.frontend_url)
        return origins


def _env_flag(value: Optional[str], default: bool) -> bool:
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def load_settings(environ=None) -> Settings:
    """
    Build Settings from the environment.

    Raises ConfigError listing every required variable that is missing.
    """
    env = os.environ if environ is None else environ

    missing = [name for name in REQUIRED_ENV_VARS if not env.get(name)]
    if missing:
        raise ConfigError(f"Missing required environment variables: {', '.join(missing)}")

    settings = Settings(
        database_url=env["DB_URL"],
        secret=env["SECRET"],
        environment=env.get("APP_ENV", "development"),
        geocoding_enabled=_env_flag(env.get("GEOCODING_ENABLED"), True),
        nominatim_url=env.get("NOMINATIM_URL", NOMINATIM_SEARCH_URL),
        geocoder_user_agent=env.get("GEOCODER_USER_AGENT", USER_AGENT),
        media_root=env.get("MEDIA_ROOT", "media"),
        media_url=env.get("MEDIA_URL", "/media"),
        session_max_age=int(env.get("SESSION_MAX_AGE", 60 * 60 * 24 * 7)),
        frontend_url=env.get("FRONTEND_URL") or None,
        admin_token=env.get("ADMIN_TOKEN") or None,
        log_level=env.get("LOG_LEVEL", "INFO"),
        rate_limiting_enabled=_env_flag(env.get("RATE_LIMITING_ENABLED"), True),
        rate_limit=env.get("RATE_LIMIT", "100/15minutes"),
        auth_rate_limit=env.get("AUTH_RATE_LIMIT", "5/15minutes"),
    )

    if not settings.geocoding_enabled:
        logger.warning("Geocoding is disabled. Campgrounds must be submitted with explicit geometry.")

    return settings


def configure_logging(level="INFO"):
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler()]
    )
