"""Runtime configuration, read from HTTPIDS_* environment variables."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from httpids.rules.parser import DEFAULT_RULES_PATH


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="HTTPIDS_")

    rules_path: str = DEFAULT_RULES_PATH
    log_level: str = "INFO"
    log_format: str = Field(default="console", pattern="^(console|json)$")
    dashboard_host: str = "127.0.0.1"
    dashboard_port: int = Field(default=5000, ge=1, le=65535)
    # let the Werkzeug development server listen on non-loopback addresses
    dashboard_unsafe_werkzeug: bool = False


@lru_cache
def get_settings() -> Settings:
    return Settings()
