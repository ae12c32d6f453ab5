"""Application configuration with environment-specific profiles.

Supports dev, test, staging, and production environments via APP_ENV.
All values can be overridden by environment variables.
"""

from __future__ import annotations

import os
import string
from dataclasses import dataclass


DEFAULT_CODE_ALPHABET = string.ascii_uppercase + string.digits


@dataclass(frozen=True)
class Settings:
    """Immutable application settings resolved from environment."""

    database_url: str
    app_env: str = "dev"
    log_level: str = "INFO"

    # Group join codes
    group_code_length: int = 5
    group_code_alphabet: str = DEFAULT_CODE_ALPHABET
    group_code_max_attempts: int = 1000
    group_create_max_retries: int = 3

    # Athlete activity feed
    feed_window_days: int = 7

    # Pagination
    default_page_size: int = 50
    max_page_size: int = 200

    def __post_init__(self) -> None:
        if self.group_code_length <= 0 or not self.group_code_alphabet:
            raise ValueError("group codes need a positive length and a non-empty alphabet")
        if self.feed_window_days < 0:
            raise ValueError("FEED_WINDOW_DAYS must be >= 0")
        if not 1 <= self.default_page_size <= self.max_page_size:
            raise ValueError("DEFAULT_PAGE_SIZE must be between 1 and MAX_PAGE_SIZE")

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"


# -- Environment profiles --

_ENV_PROFILES: dict[str, dict] = {
    "dev": {
        "log_level": "DEBUG",
    },
    "test": {
        "log_level": "WARNING",
        "group_code_max_attempts": 200,
    },
    "staging": {
        "log_level": "INFO",
    },
    "production": {
        "log_level": "WARNING",
        "group_create_max_retries": 5,
    },
}


def get_database_url() -> str:
    """Resolve database URL from the environment or a local SQLite default."""
    env_url = os.getenv("DATABASE_URL")
    if env_url:
        return env_url
    return "sqlite+pysqlite:///./test_tracker.db"


def get_settings() -> Settings:
    """Build Settings by merging environment profile with env-var overrides."""
    app_env = os.getenv("APP_ENV", "dev")
    profile = _ENV_PROFILES.get(app_env, _ENV_PROFILES["dev"])

    return Settings(
        database_url=get_database_url(),
        app_env=app_env,
        log_level=os.getenv("LOG_LEVEL", profile.get("log_level", "INFO")),
        group_code_length=int(os.getenv("GROUP_CODE_LENGTH", "5")),
        group_code_alphabet=os.getenv("GROUP_CODE_ALPHABET", DEFAULT_CODE_ALPHABET),
        group_code_max_attempts=int(
            os.getenv("GROUP_CODE_MAX_ATTEMPTS", str(profile.get("group_code_max_attempts", 1000)))
        ),
        group_create_max_retries=int(
            os.getenv("GROUP_CREATE_MAX_RETRIES", str(profile.get("group_create_max_retries", 3)))
        ),
        feed_window_days=int(os.getenv("FEED_WINDOW_DAYS", "7")),
        default_page_size=int(os.getenv("DEFAULT_PAGE_SIZE", "50")),
        max_page_size=int(os.getenv("MAX_PAGE_SIZE", "200")),
    )
