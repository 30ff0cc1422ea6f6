"""Environment configuration, .env loading, and validation.

WHY: The bot needs tokens for Slack, an API key and base URL for the asset
API, a default locale, and a button timeout. Collecting them in one typed
object keeps every other module free of os.environ lookups.

HOW: python-dotenv loads the .env file on import. Settings.from_env()
reads each variable, validates the whole set, and raises a single
ConfigError listing every problem so a broken deployment is fixed in one
pass.

RULES:
- LOCALE must be one of SUPPORTED_LOCALES
- DB_DRIVER must be sqlite3 or mysql (database settings are validated but
  never used for business data)
- Tokens, API key and base URL are required, 1-256 characters
- STORY_BUTTON_TIMEOUT_SEC defaults to 300 and must be a positive integer
- Unknown LOG_LEVEL values fall back to INFO
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping

from dotenv import load_dotenv

# Load .env from the project root (where the bot is started from)
load_dotenv()

SUPPORTED_LOCALES = ("en", "ru")
SUPPORTED_DB_DRIVERS = ("sqlite3", "mysql")

DEFAULT_BUTTON_TIMEOUT_SEC = 300

_LOG_LEVELS: dict[str, int] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "fatal": logging.CRITICAL,
    "panic": logging.CRITICAL,
}


class ConfigError(ValueError):
    """Raised when the environment does not describe a runnable bot.

    The message lists every invalid variable, one per line.
    """

    def __init__(self, problems: list[str]) -> None:
        self.problems = problems
        super().__init__(
            "Invalid configuration:\n" + "\n".join("- " + p for p in problems)
        )


def parse_log_level(raw: str | None) -> int:
    """Map a LOG_LEVEL string to a logging level (default INFO)."""
    return _LOG_LEVELS.get((raw or "").strip().lower(), logging.INFO)


@dataclass(frozen=True)
class Settings:
    """Validated bot configuration.

    Read-only after construction; shared by every handler thread.
    """

    slack_bot_token: str
    slack_app_token: str
    story_api_key: str
    story_api_base_url: str
    locale: str = "en"
    button_timeout_sec: int = DEFAULT_BUTTON_TIMEOUT_SEC
    log_level: int = logging.INFO
    db_driver: str = "sqlite3"
    db_name: str = ""
    db_user: str = ""
    db_password: str = ""

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """Build Settings from environment variables.

        Args:
            environ: Mapping to read from. Defaults to os.environ
                     (already populated from .env by python-dotenv).

        Raises:
            ConfigError: listing every missing or invalid variable.
        """
        env = os.environ if environ is None else environ

        def get(name: str) -> str:
            return (env.get(name) or "").strip()

        problems: list[str] = []

        locale = get("LOCALE").lower()
        if locale not in SUPPORTED_LOCALES:
            problems.append(
                "LOCALE must be one of {} (got {!r})".format(
                    ", ".join(SUPPORTED_LOCALES), locale
                )
            )

        db_driver = get("DB_DRIVER")
        if db_driver not in SUPPORTED_DB_DRIVERS:
            problems.append(
                "DB_DRIVER must be one of {} (got {!r})".format(
                    ", ".join(SUPPORTED_DB_DRIVERS), db_driver
                )
            )

        db_name = get("DB_NAME")
        if not 4 <= len(db_name) <= 64:
            problems.append("DB_NAME must be 4-64 characters")

        db_user = get("DB_USER")
        db_password = get("DB_PASSWORD")
        if len(db_user) > 64:
            problems.append("DB_USER must be at most 64 characters")
        if len(db_password) > 64:
            problems.append("DB_PASSWORD must be at most 64 characters")

        required = {}
        for name in (
            "SLACK_BOT_TOKEN",
            "SLACK_APP_TOKEN",
            "STORY_API_KEY",
            "STORY_API_BASE_URL",
        ):
            value = get(name)
            if not 1 <= len(value) <= 256:
                problems.append("{} is required (1-256 characters)".format(name))
            required[name] = value

        timeout = DEFAULT_BUTTON_TIMEOUT_SEC
        raw_timeout = get("STORY_BUTTON_TIMEOUT_SEC")
        if raw_timeout:
            try:
                timeout = int(raw_timeout)
            except ValueError:
                problems.append("STORY_BUTTON_TIMEOUT_SEC must be an integer")
            else:
                if timeout <= 0:
                    problems.append("STORY_BUTTON_TIMEOUT_SEC must be positive")

        if problems:
            raise ConfigError(problems)

        return cls(
            slack_bot_token=required["SLACK_BOT_TOKEN"],
            slack_app_token=required["SLACK_APP_TOKEN"],
            story_api_key=required["STORY_API_KEY"],
            story_api_base_url=required["STORY_API_BASE_URL"].rstrip("/"),
            locale=locale,
            button_timeout_sec=timeout,
            log_level=parse_log_level(get("LOG_LEVEL")),
            db_driver=db_driver,
            db_name=db_name,
            db_user=db_user,
            db_password=db_password,
        )
