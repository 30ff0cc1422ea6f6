"""Application context shared by every handler.

Built once at startup and passed by reference into the router; holds the
validated settings, the API client, and the translator. Nothing in it is
mutated after construction, so handler threads share it without locking.
"""

from __future__ import annotations

from dataclasses import dataclass

from license_bot.api.client import StoryClient
from license_bot.config import Settings
from license_bot.i18n import DEFAULT_LOCALE, Translator, detect_locale


@dataclass(frozen=True)
class AppContext:
    settings: Settings
    client: StoryClient
    translator: Translator

    def resolve_locale(self, raw: str | None = None) -> str:
        """Interaction locale first, then the configured locale, then "en"."""
        return detect_locale(raw) or detect_locale(self.settings.locale) or DEFAULT_LOCALE

    def text(self, locale: str, key: str) -> str:
        return self.translator.t(locale, key)
