"""Localized message text with locale and key fallback.

WHY: Every user-visible string (field names, button labels, error
messages) comes from per-locale JSON files so new languages need no code
changes.

HOW: Translator loads every ``<locale>.json`` file in a directory once at
construction. Each file is validated with jsonschema as a flat
string-to-string object; files that fail to parse or validate are logged
and skipped. Lookups fall back from the requested locale to "en" and then
to the key itself.

RULES:
- "en" is the required fallback locale
- A missing key never raises; the literal key is returned
- Locale codes are normalized to their first two letters
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

import jsonschema

logger = logging.getLogger(__name__)

DEFAULT_LOCALE = "en"

LOCALES_DIR = Path(__file__).resolve().parent / "locales"

LOCALE_FILE_SCHEMA = {
    "type": "object",
    "additionalProperties": {"type": "string"},
}


def detect_locale(raw: str | None) -> str:
    """Normalize a locale string such as "en-US" or "ru" to a 2-letter code.

    Returns "" for empty input so callers can chain fallbacks.
    """
    if not raw:
        return ""
    return raw.strip().lower()[:2]


class Translator:
    """Resolves ``(locale, key)`` pairs to localized text."""

    def __init__(self, locales_dir: Path | None = None) -> None:
        self._locales: dict[str, dict[str, str]] = {}
        self._load(Path(locales_dir or LOCALES_DIR))

    def _load(self, directory: Path) -> None:
        if not directory.is_dir():
            logger.warning("Locale directory %s does not exist", directory)
            return
        for path in sorted(directory.glob("*.json")):
            try:
                with open(path, encoding="utf-8") as f:
                    data = json.load(f)
                jsonschema.validate(data, LOCALE_FILE_SCHEMA)
            except (OSError, ValueError, jsonschema.ValidationError) as exc:
                logger.warning("Skipping locale file %s: %s", path.name, exc)
                continue
            self._locales[path.stem] = data
        if DEFAULT_LOCALE not in self._locales:
            logger.warning("Fallback locale %r was not loaded", DEFAULT_LOCALE)

    @property
    def locales(self) -> list[str]:
        return sorted(self._locales)

    def t(self, locale: str | None, key: str) -> str:
        """Return the text for ``key`` in ``locale``.

        Falls back to the "en" text, then to ``key`` unchanged.
        """
        if locale:
            text = self._locales.get(locale, {}).get(key)
            if text is not None:
                return text
        text = self._locales.get(DEFAULT_LOCALE, {}).get(key)
        if text is not None:
            return text
        return key
