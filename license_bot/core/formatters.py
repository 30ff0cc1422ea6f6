"""Pure presentation transforms for API records.

WHY: Dates, booleans, revenue shares, and safety verdicts appear in
several views. Keeping the transforms here, free of Slack and HTTP, makes
them trivial to test and reuse.

HOW: Plain functions, no state, no I/O.

RULES:
- All dates render in UTC
- Revenue share is in millionths: divide by 1_000_000; integer percent
  when exact, else two decimals; n <= 0 renders "0%"
- Moderation: any category containing "LIKELY" (incl. "VERY_LIKELY" and
  "UNLIKELY") -> Unsafe, checked before POSSIBLE/POSSIBLY -> Review, else Safe
- Infringement: any is_infringing -> Infringing (short-circuit); else any
  status other than "succeeded" (case-insensitive) -> Potential issue;
  else Not infringing
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable

from license_bot.api.models import InfringementStatus, ModerationStatus

YES_GLYPH = "✅"
NO_GLYPH = "❌"
WARN_GLYPH = "⚠️"

# Heuristic scale: the API has not confirmed the unit of commercialRevShare.
REV_SHARE_SCALE = 1_000_000

VERDICT_UNSAFE = "Unsafe"
VERDICT_REVIEW = "Review"
VERDICT_SAFE = "Safe"

VERDICT_INFRINGING = "Infringing"
VERDICT_POTENTIAL_ISSUE = "Potential issue"
VERDICT_NOT_INFRINGING = "Not infringing"


def _utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def format_date(value: datetime) -> str:
    """``2024-05-01``"""
    return _utc(value).strftime("%Y-%m-%d")


def format_datetime(value: datetime) -> str:
    """``2024-05-01 13:45 UTC``"""
    return _utc(value).strftime("%Y-%m-%d %H:%M UTC")


def format_datetime_seconds(value: datetime) -> str:
    """``2024-05-01 13:45:07 UTC``"""
    return _utc(value).strftime("%Y-%m-%d %H:%M:%S UTC")


def format_rfc3339(value: datetime) -> str:
    """``2024-05-01T13:45:07Z``"""
    return _utc(value).strftime("%Y-%m-%dT%H:%M:%SZ")


def bool_glyph(value: bool) -> str:
    return YES_GLYPH if value else NO_GLYPH


def format_rev_share_percent(n: int) -> str:
    """Convert a revenue share in millionths into a percent string.

    >>> format_rev_share_percent(20_000_000)
    '20%'
    >>> format_rev_share_percent(12_345_678)
    '12.35%'
    """
    if n <= 0:
        return "0%"
    if n % REV_SHARE_SCALE == 0:
        return "{}%".format(n // REV_SHARE_SCALE)
    return "{:.2f}%".format(n / REV_SHARE_SCALE)


def evaluate_moderation(moderation: ModerationStatus) -> str:
    """Return Unsafe, Review, or Safe for the five moderation categories."""
    any_possible = False
    for value in moderation.categories():
        upper = (value or "").upper()
        # substring match: "VERY_LIKELY", "UNLIKELY" and "VERY_UNLIKELY" all count
        if "LIKELY" in upper:
            return VERDICT_UNSAFE
        if "POSSIBLE" in upper or "POSSIBLY" in upper:
            any_possible = True
    if any_possible:
        return VERDICT_REVIEW
    return VERDICT_SAFE


def evaluate_infringement(checks: Iterable[InfringementStatus]) -> str:
    """Return the aggregate verdict over every infringement check."""
    verdict = VERDICT_NOT_INFRINGING
    for check in checks:
        if check.is_infringing:
            return VERDICT_INFRINGING
        if (check.status or "").lower() != "succeeded":
            verdict = VERDICT_POTENTIAL_ISSUE
    return verdict


def latest_check(checks: list[InfringementStatus]) -> InfringementStatus:
    """Return the most recent check (by response time, then creation time).

    Checks without timestamps keep API order: the first one wins.
    """
    best = checks[0]
    best_time = best.response_time or best.created_at
    for check in checks[1:]:
        when = check.response_time or check.created_at
        if when is not None and (best_time is None or when > best_time):
            best, best_time = check, when
    return best
