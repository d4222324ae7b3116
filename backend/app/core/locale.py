"""Locale-aware formatting helpers backed by Babel.

The locale is supplied per request by the client; formatter data is loaded
once per locale string and kept for the life of the process.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone
from functools import lru_cache

from babel import Locale, UnknownLocaleError
from babel.dates import format_timedelta

from app.config import get_settings

logger = logging.getLogger(__name__)

OTHER_COUNTRY = "OTHER"
OTHER_LANGUAGE = "other"
_LANGUAGE_OVERRIDES = {"yue": "Chinese (Cantonese)"}
_WHITE_FLAG = "\U0001F3F3\uFE0F"


_LOCALE_CACHE_SIZE = 64


@lru_cache(maxsize=_LOCALE_CACHE_SIZE)
def _load_locale(identifier: str, fallback: str) -> Locale:
    try:
        return Locale.parse(identifier)
    except (UnknownLocaleError, ValueError):
        logger.debug("Unknown locale %r, using %s", identifier, fallback)
        return Locale.parse(fallback)


def get_locale(identifier: str | None) -> Locale:
    """Return the Babel locale for ``identifier``, falling back to the default.

    The identifier comes from the client, so it is normalized before the
    lookup and the cache of parsed locales is bounded.
    """

    fallback = get_settings().default_locale
    candidate = (identifier or "").strip().replace("-", "_") or fallback
    return _load_locale(candidate, fallback)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _relative_unit(seconds_diff: float) -> tuple[int, str]:
    seconds = int(abs(seconds_diff))
    if seconds < 60:
        return seconds, "second"
    minutes = seconds // 60
    if minutes < 60:
        return minutes, "minute"
    hours = minutes // 60
    if hours < 24:
        return hours, "hour"
    days = hours // 24
    if days < 30:
        return days, "day"
    months = days // 30
    if months < 12:
        return months, "month"
    return days // 365, "year"


_UNIT_SECONDS = {
    "second": 1,
    "minute": 60,
    "hour": 3600,
    "day": 86400,
    "month": 86400 * 30,
    "year": 86400 * 365,
}


def get_relative_time(
    timestamp: datetime, locale: str | None = None, *, now: datetime | None = None
) -> str:
    """Format ``timestamp`` relative to now, e.g. "2 hours ago" or "in 3 days"."""

    reference = _as_utc(now) if now is not None else datetime.now(timezone.utc)
    diff = (_as_utc(timestamp) - reference).total_seconds()
    value, unit = _relative_unit(diff)
    signed = value * _UNIT_SECONDS[unit] * (-1 if diff < 0 else 1)
    # threshold == value pins Babel to the unit picked above.
    return format_timedelta(
        timedelta(seconds=signed),
        granularity=unit,
        threshold=max(value, 1),
        add_direction=True,
        locale=get_locale(locale),
    )


def get_country_flag(code: str) -> str:
    """Return the flag emoji of an ISO-2 country code."""

    if code == OTHER_COUNTRY or not code:
        return _WHITE_FLAG
    return "".join(chr(0x1F1E6 + ord(char) - ord("A")) for char in code.upper())


def get_country_name(code: str, locale: str | None = None) -> str:
    if code == OTHER_COUNTRY:
        return "Other"
    return get_locale(locale).territories.get(code.upper(), code)


def get_language_name(code: str, locale: str | None = None) -> str:
    if code == OTHER_LANGUAGE:
        return "Other"
    if code in _LANGUAGE_OVERRIDES:
        return _LANGUAGE_OVERRIDES[code]
    return get_locale(locale).languages.get(code.replace("-", "_"), code)


def format_country(code: str, locale: str | None = None) -> str:
    """Return ``"<flag> <name>"`` for display next to a user."""

    if not code:
        return ""
    return f"{get_country_flag(code)} {get_country_name(code, locale)}"


def calculate_age(birth_date: date, today: date | None = None) -> int:
    today = today or date.today()
    age = today.year - birth_date.year
    if (today.month, today.day) < (birth_date.month, birth_date.day):
        age -= 1
    return age
