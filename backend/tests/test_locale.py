from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from app.core import locale

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    ("delta", "expected"),
    [
        (timedelta(seconds=-30), "30 seconds ago"),
        (timedelta(minutes=-5), "5 minutes ago"),
        (timedelta(hours=-2), "2 hours ago"),
        (timedelta(days=-14), "14 days ago"),
        (timedelta(days=-65), "2 months ago"),
        (timedelta(days=-800), "2 years ago"),
        (timedelta(days=3), "in 3 days"),
    ],
)
def test_relative_time_in_english(delta, expected):
    assert locale.get_relative_time(NOW + delta, "en", now=NOW) == expected


def test_relative_time_follows_locale_and_accepts_naive_timestamps():
    naive = (NOW - timedelta(hours=2)).replace(tzinfo=None)

    assert locale.get_relative_time(naive, "de", now=NOW) == "vor 2 Stunden"


def test_unknown_locale_falls_back_to_default():
    assert locale.get_locale("xx-ZZ") == locale.get_locale(None)
    assert locale.get_relative_time(NOW - timedelta(minutes=1), "xx-ZZ", now=NOW)


def test_locale_cache_is_bounded_and_normalized():
    locale._load_locale.cache_clear()

    assert locale.get_locale(" de-DE ") is locale.get_locale("de_DE")
    for n in range(locale._LOCALE_CACHE_SIZE * 3):
        locale.get_locale(f"zz-{n}")

    info = locale._load_locale.cache_info()
    assert info.maxsize == locale._LOCALE_CACHE_SIZE
    assert info.currsize <= locale._LOCALE_CACHE_SIZE


def test_country_flags_and_names():
    assert locale.get_country_flag("de") == "\U0001F1E9\U0001F1EA"
    assert locale.get_country_flag("OTHER") == "\U0001F3F3\uFE0F"
    assert locale.get_country_name("DE", "de") == "Deutschland"
    assert locale.get_country_name("OTHER") == "Other"
    assert locale.format_country("JP", "en") == "\U0001F1EF\U0001F1F5 Japan"
    assert locale.format_country("") == ""


def test_language_names():
    assert locale.get_language_name("en", "de") == "Englisch"
    assert locale.get_language_name("yue", "en") == "Chinese (Cantonese)"
    assert locale.get_language_name("other") == "Other"
    assert locale.get_language_name("zz-unknown", "en") == "zz-unknown"


@pytest.mark.parametrize(
    ("birth_date", "expected"),
    [
        (date(2000, 3, 10), 26),
        (date(2000, 3, 11), 25),
        (date(2008, 2, 29), 18),
    ],
)
def test_calculate_age(birth_date, expected):
    assert locale.calculate_age(birth_date, today=date(2026, 3, 10)) == expected
