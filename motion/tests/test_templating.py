"""Tests for placeholder expansion."""

from datetime import datetime

from motion.daemon.templating import expand, long_date, long_datetime


# A Monday
NOW = datetime(2025, 8, 11, 14, 5, 0)


def test_expands_known_placeholders():
    text = "Today is {{ day }}, {{ date }} at {{ time }}."
    assert expand(text, NOW, "US") == "Today is Monday, August 11, 2025 at 14:05."


def test_case_and_whitespace_insensitive():
    assert expand("{{DATE}}|{{  Time  }}|{{dAy}}", NOW) == "August 11, 2025|14:05|Monday"


def test_unknown_tokens_pass_through():
    text = "Hello {{ name }} on {{ day }}"
    assert expand(text, NOW) == "Hello {{ name }} on Monday"


def test_second_pass_is_noop():
    samples = [
        "",
        "no placeholders",
        "{{date}}",
        "{{ time }} and {{ day }} and {{ date }}",
        "{{ unknown }} {{ day }}",
    ]
    for text in samples:
        once = expand(text, NOW, "DE")
        assert expand(once, NOW, "DE") == once


def test_region_controls_date_order():
    assert long_date(NOW, "US") == "August 11, 2025"
    assert long_date(NOW, "GB") == "11 August 2025"
    assert long_date(NOW, None) == "August 11, 2025"


def test_long_datetime_has_24_hour_time():
    assert long_datetime(datetime(2025, 8, 11, 21, 7), "DE") == "Monday, 11 August 2025 at 21:07"
