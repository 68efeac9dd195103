from datetime import datetime, timezone

import pytest

from daybot.core.errors import ParseError
from daybot.core.timeparse import format_time_of_day, is_due, minute_floor, normalize_time
from helpers import ist

TZ = "Asia/Kolkata"


def test_time_of_day_is_anchored_to_today_in_configured_zone():
    due = normalize_time("3:00 PM", TZ, now=ist(10, 0))
    assert due == ist(15, 0)
    assert due.tzinfo == timezone.utc
    assert due == datetime(2026, 10, 19, 9, 30, tzinfo=timezone.utc)


@pytest.mark.parametrize("text", ["3:00 PM", "3:00pm", "  03:00   pm ", "15:00", "3 PM"])
def test_accepted_spellings(text):
    assert normalize_time(text, TZ, now=ist(10, 0)) == ist(15, 0)


@pytest.mark.parametrize("text", ["", "soon", "25:00", "3:75 PM", "tomorrow at 3"])
def test_malformed_time_raises(text):
    with pytest.raises(ParseError):
        normalize_time(text, TZ, now=ist(10, 0))


def test_past_time_stays_today_by_default():
    assert normalize_time("3:00 PM", TZ, now=ist(16, 0)) == ist(15, 0)


def test_past_time_rolls_to_tomorrow_when_enabled():
    assert normalize_time("3:00 PM", TZ, now=ist(16, 0), roll_forward=True) == ist(15, 0, day=20)


def test_same_minute_does_not_roll():
    assert normalize_time("3:00 PM", TZ, now=ist(15, 0, 40), roll_forward=True) == ist(15, 0)


def test_date_comes_from_the_configured_zone_not_utc():
    # 20:00 UTC del 18 ya es el 19 en India
    now = datetime(2026, 10, 18, 20, 0, tzinfo=timezone.utc)
    assert normalize_time("9:00 AM", TZ, now=now) == ist(9, 0)


def test_custom_formats_only():
    with pytest.raises(ParseError):
        normalize_time("15:00", TZ, now=ist(10, 0), formats=["%I:%M %p"])


def test_minute_granularity():
    due = ist(15, 0, 30)
    assert not is_due(due, ist(14, 59, 59))
    assert is_due(due, ist(15, 0, 0))
    assert is_due(due, ist(15, 0, 59))
    assert is_due(due, ist(15, 1))
    assert minute_floor(ist(15, 0, 30)) == ist(15, 0)


def test_format_time_of_day_uses_configured_zone():
    assert format_time_of_day(datetime(2026, 10, 19, 9, 30, tzinfo=timezone.utc), TZ) == "03:00 PM"
