"""Tests for dispatch.services.booking_time: appointment times from SMS replies."""
from datetime import datetime, timedelta, timezone

import pytest

from dispatch.services.booking_time import (
    PROMPT_EMPTY,
    PROMPT_TODAY,
    PROMPT_UNKNOWN,
    parse_booking_time,
    parse_time_of_day,
)

NY = 'America/New_York'
# Wednesday 11:00 EDT
NOW = datetime(2026, 6, 10, 15, 0, tzinfo=timezone.utc)


def _utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


class TestParseTimeOfDay:
    @pytest.mark.parametrize('text,expected', [
        ('2PM', (14, 0)),
        ('2:30 PM', (14, 30)),
        ('12AM', (0, 0)),
        ('12PM', (12, 0)),
        ('14:00', (14, 0)),
        ('3', (15, 0)),
        ('9', (9, 0)),
        ('MORNING', (9, 0)),
        ('EVENING', (17, 0)),
    ])
    def test_accepted(self, text, expected):
        assert parse_time_of_day(text) == expected

    @pytest.mark.parametrize('text', ['', '13PM', '25:00', '9:75', 'LATE'])
    def test_rejected(self, text):
        assert parse_time_of_day(text) is None


class TestParseBookingTime:
    """parse_booking_time() in the operator's local time."""

    @pytest.mark.parametrize('text,expected', [
        ('TUE 2PM', _utc(2026, 6, 16, 18, 0)),
        ('tuesday 2:30 pm', _utc(2026, 6, 16, 18, 30)),
        ('WED 10AM', _utc(2026, 6, 17, 14, 0)),
        ('FRI', _utc(2026, 6, 12, 13, 0)),
        ('NEXT FRI', _utc(2026, 6, 19, 13, 0)),
        ('TOMORROW', _utc(2026, 6, 11, 13, 0)),
        ('TMRW 14:00', _utc(2026, 6, 11, 18, 0)),
        ('TODAY 3PM', _utc(2026, 6, 10, 19, 0)),
        ('2PM', _utc(2026, 6, 10, 18, 0)),
        ('3', _utc(2026, 6, 10, 19, 0)),
        ('AFTERNOON', _utc(2026, 6, 10, 18, 0)),
        ('12/20 2PM', _utc(2026, 12, 20, 19, 0)),
    ])
    def test_resolves_local_time(self, text, expected):
        parsed = parse_booking_time(text, NY, now=NOW)
        assert parsed.success is True
        assert parsed.scheduled_at == expected

    def test_passed_time_today_moves_to_tomorrow(self):
        assert parse_booking_time('TODAY 9AM', NY, now=NOW).scheduled_at == _utc(2026, 6, 11, 13, 0)
        assert parse_booking_time('10AM', NY, now=NOW).scheduled_at == _utc(2026, 6, 11, 14, 0)

    def test_passed_date_rolls_to_next_year(self):
        assert parse_booking_time('6-1', NY, now=NOW).scheduled_at == _utc(2027, 6, 1, 13, 0)

    def test_asap_is_one_hour_out(self):
        assert parse_booking_time('ASAP', NY, now=NOW).scheduled_at == NOW + timedelta(hours=1)

    def test_display_text(self):
        assert parse_booking_time('TUE 2PM', NY, now=NOW).display_text == 'Tue, Jun 16 at 2:00 PM'
        assert parse_booking_time('TODAY 3PM', NY, now=NOW).display_text == 'Today at 3:00 PM'

    def test_today_without_time_asks(self):
        parsed = parse_booking_time('TODAY', NY, now=NOW)
        assert parsed.success is False
        assert parsed.prompt == PROMPT_TODAY

    def test_empty_asks(self):
        assert parse_booking_time('  ', NY, now=NOW).prompt == PROMPT_EMPTY

    @pytest.mark.parametrize('text', ['SOMETIME', 'NEXT WEEK', '13/45', 'TOMORROW LATE', 'TUE 25:00'])
    def test_unrecognized(self, text):
        parsed = parse_booking_time(text, NY, now=NOW)
        assert parsed.success is False
        assert parsed.scheduled_at is None
        assert parsed.prompt == PROMPT_UNKNOWN
