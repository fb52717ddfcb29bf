"""Tests for dispatch.services.snooze: SNOOZE duration parsing."""
from datetime import datetime, timedelta, timezone

import pytest

from dispatch.services.snooze import USAGE, parse_snooze

NY = 'America/New_York'
# 11:00 EDT
NOW = datetime(2026, 6, 10, 15, 0, tzinfo=timezone.utc)


class TestParseSnooze:
    """Accepted and rejected SNOOZE arguments."""

    @pytest.mark.parametrize('text,hours', [('1H', 1), ('2h', 2), ('24H', 24), ('2 HOURS', 2), ('3', 3)])
    def test_hours(self, text, hours):
        parsed = parse_snooze(text, NY, now=NOW)
        assert parsed.success is True
        assert parsed.remind_at == NOW + timedelta(hours=hours)

    def test_hour_display_singular(self):
        assert parse_snooze('1H', NY, now=NOW).display_text == '1 hour'
        assert parse_snooze('4H', NY, now=NOW).display_text == '4 hours'

    @pytest.mark.parametrize('text,minutes', [('15M', 15), ('30 MIN', 30), ('120m', 120)])
    def test_minutes(self, text, minutes):
        parsed = parse_snooze(text, NY, now=NOW)
        assert parsed.success is True
        assert parsed.remind_at == NOW + timedelta(minutes=minutes)
        assert parsed.display_text == f'{minutes} minutes'

    @pytest.mark.parametrize('word', ['TOMORROW', 'tmrw', 'TMR', 'tomorrow am'])
    def test_tomorrow_morning_local(self, word):
        parsed = parse_snooze(word, NY, now=NOW)
        assert parsed.success is True
        # 09:00 EDT June 11
        assert parsed.remind_at == datetime(2026, 6, 11, 13, 0, tzinfo=timezone.utc)
        assert parsed.display_text == 'Tomorrow at 9:00 AM'

    def test_tomorrow_afternoon_local(self):
        parsed = parse_snooze('TOMORROW PM', NY, now=NOW)
        assert parsed.remind_at == datetime(2026, 6, 11, 18, 0, tzinfo=timezone.utc)
        assert parsed.display_text == 'Tomorrow at 2:00 PM'

    def test_tomorrow_uses_local_date(self):
        # 22:00 EDT June 10 is already June 11 in UTC
        late = datetime(2026, 6, 11, 2, 0, tzinfo=timezone.utc)
        parsed = parse_snooze('TOMORROW', NY, now=late)
        assert parsed.remind_at == datetime(2026, 6, 11, 13, 0, tzinfo=timezone.utc)

    @pytest.mark.parametrize('text', ['', '0', '25H', '10M', '121M', 'NEXT WEEK', 'TOMORROW NOON'])
    def test_rejected(self, text):
        parsed = parse_snooze(text, NY, now=NOW)
        assert parsed.success is False
        assert parsed.error == USAGE
        assert parsed.remind_at is None
