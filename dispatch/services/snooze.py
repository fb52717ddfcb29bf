"""
Snooze duration parsing for SMS replies.

Accepted forms (case-insensitive):
  1H .. 24H, 2 HOURS     -> now + N hours
  15M .. 120M, 30 MIN    -> now + N minutes
  TOMORROW / TMRW / TMR  -> tomorrow 9 AM, operator's local time
  TOMORROW AM | PM       -> tomorrow 9 AM | 2 PM
  1 .. 9                 -> now + N hours
"""
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, time as dt_time
from typing import Optional

from dispatch.database import as_utc, utcnow
from dispatch.services.scheduler import format_time, get_zone

_HOURS_RE = re.compile(r'^(\d+)\s*H(?:OUR)?S?$')
_MINUTES_RE = re.compile(r'^(\d+)\s*M(?:IN)?(?:UTE)?S?$')
_SHORT_RE = re.compile(r'^(\d)$')

_TOMORROW_WORDS = ('TOMORROW', 'TMRW', 'TMR')

USAGE = 'Snooze format: SNOOZE 1H, SNOOZE 3H, SNOOZE TOMORROW, SNOOZE TOMORROW PM'


@dataclass
class ParsedSnooze:
    success: bool
    remind_at: Optional[datetime] = None
    display_text: Optional[str] = None
    error: Optional[str] = None


def _tomorrow_at(now, timezone_name, hour):
    zone = get_zone(timezone_name)
    local_date = now.astimezone(zone).date() + timedelta(days=1)
    return as_utc(datetime.combine(local_date, dt_time(hour, 0), tzinfo=zone))


def _in_hours(now, hours):
    return ParsedSnooze(
        success=True,
        remind_at=now + timedelta(hours=hours),
        display_text=f"{hours} hour{'s' if hours > 1 else ''}",
    )


def parse_snooze(text, timezone_name=None, now=None) -> ParsedSnooze:
    now = as_utc(now or utcnow())
    normalized = ' '.join((text or '').strip().upper().split())

    match = _HOURS_RE.match(normalized)
    if match and 1 <= int(match.group(1)) <= 24:
        return _in_hours(now, int(match.group(1)))

    match = _MINUTES_RE.match(normalized)
    if match and 15 <= int(match.group(1)) <= 120:
        minutes = int(match.group(1))
        return ParsedSnooze(success=True, remind_at=now + timedelta(minutes=minutes),
                            display_text=f'{minutes} minutes')

    parts = normalized.split(' ')
    if parts and parts[0] in _TOMORROW_WORDS and len(parts) <= 2:
        period = parts[1] if len(parts) == 2 else 'AM'
        if period in ('AM', 'PM'):
            hour = 9 if period == 'AM' else 14
            remind_at = _tomorrow_at(now, timezone_name, hour)
            return ParsedSnooze(success=True, remind_at=remind_at,
                                display_text=f"Tomorrow at {format_time(remind_at, timezone_name)}")

    match = _SHORT_RE.match(normalized)
    if match and int(match.group(1)) >= 1:
        return _in_hours(now, int(match.group(1)))

    return ParsedSnooze(success=False, error=USAGE)
