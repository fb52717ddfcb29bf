"""
Appointment time parsing for SMS booking replies (`4 <when>`, `BOOK <when>`).

All forms are read in the operator's local time:
  TODAY 3PM, TOMORROW [9AM], TMRW / TMR
  TUE 2PM, MONDAY 10:30AM, NEXT FRI [time]   -> next such weekday after today
  12/20 2PM, 12-20                           -> rolls to next year once passed
  2PM, 14:00, 3 (1..6 read as PM)            -> today, or tomorrow once passed
  MORNING / AFTERNOON / EVENING / NOON       -> today, or tomorrow once passed
  ASAP / NOW / SOON                          -> one hour from now

A day with no time defaults to 9 AM.
"""
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta, time as dt_time
from typing import Optional

from dispatch.database import as_utc, utcnow
from dispatch.services.scheduler import format_time, get_zone

DAY_NAMES = {
    'MON': 0, 'MONDAY': 0,
    'TUE': 1, 'TUES': 1, 'TUESDAY': 1,
    'WED': 2, 'WEDNESDAY': 2,
    'THU': 3, 'THUR': 3, 'THURS': 3, 'THURSDAY': 3,
    'FRI': 4, 'FRIDAY': 4,
    'SAT': 5, 'SATURDAY': 5,
    'SUN': 6, 'SUNDAY': 6,
}

TIME_OF_DAY = {
    'MORNING': (9, 0),
    'AM': (9, 0),
    'NOON': (12, 0),
    'AFTERNOON': (14, 0),
    'PM': (14, 0),
    'EVENING': (17, 0),
    'EOD': (17, 0),
}

DEFAULT_TIME = (9, 0)

_TWELVE_HOUR_RE = re.compile(r'^(\d{1,2})(?::(\d{2}))?\s*(AM|PM)$')
_TWENTY_FOUR_RE = re.compile(r'^(\d{1,2}):(\d{2})$')
_BARE_HOUR_RE = re.compile(r'^(\d{1,2})$')
_DATE_RE = re.compile(r'^(\d{1,2})[/-](\d{1,2})\s*(.*)$')

PROMPT_EMPTY = 'When? Reply with day & time (e.g., TUE 2PM, TOMORROW 9AM)'
PROMPT_TODAY = 'What time today? Reply with time (e.g., 2PM, 10:30AM)'
PROMPT_PASSED = 'That time has passed. Try a future date (e.g., TOMORROW 2PM)'
PROMPT_UNKNOWN = "Couldn't understand that time. Try: TUE 2PM, TOMORROW 9AM, or MORNING"


@dataclass
class ParsedTime:
    success: bool
    scheduled_at: Optional[datetime] = None
    display_text: Optional[str] = None
    prompt: Optional[str] = None


def parse_time_of_day(text):
    """(hour, minute) for '2PM', '2:30 PM', '14:00', '3' or a word like MORNING; else None."""
    text = (text or '').strip()
    if not text:
        return None
    if text in TIME_OF_DAY:
        return TIME_OF_DAY[text]

    match = _TWELVE_HOUR_RE.match(text)
    if match:
        hour, minute = int(match.group(1)), int(match.group(2) or 0)
        if not 1 <= hour <= 12 or minute > 59:
            return None
        if match.group(3) == 'PM' and hour != 12:
            hour += 12
        elif match.group(3) == 'AM' and hour == 12:
            hour = 0
        return hour, minute

    match = _TWENTY_FOUR_RE.match(text)
    if match:
        hour, minute = int(match.group(1)), int(match.group(2))
        if hour <= 23 and minute <= 59:
            return hour, minute
        return None

    match = _BARE_HOUR_RE.match(text)
    if match:
        hour = int(match.group(1))
        # Business hours: 1..6 means afternoon
        if 1 <= hour <= 6:
            hour += 12
        if hour <= 23:
            return hour, 0
    return None


def _local(day, hm, zone):
    return datetime.combine(day, dt_time(hm[0], hm[1]), tzinfo=zone)


def _next_weekday(today, weekday):
    days_ahead = (weekday - today.weekday()) % 7 or 7
    return today + timedelta(days=days_ahead)


def _resolve(text, now_local):
    """Local datetime for text, a prompt string, or None when unrecognized."""
    zone = now_local.tzinfo
    today = now_local.date()
    words = text.split(' ')
    head, rest = words[0], ' '.join(words[1:])

    if head == 'TODAY':
        hm = parse_time_of_day(rest)
        return _local(today, hm, zone) if hm else PROMPT_TODAY

    if head in ('TOMORROW', 'TMRW', 'TMR'):
        hm = parse_time_of_day(rest) if rest else DEFAULT_TIME
        return _local(today + timedelta(days=1), hm, zone) if hm else None

    if head == 'NEXT' and len(words) > 1 and words[1] in DAY_NAMES:
        day = _next_weekday(today, DAY_NAMES[words[1]]) + timedelta(days=7)
        rest = ' '.join(words[2:])
        hm = parse_time_of_day(rest) if rest else DEFAULT_TIME
        return _local(day, hm, zone) if hm else None

    if head in DAY_NAMES:
        hm = parse_time_of_day(rest) if rest else DEFAULT_TIME
        return _local(_next_weekday(today, DAY_NAMES[head]), hm, zone) if hm else None

    match = _DATE_RE.match(text)
    if match:
        month, day_of_month = int(match.group(1)), int(match.group(2))
        hm = parse_time_of_day(match.group(3)) if match.group(3) else DEFAULT_TIME
        if hm is None:
            return None
        try:
            day = date(today.year, month, day_of_month)
            if day < today:
                day = date(today.year + 1, month, day_of_month)
        except ValueError:
            return None
        return _local(day, hm, zone)

    if text in ('ASAP', 'NOW', 'SOON'):
        return now_local + timedelta(hours=1)

    hm = parse_time_of_day(text)
    if hm:
        when = _local(today, hm, zone)
        if when < now_local:
            when = _local(today + timedelta(days=1), hm, zone)
        return when

    return None


def format_booking_time(when, timezone_name, now=None):
    """'Today at 2:00 PM' or 'Tue, Jun 16 at 2:00 PM' in the operator's timezone."""
    zone = get_zone(timezone_name)
    local = as_utc(when).astimezone(zone)
    time_str = format_time(when, timezone_name)
    if local.date() == as_utc(now or utcnow()).astimezone(zone).date():
        return f'Today at {time_str}'
    return f"{local.strftime('%a, %b')} {local.day} at {time_str}"


def parse_booking_time(text, timezone_name=None, now=None) -> ParsedTime:
    now = as_utc(now or utcnow())
    normalized = ' '.join((text or '').strip().upper().split())
    if not normalized:
        return ParsedTime(success=False, prompt=PROMPT_EMPTY)

    now_local = now.astimezone(get_zone(timezone_name))
    resolved = _resolve(normalized, now_local)
    if resolved is None:
        return ParsedTime(success=False, prompt=PROMPT_UNKNOWN)
    if isinstance(resolved, str):
        return ParsedTime(success=False, prompt=resolved)

    if resolved < now_local:
        if resolved.date() != now_local.date():
            return ParsedTime(success=False, prompt=PROMPT_PASSED)
        resolved = _local(resolved.date() + timedelta(days=1), (resolved.hour, resolved.minute),
                          resolved.tzinfo)

    scheduled_at = as_utc(resolved)
    return ParsedTime(
        success=True,
        scheduled_at=scheduled_at,
        display_text=format_booking_time(scheduled_at, timezone_name, now=now),
    )
