"""
Notification scheduler: decides whether, what and when to tell the operator.

send_operator_notification() is the single entry point for case alerts:

  1. Preference check (STOP opt-out, per-event toggles)
  2. Operator phone present
  3. Optional per-case cooldown (alert_cooldown_minutes, 0 = off)
  4. Format the message from its template
  5. Inside quiet hours -> queue it for the window end, no gateway call
  6. Otherwise send now, log it, and leave an alert context for replies

A gateway failure is logged and reported in the SendResult; it is never
raised to the caller, so a case write is never undone by a failed alert.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, time as dt_time
from typing import Any, Dict, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dispatch.config import DEFAULT_TIMEZONE
from dispatch.database import as_utc, utcnow
from dispatch.errors import GatewaySendFailure
from dispatch.models.case import Job
from dispatch.models.notification_queue import NotificationQueueEntry
from dispatch.models.sms_log import SmsLogEntry
from dispatch.services import sms_gateway
from dispatch.services.alert_context import save_alert_context
from dispatch.services.sms_log import log_outbound
from dispatch.triage.lifecycle import JOB_TERMINAL_STATUSES
from dispatch.triage.policy_config import get_setting

logger = logging.getLogger('services.scheduler')

# Alerts an operator can answer with a reply code
CORRELATABLE_EVENTS = {
    'same_day_booking',
    'future_booking',
    'callback_request',
    'schedule_conflict',
    'abandoned_call',
}


@dataclass
class QuietHoursCheck:
    in_quiet_hours: bool
    quiet_ends_at: Optional[datetime] = None


@dataclass
class SendResult:
    sent: bool
    queued: bool = False
    reason: Optional[str] = None
    provider_sid: Optional[str] = None

    def to_dict(self):
        return {
            'sent': self.sent,
            'queued': self.queued,
            'reason': self.reason,
            'provider_sid': self.provider_sid,
        }


@dataclass
class ConflictCheck:
    has_conflict: bool
    conflicting_job: Optional[Job] = None


# ── Time helpers ─────────────────────────────────────────────────────────────

def get_zone(timezone_name):
    try:
        return ZoneInfo(timezone_name or DEFAULT_TIMEZONE)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone %r, falling back to %s", timezone_name, DEFAULT_TIMEZONE)
        return ZoneInfo(DEFAULT_TIMEZONE)


def _parse_when(value):
    if value is None or value == '':
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace('Z', '+00:00'))
    return as_utc(value)


def _parse_hhmm(value):
    hour, minute = (value or '00:00').split(':')[:2]
    return int(hour), int(minute)


def format_time(value, timezone_name):
    """'2:30 PM' in the operator's timezone, 'TBD' when unscheduled."""
    when = _parse_when(value)
    if when is None:
        return 'TBD'
    local = when.astimezone(get_zone(timezone_name))
    hour = local.hour % 12 or 12
    return f"{hour}:{local.minute:02d} {'AM' if local.hour < 12 else 'PM'}"


def format_date(value, timezone_name):
    """'Thu Dec 12' in the operator's timezone."""
    when = _parse_when(value)
    if when is None:
        return ''
    local = when.astimezone(get_zone(timezone_name))
    return f"{local.strftime('%a %b')} {local.day}"


def extract_city(address):
    """'123 Main St, Scottsdale, AZ 85251' -> 'Scottsdale'."""
    if not address:
        return ''
    parts = [p.strip() for p in address.split(',')]
    if len(parts) >= 2:
        return parts[-2] or parts[0]
    return parts[0]


# ── Pure decisions ───────────────────────────────────────────────────────────

def determine_event_type(scheduled_at, timezone, has_conflict=False, now=None) -> str:
    if has_conflict:
        return 'schedule_conflict'

    when = _parse_when(scheduled_at)
    if when is None:
        return 'callback_request'

    zone = get_zone(timezone)
    today = as_utc(now or utcnow()).astimezone(zone).date()
    if when.astimezone(zone).date() == today:
        return 'same_day_booking'
    return 'future_booking'


def is_in_quiet_hours(operator, now=None) -> QuietHoursCheck:
    """
    Evaluate the operator's local quiet window; windows may span midnight.

    quiet_ends_at is the next local window end, returned as a UTC instant.
    """
    if not operator.quiet_hours_enabled:
        return QuietHoursCheck(in_quiet_hours=False)

    zone = get_zone(operator.timezone)
    local_now = as_utc(now or utcnow()).astimezone(zone)
    current = local_now.strftime('%H:%M')
    start = operator.quiet_hours_start
    end = operator.quiet_hours_end

    if start > end:
        in_quiet = current >= start or current < end
    else:
        in_quiet = start <= current < end

    if not in_quiet:
        return QuietHoursCheck(in_quiet_hours=False)

    end_hour, end_minute = _parse_hhmm(end)
    ends = datetime.combine(local_now.date(), dt_time(end_hour, end_minute), tzinfo=zone)
    if ends <= local_now:
        ends = datetime.combine(local_now.date() + timedelta(days=1), dt_time(end_hour, end_minute), tzinfo=zone)

    return QuietHoursCheck(in_quiet_hours=True, quiet_ends_at=as_utc(ends))


def format_notification_message(event_type, data: Dict[str, Any], timezone) -> str:
    name = data.get('customer_name') or 'Customer'
    scheduled_at = data.get('scheduled_at')
    time_str = format_time(scheduled_at, timezone)
    service = sms_gateway.format_service_type(data.get('service_type'))

    if event_type == 'same_day_booking':
        return sms_gateway.same_day_booking(name, time_str, service, extract_city(data.get('address')))
    if event_type == 'future_booking':
        return sms_gateway.future_booking(name, format_date(scheduled_at, timezone), time_str, service)
    if event_type == 'callback_request':
        return sms_gateway.callback_request(name, data.get('callback_timeframe') or 'soon')
    if event_type == 'schedule_conflict':
        return sms_gateway.schedule_conflict(name, time_str, data.get('conflicting_job_name') or 'existing job')
    if event_type == 'cancellation':
        return sms_gateway.cancellation(name, time_str)
    if event_type == 'abandoned_call':
        return sms_gateway.abandoned_call(name, data.get('customer_phone') or 'Unknown')
    if event_type == 'stale_job_alert':
        return sms_gateway.stale_job_alert(name, data.get('hours_waiting') or 24)
    return f'{sms_gateway.BRAND}: Update for {name}'


def notification_data_for(case, **extra) -> Dict[str, Any]:
    """Template inputs for a case."""
    data = {
        'customer_name': case.customer_name,
        'customer_phone': case.customer_phone,
        'service_type': case.service_type,
        'address': case.customer_address,
        'scheduled_at': getattr(case, 'scheduled_at', None),
    }
    data.update(extra)
    return data


# ── Store-backed operations ──────────────────────────────────────────────────

def check_schedule_conflicts(session, operator_id, scheduled_at, exclude_job_id=None) -> ConflictCheck:
    """Another open job within ±conflict_window_minutes of scheduled_at."""
    when = _parse_when(scheduled_at)
    if when is None:
        return ConflictCheck(has_conflict=False)

    window = timedelta(minutes=get_setting('conflict_window_minutes', 60))
    query = session.query(Job).filter(
        Job.operator_id == operator_id,
        Job.status.notin_(JOB_TERMINAL_STATUSES),
        Job.scheduled_at >= when - window,
        Job.scheduled_at < when + window,
    )
    if exclude_job_id is not None:
        query = query.filter(Job.id != exclude_job_id)

    conflict = query.order_by(Job.scheduled_at).first()
    return ConflictCheck(has_conflict=conflict is not None, conflicting_job=conflict)


def _within_cooldown(session, operator, lead, job, now):
    minutes = get_setting('alert_cooldown_minutes', 0) or 0
    if minutes <= 0 or (lead is None and job is None):
        return False

    query = session.query(SmsLogEntry).filter(
        SmsLogEntry.operator_id == operator.id,
        SmsLogEntry.direction == 'outbound',
        SmsLogEntry.status == 'sent',
        SmsLogEntry.created_at >= now - timedelta(minutes=minutes),
    )
    if lead is not None:
        query = query.filter(SmsLogEntry.lead_id == lead.id)
    else:
        query = query.filter(SmsLogEntry.job_id == job.id)
    return session.query(query.exists()).scalar()


def send_operator_notification(session, operator, event_type, data, lead=None, job=None,
                               now=None) -> SendResult:
    now = as_utc(now or utcnow())

    if not operator.sms_opt_in:
        return SendResult(sent=False, reason='Operator has unsubscribed from SMS')

    if not operator.allows_event(event_type):
        return SendResult(sent=False, reason=f'Operator disabled SMS for {event_type}')

    if not operator.phone:
        logger.info("Operator %s has no phone; %s not sent", operator.id, event_type)
        return SendResult(sent=False, reason='No operator phone configured')

    if _within_cooldown(session, operator, lead, job, now):
        return SendResult(sent=False, reason='Alert cooldown active for this case')

    body = format_notification_message(event_type, data, operator.timezone)

    quiet = is_in_quiet_hours(operator, now=now)
    if quiet.in_quiet_hours:
        entry = NotificationQueueEntry(
            operator_id=operator.id,
            lead_id=lead.id if lead is not None else None,
            job_id=job.id if job is not None else None,
            customer_name=data.get('customer_name'),
            customer_phone=data.get('customer_phone'),
            event_type=event_type,
            message_body=body,
            send_at=quiet.quiet_ends_at,
            status='queued',
            created_at=now,
        )
        session.add(entry)
        session.commit()
        local_end = format_time(quiet.quiet_ends_at, operator.timezone)
        logger.info("Quiet hours for operator %s; %s queued until %s", operator.id, event_type, local_end)
        return SendResult(sent=False, queued=True, reason=f'Queued until {local_end}')

    try:
        sid = sms_gateway.send_sms(operator.phone, body)
    except GatewaySendFailure as e:
        logger.warning("Alert %s for operator %s not delivered: %s", event_type, operator.id, e)
        sid = None

    log_outbound(
        session, operator.phone, body, event_type,
        provider_sid=sid,
        operator_id=operator.id,
        lead_id=lead.id if lead is not None else None,
        job_id=job.id if job is not None else None,
        now=now,
    )

    if sid and event_type in CORRELATABLE_EVENTS:
        save_alert_context(
            session, operator.phone, event_type,
            lead=lead, job=job,
            customer_phone=data.get('customer_phone'),
            customer_name=data.get('customer_name'),
            now=now,
        )

    session.commit()

    if not sid:
        return SendResult(sent=False, reason='SMS send failed')
    return SendResult(sent=True, provider_sid=sid)
