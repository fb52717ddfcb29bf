"""
Case intake: turns a voice-agent call summary into a Lead or Job.

Pipeline for one event:
  validate -> find/provision operator -> route (job vs lead + status)
  -> derive priority and color -> dedup on call_id -> commit case -> alert

The case is committed before any alerting runs; alerting failures are logged
and never roll back the case.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional, Tuple, Union

from sqlalchemy.exc import IntegrityError

from dispatch.config import (
    CALLER_TYPES, DEFAULT_BUSINESS_NAME, DEFAULT_TIMEZONE, END_CALL_REASONS,
    PRIMARY_INTENTS, PRIORITY_COLORS, PROPERTY_TYPES, REVENUE_TIERS,
    SERVICE_TYPES, URGENCY_LEVELS,
)
from dispatch.database import as_utc, utcnow
from dispatch.errors import DuplicateIntakeEvent, MissingOperatorProfile, ValidationError
from dispatch.models.case import Job, Lead
from dispatch.models.operator import Operator
from dispatch.services.scheduler import (
    check_schedule_conflicts, determine_event_type, notification_data_for,
    send_operator_notification,
)
from dispatch.triage.lifecycle import is_terminal
from dispatch.triage.policy_config import get_setting

logger = logging.getLogger('services.intake')

# end_call_reason values that still mean "the agent booked it"
BOOKED_REASONS = (None, 'completed', 'rescheduled')

LEAD_STATUS_BY_REASON = {
    'customer_hangup': 'abandoned',
    'callback_later': 'callback_requested',
    'sales_lead': 'sales_opportunity',
    'out_of_area': 'lost',
    'waitlist_added': 'deferred',
    'wrong_number': 'lost',
    'cancelled': 'lost',
}

LOST_REASON_BY_END_CALL = {
    'out_of_area': 'Out of service area',
    'wrong_number': 'Wrong number',
    'cancelled': 'Customer cancelled',
}

HOT_REASONS = ('safety_emergency', 'urgent_escalation')
HIGH_REVENUE_TIERS = ('replacement', 'major_repair')

_ENUM_FIELDS = {
    'urgency': URGENCY_LEVELS,
    'service_type': SERVICE_TYPES,
    'revenue_tier': REVENUE_TIERS,
    'priority_color': PRIORITY_COLORS,
    'status_color': PRIORITY_COLORS,
    'end_call_reason': END_CALL_REASONS,
    'property_type': PROPERTY_TYPES,
    'caller_type': CALLER_TYPES,
    'primary_intent': PRIMARY_INTENTS,
}

_TEXT_FIELDS = (
    'customer_address', 'ai_summary', 'issue_description', 'priority_reason',
    'call_id', 'callback_timeframe',
)

# Fields a duplicate delivery may refresh on the existing case
_REFRESHABLE = (
    'customer_name', 'customer_address', 'service_type', 'urgency', 'priority_color',
    'priority_reason', 'revenue_tier', 'estimated_value', 'sentiment_score',
    'is_callback_complaint', 'property_type', 'ai_summary',
)


@dataclass
class IntakeResult:
    case: Union[Lead, Job]
    kind: str
    action: str                       # created | updated
    notification: Optional[Dict[str, Any]] = None

    def to_dict(self):
        return {
            'success': True,
            'type': self.kind,
            'id': self.case.id,
            'status': self.case.status,
            'action': self.action,
            'notification': self.notification,
        }


# ── Validation ───────────────────────────────────────────────────────────────

def _is_number(value):
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_intake_event(payload) -> Dict[str, Any]:
    """Check and normalize a raw event. Raises ValidationError listing every problem."""
    if not isinstance(payload, dict):
        raise ValidationError('Request body must be a JSON object', ['body: expected object'])

    errors = []
    data = {}

    for field in ('customer_name', 'customer_phone', 'user_email'):
        value = payload.get(field)
        if not isinstance(value, str) or not value.strip():
            errors.append(f'{field}: required')
        else:
            data[field] = value.strip()

    if 'user_email' in data and '@' not in data['user_email']:
        errors.append('user_email: invalid email')

    for field, allowed in _ENUM_FIELDS.items():
        value = payload.get(field)
        if value is None:
            continue
        if value not in allowed:
            errors.append(f"{field}: must be one of {', '.join(allowed)}")
        else:
            data[field] = value

    for field in _TEXT_FIELDS:
        value = payload.get(field)
        if value is None:
            continue
        if not isinstance(value, str):
            errors.append(f'{field}: must be a string')
        else:
            data[field] = value

    sentiment = payload.get('sentiment_score')
    if sentiment is not None:
        if not isinstance(sentiment, int) or isinstance(sentiment, bool) or not 1 <= sentiment <= 5:
            errors.append('sentiment_score: must be an integer 1-5')
        else:
            data['sentiment_score'] = sentiment

    value = payload.get('estimated_value')
    if value is not None:
        if not _is_number(value):
            errors.append('estimated_value: must be a number')
        else:
            data['estimated_value'] = float(value)

    complaint = payload.get('is_callback_complaint')
    if complaint is not None:
        if not isinstance(complaint, bool):
            errors.append('is_callback_complaint: must be a boolean')
        else:
            data['is_callback_complaint'] = complaint

    scheduled_at = payload.get('scheduled_at')
    if scheduled_at is not None:
        try:
            parsed = datetime.fromisoformat(str(scheduled_at).replace('Z', '+00:00'))
        except ValueError:
            parsed = None
        if parsed is None or parsed.tzinfo is None:
            errors.append('scheduled_at: must be ISO-8601 with a UTC offset')
        else:
            data['scheduled_at'] = as_utc(parsed)

    if errors:
        raise ValidationError('Invalid intake event', errors)
    return data


# ── Derivations ──────────────────────────────────────────────────────────────

def route_case(data) -> Tuple[str, str]:
    """(kind, status) for a validated event."""
    reason = data.get('end_call_reason')
    if data.get('scheduled_at') is not None and reason in BOOKED_REASONS:
        return 'job', 'new'
    return 'lead', LEAD_STATUS_BY_REASON.get(reason, 'callback_requested')


def derive_priority(data, status) -> str:
    urgency = data.get('urgency', 'medium')
    if (
        status == 'abandoned'
        or data.get('end_call_reason') in HOT_REASONS
        or urgency in ('emergency', 'high')
    ):
        return 'hot'
    if urgency == 'low':
        return 'cold'
    return 'warm'


def derive_priority_color(data, kind) -> str:
    explicit = data.get('priority_color') or data.get('status_color')
    if explicit:
        return explicit

    sentiment = data.get('sentiment_score')
    if data.get('is_callback_complaint') or (sentiment is not None and sentiment <= 2):
        return 'red'
    if (
        data.get('end_call_reason') == 'wrong_number'
        or data.get('caller_type') in ('vendor', 'recruiting')
        or data.get('primary_intent') == 'solicitation'
    ):
        return 'gray'
    if kind == 'job' or data.get('revenue_tier') in HIGH_REVENUE_TIERS:
        return 'green'
    return 'blue'


# ── Store helpers ────────────────────────────────────────────────────────────

def _get_operator(session, email):
    operator = session.query(Operator).filter(Operator.email == email).first()
    if operator is None:
        raise MissingOperatorProfile(email)
    return operator


def get_or_provision_operator(session, email):
    """Look the operator up by email; create a minimal profile if missing."""
    try:
        return _get_operator(session, email)
    except MissingOperatorProfile as e:
        logger.warning("%s; provisioning a minimal profile", e)

    quiet = get_setting('quiet_hours', {}) or {}
    operator = Operator(
        email=email,
        business_name=DEFAULT_BUSINESS_NAME,
        timezone=DEFAULT_TIMEZONE,
        quiet_hours_start=quiet.get('start', '21:00'),
        quiet_hours_end=quiet.get('end', '08:00'),
    )
    session.add(operator)
    try:
        session.flush()
    except IntegrityError:
        # Another delivery provisioned the same email first
        session.rollback()
        logger.info("Operator %s provisioned concurrently; using the existing profile", email)
        return _get_operator(session, email)
    return operator


def find_case_by_call_id(session, operator_id, call_id):
    if not call_id:
        return None
    for model in (Lead, Job):
        case = (
            session.query(model)
            .filter(model.operator_id == operator_id, model.call_id == call_id)
            .first()
        )
        if case is not None:
            return case
    return None


def _case_fields(data, kind, status, now):
    fields = {
        'customer_name': data['customer_name'],
        'customer_phone': data['customer_phone'],
        'customer_address': data.get('customer_address'),
        'service_type': data.get('service_type', 'general'),
        'urgency': data.get('urgency', 'medium'),
        'priority_color': derive_priority_color(data, kind),
        'priority_reason': data.get('priority_reason'),
        'revenue_tier': data.get('revenue_tier'),
        'estimated_value': data.get('estimated_value'),
        'sentiment_score': data.get('sentiment_score'),
        'is_callback_complaint': data.get('is_callback_complaint', False),
        'property_type': data.get('property_type'),
        'ai_summary': data.get('ai_summary'),
        'call_id': data.get('call_id'),
        'status': status,
        'created_at': now,
        'updated_at': now,
    }
    if kind == 'job':
        fields.update({
            'scheduled_at': data['scheduled_at'],
            'is_ai_booked': True,
        })
    else:
        fields.update({
            'priority': derive_priority(data, status),
            'end_call_reason': data.get('end_call_reason'),
            'issue_description': data.get('issue_description'),
        })
        if status == 'lost':
            fields['lost_at'] = now
            fields['lost_reason'] = LOST_REASON_BY_END_CALL.get(data.get('end_call_reason'))
    return fields


def _refresh_existing(case, fields, now):
    """Apply a repeated delivery to the case it already produced."""
    if is_terminal(case):
        logger.info("%s %s is %s; duplicate delivery ignored", case.kind, case.id, case.status)
        return case
    for name in _REFRESHABLE:
        value = fields.get(name)
        if value is not None:
            setattr(case, name, value)
    case.updated_at = now
    return case


# ── Alerting ─────────────────────────────────────────────────────────────────

def _notify(session, operator, case, data, now):
    if case.kind == 'lead':
        if case.status == 'lost' or case.priority_color == 'gray':
            return None
        event_type = 'abandoned_call' if case.status == 'abandoned' else 'callback_request'
        payload = notification_data_for(case, callback_timeframe=data.get('callback_timeframe'))
        return send_operator_notification(session, operator, event_type, payload, lead=case, now=now)

    conflict = check_schedule_conflicts(session, operator.id, case.scheduled_at, exclude_job_id=case.id)
    event_type = determine_event_type(case.scheduled_at, operator.timezone,
                                      has_conflict=conflict.has_conflict, now=now)
    extra = {}
    if conflict.conflicting_job is not None:
        extra['conflicting_job_name'] = conflict.conflicting_job.customer_name
    payload = notification_data_for(case, **extra)
    return send_operator_notification(session, operator, event_type, payload, job=case, now=now)


# ── Entry point ──────────────────────────────────────────────────────────────

def ingest_case_event(session, payload, now=None) -> IntakeResult:
    """
    Validate, store and alert on one intake event.

    Raises ValidationError (nothing written). Duplicate call ids update the
    existing case and skip alerting.
    """
    now = as_utc(now or utcnow())
    data = validate_intake_event(payload)

    operator = get_or_provision_operator(session, data['user_email'])
    kind, status = route_case(data)
    fields = _case_fields(data, kind, status, now)

    existing = find_case_by_call_id(session, operator.id, data.get('call_id'))
    if existing is not None:
        logger.info("%s", DuplicateIntakeEvent(data['call_id'], existing))
        _refresh_existing(existing, fields, now)
        session.commit()
        return IntakeResult(case=existing, kind=existing.kind, action='updated')

    model = Job if kind == 'job' else Lead
    case = model(operator_id=operator.id, **fields)
    session.add(case)
    try:
        session.commit()
    except IntegrityError:
        # Concurrent delivery of the same call id won the insert
        session.rollback()
        operator = get_or_provision_operator(session, data['user_email'])
        existing = find_case_by_call_id(session, operator.id, data.get('call_id'))
        if existing is None:
            raise
        logger.info("%s (insert race)", DuplicateIntakeEvent(data['call_id'], existing))
        _refresh_existing(existing, fields, now)
        session.commit()
        return IntakeResult(case=existing, kind=existing.kind, action='updated')

    logger.info("Created %s %s (%s) for operator %s", kind, case.id, status, operator.id)

    notification = None
    try:
        result = _notify(session, operator, case, data, now)
        notification = result.to_dict() if result is not None else None
    except Exception:
        session.rollback()
        logger.error("Alerting failed for %s %s", kind, case.id, exc_info=True)
        notification = {'sent': False, 'queued': False, 'reason': 'Alerting error', 'provider_sid': None}

    return IntakeResult(case=case, kind=kind, action='created', notification=notification)
