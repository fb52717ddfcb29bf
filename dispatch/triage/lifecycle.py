"""
Case lifecycle: allowed status moves for leads and jobs.

Lead: callback_requested / thinking / voicemail_left / info_only / deferred /
      abandoned / sales_opportunity  ->  converted | lost (terminal)
Job:  new -> confirmed -> en_route -> on_site -> complete (terminal);
      cancelled (terminal) from any open state. Forward moves may skip steps.

Terminal cases are never mutated again.
"""
import logging
from datetime import datetime
from typing import Optional

from dispatch.database import utcnow
from dispatch.errors import InvalidTransition

logger = logging.getLogger('triage.lifecycle')

LEAD_OPEN_STATUSES = [
    'callback_requested',
    'thinking',
    'voicemail_left',
    'info_only',
    'deferred',
    'abandoned',
    'sales_opportunity',
]
LEAD_TERMINAL_STATUSES = ['converted', 'lost']
LEAD_STATUSES = LEAD_OPEN_STATUSES + LEAD_TERMINAL_STATUSES

JOB_PROGRESSION = ['new', 'confirmed', 'en_route', 'on_site', 'complete']
JOB_TERMINAL_STATUSES = ['complete', 'cancelled']
JOB_STATUSES = JOB_PROGRESSION + ['cancelled']


def is_terminal(case) -> bool:
    if case.kind == 'job':
        return case.status in JOB_TERMINAL_STATUSES
    return case.status in LEAD_TERMINAL_STATUSES


def can_transition(case, new_status: str) -> bool:
    if is_terminal(case):
        return False

    if case.kind == 'job':
        if new_status == 'cancelled':
            return True
        if new_status not in JOB_PROGRESSION or case.status not in JOB_PROGRESSION:
            return False
        return JOB_PROGRESSION.index(new_status) > JOB_PROGRESSION.index(case.status)

    # Open lead statuses move freely among themselves
    return new_status in LEAD_STATUSES


def transition(case, new_status: str, now: Optional[datetime] = None):
    """Validate and apply a status change, stamping the matching timestamp."""
    if not can_transition(case, new_status):
        raise InvalidTransition(case.kind, case.status, new_status)

    now = now or utcnow()
    previous = case.status
    case.status = new_status

    if case.kind == 'lead':
        if new_status == 'converted':
            case.converted_at = now
        elif new_status == 'lost':
            case.lost_at = now
    else:
        if new_status == 'complete':
            case.completed_at = now
            case.needs_action = False
        elif new_status == 'cancelled':
            case.cancelled_at = now
        elif new_status == 'confirmed':
            case.booking_confirmed = True

    case.updated_at = now
    logger.info("%s %s: %s -> %s", case.kind, case.id, previous, new_status)
    return case


def append_note(case, text: str, source: str = 'sms', author: Optional[str] = None,
                now: Optional[datetime] = None):
    """Append to the case's note list, preserving order."""
    now = now or utcnow()
    note = {
        'text': text,
        'source': source,
        'author': author,
        'created_at': now.isoformat(),
    }
    # Reassign so the JSON column is flagged dirty
    case.notes = list(case.notes or []) + [note]
    case.updated_at = now
    return note


def snooze(lead, remind_at: datetime, now: Optional[datetime] = None):
    """Hide an open lead from triage until remind_at; status is unchanged."""
    if lead.kind != 'lead' or is_terminal(lead):
        raise InvalidTransition(lead.kind, lead.status, 'snoozed')

    now = now or utcnow()
    lead.remind_at = remind_at
    lead.callback_outcome = 'try_again'
    lead.callback_outcome_at = now
    lead.updated_at = now
    return lead
