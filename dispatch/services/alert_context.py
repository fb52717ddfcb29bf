"""
Alert context store + correlator.

Every correlatable alert sent to an operator leaves a pending AlertContextRecord.
When the operator replies without naming a case ("1", "3 running late", ...),
the most recent pending record for their phone inside the correlation window
tells us which case they mean.

A record is consumed exactly once: mark_replied() is a conditional update that
only succeeds while the record is still pending.
"""
import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional, Union

from sqlalchemy import update

from dispatch.database import utcnow
from dispatch.models.alert_context import AlertContextRecord
from dispatch.models.case import Job, Lead
from dispatch.triage.lifecycle import LEAD_TERMINAL_STATUSES
from dispatch.triage.policy_config import get_setting

logger = logging.getLogger('services.alert_context')


@dataclass
class CaseContext:
    case: Union[Lead, Job]
    record: Optional[AlertContextRecord]
    customer_name: str

    @property
    def lead_id(self):
        return self.case.id if self.case.kind == 'lead' else None

    @property
    def job_id(self):
        return self.case.id if self.case.kind == 'job' else None


def normalize_phone(phone):
    """Twilio sends E.164; stored phones may have lost the leading '+'."""
    phone = (phone or '').strip()
    if not phone:
        return ''
    return phone if phone.startswith('+') else f'+{phone}'


def save_alert_context(session, operator_phone, alert_type, lead=None, job=None,
                       customer_phone=None, customer_name=None, now=None):
    record = AlertContextRecord(
        operator_phone=normalize_phone(operator_phone),
        alert_type=alert_type,
        lead_id=lead.id if lead is not None else None,
        job_id=job.id if job is not None else None,
        customer_phone=customer_phone,
        customer_name=customer_name,
        status='pending',
        created_at=now or utcnow(),
    )
    session.add(record)
    session.flush()
    return record


def get_alert_context(session, operator_phone, now=None) -> Optional[AlertContextRecord]:
    """Most recent pending record for this phone inside the correlation window."""
    now = now or utcnow()
    window = timedelta(minutes=get_setting('correlation_window_minutes', 60))

    return (
        session.query(AlertContextRecord)
        .filter(
            AlertContextRecord.operator_phone == normalize_phone(operator_phone),
            AlertContextRecord.status == 'pending',
            AlertContextRecord.created_at >= now - window,
            AlertContextRecord.created_at <= now,
        )
        .order_by(AlertContextRecord.created_at.desc(), AlertContextRecord.id.desc())
        .first()
    )


def _open_lead_for_phone(session, customer_phone, operator_id=None):
    query = session.query(Lead).filter(
        Lead.customer_phone == customer_phone,
        Lead.status.notin_(LEAD_TERMINAL_STATUSES),
    )
    if operator_id is not None:
        query = query.filter(Lead.operator_id == operator_id)
    return query.order_by(Lead.created_at.desc(), Lead.id.desc()).first()


def resolve_case_context(session, operator_phone, now=None, operator_id=None) -> Optional[CaseContext]:
    """
    Work out which case a reply from operator_phone refers to.

    1. The pending alert context (lead, else job).
    2. A context that only carries a customer phone: the open lead for it.
    3. The sender's own phone matching an open lead's customer phone.
    """
    record = get_alert_context(session, operator_phone, now=now)

    if record is not None:
        case = None
        if record.lead_id is not None:
            case = session.get(Lead, record.lead_id)
        elif record.job_id is not None:
            case = session.get(Job, record.job_id)
        elif record.customer_phone:
            case = _open_lead_for_phone(session, record.customer_phone, operator_id)

        if case is not None:
            return CaseContext(case=case, record=record,
                               customer_name=record.customer_name or case.customer_name or 'Lead')

    lead = _open_lead_for_phone(session, normalize_phone(operator_phone), operator_id)
    if lead is not None:
        return CaseContext(case=lead, record=None, customer_name=lead.customer_name or 'Lead')

    return None


def mark_replied(session, record, reply_code, now=None) -> bool:
    """Consume a pending record. False if it was already consumed."""
    if record is None:
        return False

    now = now or utcnow()
    result = session.execute(
        update(AlertContextRecord)
        .where(AlertContextRecord.id == record.id, AlertContextRecord.status == 'pending')
        .values(status='replied', replied_at=now, reply_code=str(reply_code))
    )
    if result.rowcount != 1:
        logger.info("Alert context %s already replied; not re-attributing", record.id)
        return False
    return True
