"""
SMS audit log helpers: every inbound and outbound message gets a row.

Helpers add + flush only; the calling operation owns the commit.
"""
import logging

from dispatch.config import TWILIO_PHONE_NUMBER
from dispatch.database import utcnow
from dispatch.models.notification_queue import NotificationQueueEntry
from dispatch.models.sms_log import SmsLogEntry

logger = logging.getLogger('services.sms_log')

# Twilio MessageStatus -> our queue status
_QUEUE_STATUS_FROM_DELIVERY = {
    'delivered': 'sent',
    'sent': 'sent',
    'failed': 'failed',
    'undelivered': 'failed',
}


def log_outbound(session, to_phone, body, event_type, provider_sid=None,
                 operator_id=None, lead_id=None, job_id=None, now=None):
    entry = SmsLogEntry(
        operator_id=operator_id,
        lead_id=lead_id,
        job_id=job_id,
        direction='outbound',
        to_phone=to_phone or '',
        from_phone=TWILIO_PHONE_NUMBER,
        body=body,
        event_type=event_type,
        status='sent' if provider_sid else 'failed',
        provider_sid=provider_sid,
        created_at=now or utcnow(),
    )
    session.add(entry)
    session.flush()
    return entry


def log_inbound(session, from_phone, body, operator_id=None, to_phone=None, now=None):
    """Record an inbound message before anything else happens to it."""
    entry = SmsLogEntry(
        operator_id=operator_id,
        direction='inbound',
        to_phone=to_phone or TWILIO_PHONE_NUMBER,
        from_phone=from_phone or '',
        body=body or '',
        event_type='other',
        status='received',
        created_at=now or utcnow(),
    )
    session.add(entry)
    session.flush()
    return entry


def annotate_inbound(entry, event_type=None, lead_id=None, job_id=None):
    """Fill in what the interpreter did with an already-logged inbound row."""
    if event_type:
        entry.event_type = event_type
    if lead_id is not None:
        entry.lead_id = lead_id
    if job_id is not None:
        entry.job_id = job_id
    return entry


def update_delivery_status(session, provider_sid, delivery_status, error_code=None, now=None):
    """
    Apply a Twilio status callback to the audit row and any queue entry with the same SID.

    Returns the number of audit rows touched (0 for an unknown SID).
    """
    now = now or utcnow()
    rows = session.query(SmsLogEntry).filter(SmsLogEntry.provider_sid == provider_sid).all()
    for row in rows:
        row.delivery_status = delivery_status
        row.delivery_error_code = str(error_code) if error_code else None
        row.delivery_status_updated_at = now

    queue_status = _QUEUE_STATUS_FROM_DELIVERY.get(delivery_status)
    if queue_status:
        entries = (
            session.query(NotificationQueueEntry)
            .filter(NotificationQueueEntry.provider_sid == provider_sid)
            .all()
        )
        for entry in entries:
            # sent/failed are terminal for the queue; a late carrier failure is only recorded
            if entry.status == 'sending':
                entry.status = queue_status
            if queue_status == 'failed':
                suffix = f' (code {error_code})' if error_code else ''
                entry.error_message = f'Delivery {delivery_status}{suffix}'

    if not rows:
        logger.info("Status callback for unknown sid %s (%s)", provider_sid, delivery_status)
    return len(rows)
