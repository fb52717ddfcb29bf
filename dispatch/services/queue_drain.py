"""
Queue drain worker: delivers alerts that quiet hours deferred.

Run on a fixed interval (cron route or `flask drain-queue`). Each run:

  - takes a Redis lock so overlapping runs back off (SET NX EX)
  - selects due entries (queued/requeued, send_at <= now), oldest first
  - per entry: fail if the operator can no longer be reached, requeue if the
    operator is still inside quiet hours, otherwise claim -> send -> sent|failed

The claim is a conditional UPDATE (status -> sending only while still
queued/requeued), so even without Redis an entry is sent at most once.

Queue status transitions:
  queued   -> requeued | sending | failed
  requeued -> requeued | sending | failed
  sending  -> sent | failed
  sent, failed: terminal
"""
import logging
import uuid
from dataclasses import dataclass, asdict

import redis
from sqlalchemy import update

from dispatch import extensions
from dispatch.database import as_utc, utcnow
from dispatch.errors import DispatchError, GatewaySendFailure
from dispatch.models.case import Job, Lead
from dispatch.models.notification_queue import NotificationQueueEntry
from dispatch.models.operator import Operator
from dispatch.services import sms_gateway
from dispatch.services.alert_context import save_alert_context
from dispatch.services.scheduler import CORRELATABLE_EVENTS, is_in_quiet_hours
from dispatch.services.sms_log import log_outbound
from dispatch.triage.policy_config import get_setting

logger = logging.getLogger('services.queue_drain')

LOCK_KEY = 'dispatch:queue_drain:lock'

PENDING_STATUSES = ('queued', 'requeued')

QUEUE_TRANSITIONS = {
    'queued': {'requeued', 'sending', 'failed'},
    'requeued': {'requeued', 'sending', 'failed'},
    'sending': {'sent', 'failed'},
    'sent': set(),
    'failed': set(),
}


class QueueTransitionError(DispatchError):
    """A queue status change outside the transition table."""


@dataclass
class DrainReport:
    processed: int = 0
    sent: int = 0
    failed: int = 0
    requeued: int = 0
    skipped: int = 0
    locked_out: bool = False

    def to_dict(self):
        return asdict(self)


# ── Run lock ─────────────────────────────────────────────────────────────────

class DrainLock:
    """
    Redis lock around one drain run.

    If Redis is unreachable the run proceeds unlocked; per-entry claims still
    keep sends exactly-once.
    """

    def __init__(self, redis_client, ttl_seconds):
        self.redis = redis_client
        self.ttl = ttl_seconds
        self.token = uuid.uuid4().hex
        self.held = False

    def acquire(self):
        try:
            self.held = bool(self.redis.set(LOCK_KEY, self.token, nx=True, ex=self.ttl))
            return self.held
        except redis.RedisError as e:
            logger.warning("Drain lock unavailable (%s); relying on per-entry claims", e)
            return True

    def release(self):
        if not self.held:
            return
        try:
            if self.redis.get(LOCK_KEY) == self.token:
                self.redis.delete(LOCK_KEY)
        except redis.RedisError as e:
            logger.warning("Failed to release drain lock: %s", e)
        self.held = False


# ── Transitions ──────────────────────────────────────────────────────────────

def _check_transition(current, new_status):
    if new_status not in QUEUE_TRANSITIONS.get(current, set()):
        raise QueueTransitionError(f"Queue entry cannot move from '{current}' to '{new_status}'")


def _move(session, entry, new_status, from_statuses=None, **values):
    """Conditional status update. Returns False if another worker moved the entry first."""
    from_statuses = tuple(from_statuses or (entry.status,))
    for current in from_statuses:
        _check_transition(current, new_status)

    result = session.execute(
        update(NotificationQueueEntry)
        .where(
            NotificationQueueEntry.id == entry.id,
            NotificationQueueEntry.status.in_(from_statuses),
        )
        .values(status=new_status, **values)
    )
    return result.rowcount == 1


def claim_entry(session, entry):
    """queued/requeued -> sending, only if nobody else got there first."""
    claimed = _move(session, entry, 'sending', from_statuses=PENDING_STATUSES)
    session.commit()
    return claimed


# ── Drain ────────────────────────────────────────────────────────────────────

def _due_entries(session, now, batch_size):
    return (
        session.query(NotificationQueueEntry)
        .filter(
            NotificationQueueEntry.status.in_(PENDING_STATUSES),
            NotificationQueueEntry.send_at <= now,
        )
        .order_by(NotificationQueueEntry.send_at, NotificationQueueEntry.id)
        .limit(batch_size)
        .all()
    )


def _fail(session, entry, reason, report):
    if _move(session, entry, 'failed', from_statuses=PENDING_STATUSES, error_message=reason):
        report.failed += 1
    else:
        report.skipped += 1
    session.commit()


def _deliver(session, entry, operator, now, report):
    if not claim_entry(session, entry):
        logger.info("Queue entry %s claimed by another worker; skipping", entry.id)
        report.skipped += 1
        return

    try:
        sid = sms_gateway.send_sms(operator.phone, entry.message_body)
    except GatewaySendFailure as e:
        _move(session, entry, 'failed', from_statuses=('sending',), error_message=str(e))
        log_outbound(session, operator.phone, entry.message_body, entry.event_type,
                     operator_id=operator.id, lead_id=entry.lead_id, job_id=entry.job_id, now=now)
        session.commit()
        report.failed += 1
        return

    _move(session, entry, 'sent', from_statuses=('sending',), provider_sid=sid, sent_at=now)
    log_outbound(session, operator.phone, entry.message_body, entry.event_type, provider_sid=sid,
                 operator_id=operator.id, lead_id=entry.lead_id, job_id=entry.job_id, now=now)

    if entry.event_type in CORRELATABLE_EVENTS:
        save_alert_context(
            session, operator.phone, entry.event_type,
            lead=session.get(Lead, entry.lead_id) if entry.lead_id else None,
            job=session.get(Job, entry.job_id) if entry.job_id else None,
            customer_phone=entry.customer_phone,
            customer_name=entry.customer_name,
            now=now,
        )

    session.commit()
    report.sent += 1


def process_notification_queue(session, now=None, batch_size=None) -> DrainReport:
    """Drain due queue entries. Safe to call with nothing pending."""
    now = as_utc(now or utcnow())
    batch_size = batch_size or get_setting('queue_batch_size', 50)
    report = DrainReport()

    lock = DrainLock(extensions.redis_client, get_setting('drain_lock_seconds', 120))
    if not lock.acquire():
        logger.info("Another drain run holds the lock; exiting")
        report.locked_out = True
        return report

    try:
        for entry in _due_entries(session, now, batch_size):
            report.processed += 1
            operator = session.get(Operator, entry.operator_id)

            if operator is None or not operator.phone:
                _fail(session, entry, 'No phone number', report)
                continue

            if not operator.sms_opt_in:
                _fail(session, entry, 'Operator unsubscribed', report)
                continue

            quiet = is_in_quiet_hours(operator, now=now)
            if quiet.in_quiet_hours:
                moved = _move(
                    session, entry, 'requeued', from_statuses=PENDING_STATUSES,
                    send_at=quiet.quiet_ends_at,
                    requeue_count=(entry.requeue_count or 0) + 1,
                )
                session.commit()
                if moved:
                    report.requeued += 1
                else:
                    report.skipped += 1
                continue

            _deliver(session, entry, operator, now, report)
    finally:
        lock.release()

    logger.info(
        "Queue drain: processed=%d sent=%d failed=%d requeued=%d skipped=%d",
        report.processed, report.sent, report.failed, report.requeued, report.skipped,
    )
    return report
