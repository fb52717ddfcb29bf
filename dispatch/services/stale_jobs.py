"""
Stale job sweep: flags jobs still `new` long after booking and alerts the operator.

Run hourly (cron route or `flask sweep-stale-jobs`). Each run picks up to
stale_job_batch_size jobs that are `new`, not yet flagged, and older than
stale_job_hours. Each one gets needs_action set and a stale_job_alert through
the scheduler (quiet hours apply). A flagged job is never picked again, so it
alerts once; a COMPLETE/DONE reply then closes it.
"""
import logging
from dataclasses import dataclass, asdict
from datetime import timedelta

from dispatch.database import as_utc, utcnow
from dispatch.models.case import Job
from dispatch.models.operator import Operator
from dispatch.services.scheduler import notification_data_for, send_operator_notification
from dispatch.triage.policy_config import get_setting

logger = logging.getLogger('services.stale_jobs')


@dataclass
class StaleJobReport:
    processed: int = 0
    alerted: int = 0
    skipped: int = 0
    threshold_hours: int = 24

    def to_dict(self):
        return asdict(self)


def find_stale_jobs(session, now, threshold_hours, limit):
    cutoff = now - timedelta(hours=threshold_hours)
    return (
        session.query(Job)
        .filter(
            Job.status == 'new',
            Job.needs_action.is_(False),
            Job.created_at < cutoff,
        )
        .order_by(Job.created_at, Job.id)
        .limit(limit)
        .all()
    )


def flag_stale_jobs(session, now=None, limit=None) -> StaleJobReport:
    """Flag and alert stale jobs. Safe to call with nothing stale."""
    now = as_utc(now or utcnow())
    threshold_hours = get_setting('stale_job_hours', 24)
    limit = limit or get_setting('stale_job_batch_size', 20)
    report = StaleJobReport(threshold_hours=threshold_hours)

    for job in find_stale_jobs(session, now, threshold_hours, limit):
        hours_waiting = int((now - as_utc(job.created_at)).total_seconds() // 3600)
        job.needs_action = True
        job.needs_action_note = f'Job has been waiting for {hours_waiting} hours without progress'
        session.commit()
        report.processed += 1

        operator = session.get(Operator, job.operator_id)
        if operator is None or not operator.phone:
            logger.info("Stale job %s: no operator phone configured", job.id)
            report.skipped += 1
            continue

        result = send_operator_notification(
            session, operator, 'stale_job_alert',
            notification_data_for(job, hours_waiting=hours_waiting),
            job=job, now=now,
        )
        if result.sent or result.queued:
            report.alerted += 1
            logger.info("Stale job alert for job %s: %s (%sh)", job.id, job.customer_name, hours_waiting)
        else:
            report.skipped += 1
            logger.info("Stale job %s not alerted: %s", job.id, result.reason)

    if report.processed:
        logger.info("Stale job sweep: %s", report.to_dict())
    return report
