"""
Job replies: looked up by recency for the operator, not through the alert context.

  OK / Y / YES / CONFIRM     confirm the newest unconfirmed scheduled job
  CALL / PHONE / NUMBER      reply with the newest active case's customer phone
  COMPLETE / DONE / FINISHED complete the newest job flagged needs_action
"""
import logging

from dispatch.commands.base import CommandHandler, CommandResult
from dispatch.database import as_utc
from dispatch.models.case import Job, Lead
from dispatch.services import sms_gateway
from dispatch.triage.lifecycle import JOB_TERMINAL_STATUSES, LEAD_TERMINAL_STATUSES, transition

logger = logging.getLogger('commands.job_actions')


class ConfirmBookingCommand(CommandHandler):
    name = 'confirm-booking'
    priority = 30

    def match(self, body_upper, body):
        return body_upper in ('OK', 'Y', 'YES', 'CONFIRM')

    def execute(self, ctx):
        job = (
            ctx.session.query(Job)
            .filter(
                Job.operator_id == ctx.operator.id,
                Job.status == 'new',
                Job.booking_confirmed.is_(False),
                Job.scheduled_at.isnot(None),
            )
            .order_by(Job.created_at.desc(), Job.id.desc())
            .first()
        )
        if job is None:
            return CommandResult(success=False, reply='No booking waiting for confirmation.')

        transition(job, 'confirmed', now=ctx.now)
        logger.info("Job %s confirmed via SMS", job.id)
        return CommandResult(
            success=True,
            reply=sms_gateway.confirm_booking(job.customer_name),
            event_type='booking_confirmed',
            job_id=job.id,
        )


class CallInfoCommand(CommandHandler):
    name = 'call-info'
    priority = 40

    def match(self, body_upper, body):
        return body_upper in ('CALL', 'PHONE', 'NUMBER')

    def execute(self, ctx):
        lead = (
            ctx.session.query(Lead)
            .filter(Lead.operator_id == ctx.operator.id, Lead.status.notin_(LEAD_TERMINAL_STATUSES))
            .order_by(Lead.created_at.desc(), Lead.id.desc())
            .first()
        )
        job = (
            ctx.session.query(Job)
            .filter(Job.operator_id == ctx.operator.id, Job.status.in_(('new', 'confirmed')))
            .order_by(Job.created_at.desc(), Job.id.desc())
            .first()
        )
        candidates = [c for c in (lead, job) if c is not None and c.customer_phone]
        if not candidates:
            return CommandResult(success=False, reply='No recent job found. Open the app to see your jobs.')

        case = max(candidates, key=lambda c: as_utc(c.created_at))
        refs = {'lead_id': case.id} if case.kind == 'lead' else {'job_id': case.id}
        return CommandResult(
            success=True,
            reply=sms_gateway.customer_phone(case.customer_name, case.customer_phone),
            event_type='customer_phone',
            **refs,
        )


class CompleteJobCommand(CommandHandler):
    name = 'complete-job'
    priority = 45

    def match(self, body_upper, body):
        return body_upper in ('COMPLETE', 'DONE', 'FINISHED')

    def execute(self, ctx):
        job = (
            ctx.session.query(Job)
            .filter(
                Job.operator_id == ctx.operator.id,
                Job.needs_action.is_(True),
                Job.status.notin_(JOB_TERMINAL_STATUSES),
            )
            .order_by(Job.created_at.desc(), Job.id.desc())
            .first()
        )
        if job is None:
            return CommandResult(success=False, reply='No jobs currently flagged as needing action.')

        transition(job, 'complete', now=ctx.now)
        logger.info("Job %s marked complete via SMS", job.id)
        return CommandResult(
            success=True,
            reply=sms_gateway.complete_confirmation(job.customer_name),
            event_type='job_complete',
            job_id=job.id,
        )


COMMANDS = [ConfirmBookingCommand(), CallInfoCommand(), CompleteJobCommand()]
