"""
Booking replies: turn the alerted lead into a confirmed job at a given time.

  4 <when>     e.g. "4 TUE 2PM", "4 TOMORROW 9AM"
  BOOK <when>  e.g. "BOOK FRI 10:30AM"

The lead is converted and points at the new job; the alert context is consumed
as a code 4 reply.
"""
import logging

from dispatch.commands.base import CommandHandler, CommandResult, already_closed, require_lead
from dispatch.errors import CorrelationMiss
from dispatch.models.case import Job
from dispatch.services import sms_gateway
from dispatch.services.alert_context import mark_replied
from dispatch.services.booking_time import parse_booking_time
from dispatch.triage.lifecycle import append_note, is_terminal, transition

logger = logging.getLogger('commands.booking')

NO_LEAD_TO_BOOK = 'No recent lead to book. Open the app to manage leads.'


def book_lead(session, lead, scheduled_at, now):
    """Create a confirmed job from the lead and convert the lead."""
    job = Job(
        operator_id=lead.operator_id,
        customer_name=lead.customer_name,
        customer_phone=lead.customer_phone,
        customer_address=lead.customer_address or '',
        service_type=lead.service_type or 'general',
        urgency=lead.urgency or 'medium',
        priority_color=lead.priority_color,
        priority_reason=lead.priority_reason,
        revenue_tier=lead.revenue_tier,
        estimated_value=lead.estimated_value,
        ai_summary=lead.ai_summary,
        scheduled_at=scheduled_at,
        status='confirmed',
        booking_confirmed=True,
        is_ai_booked=False,
        notes=[],
        created_at=now,
        updated_at=now,
    )
    session.add(job)
    session.flush()

    transition(lead, 'converted', now=now)
    lead.converted_job_id = job.id
    lead.callback_outcome = 'booked'
    lead.callback_outcome_at = now
    return job


class BookingCommand(CommandHandler):
    def __init__(self, name, prefix, priority, usage):
        self.name = name
        self.prefix = prefix
        self.priority = priority
        self.usage = usage

    def match(self, body_upper, body):
        return body_upper.startswith(self.prefix)

    def execute(self, ctx):
        try:
            case_ctx = require_lead(ctx)
        except CorrelationMiss:
            return CommandResult(success=False, reply=NO_LEAD_TO_BOOK)

        lead = case_ctx.case
        if is_terminal(lead):
            return already_closed(case_ctx)

        time_text = ctx.body[len(self.prefix):].strip()
        parsed = parse_booking_time(time_text, ctx.operator.timezone, now=ctx.now)
        if not parsed.success:
            return CommandResult(success=False, reply=parsed.prompt or self.usage, lead_id=lead.id)

        job = book_lead(ctx.session, lead, parsed.scheduled_at, ctx.now)
        append_note(lead, f'Booked for {parsed.display_text}', source='sms', author=ctx.from_phone, now=ctx.now)
        mark_replied(ctx.session, case_ctx.record, '4', now=ctx.now)

        logger.info("Lead %s booked as job %s via reply %r", lead.id, job.id, ctx.body)
        return CommandResult(
            success=True,
            reply=sms_gateway.booking_confirmation(case_ctx.customer_name, parsed.display_text),
            event_type='lead_booking',
            reply_code='4',
            lead_id=lead.id,
            job_id=job.id,
        )


COMMANDS = [
    BookingCommand('code-4-booking', '4 ', priority=14, usage='When? Reply: 4 TUE 2PM, 4 TOMORROW 9AM'),
    BookingCommand('book-prefix', 'BOOK ', priority=25, usage='When? Reply: BOOK TUE 2PM, BOOK TOMORROW 9AM'),
]
