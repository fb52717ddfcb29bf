"""SNOOZE <when>: hide the alerted lead from triage until later."""
import logging

from dispatch.commands.base import CommandHandler, CommandResult, already_closed, require_lead
from dispatch.errors import CorrelationMiss
from dispatch.services import sms_gateway
from dispatch.services.snooze import USAGE, parse_snooze
from dispatch.triage.lifecycle import append_note, is_terminal, snooze

logger = logging.getLogger('commands.snooze')


class SnoozeCommand(CommandHandler):
    name = 'snooze'
    priority = 20

    def match(self, body_upper, body):
        return body_upper.startswith('SNOOZE')

    def execute(self, ctx):
        try:
            case_ctx = require_lead(ctx)
        except CorrelationMiss:
            return CommandResult(success=False, reply='No recent lead to snooze. Open the app to manage leads.')

        lead = case_ctx.case
        if is_terminal(lead):
            return already_closed(case_ctx)

        parsed = parse_snooze(ctx.body[6:], ctx.operator.timezone, now=ctx.now)
        if not parsed.success:
            return CommandResult(success=False, reply=USAGE, lead_id=lead.id)

        snooze(lead, parsed.remind_at, now=ctx.now)
        append_note(lead, f'Snoozed until {parsed.display_text}', source='sms',
                    author=ctx.from_phone, now=ctx.now)

        logger.info("Lead %s snoozed until %s", lead.id, parsed.remind_at.isoformat())
        return CommandResult(
            success=True,
            reply=sms_gateway.snooze_confirmation(case_ctx.customer_name, parsed.display_text),
            event_type='lead_snooze',
            lead_id=lead.id,
        )


COMMANDS = [SnoozeCommand()]
