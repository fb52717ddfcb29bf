"""
Lead status reply codes.

  1 / CONTACTED, CALLED   -> callback_requested   "Contacted via phone"
  2                       -> voicemail_left       "Left voicemail"
  4 / SCHEDULED, BOOKED   -> converted            "Scheduled appointment"
  5 / CLOSED, LOST        -> lost                 "Customer not interested"

Each applies to the lead the operator was last alerted about, adds an
automatic note and consumes the alert context.
"""
import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from dispatch.commands.base import (
    CommandHandler, CommandResult, already_closed, case_refs, require_lead,
)
from dispatch.errors import CorrelationMiss
from dispatch.services import sms_gateway
from dispatch.services.alert_context import mark_replied
from dispatch.triage.lifecycle import append_note, is_terminal, transition

logger = logging.getLogger('commands.lead_status')


@dataclass(frozen=True)
class StatusConfig:
    code: str
    status: str
    note_text: str
    label: str
    lost_reason: Optional[str] = None


STATUS_CONFIGS = {
    '1': StatusConfig('1', 'callback_requested', 'Contacted via phone', 'CONTACTED'),
    '2': StatusConfig('2', 'voicemail_left', 'Left voicemail', 'VOICEMAIL'),
    '4': StatusConfig('4', 'converted', 'Scheduled appointment', 'SCHEDULED'),
    '5': StatusConfig('5', 'lost', 'Customer not interested', 'LOST',
                      lost_reason='Not interested (marked via SMS)'),
}


class LeadStatusCommand(CommandHandler):
    def __init__(self, config: StatusConfig, keywords: Tuple[str, ...], priority: int,
                 label: Optional[str] = None, name: Optional[str] = None):
        self.config = config
        self.keywords = keywords
        self.priority = priority
        self.label = label or config.label
        self.name = name or f'code-{config.code}'

    def match(self, body_upper, body):
        return body_upper in self.keywords

    def execute(self, ctx):
        try:
            case_ctx = require_lead(ctx)
        except CorrelationMiss:
            return CommandResult(success=False, reply=sms_gateway.NO_RECENT_LEAD)

        lead = case_ctx.case
        if is_terminal(lead):
            return already_closed(case_ctx)

        transition(lead, self.config.status, now=ctx.now)
        if self.config.lost_reason:
            lead.lost_reason = self.config.lost_reason
        if self.config.status == 'converted':
            lead.callback_outcome = 'booked'
            lead.callback_outcome_at = ctx.now

        append_note(lead, self.config.note_text, source='sms', author=ctx.from_phone, now=ctx.now)
        mark_replied(ctx.session, case_ctx.record, self.config.code, now=ctx.now)

        logger.info("Lead %s marked %s via reply %r", lead.id, self.config.status, ctx.body)
        return CommandResult(
            success=True,
            reply=sms_gateway.status_confirmation(case_ctx.customer_name, self.label),
            event_type='lead_update',
            reply_code=self.config.code,
            **case_refs(lead),
        )


COMMANDS = [
    LeadStatusCommand(STATUS_CONFIGS['1'], ('1',), priority=11),
    LeadStatusCommand(STATUS_CONFIGS['2'], ('2',), priority=12),
    LeadStatusCommand(STATUS_CONFIGS['4'], ('4',), priority=14),
    LeadStatusCommand(STATUS_CONFIGS['5'], ('5',), priority=15),
    LeadStatusCommand(STATUS_CONFIGS['1'], ('CONTACTED', 'CALLED'), priority=50, name='word-contacted'),
    LeadStatusCommand(STATUS_CONFIGS['4'], ('SCHEDULED', 'BOOKED'), priority=51, name='word-scheduled'),
    LeadStatusCommand(STATUS_CONFIGS['5'], ('CLOSED', 'LOST'), priority=52, label='CLOSED', name='word-closed'),
]
