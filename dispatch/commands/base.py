"""
Reply command plumbing: context/result types and the handler base class.

A handler declares a priority (lower is checked first), a match() over the
normalized body and an execute() that performs at most one action. Replies
are returned in the CommandResult; the interpreter sends them.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from dispatch.errors import CorrelationMiss
from dispatch.models.operator import Operator
from dispatch.models.sms_log import SmsLogEntry
from dispatch.services import sms_gateway
from dispatch.services.alert_context import CaseContext, mark_replied, resolve_case_context
from dispatch.triage.lifecycle import append_note, is_terminal

logger = logging.getLogger('commands.base')


@dataclass
class CommandContext:
    session: object
    operator: Operator
    from_phone: str
    body: str                     # trimmed, original case
    body_upper: str
    now: datetime
    inbound: Optional[SmsLogEntry] = None


@dataclass
class CommandResult:
    success: bool
    reply: Optional[str] = None
    event_type: str = 'other'
    lead_id: Optional[int] = None
    job_id: Optional[int] = None
    reply_code: Optional[str] = None
    command: Optional[str] = None


class CommandHandler:
    name = ''
    priority = 100

    def match(self, body_upper, body):
        raise NotImplementedError

    def execute(self, ctx: CommandContext) -> CommandResult:
        raise NotImplementedError

    def __repr__(self):
        return f'<{type(self).__name__} {self.name} p={self.priority}>'


# ── Shared helpers ───────────────────────────────────────────────────────────

def resolve(ctx) -> Optional[CaseContext]:
    return resolve_case_context(ctx.session, ctx.from_phone, now=ctx.now, operator_id=ctx.operator.id)


def require_lead(ctx) -> CaseContext:
    """Correlated case for this reply; raises CorrelationMiss unless it is a lead."""
    case_ctx = resolve(ctx)
    if case_ctx is None or case_ctx.case.kind != 'lead':
        raise CorrelationMiss(ctx.from_phone)
    return case_ctx


def case_refs(case):
    if case is None:
        return {}
    if case.kind == 'lead':
        return {'lead_id': case.id}
    return {'job_id': case.id}


def already_closed(case_ctx) -> CommandResult:
    """Reply for a reply aimed at a converted/lost/complete/cancelled case."""
    case = case_ctx.case
    logger.info("%s %s is terminal (%s); reply not applied", case.kind, case.id, case.status)
    return CommandResult(
        success=False,
        reply=f'{case_ctx.customer_name} is already {case.status.upper()}',
        **case_refs(case),
    )


def add_note(ctx, case_ctx, text, reply_code=None) -> CommandResult:
    """Note on the correlated case, optionally consuming its alert context."""
    if is_terminal(case_ctx.case):
        return already_closed(case_ctx)

    append_note(case_ctx.case, text, source='sms', author=ctx.from_phone, now=ctx.now)
    if reply_code is not None:
        mark_replied(ctx.session, case_ctx.record, reply_code, now=ctx.now)

    return CommandResult(
        success=True,
        reply=sms_gateway.note_confirmation(case_ctx.customer_name),
        event_type='lead_note',
        reply_code=reply_code,
        **case_refs(case_ctx.case),
    )
