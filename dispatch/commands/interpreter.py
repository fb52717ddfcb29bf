"""
Inbound SMS interpreter: one operator reply in, at most one action out.

handle_inbound_sms():
  1. audit-log the raw message (even from unknown senders) and commit
  2. find the operator by phone; unknown sender -> silence
  3. first matching handler by priority executes
  4. annotate the audit row, commit, send the reply (if any)

Unmatched messages get no reply.
"""
import logging
from typing import List, Optional

from dispatch.commands import help as help_commands
from dispatch.commands import booking, job_actions, lead_status, notes, snooze, subscription
from dispatch.commands.base import CommandContext, CommandHandler, CommandResult
from dispatch.database import as_utc, utcnow
from dispatch.errors import GatewaySendFailure
from dispatch.models.operator import Operator
from dispatch.services import sms_gateway
from dispatch.services.alert_context import normalize_phone
from dispatch.services.sms_log import annotate_inbound, log_inbound, log_outbound

logger = logging.getLogger('commands.registry')

ERROR_REPLY = 'Something went wrong. Open the app to manage leads.'

REGISTRY: List[CommandHandler] = sorted(
    subscription.COMMANDS
    + lead_status.COMMANDS
    + booking.COMMANDS
    + notes.COMMANDS
    + snooze.COMMANDS
    + job_actions.COMMANDS
    + help_commands.COMMANDS,
    key=lambda handler: handler.priority,
)


def find_handler(body_upper, body) -> Optional[CommandHandler]:
    for handler in REGISTRY:
        if handler.match(body_upper, body):
            return handler
    return None


def find_operator_by_phone(session, phone):
    normalized = normalize_phone(phone)
    if not normalized:
        return None
    return (
        session.query(Operator)
        .filter(Operator.phone.in_((normalized, normalized.lstrip('+'))))
        .order_by(Operator.id)
        .first()
    )


def _send_reply(session, operator, to_phone, body, result, now):
    try:
        sid = sms_gateway.send_sms(to_phone, body)
    except GatewaySendFailure as e:
        logger.warning("Reply to operator %s not delivered: %s", operator.id, e)
        sid = None
    log_outbound(session, to_phone, body, f'reply_{result.event_type}', provider_sid=sid,
                 operator_id=operator.id, lead_id=result.lead_id, job_id=result.job_id, now=now)
    session.commit()


def handle_inbound_sms(session, from_phone, body, now=None) -> CommandResult:
    now = as_utc(now or utcnow())
    body = (body or '').strip()

    operator = find_operator_by_phone(session, from_phone)
    inbound = log_inbound(session, from_phone, body, operator_id=operator.id if operator else None, now=now)
    session.commit()

    if operator is None:
        logger.info("Inbound SMS from unknown number %s; ignoring", from_phone)
        return CommandResult(success=False)

    body_upper = body.upper()
    handler = find_handler(body_upper, body)
    if handler is None:
        logger.info("No handler for SMS from operator %s", operator.id)
        return CommandResult(success=False)

    logger.info("Executing command '%s' for operator %s", handler.name, operator.id)
    ctx = CommandContext(
        session=session,
        operator=operator,
        from_phone=from_phone,
        body=body,
        body_upper=body_upper,
        now=now,
        inbound=inbound,
    )

    try:
        result = handler.execute(ctx)
    except Exception:
        session.rollback()
        logger.error("Command '%s' failed for operator %s", handler.name, operator.id, exc_info=True)
        result = CommandResult(success=False, reply=ERROR_REPLY)

    result.command = handler.name
    annotate_inbound(inbound, event_type=result.event_type, lead_id=result.lead_id, job_id=result.job_id)
    session.commit()

    if result.reply:
        _send_reply(session, operator, from_phone, result.reply, result, now)

    return result
