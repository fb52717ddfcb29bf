"""STOP / START: carrier-mandated opt-out keywords. No reply is sent; the carrier answers."""
import logging

from dispatch.commands.base import CommandHandler, CommandResult

logger = logging.getLogger('commands.subscription')

STOP_KEYWORDS = ('STOP', 'UNSUBSCRIBE', 'CANCEL', 'END', 'QUIT')
START_KEYWORDS = ('START', 'UNSTOP', 'SUBSCRIBE')


class StopCommand(CommandHandler):
    name = 'stop'
    priority = 1

    def match(self, body_upper, body):
        return body_upper in STOP_KEYWORDS

    def execute(self, ctx):
        ctx.operator.sms_opt_in = False
        ctx.operator.sms_opted_out_at = ctx.now
        logger.info("Operator %s opted out of SMS", ctx.operator.id)
        return CommandResult(success=True, event_type='opt_out')


class StartCommand(CommandHandler):
    name = 'start'
    priority = 2

    def match(self, body_upper, body):
        return body_upper in START_KEYWORDS

    def execute(self, ctx):
        ctx.operator.sms_opt_in = True
        ctx.operator.sms_opted_out_at = None
        logger.info("Operator %s opted back in to SMS", ctx.operator.id)
        return CommandResult(success=True, event_type='opt_in')


COMMANDS = [StopCommand(), StartCommand()]
