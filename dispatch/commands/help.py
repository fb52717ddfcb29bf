"""HELP / ?: reply with the command list."""
from dispatch.commands.base import CommandHandler, CommandResult
from dispatch.services import sms_gateway


class HelpCommand(CommandHandler):
    name = 'help'
    priority = 70

    def match(self, body_upper, body):
        return body_upper in ('HELP', '?')

    def execute(self, ctx):
        return CommandResult(success=True, reply=sms_gateway.HELP_TEXT)


COMMANDS = [HelpCommand()]
