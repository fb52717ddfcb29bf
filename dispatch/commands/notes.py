"""
Note replies.

  3 <text> / 3: <text>   note on the alerted case, consumes the alert context
  3                      usage hint only
  NOTE <text> / NOTE: .. note on the alerted case
  anything else > 3 chars  treated as a note when there is context, else silence
"""
import logging

from dispatch.commands.base import CommandHandler, CommandResult, add_note, resolve

logger = logging.getLogger('commands.notes')

NO_NOTE_TARGET = 'No recent lead to add note to. Open the app to manage leads.'
CODE3_USAGE = 'Please include a note after 3 (e.g., "3 Customer prefers mornings")'

# Short replies the free-text fallback must never swallow
KNOWN_WORDS = ('OK', 'Y', 'YES', 'CONFIRM', 'CALL', 'PHONE', 'NUMBER', 'DONE', 'HELP')


class Code3NoteCommand(CommandHandler):
    name = 'code-3-note'
    priority = 13

    def match(self, body_upper, body):
        return body.startswith('3 ') or body.startswith('3:')

    def execute(self, ctx):
        text = ctx.body[2:].strip()
        if not text:
            return CommandResult(success=False, reply=CODE3_USAGE)

        case_ctx = resolve(ctx)
        if case_ctx is None:
            return CommandResult(success=False, reply=NO_NOTE_TARGET)
        return add_note(ctx, case_ctx, text, reply_code='3')


class BareCode3Command(CommandHandler):
    name = 'code-3-bare'
    priority = 13.5

    def match(self, body_upper, body):
        return body_upper == '3'

    def execute(self, ctx):
        return CommandResult(success=False, reply=CODE3_USAGE)


class NotePrefixCommand(CommandHandler):
    name = 'note-prefix'
    priority = 60

    def match(self, body_upper, body):
        return body_upper.startswith('NOTE:') or body_upper.startswith('NOTE ')

    def execute(self, ctx):
        if ctx.body_upper.startswith('NOTE:'):
            text = ctx.body[ctx.body.index(':') + 1:].strip()
        else:
            text = ctx.body[5:].strip()
        if not text:
            return CommandResult(success=False, reply='Please include a note after NOTE:')

        case_ctx = resolve(ctx)
        if case_ctx is None:
            return CommandResult(success=False, reply=NO_NOTE_TARGET)
        return add_note(ctx, case_ctx, text)


class FreeTextNoteCommand(CommandHandler):
    name = 'free-text-note'
    priority = 100

    def match(self, body_upper, body):
        return len(body_upper) > 3 and body_upper not in KNOWN_WORDS

    def execute(self, ctx):
        case_ctx = resolve(ctx)
        if case_ctx is None:
            logger.info("Unmatched SMS from operator %s with no context; ignoring", ctx.operator.id)
            return CommandResult(success=False)
        return add_note(ctx, case_ctx, ctx.body)


COMMANDS = [Code3NoteCommand(), BareCode3Command(), NotePrefixCommand(), FreeTextNoteCommand()]
