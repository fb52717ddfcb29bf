"""
Twilio webhooks: inbound operator replies and delivery status callbacks.

Both always acknowledge so Twilio never retries a message we already logged.
A forged inbound reply is refused (403); a forged status callback is
acknowledged and dropped.
"""
import logging

from flask import Blueprint, Response, request
from twilio.request_validator import RequestValidator
from twilio.twiml.messaging_response import MessagingResponse

from dispatch import config, database
from dispatch.commands.interpreter import handle_inbound_sms
from dispatch.services.sms_log import update_delivery_status

logger = logging.getLogger('routes.sms')

bp = Blueprint('sms', __name__)


def _twiml_ack():
    return Response(str(MessagingResponse()), mimetype='text/xml')


def _signature_ok():
    if not config.TWILIO_VALIDATE_SIGNATURES:
        return True
    validator = RequestValidator(config.TWILIO_AUTH_TOKEN or '')
    return validator.validate(
        request.url,
        request.form.to_dict(),
        request.headers.get('X-Twilio-Signature', ''),
    )


@bp.route('/api/twilio/inbound', methods=['POST'])
def inbound_sms():
    """Operator reply -> command interpreter. Replies go out via the REST API."""
    if not _signature_ok():
        logger.warning("Rejected inbound SMS with bad Twilio signature")
        return Response('Forbidden', status=403)

    from_phone = request.form.get('From', '')
    body = request.form.get('Body', '')

    session = database.get_session()
    try:
        handle_inbound_sms(session, from_phone, body)
    except Exception:
        session.rollback()
        logger.error("Inbound SMS handling failed", exc_info=True)
    finally:
        session.close()

    return _twiml_ack()


@bp.route('/api/twilio/status', methods=['POST'])
def delivery_status():
    """MessageStatus callback for messages we sent."""
    if not _signature_ok():
        # Acknowledged but ignored
        logger.warning("Ignored status callback with bad Twilio signature")
        return Response('', status=200)

    sid = request.form.get('MessageSid')
    status = request.form.get('MessageStatus')
    error_code = request.form.get('ErrorCode')

    if sid and status:
        session = database.get_session()
        try:
            update_delivery_status(session, sid, status, error_code)
            session.commit()
        except Exception:
            session.rollback()
            logger.error("Failed to record delivery status for %s", sid, exc_info=True)
        finally:
            session.close()

    return Response('', status=200)
