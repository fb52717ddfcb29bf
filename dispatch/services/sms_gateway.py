"""
SMS gateway: Twilio REST send + operator message templates.

send_sms() is the only place that talks to Twilio. It returns the provider's
message SID or raises GatewaySendFailure; callers decide whether the failure
matters (it never does for the case write).

Templates stay short enough to fit one SMS segment (~160 chars).
"""
import logging

from dispatch.config import TWILIO_PHONE_NUMBER, TWILIO_STATUS_CALLBACK_URL
from dispatch.errors import GatewaySendFailure
from dispatch.extensions import get_twilio_client

logger = logging.getLogger('services.sms_gateway')

BRAND = 'DISPATCH'


def send_sms(to_phone, body):
    """Send one SMS through Twilio. Returns the message SID."""
    if not to_phone:
        raise GatewaySendFailure(to_phone, 'no destination phone')

    client = get_twilio_client()
    if client is None or not TWILIO_PHONE_NUMBER:
        raise GatewaySendFailure(to_phone, 'Twilio not configured')

    kwargs = {'body': body, 'from_': TWILIO_PHONE_NUMBER, 'to': to_phone}
    if TWILIO_STATUS_CALLBACK_URL:
        kwargs['status_callback'] = TWILIO_STATUS_CALLBACK_URL

    try:
        message = client.messages.create(**kwargs)
    except Exception as e:
        logger.error("Twilio send to %s failed: %s", to_phone, e)
        raise GatewaySendFailure(to_phone, str(e)) from e

    logger.info("SMS sent to %s (sid=%s)", to_phone, message.sid)
    return message.sid


def format_service_type(service_type):
    if not service_type:
        return 'Service'
    if service_type == 'hvac':
        return 'HVAC'
    return service_type[:1].upper() + service_type[1:]


# ── Templates ────────────────────────────────────────────────────────────────

def same_day_booking(name, time, service, city=''):
    where = f' · {city}' if city else ''
    return f'{BRAND}: New booking TODAY\n{name} · {time}\n{service}{where}\nReply OK to confirm'


def future_booking(name, date, time, service):
    return f'{BRAND}: Booking {date}\n{name} · {time}\n{service}\nView in app'


def callback_request(name, timeframe='soon'):
    return f'{BRAND}: Callback requested\n{name} wants callback {timeframe}\nReply CALL for number'


def schedule_conflict(name, time, existing_job):
    return f'{BRAND}: Conflict!\n{name} at {time}\nConflicts with {existing_job}\nReview in app'


def cancellation(name, time):
    return f'{BRAND}: Cancel\n{name} · {time} slot open'


def abandoned_call(name, phone):
    return f'{BRAND}: Hung up\n{name} · {phone}\nCall back ASAP'


def stale_job_alert(name, hours_waiting):
    return f'{BRAND}: Stale job!\n{name} waiting {hours_waiting}h\nNeeds attention'


def confirm_booking(name):
    return f'Confirmed: {name}. Good luck!'


def customer_phone(name, phone):
    return f'{name}: {phone}'


def complete_confirmation(name):
    return f'Job for {name} marked complete. Great work!'


def status_confirmation(name, label):
    return f'✓ {name} marked {label}'


def note_confirmation(name):
    return f'✓ Note added to {name}'


def snooze_confirmation(name, display_time):
    return f'Snoozed: {name}\nReminder: {display_time}'


def booking_confirmation(name, display_time):
    return f'Booked: {name}\n{display_time}\nAdded to your calendar'


HELP_TEXT = (
    'Codes: 1=Called 2=VM 3=Note 4=Booked 5=Lost\n'
    'Snooze: SNOOZE 1H, SNOOZE TOMORROW\n'
    'More: OK CALL DONE STOP'
)

NO_RECENT_LEAD = 'No recent lead to update. Open the app to manage leads.'
