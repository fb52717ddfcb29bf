"""Tests for dispatch.services.sms_log: audit rows and delivery callbacks."""
from datetime import datetime, timezone

from dispatch.models.notification_queue import NotificationQueueEntry
from dispatch.models.sms_log import SmsLogEntry
from dispatch.services.sms_log import (
    annotate_inbound,
    log_inbound,
    log_outbound,
    update_delivery_status,
)

NOW = datetime(2026, 6, 10, 15, 0, tzinfo=timezone.utc)


class TestLogging:
    def test_outbound_without_sid_is_failed(self, db_session):
        entry = log_outbound(db_session, '+15550001111', 'hello', 'callback_request', now=NOW)
        assert entry.direction == 'outbound'
        assert entry.status == 'failed'

    def test_outbound_with_sid_is_sent(self, db_session):
        entry = log_outbound(db_session, '+15550001111', 'hello', 'callback_request', provider_sid='SM1', now=NOW)
        assert entry.status == 'sent'

    def test_inbound_then_annotate(self, db_session):
        entry = log_inbound(db_session, '+15550001111', '1', now=NOW)
        assert entry.status == 'received'
        assert entry.event_type == 'other'
        annotate_inbound(entry, event_type='lead_update', lead_id=7)
        assert entry.event_type == 'lead_update'
        assert entry.lead_id == 7
        assert entry.job_id is None


class TestUpdateDeliveryStatus:
    """Twilio MessageStatus callbacks."""

    def _queue_entry(self, db_session, make_operator, status):
        operator = make_operator()
        entry = NotificationQueueEntry(
            operator_id=operator.id, event_type='callback_request', message_body='x',
            send_at=NOW, status=status, requeue_count=0, provider_sid='SM1',
        )
        db_session.add(entry)
        db_session.commit()
        return entry

    def test_updates_log_row(self, db_session):
        log_outbound(db_session, '+15550001111', 'hello', 'callback_request', provider_sid='SM1', now=NOW)
        db_session.commit()

        touched = update_delivery_status(db_session, 'SM1', 'delivered', now=NOW)
        db_session.commit()

        assert touched == 1
        row = db_session.query(SmsLogEntry).one()
        assert row.delivery_status == 'delivered'
        assert row.delivery_error_code is None
        assert row.status == 'sent'

    def test_records_error_code(self, db_session):
        log_outbound(db_session, '+15550001111', 'hello', 'callback_request', provider_sid='SM1', now=NOW)
        update_delivery_status(db_session, 'SM1', 'undelivered', error_code='30003', now=NOW)
        row = db_session.query(SmsLogEntry).one()
        assert row.delivery_error_code == '30003'

    def test_unknown_sid(self, db_session):
        assert update_delivery_status(db_session, 'SM-missing', 'delivered', now=NOW) == 0

    def test_sending_queue_entry_follows_callback(self, db_session, make_operator):
        entry = self._queue_entry(db_session, make_operator, 'sending')
        update_delivery_status(db_session, 'SM1', 'delivered', now=NOW)
        assert entry.status == 'sent'

    def test_sent_queue_entry_keeps_terminal_status(self, db_session, make_operator):
        entry = self._queue_entry(db_session, make_operator, 'sent')
        update_delivery_status(db_session, 'SM1', 'failed', error_code='30005', now=NOW)
        assert entry.status == 'sent'
        assert entry.error_message == 'Delivery failed (code 30005)'
