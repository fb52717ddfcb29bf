"""Tests for dispatch.services.alert_context: correlation window and single consumption."""
from datetime import datetime, timedelta, timezone

from dispatch.services.alert_context import (
    get_alert_context,
    mark_replied,
    normalize_phone,
    resolve_case_context,
    save_alert_context,
)

NOW = datetime(2026, 6, 10, 15, 0, tzinfo=timezone.utc)
PHONE = '+15550001111'


class TestNormalizePhone:
    def test_adds_plus(self):
        assert normalize_phone('15550001111') == '+15550001111'

    def test_keeps_e164(self):
        assert normalize_phone(' +15550001111 ') == '+15550001111'

    def test_empty(self):
        assert normalize_phone(None) == ''


class TestGetAlertContext:
    """Most recent pending record inside the window."""

    def test_returns_latest(self, db_session, make_operator, make_lead):
        operator = make_operator()
        older = make_lead(operator, customer_name='Older')
        newer = make_lead(operator, customer_name='Newer')
        save_alert_context(db_session, PHONE, 'callback_request', lead=older, now=NOW - timedelta(minutes=20))
        save_alert_context(db_session, PHONE, 'abandoned_call', lead=newer, now=NOW - timedelta(minutes=5))
        db_session.commit()

        record = get_alert_context(db_session, PHONE, now=NOW)
        assert record.lead_id == newer.id

    def test_matches_phone_without_plus(self, db_session, make_operator, make_lead):
        operator = make_operator()
        lead = make_lead(operator)
        save_alert_context(db_session, '15550001111', 'abandoned_call', lead=lead, now=NOW)
        db_session.commit()
        assert get_alert_context(db_session, PHONE, now=NOW) is not None

    def test_outside_window(self, db_session, make_operator, make_lead):
        operator = make_operator()
        lead = make_lead(operator)
        save_alert_context(db_session, PHONE, 'abandoned_call', lead=lead, now=NOW - timedelta(minutes=61))
        db_session.commit()
        assert get_alert_context(db_session, PHONE, now=NOW) is None

    def test_other_phone(self, db_session, make_operator, make_lead):
        operator = make_operator()
        lead = make_lead(operator)
        save_alert_context(db_session, '+15559990000', 'abandoned_call', lead=lead, now=NOW)
        db_session.commit()
        assert get_alert_context(db_session, PHONE, now=NOW) is None


class TestMarkReplied:
    """A record is consumed exactly once."""

    def test_consumes_once(self, db_session, make_operator, make_lead):
        operator = make_operator()
        lead = make_lead(operator)
        record = save_alert_context(db_session, PHONE, 'abandoned_call', lead=lead, now=NOW)
        db_session.commit()

        assert mark_replied(db_session, record, '1', now=NOW) is True
        assert mark_replied(db_session, record, '2', now=NOW) is False
        db_session.commit()
        db_session.refresh(record)
        assert record.status == 'replied'
        assert record.reply_code == '1'

    def test_consumed_record_not_returned(self, db_session, make_operator, make_lead):
        operator = make_operator()
        lead = make_lead(operator)
        record = save_alert_context(db_session, PHONE, 'abandoned_call', lead=lead, now=NOW)
        mark_replied(db_session, record, '1', now=NOW)
        db_session.commit()
        assert get_alert_context(db_session, PHONE, now=NOW + timedelta(minutes=1)) is None

    def test_none_record(self, db_session):
        assert mark_replied(db_session, None, '1') is False


class TestResolveCaseContext:
    """Which case an operator reply refers to."""

    def test_lead_from_record(self, db_session, make_operator, make_lead):
        operator = make_operator()
        lead = make_lead(operator)
        save_alert_context(db_session, PHONE, 'abandoned_call', lead=lead, customer_name='Johnny', now=NOW)
        db_session.commit()

        ctx = resolve_case_context(db_session, PHONE, now=NOW, operator_id=operator.id)
        assert ctx.case.id == lead.id
        assert ctx.lead_id == lead.id
        assert ctx.job_id is None
        assert ctx.customer_name == 'Johnny'

    def test_job_from_record(self, db_session, make_operator, make_job):
        operator = make_operator()
        job = make_job(operator)
        save_alert_context(db_session, PHONE, 'future_booking', job=job, now=NOW)
        db_session.commit()

        ctx = resolve_case_context(db_session, PHONE, now=NOW)
        assert ctx.job_id == job.id
        assert ctx.customer_name == 'Jane Doe'

    def test_customer_phone_only_record(self, db_session, make_operator, make_lead):
        operator = make_operator()
        lead = make_lead(operator)
        save_alert_context(db_session, PHONE, 'callback_request', customer_phone=lead.customer_phone, now=NOW)
        db_session.commit()

        ctx = resolve_case_context(db_session, PHONE, now=NOW, operator_id=operator.id)
        assert ctx.case.id == lead.id

    def test_sender_phone_fallback(self, db_session, make_operator, make_lead):
        operator = make_operator()
        lead = make_lead(operator, customer_phone=PHONE)
        ctx = resolve_case_context(db_session, PHONE, now=NOW, operator_id=operator.id)
        assert ctx.case.id == lead.id
        assert ctx.record is None

    def test_nothing_to_resolve(self, db_session, make_operator):
        operator = make_operator()
        assert resolve_case_context(db_session, PHONE, now=NOW, operator_id=operator.id) is None
