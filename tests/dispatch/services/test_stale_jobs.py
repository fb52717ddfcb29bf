"""Tests for dispatch.services.stale_jobs: flagging, one alert per job, DONE afterwards."""
from datetime import datetime, timedelta, timezone

from dispatch.commands.interpreter import handle_inbound_sms
from dispatch.models.sms_log import SmsLogEntry
from dispatch.services import sms_gateway
from dispatch.services.stale_jobs import flag_stale_jobs

OPERATOR_PHONE = '+15550001111'
NOW = datetime(2026, 6, 10, 15, 0, tzinfo=timezone.utc)


class TestFlagStaleJobs:
    """flag_stale_jobs() - jobs left in `new` past the threshold."""

    def test_flags_and_alerts_old_new_job(self, db_session, make_operator, make_job, mock_send):
        operator = make_operator()
        job = make_job(operator, created_at=NOW - timedelta(hours=30))

        report = flag_stale_jobs(db_session, now=NOW)

        assert report.processed == 1
        assert report.alerted == 1
        assert report.threshold_hours == 24
        db_session.refresh(job)
        assert job.needs_action is True
        assert job.needs_action_note == 'Job has been waiting for 30 hours without progress'
        mock_send.assert_called_once_with(OPERATOR_PHONE, sms_gateway.stale_job_alert('Jane Doe', 30))

        logged = db_session.query(SmsLogEntry).one()
        assert logged.event_type == 'stale_job_alert'
        assert logged.job_id == job.id

    def test_ignores_fresh_and_progressed_jobs(self, db_session, make_operator, make_job, mock_send):
        operator = make_operator()
        fresh = make_job(operator, created_at=NOW - timedelta(hours=2))
        confirmed = make_job(operator, status='confirmed', created_at=NOW - timedelta(hours=48))

        report = flag_stale_jobs(db_session, now=NOW)

        assert report.processed == 0
        mock_send.assert_not_called()
        db_session.refresh(fresh)
        db_session.refresh(confirmed)
        assert fresh.needs_action is False
        assert confirmed.needs_action is False

    def test_alerts_each_job_once(self, db_session, make_operator, make_job, mock_send):
        operator = make_operator()
        make_job(operator, created_at=NOW - timedelta(hours=30))

        flag_stale_jobs(db_session, now=NOW)
        second = flag_stale_jobs(db_session, now=NOW + timedelta(hours=1))

        assert second.processed == 0
        assert mock_send.call_count == 1

    def test_operator_without_phone_flagged_not_alerted(self, db_session, make_operator, make_job, mock_send):
        operator = make_operator(phone=None)
        job = make_job(operator, created_at=NOW - timedelta(hours=30))

        report = flag_stale_jobs(db_session, now=NOW)

        assert report.processed == 1
        assert report.skipped == 1
        assert report.alerted == 0
        db_session.refresh(job)
        assert job.needs_action is True
        mock_send.assert_not_called()

    def test_quiet_hours_alert_counts_as_alerted(self, db_session, make_operator, make_job, mock_send):
        operator = make_operator(quiet_hours_enabled=True)
        make_job(operator, created_at=NOW - timedelta(hours=30))
        # 23:00 EDT
        late = datetime(2026, 6, 11, 3, 0, tzinfo=timezone.utc)

        report = flag_stale_jobs(db_session, now=late)

        assert report.alerted == 1
        mock_send.assert_not_called()

    def test_batch_limit(self, db_session, make_operator, make_job, mock_send):
        operator = make_operator()
        for n in range(3):
            make_job(operator, customer_name=f'Customer {n}', created_at=NOW - timedelta(hours=30 + n))

        report = flag_stale_jobs(db_session, now=NOW, limit=2)

        assert report.processed == 2
        # Oldest first
        names = [call.args[1] for call in mock_send.call_args_list]
        assert 'Customer 2' in names[0]
        assert 'Customer 1' in names[1]

    def test_flagged_job_completes_on_done(self, db_session, make_operator, make_job, mock_send):
        operator = make_operator()
        job = make_job(operator, created_at=NOW - timedelta(hours=30))
        flag_stale_jobs(db_session, now=NOW)

        result = handle_inbound_sms(db_session, OPERATOR_PHONE, 'DONE', now=NOW + timedelta(minutes=10))

        assert result.success is True
        assert result.command == 'complete-job'
        assert result.reply == sms_gateway.complete_confirmation('Jane Doe')
        db_session.refresh(job)
        assert job.status == 'complete'
        assert job.needs_action is False
