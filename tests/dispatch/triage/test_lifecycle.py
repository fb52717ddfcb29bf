"""Tests for dispatch.triage.lifecycle: status moves, notes, snooze."""
from datetime import datetime, timedelta, timezone

import pytest

from dispatch.errors import InvalidTransition
from dispatch.models.case import Job, Lead
from dispatch.triage.lifecycle import (
    append_note,
    can_transition,
    is_terminal,
    snooze,
    transition,
)

NOW = datetime(2026, 6, 10, 15, 0, tzinfo=timezone.utc)


def _lead(status='callback_requested'):
    return Lead(id=1, status=status, notes=[])


def _job(status='new', needs_action=False):
    return Job(id=2, status=status, needs_action=needs_action, booking_confirmed=False, notes=[])


class TestLeadTransitions:
    """Open lead statuses move freely; converted and lost are terminal."""

    def test_open_to_open(self):
        lead = transition(_lead('abandoned'), 'callback_requested', now=NOW)
        assert lead.status == 'callback_requested'

    def test_converted_stamps_time(self):
        lead = transition(_lead(), 'converted', now=NOW)
        assert lead.status == 'converted'
        assert lead.converted_at == NOW

    def test_lost_stamps_time(self):
        lead = transition(_lead('voicemail_left'), 'lost', now=NOW)
        assert lead.lost_at == NOW

    @pytest.mark.parametrize('status', ['converted', 'lost'])
    def test_terminal_lead_never_moves(self, status):
        lead = _lead(status)
        assert is_terminal(lead)
        with pytest.raises(InvalidTransition):
            transition(lead, 'callback_requested', now=NOW)
        assert lead.status == status

    def test_unknown_status_rejected(self):
        assert can_transition(_lead(), 'on_site') is False


class TestJobTransitions:
    """Jobs only move forward, or get cancelled."""

    def test_confirm_sets_booking_confirmed(self):
        job = transition(_job(), 'confirmed', now=NOW)
        assert job.status == 'confirmed'
        assert job.booking_confirmed is True

    def test_forward_skip_allowed(self):
        assert can_transition(_job('new'), 'on_site') is True

    def test_backward_rejected(self):
        with pytest.raises(InvalidTransition):
            transition(_job('en_route'), 'confirmed', now=NOW)

    def test_complete_clears_needs_action(self):
        job = transition(_job('on_site', needs_action=True), 'complete', now=NOW)
        assert job.completed_at == NOW
        assert job.needs_action is False

    def test_cancel_from_open_state(self):
        job = transition(_job('confirmed'), 'cancelled', now=NOW)
        assert job.cancelled_at == NOW

    def test_cancelled_job_is_terminal(self):
        assert can_transition(_job('cancelled'), 'complete') is False


class TestAppendNote:
    """Notes keep insertion order and carry their source."""

    def test_appends_in_order(self):
        lead = _lead()
        append_note(lead, 'first', now=NOW)
        append_note(lead, 'second', source='app', author='owner@example.com', now=NOW + timedelta(minutes=1))
        assert [n['text'] for n in lead.notes] == ['first', 'second']
        assert lead.notes[1]['source'] == 'app'
        assert lead.notes[1]['author'] == 'owner@example.com'

    def test_reassigns_list(self):
        lead = _lead()
        original = lead.notes
        append_note(lead, 'hello', now=NOW)
        assert lead.notes is not original
        assert original == []

    def test_note_timestamp_is_iso(self):
        note = append_note(_lead(), 'x', now=NOW)
        assert note['created_at'] == NOW.isoformat()


class TestSnooze:
    """Snooze hides an open lead without touching its status."""

    def test_sets_remind_at_and_outcome(self):
        remind_at = NOW + timedelta(hours=2)
        lead = snooze(_lead('voicemail_left'), remind_at, now=NOW)
        assert lead.status == 'voicemail_left'
        assert lead.remind_at == remind_at
        assert lead.callback_outcome == 'try_again'

    def test_terminal_lead_rejected(self):
        with pytest.raises(InvalidTransition):
            snooze(_lead('lost'), NOW + timedelta(hours=1), now=NOW)

    def test_job_rejected(self):
        with pytest.raises(InvalidTransition):
            snooze(_job(), NOW + timedelta(hours=1), now=NOW)
