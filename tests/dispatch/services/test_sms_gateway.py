"""Tests for dispatch.services.sms_gateway: Twilio send wrapper and templates."""
from unittest.mock import MagicMock, patch

import pytest

from dispatch.errors import GatewaySendFailure
from dispatch.services import sms_gateway


@pytest.fixture
def twilio_client():
    client = MagicMock()
    client.messages.create.return_value = MagicMock(sid='SM123')
    with patch('dispatch.services.sms_gateway.get_twilio_client', return_value=client), \
         patch('dispatch.services.sms_gateway.TWILIO_PHONE_NUMBER', '+15550009999'), \
         patch('dispatch.services.sms_gateway.TWILIO_STATUS_CALLBACK_URL', None):
        yield client


class TestSendSms:
    """send_sms() returns the SID or raises GatewaySendFailure."""

    def test_returns_sid(self, twilio_client):
        assert sms_gateway.send_sms('+15550001111', 'hello') == 'SM123'
        twilio_client.messages.create.assert_called_once_with(
            body='hello', from_='+15550009999', to='+15550001111',
        )

    def test_status_callback_passed_when_configured(self, twilio_client):
        with patch('dispatch.services.sms_gateway.TWILIO_STATUS_CALLBACK_URL', 'https://x/api/twilio/status'):
            sms_gateway.send_sms('+15550001111', 'hello')
        kwargs = twilio_client.messages.create.call_args.kwargs
        assert kwargs['status_callback'] == 'https://x/api/twilio/status'

    def test_provider_error_wrapped(self, twilio_client):
        twilio_client.messages.create.side_effect = RuntimeError('21211 invalid number')
        with pytest.raises(GatewaySendFailure) as exc_info:
            sms_gateway.send_sms('+15550001111', 'hello')
        assert '21211' in exc_info.value.reason

    def test_missing_destination(self, twilio_client):
        with pytest.raises(GatewaySendFailure):
            sms_gateway.send_sms('', 'hello')
        twilio_client.messages.create.assert_not_called()

    def test_not_configured(self):
        with patch('dispatch.services.sms_gateway.get_twilio_client', return_value=None):
            with pytest.raises(GatewaySendFailure) as exc_info:
                sms_gateway.send_sms('+15550001111', 'hello')
        assert exc_info.value.reason == 'Twilio not configured'


class TestTemplates:
    def test_service_type_labels(self):
        assert sms_gateway.format_service_type('hvac') == 'HVAC'
        assert sms_gateway.format_service_type('plumbing') == 'Plumbing'
        assert sms_gateway.format_service_type(None) == 'Service'

    def test_status_confirmation(self):
        assert sms_gateway.status_confirmation('John Smith', 'CONTACTED') == '✓ John Smith marked CONTACTED'

    def test_callback_request_mentions_call(self):
        assert 'Reply CALL' in sms_gateway.callback_request('Al', 'tomorrow')

    def test_templates_fit_one_segment(self):
        bodies = [
            sms_gateway.same_day_booking('Jonathan Smithson', '12:30 PM', 'Electrical', 'Scottsdale'),
            sms_gateway.schedule_conflict('Jonathan Smithson', '12:30 PM', 'Margaret Longname'),
            sms_gateway.abandoned_call('Jonathan Smithson', '+15557654321'),
            sms_gateway.HELP_TEXT,
        ]
        for body in bodies:
            assert len(body) <= 160
