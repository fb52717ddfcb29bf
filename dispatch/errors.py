"""
Error taxonomy for intake, alerting and reply handling.

Only ValidationError and InvalidTransition ever reach a caller as a failure;
the rest are raised and handled inside the alerting path so that a case write
is never lost because a notification could not be delivered.
"""


class DispatchError(Exception):
    """Base class for all dispatch errors."""


class ValidationError(DispatchError):
    """Malformed intake event - rejected before any mutation."""
    def __init__(self, message, details=None):
        self.details = details or []
        super().__init__(message)


class MissingOperatorProfile(DispatchError):
    """No operator row for the email on an intake event."""
    def __init__(self, email):
        self.email = email
        super().__init__(f"No operator profile for {email}")


class GatewaySendFailure(DispatchError):
    """The SMS gateway refused or failed to accept a message."""
    def __init__(self, to_phone, reason=''):
        self.to_phone = to_phone
        self.reason = reason
        super().__init__(f"SMS send failed: {reason}" if reason else "SMS send failed")


class CorrelationMiss(DispatchError):
    """An operator reply could not be attributed to any case."""
    def __init__(self, operator_phone):
        self.operator_phone = operator_phone
        super().__init__("No recent alert to attribute the reply to")


class DuplicateIntakeEvent(DispatchError):
    """The same external call id was delivered more than once."""
    def __init__(self, call_id, case):
        self.call_id = call_id
        self.case = case
        super().__init__(f"Call {call_id} already ingested as {case.kind} {case.id}")


class InvalidTransition(DispatchError):
    """A status change the case lifecycle does not allow."""
    def __init__(self, kind, current, requested):
        self.kind = kind
        self.current = current
        self.requested = requested
        super().__init__(f"{kind} cannot move from '{current}' to '{requested}'")
