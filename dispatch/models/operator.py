"""
Operator model: the business owner who receives alerts and replies by SMS.

Notification preferences live on the same row: per-event toggles, the local
quiet-hours window and the SMS opt-in flag that STOP/START flip.
"""
from sqlalchemy import Column, Integer, Text, Boolean, DateTime
from sqlalchemy.sql import func

from dispatch.config import DEFAULT_TIMEZONE, DEFAULT_BUSINESS_NAME
from dispatch.database import Base


class Operator(Base):
    __tablename__ = 'operators'

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(Text, nullable=False, unique=True)
    phone = Column(Text, nullable=True, index=True)    # E.164, e.g. +15551234567
    business_name = Column(Text, default=DEFAULT_BUSINESS_NAME)
    timezone = Column(Text, nullable=False, default=DEFAULT_TIMEZONE)

    sms_same_day_booking = Column(Boolean, nullable=False, default=True)
    sms_future_booking = Column(Boolean, nullable=False, default=True)
    sms_callback_request = Column(Boolean, nullable=False, default=True)
    sms_schedule_conflict = Column(Boolean, nullable=False, default=True)
    sms_cancellation = Column(Boolean, nullable=False, default=True)

    quiet_hours_enabled = Column(Boolean, nullable=False, default=False)
    quiet_hours_start = Column(Text, nullable=False, default='21:00')  # local HH:MM
    quiet_hours_end = Column(Text, nullable=False, default='08:00')

    sms_opt_in = Column(Boolean, nullable=False, default=True)
    sms_opted_out_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def allows_event(self, event_type):
        """Per-event preference; critical alerts can only be silenced by opting out."""
        toggles = {
            'same_day_booking': self.sms_same_day_booking,
            'future_booking': self.sms_future_booking,
            'callback_request': self.sms_callback_request,
            'schedule_conflict': self.sms_schedule_conflict,
            'cancellation': self.sms_cancellation,
            'abandoned_call': True,
            'stale_job_alert': True,
        }
        return bool(toggles.get(event_type, False))
