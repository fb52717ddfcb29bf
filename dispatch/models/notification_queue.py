"""
NotificationQueueEntry: an alert deferred by quiet hours, drained by cron.
"""
from sqlalchemy import Column, Integer, Text, DateTime, ForeignKey, Index
from sqlalchemy.sql import func

from dispatch.database import Base


class NotificationQueueEntry(Base):
    __tablename__ = 'notification_queue'

    id = Column(Integer, primary_key=True, autoincrement=True)
    operator_id = Column(Integer, ForeignKey('operators.id'), nullable=False)
    lead_id = Column(Integer, ForeignKey('leads.id'), nullable=True)
    job_id = Column(Integer, ForeignKey('jobs.id'), nullable=True)
    customer_name = Column(Text, nullable=True)
    customer_phone = Column(Text, nullable=True)
    event_type = Column(Text, nullable=False)
    message_body = Column(Text, nullable=False)
    send_at = Column(DateTime(timezone=True), nullable=False)
    status = Column(Text, nullable=False, default='queued')  # queued/requeued/sending/sent/failed
    requeue_count = Column(Integer, nullable=False, default=0)
    provider_sid = Column(Text, nullable=True, index=True)
    sent_at = Column(DateTime(timezone=True), nullable=True)
    error_message = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index('ix_notification_queue_status_send_at', 'status', 'send_at'),
    )
