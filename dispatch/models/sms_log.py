"""
SmsLogEntry: append-only audit of every inbound and outbound message.

Delivery callbacks only ever fill in the delivery_* columns.
"""
from sqlalchemy import Column, Integer, Text, DateTime, ForeignKey
from sqlalchemy.sql import func

from dispatch.database import Base


class SmsLogEntry(Base):
    __tablename__ = 'sms_log'

    id = Column(Integer, primary_key=True, autoincrement=True)
    operator_id = Column(Integer, ForeignKey('operators.id'), nullable=True)
    lead_id = Column(Integer, ForeignKey('leads.id'), nullable=True)
    job_id = Column(Integer, ForeignKey('jobs.id'), nullable=True)
    direction = Column(Text, nullable=False)                 # inbound/outbound
    to_phone = Column(Text, nullable=False, default='')
    from_phone = Column(Text, nullable=False, default='')
    body = Column(Text, nullable=False, default='')
    event_type = Column(Text, nullable=False, default='other')
    status = Column(Text, nullable=False)                    # received/sent/failed
    provider_sid = Column(Text, nullable=True, index=True)
    delivery_status = Column(Text, nullable=True)
    delivery_error_code = Column(Text, nullable=True)
    delivery_status_updated_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
