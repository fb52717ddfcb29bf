"""
AlertContextRecord: links an operator's phone to the case they were last alerted about.

Queried on (operator_phone, status='pending'); the most recent record inside
the correlation window is the "current" one.
"""
from sqlalchemy import Column, Integer, Text, DateTime, ForeignKey, Index

from dispatch.database import Base


class AlertContextRecord(Base):
    __tablename__ = 'sms_alert_context'

    id = Column(Integer, primary_key=True, autoincrement=True)
    operator_phone = Column(Text, nullable=False)
    alert_type = Column(Text, nullable=False)
    lead_id = Column(Integer, ForeignKey('leads.id'), nullable=True)
    job_id = Column(Integer, ForeignKey('jobs.id'), nullable=True)
    customer_phone = Column(Text, nullable=True)
    customer_name = Column(Text, nullable=True)
    status = Column(Text, nullable=False, default='pending')   # pending/replied
    replied_at = Column(DateTime(timezone=True), nullable=True)
    reply_code = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index('ix_sms_alert_context_phone_status', 'operator_phone', 'status', 'created_at'),
    )
