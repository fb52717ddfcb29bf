"""
Case models: a tagged union of Lead (unbooked) and Job (booked).

Both tables share the CaseMixin columns: customer identity, the classification
signals the archetype is derived from, the ordered note list and the external
call id used to dedup intake deliveries. The `kind` discriminant is a class
attribute, not a column, since each kind has its own table.

Archetype is deliberately absent: it is computed on read from current signals.
"""
from sqlalchemy import (
    Column, Integer, Float, Text, Boolean, DateTime, JSON, ForeignKey, UniqueConstraint,
)
from sqlalchemy.orm import declared_attr
from sqlalchemy.sql import func

from dispatch.database import Base


class CaseMixin:
    kind = ''

    id = Column(Integer, primary_key=True, autoincrement=True)

    @declared_attr
    def operator_id(cls):
        return Column(Integer, ForeignKey('operators.id'), nullable=False, index=True)

    customer_name = Column(Text, nullable=False)
    customer_phone = Column(Text, nullable=False, index=True)
    customer_address = Column(Text, nullable=True)
    service_type = Column(Text, nullable=False, default='general')

    # Classification signals
    urgency = Column(Text, nullable=False, default='medium')
    priority_color = Column(Text, nullable=False, default='blue')
    priority_reason = Column(Text, nullable=True)
    revenue_tier = Column(Text, nullable=True)
    estimated_value = Column(Float, nullable=True)
    sentiment_score = Column(Integer, nullable=True)          # 1 (angry) .. 5 (happy)
    is_callback_complaint = Column(Boolean, nullable=False, default=False)
    property_type = Column(Text, nullable=True)

    ai_summary = Column(Text, nullable=True)
    call_id = Column(Text, nullable=True)                     # external dedup key
    notes = Column(JSON, nullable=False, default=list)        # [{text, source, author, created_at}]

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def to_dict(self):
        return {
            'id': self.id,
            'kind': self.kind,
            'operator_id': self.operator_id,
            'status': self.status,
            'customer_name': self.customer_name,
            'customer_phone': self.customer_phone,
            'customer_address': self.customer_address,
            'service_type': self.service_type,
            'urgency': self.urgency,
            'priority_color': self.priority_color,
            'priority_reason': self.priority_reason,
            'revenue_tier': self.revenue_tier,
            'estimated_value': self.estimated_value,
            'sentiment_score': self.sentiment_score,
            'is_callback_complaint': self.is_callback_complaint,
            'property_type': self.property_type,
            'call_id': self.call_id,
            'notes': list(self.notes or []),
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


class Lead(CaseMixin, Base):
    __tablename__ = 'leads'
    kind = 'lead'

    status = Column(Text, nullable=False, default='callback_requested')
    priority = Column(Text, nullable=False, default='warm')   # hot/warm/cold
    end_call_reason = Column(Text, nullable=True)
    issue_description = Column(Text, nullable=True)
    remind_at = Column(DateTime(timezone=True), nullable=True)
    callback_outcome = Column(Text, nullable=True)
    callback_outcome_at = Column(DateTime(timezone=True), nullable=True)
    lost_reason = Column(Text, nullable=True)
    lost_at = Column(DateTime(timezone=True), nullable=True)
    converted_at = Column(DateTime(timezone=True), nullable=True)
    converted_job_id = Column(Integer, nullable=True)

    __table_args__ = (
        UniqueConstraint('operator_id', 'call_id', name='uq_lead_operator_call'),
    )

    def to_dict(self):
        data = super().to_dict()
        data.update({
            'priority': self.priority,
            'end_call_reason': self.end_call_reason,
            'issue_description': self.issue_description,
            'remind_at': self.remind_at.isoformat() if self.remind_at else None,
            'callback_outcome': self.callback_outcome,
            'lost_reason': self.lost_reason,
            'converted_job_id': self.converted_job_id,
        })
        return data


class Job(CaseMixin, Base):
    __tablename__ = 'jobs'
    kind = 'job'

    status = Column(Text, nullable=False, default='new')
    scheduled_at = Column(DateTime(timezone=True), nullable=True)
    needs_action = Column(Boolean, nullable=False, default=False)
    needs_action_note = Column(Text, nullable=True)
    is_ai_booked = Column(Boolean, nullable=False, default=False)
    booking_confirmed = Column(Boolean, nullable=False, default=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint('operator_id', 'call_id', name='uq_job_operator_call'),
    )

    def to_dict(self):
        data = super().to_dict()
        data.update({
            'scheduled_at': self.scheduled_at.isoformat() if self.scheduled_at else None,
            'needs_action': self.needs_action,
            'needs_action_note': self.needs_action_note,
            'is_ai_booked': self.is_ai_booked,
            'booking_confirmed': self.booking_confirmed,
        })
        return data
