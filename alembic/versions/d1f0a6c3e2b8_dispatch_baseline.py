"""Dispatch baseline: operators, leads, jobs, notification_queue, sms_alert_context, sms_log

Revision ID: d1f0a6c3e2b8
Revises:
Create Date: 2026-10-12 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'd1f0a6c3e2b8'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _case_columns():
    """Columns shared by leads and jobs."""
    return [
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('operator_id', sa.Integer(), sa.ForeignKey('operators.id'), nullable=False),
        sa.Column('customer_name', sa.Text(), nullable=False),
        sa.Column('customer_phone', sa.Text(), nullable=False),
        sa.Column('customer_address', sa.Text(), nullable=True),
        sa.Column('service_type', sa.Text(), nullable=False, server_default='general'),
        sa.Column('urgency', sa.Text(), nullable=False, server_default='medium'),
        sa.Column('priority_color', sa.Text(), nullable=False, server_default='blue'),
        sa.Column('priority_reason', sa.Text(), nullable=True),
        sa.Column('revenue_tier', sa.Text(), nullable=True),
        sa.Column('estimated_value', sa.Float(), nullable=True),
        sa.Column('sentiment_score', sa.Integer(), nullable=True),
        sa.Column('is_callback_complaint', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('property_type', sa.Text(), nullable=True),
        sa.Column('ai_summary', sa.Text(), nullable=True),
        sa.Column('call_id', sa.Text(), nullable=True),
        sa.Column('notes', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
    ]


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table('operators',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('email', sa.Text(), nullable=False),
        sa.Column('phone', sa.Text(), nullable=True),
        sa.Column('business_name', sa.Text(), nullable=True),
        sa.Column('timezone', sa.Text(), nullable=False, server_default='America/New_York'),
        sa.Column('sms_same_day_booking', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('sms_future_booking', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('sms_callback_request', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('sms_schedule_conflict', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('sms_cancellation', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('quiet_hours_enabled', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('quiet_hours_start', sa.Text(), nullable=False, server_default='21:00'),
        sa.Column('quiet_hours_end', sa.Text(), nullable=False, server_default='08:00'),
        sa.Column('sms_opt_in', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('sms_opted_out_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
    )
    op.create_index('ix_operators_phone', 'operators', ['phone'])

    op.create_table('leads',
        *_case_columns(),
        sa.Column('status', sa.Text(), nullable=False, server_default='callback_requested'),
        sa.Column('priority', sa.Text(), nullable=False, server_default='warm'),
        sa.Column('end_call_reason', sa.Text(), nullable=True),
        sa.Column('issue_description', sa.Text(), nullable=True),
        sa.Column('remind_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('callback_outcome', sa.Text(), nullable=True),
        sa.Column('callback_outcome_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('lost_reason', sa.Text(), nullable=True),
        sa.Column('lost_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('converted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('converted_job_id', sa.Integer(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('operator_id', 'call_id', name='uq_lead_operator_call'),
    )
    op.create_index('ix_leads_operator_id', 'leads', ['operator_id'])
    op.create_index('ix_leads_customer_phone', 'leads', ['customer_phone'])

    op.create_table('jobs',
        *_case_columns(),
        sa.Column('status', sa.Text(), nullable=False, server_default='new'),
        sa.Column('scheduled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('needs_action', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('needs_action_note', sa.Text(), nullable=True),
        sa.Column('is_ai_booked', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('booking_confirmed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('operator_id', 'call_id', name='uq_job_operator_call'),
    )
    op.create_index('ix_jobs_operator_id', 'jobs', ['operator_id'])
    op.create_index('ix_jobs_customer_phone', 'jobs', ['customer_phone'])

    op.create_table('notification_queue',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('operator_id', sa.Integer(), sa.ForeignKey('operators.id'), nullable=False),
        sa.Column('lead_id', sa.Integer(), sa.ForeignKey('leads.id'), nullable=True),
        sa.Column('job_id', sa.Integer(), sa.ForeignKey('jobs.id'), nullable=True),
        sa.Column('customer_name', sa.Text(), nullable=True),
        sa.Column('customer_phone', sa.Text(), nullable=True),
        sa.Column('event_type', sa.Text(), nullable=False),
        sa.Column('message_body', sa.Text(), nullable=False),
        sa.Column('send_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('status', sa.Text(), nullable=False, server_default='queued'),
        sa.Column('requeue_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('provider_sid', sa.Text(), nullable=True),
        sa.Column('sent_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_notification_queue_status_send_at', 'notification_queue', ['status', 'send_at'])
    op.create_index('ix_notification_queue_provider_sid', 'notification_queue', ['provider_sid'])

    op.create_table('sms_alert_context',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('operator_phone', sa.Text(), nullable=False),
        sa.Column('alert_type', sa.Text(), nullable=False),
        sa.Column('lead_id', sa.Integer(), sa.ForeignKey('leads.id'), nullable=True),
        sa.Column('job_id', sa.Integer(), sa.ForeignKey('jobs.id'), nullable=True),
        sa.Column('customer_phone', sa.Text(), nullable=True),
        sa.Column('customer_name', sa.Text(), nullable=True),
        sa.Column('status', sa.Text(), nullable=False, server_default='pending'),
        sa.Column('replied_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('reply_code', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_sms_alert_context_phone_status', 'sms_alert_context',
                    ['operator_phone', 'status', 'created_at'])

    op.create_table('sms_log',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('operator_id', sa.Integer(), sa.ForeignKey('operators.id'), nullable=True),
        sa.Column('lead_id', sa.Integer(), sa.ForeignKey('leads.id'), nullable=True),
        sa.Column('job_id', sa.Integer(), sa.ForeignKey('jobs.id'), nullable=True),
        sa.Column('direction', sa.Text(), nullable=False),
        sa.Column('to_phone', sa.Text(), nullable=False, server_default=''),
        sa.Column('from_phone', sa.Text(), nullable=False, server_default=''),
        sa.Column('body', sa.Text(), nullable=False, server_default=''),
        sa.Column('event_type', sa.Text(), nullable=False, server_default='other'),
        sa.Column('status', sa.Text(), nullable=False),
        sa.Column('provider_sid', sa.Text(), nullable=True),
        sa.Column('delivery_status', sa.Text(), nullable=True),
        sa.Column('delivery_error_code', sa.Text(), nullable=True),
        sa.Column('delivery_status_updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_sms_log_provider_sid', 'sms_log', ['provider_sid'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('ix_sms_log_provider_sid', table_name='sms_log')
    op.drop_table('sms_log')
    op.drop_index('ix_sms_alert_context_phone_status', table_name='sms_alert_context')
    op.drop_table('sms_alert_context')
    op.drop_index('ix_notification_queue_provider_sid', table_name='notification_queue')
    op.drop_index('ix_notification_queue_status_send_at', table_name='notification_queue')
    op.drop_table('notification_queue')
    op.drop_index('ix_jobs_customer_phone', table_name='jobs')
    op.drop_index('ix_jobs_operator_id', table_name='jobs')
    op.drop_table('jobs')
    op.drop_index('ix_leads_customer_phone', table_name='leads')
    op.drop_index('ix_leads_operator_id', table_name='leads')
    op.drop_table('leads')
    op.drop_index('ix_operators_phone', table_name='operators')
    op.drop_table('operators')
