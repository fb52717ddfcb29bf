"""
Centralized configuration: all env vars and fixed vocabularies.
"""
import os


# ── Logging ──────────────────────────────────────────────────────────────────
LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
LOG_FORMAT = os.getenv('LOG_FORMAT', 'text')

# ── Runtime ──────────────────────────────────────────────────────────────────
APP_ENV = os.getenv('APP_ENV', 'development')
SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-change-me')

# ── Redis ─────────────────────────────────────────────────────────────────────
REDIS_URL = os.getenv('REDIS_URL', 'redis://localhost:6379/0')

# ── PostgreSQL ────────────────────────────────────────────────────────────────
DATABASE_URL = os.getenv('DATABASE_URL', 'sqlite:///local.db')

# ── Webhook / cron auth ──────────────────────────────────────────────────────
WEBHOOK_SECRET = os.getenv('WEBHOOK_SECRET')
CRON_SECRET = os.getenv('CRON_SECRET')

# ── Twilio ────────────────────────────────────────────────────────────────────
TWILIO_ACCOUNT_SID = os.getenv('TWILIO_ACCOUNT_SID')
TWILIO_AUTH_TOKEN = os.getenv('TWILIO_AUTH_TOKEN')
TWILIO_PHONE_NUMBER = os.getenv('TWILIO_PHONE_NUMBER', '')
TWILIO_STATUS_CALLBACK_URL = os.getenv('TWILIO_STATUS_CALLBACK_URL')
TWILIO_VALIDATE_SIGNATURES = os.getenv('TWILIO_VALIDATE_SIGNATURES', '').lower() in ('1', 'true', 'yes')

# ── Operator defaults ────────────────────────────────────────────────────────
DEFAULT_TIMEZONE = os.getenv('DEFAULT_TIMEZONE', 'America/New_York')
DEFAULT_BUSINESS_NAME = 'My Business'

# ── Case vocabularies ────────────────────────────────────────────────────────
URGENCY_LEVELS = ['low', 'medium', 'high', 'emergency']

SERVICE_TYPES = ['hvac', 'plumbing', 'electrical', 'general']

PRIORITY_COLORS = ['red', 'green', 'blue', 'gray']

REVENUE_TIERS = [
    'replacement',
    'major_repair',
    'standard_repair',
    'minor',
    'diagnostic',
]

PROPERTY_TYPES = ['house', 'condo', 'apartment', 'commercial']

CALLER_TYPES = ['residential', 'commercial', 'vendor', 'recruiting', 'unknown']

PRIMARY_INTENTS = [
    'new_lead',
    'active_job_issue',
    'booking_request',
    'admin_billing',
    'solicitation',
]

END_CALL_REASONS = [
    'wrong_number',
    'callback_later',
    'safety_emergency',
    'urgent_escalation',
    'out_of_area',
    'waitlist_added',
    'completed',
    'customer_hangup',
    'sales_lead',
    'cancelled',
    'rescheduled',
]

CALLBACK_OUTCOMES = ['booked', 'resolved', 'try_again', 'no_answer']

# ── Notification event types ─────────────────────────────────────────────────
NOTIFICATION_EVENT_TYPES = [
    'same_day_booking',
    'future_booking',
    'callback_request',
    'schedule_conflict',
    'cancellation',
    'abandoned_call',
    'stale_job_alert',
]

# ── Queue status values ──────────────────────────────────────────────────────
QUEUE_STATUSES = [
    'queued',
    'requeued',
    'sending',
    'sent',
    'failed',
]
