#!/usr/bin/env python3
"""
Seed a demo operator and cases for trying the triage view and SMS replies locally.

Cases are pushed through the real intake path, so each one is routed, colored
and (if the operator has a phone and Twilio is configured) alerted exactly as a
voice-agent delivery would be:
  1. Emergency no-heat call            -> HAZARD lead
  2. Angry repeat customer             -> RECOVERY lead
  3. Replacement quote                 -> REVENUE lead
  4. Caller hung up mid-call           -> abandoned lead + abandoned_call alert
  5. Booked tune-up tomorrow           -> job
  6. Vendor pitch                      -> gray lead, never alerted

Usage:
    python scripts/seed_test_data.py --email owner@example.com --phone +15551234567
    python scripts/seed_test_data.py --clear        # wipe seeded cases first

Requires: DATABASE_URL set (or defaults to sqlite:///local.db).
"""
import sys
import os
import argparse
from datetime import timedelta

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dispatch import create_app
from dispatch.database import Base, engine, get_session, utcnow
from dispatch.models.alert_context import AlertContextRecord
from dispatch.models.case import Job, Lead
from dispatch.models.notification_queue import NotificationQueueEntry
from dispatch.models.operator import Operator
from dispatch.models.sms_log import SmsLogEntry
from dispatch.services.intake import ingest_case_event

# Prefix for seeded call ids so we can clear them
SEED_PREFIX = 'seed-'


def _scenarios(email):
    tomorrow = (utcnow() + timedelta(days=1)).replace(hour=15, minute=0, second=0, microsecond=0)
    base = {'user_email': email, 'service_type': 'hvac'}
    return [
        dict(base, call_id=f'{SEED_PREFIX}1', customer_name='Maria Lopez', customer_phone='+15550100001',
             urgency='emergency', end_call_reason='safety_emergency',
             ai_summary='No heat, elderly resident, house at 52F'),
        dict(base, call_id=f'{SEED_PREFIX}2', customer_name='Greg Hall', customer_phone='+15550100002',
             sentiment_score=1, is_callback_complaint=True, estimated_value=2400,
             ai_summary='Third visit for the same leak, threatening a review'),
        dict(base, call_id=f'{SEED_PREFIX}3', customer_name='Priya Raman', customer_phone='+15550100003',
             revenue_tier='replacement', estimated_value=11500, end_call_reason='callback_later',
             callback_timeframe='after 5pm', ai_summary='Wants a quote on a full system replacement'),
        dict(base, call_id=f'{SEED_PREFIX}4', customer_name='Dan Ortiz', customer_phone='+15550100004',
             end_call_reason='customer_hangup', ai_summary='Dropped while describing a burning smell'),
        dict(base, call_id=f'{SEED_PREFIX}5', customer_name='Lena Park', customer_phone='+15550100005',
             scheduled_at=tomorrow.isoformat(), end_call_reason='completed',
             customer_address='42 Oak Ave, Scottsdale, AZ 85251', ai_summary='Seasonal tune-up'),
        dict(base, call_id=f'{SEED_PREFIX}6', customer_name='SEO Experts LLC', customer_phone='+15550100006',
             caller_type='vendor', primary_intent='solicitation', ai_summary='Selling marketing services'),
    ]


# ── Clear / Main ─────────────────────────────────────────────────────────────

def clear_seeded_data(session):
    """Remove seeded cases and everything that points at them."""
    lead_ids = [l.id for l in session.query(Lead).filter(Lead.call_id.like(f'{SEED_PREFIX}%'))]
    job_ids = [j.id for j in session.query(Job).filter(Job.call_id.like(f'{SEED_PREFIX}%'))]

    if not lead_ids and not job_ids:
        print('No seeded data found.')
        return

    for model in (AlertContextRecord, NotificationQueueEntry, SmsLogEntry):
        session.query(model).filter(
            model.lead_id.in_(lead_ids) | model.job_id.in_(job_ids)
        ).delete(synchronize_session=False)
    deleted_leads = session.query(Lead).filter(Lead.id.in_(lead_ids)).delete(synchronize_session=False)
    deleted_jobs = session.query(Job).filter(Job.id.in_(job_ids)).delete(synchronize_session=False)
    session.commit()

    print(f'Cleared {deleted_leads} leads, {deleted_jobs} jobs.')


def ensure_operator(session, email, phone):
    operator = session.query(Operator).filter(Operator.email == email).first()
    if operator is None:
        operator = Operator(email=email, business_name='Demo HVAC')
        session.add(operator)
    if phone:
        operator.phone = phone
    session.commit()
    return operator


def main():
    parser = argparse.ArgumentParser(description='Seed demo cases for the triage view')
    parser.add_argument('--email', default='owner@example.com', help='Operator email')
    parser.add_argument('--phone', default=None, help='Operator phone (E.164); alerts go here')
    parser.add_argument('--clear', action='store_true', help='Clear seeded data before (or instead of) seeding')
    parser.add_argument('--clear-only', action='store_true', help='Only clear, do not re-seed')
    args = parser.parse_args()

    app = create_app()
    with app.app_context():
        # Ensure tables exist (for SQLite local dev)
        Base.metadata.create_all(engine)

        session = get_session()
        try:
            if args.clear or args.clear_only:
                clear_seeded_data(session)
                if args.clear_only:
                    return

            ensure_operator(session, args.email, args.phone)
            print('Seeding cases...')
            for n, payload in enumerate(_scenarios(args.email), start=1):
                result = ingest_case_event(session, payload)
                alert = (result.notification or {}).get('reason') or ('sent' if result.notification else 'none')
                print(f'  [{n}] {result.kind:<4} {result.case.status:<18} {payload["customer_name"]} (alert: {alert})')
            print(f'\nDone! GET /api/triage?email={args.email} to verify.')

        except Exception as e:
            session.rollback()
            print(f'Error: {e}')
            raise
        finally:
            session.close()


if __name__ == '__main__':
    main()
