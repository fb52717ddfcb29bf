"""
Cron routes: scheduler hits these on a fixed interval.

In production the caller must send `Authorization: Bearer <CRON_SECRET>`.
"""
import hmac
import logging

from flask import Blueprint, jsonify, request

from dispatch import config, database
from dispatch.services.queue_drain import process_notification_queue
from dispatch.services.stale_jobs import flag_stale_jobs

logger = logging.getLogger('routes.cron')

bp = Blueprint('cron', __name__)


def _cron_authorized():
    if config.APP_ENV != 'production':
        return True
    if not config.CRON_SECRET:
        logger.error("CRON_SECRET is not configured in production")
        return False
    provided = request.headers.get('Authorization', '')
    return hmac.compare_digest(provided, f'Bearer {config.CRON_SECRET}')


@bp.route('/api/cron/process-notification-queue', methods=['GET', 'POST'])
def process_queue():
    if not _cron_authorized():
        return jsonify({'error': 'Unauthorized'}), 401

    session = database.get_session()
    try:
        report = process_notification_queue(session)
    except Exception:
        session.rollback()
        logger.error("Queue drain failed", exc_info=True)
        return jsonify({'error': 'Queue drain failed'}), 500
    finally:
        session.close()

    return jsonify({'success': True, **report.to_dict()})


@bp.route('/api/cron/stale-jobs', methods=['GET', 'POST'])
def stale_jobs():
    if not _cron_authorized():
        return jsonify({'error': 'Unauthorized'}), 401

    session = database.get_session()
    try:
        report = flag_stale_jobs(session)
    except Exception:
        session.rollback()
        logger.error("Stale job sweep failed", exc_info=True)
        return jsonify({'error': 'Stale job sweep failed'}), 500
    finally:
        session.close()

    return jsonify({'success': True, **report.to_dict()})
