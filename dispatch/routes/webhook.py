"""
Intake webhook: the voice agent posts one call summary per request.

Auth: X-Webhook-Secret header must equal WEBHOOK_SECRET.
"""
import hmac
import logging

from flask import Blueprint, jsonify, request

from dispatch import config, database
from dispatch.errors import ValidationError
from dispatch.services.intake import ingest_case_event

logger = logging.getLogger('routes.webhook')

bp = Blueprint('webhook', __name__)


def _authorized():
    expected = config.WEBHOOK_SECRET
    provided = request.headers.get('X-Webhook-Secret', '')
    if not expected:
        logger.error("WEBHOOK_SECRET is not configured; rejecting intake")
        return False
    return hmac.compare_digest(provided, expected)


@bp.route('/api/webhook/jobs', methods=['POST'])
def intake_case():
    """Create (or update, on a repeated call id) a lead or job."""
    if not _authorized():
        return jsonify({'error': 'Unauthorized'}), 401

    payload = request.get_json(silent=True)
    session = database.get_session()
    try:
        result = ingest_case_event(session, payload)
        body = result.to_dict()
    except ValidationError as e:
        session.rollback()
        return jsonify({'error': str(e), 'details': e.details}), 400
    except Exception:
        session.rollback()
        logger.error("Intake failed", exc_info=True)
        return jsonify({'error': 'Internal server error'}), 500
    finally:
        session.close()

    return jsonify(body), 201 if body['action'] == 'created' else 200


@bp.route('/api/webhook/jobs', methods=['GET'])
def intake_health():
    return jsonify({'status': 'ok'})
