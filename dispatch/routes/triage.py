"""
Triage view + health check.

GET /api/triage?email=<operator email>[&include_snoozed=1]
  visible leads and jobs, highest velocity first, with archetype counts.
"""
import logging

from flask import Blueprint, jsonify, request

from dispatch import database
from dispatch.database import utcnow
from dispatch.models.case import Job, Lead
from dispatch.models.operator import Operator
from dispatch.triage.archetype import (
    count_by_archetype, determine_archetype, is_triage_visible, sort_by_velocity, velocity_score,
)

logger = logging.getLogger('routes.triage')

bp = Blueprint('triage', __name__)


@bp.route('/health')
def health_check():
    """Health check endpoint."""
    return jsonify({"status": "healthy"}), 200


@bp.route('/api/triage')
def triage_view():
    email = request.args.get('email', '').strip()
    if not email:
        return jsonify({'error': 'email is required'}), 400
    include_snoozed = request.args.get('include_snoozed', '').lower() in ('1', 'true', 'yes')

    session = database.get_session()
    try:
        operator = session.query(Operator).filter(Operator.email == email).first()
        if operator is None:
            return jsonify({'error': 'Operator not found'}), 404

        now = utcnow()
        cases = (
            session.query(Lead).filter(Lead.operator_id == operator.id).all()
            + session.query(Job).filter(Job.operator_id == operator.id).all()
        )
        visible = [c for c in cases if is_triage_visible(c, now, include_snoozed=include_snoozed)]
        ordered = sort_by_velocity(visible, now)

        items = []
        for case in ordered:
            item = case.to_dict()
            item['archetype'] = determine_archetype(case)
            item['velocity_score'] = round(velocity_score(case, now), 2)
            items.append(item)

        return jsonify({
            'items': items,
            'counts': count_by_archetype(visible),
            'total': len(items),
        })
    finally:
        session.close()
