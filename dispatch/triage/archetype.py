"""
Archetype classifier: derives a case's triage archetype from its signals.

The archetype is never stored; it is recomputed on every read so it always
reflects current urgency, color, revenue tier and value.

Precedence (first match wins):
  1. HAZARD    - urgency is emergency or high
  2. RECOVERY  - priority_color is red
  3. REVENUE   - revenue_tier replacement/major_repair, estimated_value at or
                 above the revenue threshold, or priority_color green
  4. LOGISTICS - everything else

RECOVERY sits above REVENUE: an angry high-value customer is handled as a
relationship problem first.

Also home to the triage visibility predicate and the velocity ordering used by
the triage view.
"""
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from dispatch.database import as_utc, utcnow
from dispatch.triage.lifecycle import JOB_TERMINAL_STATUSES, LEAD_TERMINAL_STATUSES
from dispatch.triage.policy_config import get_setting, load_policy_config

ARCHETYPES = ['HAZARD', 'RECOVERY', 'REVENUE', 'LOGISTICS']

RESOLVED_CALLBACK_OUTCOMES = {'booked', 'resolved'}
REVENUE_TIERS_HIGH = {'replacement', 'major_repair'}


def _field(case, name, default=None):
    """Read a signal from a model instance or a plain mapping."""
    if isinstance(case, dict):
        return case.get(name, default)
    return getattr(case, name, default)


def _kind(case):
    kind = _field(case, 'kind')
    if kind:
        return kind
    return 'job' if _field(case, 'scheduled_at') is not None else 'lead'


def determine_archetype(case) -> str:
    urgency = _field(case, 'urgency')
    color = _field(case, 'priority_color')

    if urgency in ('emergency', 'high'):
        return 'HAZARD'

    if color == 'red':
        return 'RECOVERY'

    estimated_value = _field(case, 'estimated_value')
    threshold = get_setting('revenue_value_threshold', 1500)
    if (
        _field(case, 'revenue_tier') in REVENUE_TIERS_HIGH
        or (estimated_value is not None and estimated_value >= threshold)
        or color == 'green'
    ):
        return 'REVENUE'

    return 'LOGISTICS'


def is_triage_visible(case, now: Optional[datetime] = None, include_snoozed: bool = False) -> bool:
    """
    Whether a case belongs in the action view at all.

    Terminal and confirmed cases, spam (gray and lost) and callbacks that were
    already resolved are inbox items. Snoozed leads stay hidden until their
    remind_at passes.
    """
    now = now or utcnow()
    status = _field(case, 'status')

    if _field(case, 'priority_color') == 'gray' and status == 'lost':
        return False

    if _kind(case) == 'job':
        if status in JOB_TERMINAL_STATUSES:
            return False
        return status == 'new' or bool(_field(case, 'needs_action'))

    if status in LEAD_TERMINAL_STATUSES:
        return False
    if _field(case, 'callback_outcome') in RESOLVED_CALLBACK_OUTCOMES:
        return False

    remind_at = _field(case, 'remind_at')
    if remind_at is not None and not include_snoozed:
        if isinstance(remind_at, str):
            remind_at = datetime.fromisoformat(remind_at.replace('Z', '+00:00'))
        if as_utc(remind_at) > as_utc(now):
            return False

    return True


# ── Velocity ordering ────────────────────────────────────────────────────────

def _hours_old(case, now):
    created_at = _field(case, 'created_at')
    if created_at is None:
        return 0.0
    if isinstance(created_at, str):
        created_at = datetime.fromisoformat(created_at.replace('Z', '+00:00'))
    return max((as_utc(now) - as_utc(created_at)).total_seconds() / 3600, 0.0)


def velocity_score(case, now: Optional[datetime] = None) -> float:
    """Archetype base score plus age/value bonuses. Higher sorts first."""
    now = now or utcnow()
    weights = load_policy_config().get('velocity') or {}
    base_scores = weights.get('base_scores', {})
    archetype = determine_archetype(case)

    score = float(base_scores.get(archetype, 0))
    hours = _hours_old(case, now)
    value = _field(case, 'estimated_value')
    tier = _field(case, 'revenue_tier')

    if archetype == 'HAZARD':
        w = weights.get('hazard', {})
        score += min(hours * w.get('per_hour', 10), w.get('age_cap', 50))
        if _field(case, 'urgency') == 'emergency':
            score += w.get('emergency_bonus', 30)

    elif archetype == 'RECOVERY':
        w = weights.get('recovery', {})
        if value is not None and value >= get_setting('revenue_value_threshold', 1500):
            score += w.get('high_value_bonus', 40)
        if tier == 'replacement':
            score += w.get('replacement_bonus', 30)
        score += min(hours * w.get('per_hour', 5), w.get('age_cap', 60))
        sentiment = _field(case, 'sentiment_score')
        if sentiment is not None:
            if sentiment <= 2:
                score += w.get('angry_bonus', 25)
            elif sentiment == 3:
                score += w.get('neutral_bonus', 10)

    elif archetype == 'REVENUE':
        w = weights.get('revenue', {})
        if value:
            score += min(value / w.get('value_divisor', 100), w.get('value_cap', 50))
        if tier == 'replacement':
            score += w.get('replacement_bonus', 30)
        score += min(hours * w.get('per_hour', 3), w.get('age_cap', 30))

    else:
        w = weights.get('logistics', {})
        score += min(hours * w.get('per_hour', 2), w.get('age_cap', 50))
        if hours > w.get('stale_hours', 24):
            score += w.get('stale_bonus', 30)

    return score


def sort_by_velocity(cases: Iterable[Any], now: Optional[datetime] = None) -> List[Any]:
    now = now or utcnow()
    return sorted(cases, key=lambda c: velocity_score(c, now), reverse=True)


def group_by_archetype(cases: Iterable[Any]) -> Dict[str, List[Any]]:
    groups = {archetype: [] for archetype in ARCHETYPES}
    for case in cases:
        groups[determine_archetype(case)].append(case)
    return groups


def count_by_archetype(cases: Iterable[Any]) -> Dict[str, int]:
    return {archetype: len(items) for archetype, items in group_by_archetype(cases).items()}
