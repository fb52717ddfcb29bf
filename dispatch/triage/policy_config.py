"""
Triage/alerting policy loader: thresholds, windows and velocity weights.

YAML file with in-memory cache and hardcoded fallback if the file is missing.
"""
import logging
import os

import yaml

logger = logging.getLogger('triage.policy')


_policy_config = None


def _default_config():
    """Hardcoded fallback if YAML is missing."""
    return {
        'version': 'default',
        'revenue_value_threshold': 1500,
        'correlation_window_minutes': 60,
        'alert_cooldown_minutes': 0,
        'queue_batch_size': 50,
        'drain_lock_seconds': 120,
        'conflict_window_minutes': 60,
        'stale_job_hours': 24,
        'stale_job_batch_size': 20,
        'quiet_hours': {
            'start': '21:00',
            'end': '08:00',
        },
        'velocity': {
            'base_scores': {
                'HAZARD': 1000,
                'RECOVERY': 700,
                'REVENUE': 400,
                'LOGISTICS': 100,
            },
            'hazard': {'per_hour': 10, 'age_cap': 50, 'emergency_bonus': 30},
            'recovery': {
                'high_value_bonus': 40,
                'replacement_bonus': 30,
                'per_hour': 5,
                'age_cap': 60,
                'angry_bonus': 25,
                'neutral_bonus': 10,
            },
            'revenue': {
                'value_divisor': 100,
                'value_cap': 50,
                'replacement_bonus': 30,
                'per_hour': 3,
                'age_cap': 30,
            },
            'logistics': {'per_hour': 2, 'age_cap': 50, 'stale_hours': 24, 'stale_bonus': 30},
        },
    }


def load_policy_config():
    """Load policy config from YAML, with in-memory cache and hardcoded fallback."""
    global _policy_config
    if _policy_config is not None:
        return _policy_config

    config_path = os.path.join(os.path.dirname(__file__), 'policy_config.yaml')
    try:
        with open(config_path, 'r') as f:
            _policy_config = yaml.safe_load(f)
        logger.info("Config loaded from YAML (version=%s)", _policy_config.get('version', '?'))
    except Exception as e:
        logger.warning("YAML config not found (%s), using defaults", e)
        _policy_config = _default_config()

    return _policy_config


def get_setting(key, default=None):
    """Top-level policy value, falling back to the hardcoded default."""
    cfg = load_policy_config()
    if key in cfg:
        return cfg[key]
    return _default_config().get(key, default)
