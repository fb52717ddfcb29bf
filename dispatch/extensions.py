"""
Shared client instances: Redis, Twilio.

Lazily initialized on first access so importing this module is always safe
(even when env vars are missing during tests).
"""
import logging
import redis

from dispatch.config import REDIS_URL, TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN

logger = logging.getLogger('dispatch.extensions')

# ── Redis ─────────────────────────────────────────────────────────────────────
redis_client = redis.from_url(REDIS_URL, decode_responses=True)

# ── Twilio ────────────────────────────────────────────────────────────────────
_twilio_client = None


def get_twilio_client():
    """Return the shared Twilio REST client, or None when credentials are unset."""
    global _twilio_client
    if _twilio_client is not None:
        return _twilio_client

    if not (TWILIO_ACCOUNT_SID and TWILIO_AUTH_TOKEN):
        logger.warning("TWILIO_ACCOUNT_SID / TWILIO_AUTH_TOKEN not set - SMS disabled")
        return None

    from twilio.rest import Client
    _twilio_client = Client(TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN)
    logger.info("Twilio client initialized successfully")
    return _twilio_client
