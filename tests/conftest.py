"""Shared test fixtures."""
from datetime import datetime, timezone

import pytest
from unittest.mock import patch, MagicMock
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from dispatch.database import Base

OPERATOR_PHONE = '+15550001111'

# 11:00 America/New_York (EDT)
NOW = datetime(2026, 6, 10, 15, 0, tzinfo=timezone.utc)


@pytest.fixture
def db_engine():
    """In-memory SQLite engine with schema created."""
    engine = create_engine('sqlite:///:memory:')
    import dispatch.models.operator
    import dispatch.models.case
    import dispatch.models.notification_queue
    import dispatch.models.alert_context
    import dispatch.models.sms_log
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(db_engine):
    """SQLAlchemy session bound to in-memory SQLite. Rolls back after each test."""
    Session = sessionmaker(bind=db_engine)
    session = Session()
    yield session
    session.rollback()
    session.close()


@pytest.fixture(autouse=True)
def patch_get_session(db_session):
    """Route all get_session() calls to the test session.

    We disable close() so that route handlers calling session.close()
    in their finally blocks don't invalidate the shared test session.
    """
    _real_close = db_session.close
    db_session.close = lambda: None
    with patch('dispatch.database.get_session', return_value=db_session):
        yield db_session
    db_session.close = _real_close


@pytest.fixture
def mock_redis():
    """Mock Redis client. SET NX succeeds unless a test says otherwise."""
    mock = MagicMock()
    mock.get.return_value = None
    mock.set.return_value = True
    mock.delete.return_value = 1
    with patch('dispatch.extensions.redis_client', mock):
        yield mock


@pytest.fixture
def mock_send():
    """Patch the Twilio send; every call returns a fresh fake SID."""
    sids = (f'SM{n:032d}' for n in range(1, 1000))
    with patch('dispatch.services.sms_gateway.send_sms', side_effect=lambda to, body: next(sids)) as m:
        yield m


@pytest.fixture
def app():
    """Flask test app."""
    from dispatch import create_app
    app = create_app()
    app.config['TESTING'] = True
    yield app


@pytest.fixture
def client(app):
    """Flask test client."""
    with app.test_client() as c:
        yield c


@pytest.fixture
def make_operator(db_session):
    """Factory fixture - persists an Operator with alerting switched on."""
    from dispatch.models.operator import Operator

    def _make(**overrides):
        defaults = dict(
            email='owner@example.com',
            phone=OPERATOR_PHONE,
            business_name='Acme HVAC',
            timezone='America/New_York',
            quiet_hours_enabled=False,
            quiet_hours_start='21:00',
            quiet_hours_end='08:00',
            sms_opt_in=True,
        )
        defaults.update(overrides)
        operator = Operator(**defaults)
        db_session.add(operator)
        db_session.commit()
        return operator
    return _make


@pytest.fixture
def make_lead(db_session):
    """Factory fixture - persists a Lead for the given operator."""
    from dispatch.models.case import Lead

    def _make(operator, **overrides):
        defaults = dict(
            operator_id=operator.id,
            customer_name='John Smith',
            customer_phone='+15557654321',
            service_type='hvac',
            urgency='medium',
            priority_color='blue',
            status='callback_requested',
            priority='warm',
            notes=[],
            created_at=NOW,
            updated_at=NOW,
        )
        defaults.update(overrides)
        lead = Lead(**defaults)
        db_session.add(lead)
        db_session.commit()
        return lead
    return _make


@pytest.fixture
def make_job(db_session):
    """Factory fixture - persists a Job for the given operator."""
    from dispatch.models.case import Job

    def _make(operator, **overrides):
        defaults = dict(
            operator_id=operator.id,
            customer_name='Jane Doe',
            customer_phone='+15559876543',
            customer_address='123 Main St, Scottsdale, AZ 85251',
            service_type='plumbing',
            urgency='medium',
            priority_color='green',
            status='new',
            scheduled_at=datetime(2026, 6, 12, 18, 0, tzinfo=timezone.utc),
            notes=[],
            created_at=NOW,
            updated_at=NOW,
        )
        defaults.update(overrides)
        job = Job(**defaults)
        db_session.add(job)
        db_session.commit()
        return job
    return _make
