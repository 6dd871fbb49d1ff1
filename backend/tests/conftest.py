"""
Root pytest configuration for backend tests.

Provides:
- Shared fixtures (app, client, admin headers)
- An in-memory SQLite database per test
- Fake HTTP sessions so strategies never touch the network
"""

import random
import sys
from pathlib import Path

# Add backend directory to Python path so imports like
# `from scrapers.normalizer import ...` and `from api.params import ...` work
backend_dir = Path(__file__).parent.parent
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

import pytest
from sqlalchemy.pool import StaticPool

from http_fakes import FakeSession

ADMIN_TOKEN = 'test-admin-token'


@pytest.fixture
def app(monkeypatch):
    """Create test Flask application on a private in-memory database."""
    monkeypatch.setenv('INGESTION_ENABLED', 'true')
    from app import create_app
    from models.database import db

    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite://',
        'SQLALCHEMY_ENGINE_OPTIONS': {
            'poolclass': StaticPool,
            'connect_args': {'check_same_thread': False},
        },
        'ADMIN_TOKEN': ADMIN_TOKEN,
        'INGESTION_RUN_INLINE': True,
        'RATELIMIT_ENABLED': False,
    })
    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def app_context(app):
    with app.app_context():
        yield app


@pytest.fixture
def admin_headers():
    return {'X-Admin-Token': ADMIN_TOKEN}


@pytest.fixture
def make_context():
    """SessionContext factory with instant sleeps and a seeded rng."""
    from scrapers.base import SessionContext

    def _make(session=None, **overrides):
        sleeps = []
        fake = session or FakeSession()
        options = dict(
            base_url='https://portal.test',
            max_retries=2,
            backoff_seconds=0.5,
            page_delay=0,
            district_delay=0,
            max_workers=2,
            sleep=sleeps.append,
            rng=random.Random(7),
            session_factory=lambda: fake,
        )
        options.update(overrides)
        context = SessionContext(**options)
        context.sleeps = sleeps
        context.fake_session = fake
        return context

    return _make
